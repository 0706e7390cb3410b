"""
Session — ブラウザコンテキストとページの所有

1 回の実行につき BrowserContext と Page を 1 組だけ生成し、
どの終了経路でも close() で必ず解放する。

主な機能:
  - SessionOptions: locale / permissions 等のコンテキスト設定
  - FlowSession.create(): コンテキストとページの生成
  - FlowSession.close(): 冪等なクリーンアップ（失敗は握りつぶす）
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """セッションの状態。"""

    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class SessionOptions:
    """BrowserContext の生成オプション。

    Attributes:
        locale: ブラウザのロケール
        permissions: 付与する権限（クリップボード等）
    """

    locale: str = "en-US"
    permissions: list[str] = field(
        default_factory=lambda: ["clipboard-read", "clipboard-write"]
    )

    def context_kwargs(self) -> dict:
        """browser.new_context() に渡すキーワード引数を返す。"""
        return {"locale": self.locale, "permissions": list(self.permissions)}


class FlowSession:
    """1 回の実行で使うコンテキストとページを所有する。

    使用例::

        session = await FlowSession.create(browser, SessionOptions())
        try:
            await session.page.goto(url)
        finally:
            await session.close()
    """

    def __init__(self, context: BrowserContext, page: Page) -> None:
        self._context = context
        self._page = page
        self._state = SessionState.ACTIVE

    @classmethod
    async def create(cls, browser: Browser, options: SessionOptions) -> FlowSession:
        """コンテキストとページを生成する。

        ページ生成に失敗した場合は生成済みのコンテキストを閉じてから送出する。
        """
        context = await browser.new_context(**options.context_kwargs())
        try:
            page = await context.new_page()
        except Exception:
            try:
                await context.close()
            except Exception:
                logger.debug("ページ生成失敗後のコンテキスト終了に失敗しました")
            raise
        logger.info("ブラウザコンテキストを生成しました（locale=%s）", options.locale)
        return cls(context, page)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def context(self) -> BrowserContext:
        return self._context

    @property
    def page(self) -> Page:
        if self._state is not SessionState.ACTIVE:
            raise RuntimeError("セッションは既に閉じられています")
        return self._page

    async def close(self) -> None:
        """コンテキストを閉じる。2 回目以降の呼び出しは何もしない。"""
        if self._state is not SessionState.ACTIVE:
            return

        self._state = SessionState.CLOSING
        try:
            await self._context.close()
        except Exception as exc:
            logger.warning("コンテキストの終了中にエラーが発生しました（無視）: %s", exc)
        finally:
            self._state = SessionState.CLOSED
            logger.info("ブラウザコンテキストを閉じました")

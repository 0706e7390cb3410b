"""
フレームナビゲータ — 入れ子 iframe への降下

ホストページ → 埋め込みパネル → 入れ子ダイアログのように、
TraversalPath の各ステップでフレームのホスト要素を解決し、
その内部の Frame を取得して次のステップの探索範囲とする。

フレームはステップ間で再生成されうるため、降下結果は一切キャッシュしない。
ナビゲーションやダイアログ開閉のあとは呼び出し側が descend() をやり直す。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from pydantic import BaseModel, Field

from .errors import FrameUnavailableError, NotFoundError
from .locators import Candidate

if TYPE_CHECKING:
    from playwright.async_api import Frame, Locator, Page

    from .selector import LocatorResolver

logger = logging.getLogger(__name__)


class FrameStep(BaseModel):
    """フレーム降下の 1 ステップ。

    Attributes:
        name: ステップ名（エラーメッセージ用）
        host: フレームのホスト要素（iframe）の探索候補
        state: ホスト要素に要求する状態。不可視の入力用 iframe は attached
    """

    name: str
    host: list[Candidate] = Field(..., min_length=1)
    state: Literal["visible", "attached"] = "visible"


TraversalPath = Sequence[FrameStep]
"""上から順に降下するフレームステップの列。状態を持たない。"""


class FrameNavigator:
    """TraversalPath を評価して Frame を取得する。"""

    def __init__(self, resolver: LocatorResolver, step_timeout: int = 60_000) -> None:
        """FrameNavigator を初期化する。

        Args:
            resolver: ホスト要素の解決に使うリゾルバ
            step_timeout: 各ステップの上限待機時間（ミリ秒）
        """
        self._resolver = resolver
        self._step_timeout = step_timeout

    async def descend(
        self,
        scope: Page | Frame,
        path: TraversalPath,
        *,
        timeout: Optional[int] = None,
    ) -> Page | Frame:
        """scope から path に沿って降下し、最も内側の Frame を返す。

        ステップ単位の再試行は行わない。フレームが存在しない場合は
        ページ側で再操作が必要なことが多いため、呼び出し側の判断に委ねる。

        Args:
            scope: 降下開始位置（通常は Page）
            path: フレームステップの列。空の場合は scope をそのまま返す
            timeout: 各ステップの待機時間（ミリ秒）。None でデフォルト

        Returns:
            最も内側のフレーム

        Raises:
            FrameUnavailableError: ホスト要素またはフレームが取得できない場合
        """
        wait_ms = self._step_timeout if timeout is None else timeout
        current: Page | Frame = scope

        for depth, step in enumerate(path):
            try:
                resolved = await self._resolver.resolve(
                    current,
                    step.host,
                    timeout=wait_ms,
                    state=step.state,
                    target=f"フレーム '{step.name}' のホスト要素",
                )
            except NotFoundError as exc:
                raise FrameUnavailableError(step.name, depth, str(exc)) from exc

            frame = await _content_frame(resolved.locator, wait_ms)
            if frame is None:
                raise FrameUnavailableError(
                    step.name, depth, "ホスト要素にコンテンツフレームがありません",
                )
            logger.debug("フレーム '%s'（深さ %d）に降下しました", step.name, depth)
            current = frame

        return current


async def _content_frame(locator: Locator, timeout: int) -> Optional[Frame]:
    """ホスト要素の内部 Frame を取得する。未アタッチの場合は None。"""
    try:
        handle = await locator.element_handle(timeout=timeout)
        if handle is None:
            return None
        return await handle.content_frame()
    except PlaywrightError as exc:
        logger.debug("ホスト要素のフレーム取得に失敗: %s", exc)
        return None

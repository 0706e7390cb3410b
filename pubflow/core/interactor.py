"""
インタラクタ — ベストエフォートのクリック・入力

アニメーション中のレイヤー重なり、ポインタイベントの横取り、要素の再生成は
この領域では定常状態であるため、操作は例外を送出しない。

  1. scroll_into_view_if_needed（失敗は無視）
  2. 通常の操作（人間らしい遅延付き）
  3. 失敗した場合のみ force=True で 1 回だけ再試行（失敗は無視）

操作の成否は呼び出し側が後続の状態確認（モーダルが閉じた、フレームが
現れた等）で検証する。
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Optional

from .waits import ProbeResult

if TYPE_CHECKING:
    from playwright.async_api import Locator

logger = logging.getLogger(__name__)


class InteractionOutcome(enum.Enum):
    """操作の結果。"""

    PERFORMED = "performed"
    FORCED = "forced"
    NO_EFFECT = "no_effect"


class Interactor:
    """ベストエフォートで要素を操作する。"""

    def __init__(
        self,
        delay: int = 50,
        action_timeout: int = 10_000,
        scroll_timeout: int = 5_000,
    ) -> None:
        """Interactor を初期化する。

        Args:
            delay: クリック時の押下〜解放の遅延（ミリ秒）
            action_timeout: 各操作の上限待機時間（ミリ秒）
            scroll_timeout: スクロールの上限待機時間（ミリ秒）
        """
        self._delay = delay
        self._action_timeout = action_timeout
        self._scroll_timeout = scroll_timeout

    async def scroll_into_view(self, locator: Locator) -> ProbeResult:
        """要素を表示領域までスクロールする。"""
        try:
            await locator.scroll_into_view_if_needed(timeout=self._scroll_timeout)
        except Exception as exc:
            # 画面外でもクリック可能なケースがあるため失敗時は継続する
            logger.debug("scroll_into_view に失敗（継続）: %s", exc)
            return ProbeResult.NOT_APPLICABLE
        return ProbeResult.SUCCEEDED

    async def click(self, locator: Locator, *, delay: Optional[int] = None) -> InteractionOutcome:
        """要素をクリックする。例外は送出しない。"""
        click_delay = self._delay if delay is None else delay
        await self.scroll_into_view(locator)
        try:
            await locator.click(delay=click_delay, timeout=self._action_timeout)
            return InteractionOutcome.PERFORMED
        except Exception as exc:
            logger.debug("click に失敗しました。force で再試行します: %s", exc)

        try:
            await locator.click(delay=click_delay, timeout=self._action_timeout, force=True)
            return InteractionOutcome.FORCED
        except Exception as exc:
            logger.debug("force click も失敗しました（無視）: %s", exc)
            return InteractionOutcome.NO_EFFECT

    async def fill(self, locator: Locator, text: str, *, secret: bool = False) -> InteractionOutcome:
        """入力フィールドに text を入力する。例外は送出しない。"""
        shown = "***" if secret else f"{len(text)} 文字"
        await self.scroll_into_view(locator)
        try:
            await locator.fill(text, timeout=self._action_timeout)
            logger.debug("fill: %s", shown)
            return InteractionOutcome.PERFORMED
        except Exception as exc:
            logger.debug("fill に失敗しました。force で再試行します: %s", type(exc).__name__)

        try:
            await locator.fill(text, timeout=self._action_timeout, force=True)
            logger.debug("fill (force): %s", shown)
            return InteractionOutcome.FORCED
        except Exception as exc:
            logger.debug("force fill も失敗しました（無視）: %s", type(exc).__name__)
            return InteractionOutcome.NO_EFFECT

    async def trial_click(self, locator: Locator) -> ProbeResult:
        """フォーカス移動のためだけのトライアルクリック（副作用なし）。"""
        try:
            await locator.click(trial=True, timeout=self._action_timeout)
        except Exception as exc:
            logger.debug("trial click に失敗（無視）: %s", exc)
            return ProbeResult.NOT_APPLICABLE
        return ProbeResult.SUCCEEDED

    async def blur(self, locator: Locator) -> ProbeResult:
        """要素からフォーカスを外す。"""
        try:
            await locator.evaluate("e => ('blur' in e ? e.blur() : undefined)")
        except Exception as exc:
            logger.debug("blur に失敗（無視）: %s", exc)
            return ProbeResult.NOT_APPLICABLE
        return ProbeResult.SUCCEEDED

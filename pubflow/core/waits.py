"""
待機戦略 — 上限付き待機とプローブ

全ての待機は明示的なタイムアウトを持つ。任意要素の存在確認（プローブ）は
例外を送出せず、ProbeResult の三値で結果を返す。

主な機能:
  - probe_state / probe_visible / probe_hidden: 要素状態のプローブ
  - probe_load_state: ページ読み込み状態のプローブ
  - settle: アニメーション等の描画待ち
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING, Literal

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

if TYPE_CHECKING:
    from playwright.async_api import Frame, Locator, Page

logger = logging.getLogger(__name__)

ElementState = Literal["attached", "detached", "visible", "hidden"]


# ---------------------------------------------------------------------------
# プローブ結果
# ---------------------------------------------------------------------------

class ProbeResult(enum.Enum):
    """上限付き待機の結果。

    SUCCEEDED: 期待した状態になった
    NOT_APPLICABLE: 対象が待機できる状態ではない（切り離し・不正なセレクタ等）
    TIMED_OUT: タイムアウトまでに期待した状態にならなかった
    """

    SUCCEEDED = "succeeded"
    NOT_APPLICABLE = "not_applicable"
    TIMED_OUT = "timed_out"

    @property
    def succeeded(self) -> bool:
        return self is ProbeResult.SUCCEEDED


# ---------------------------------------------------------------------------
# 要素状態のプローブ
# ---------------------------------------------------------------------------

async def probe_state(
    locator: Locator, state: ElementState, timeout: int
) -> ProbeResult:
    """要素が state になるまで最大 timeout ミリ秒待機する。

    Playwright の wait_for を使用するため、ポーリングループは回さない。

    Args:
        locator: 待機対象の Locator
        state: 期待する状態
        timeout: タイムアウト（ミリ秒）

    Returns:
        プローブ結果
    """
    try:
        await locator.wait_for(state=state, timeout=timeout)
    except PlaywrightTimeoutError:
        logger.debug("プローブがタイムアウトしました（state=%s, %dms）", state, timeout)
        return ProbeResult.TIMED_OUT
    except Exception as exc:
        logger.debug("プローブ対象が待機できません（state=%s）: %s", state, exc)
        return ProbeResult.NOT_APPLICABLE
    return ProbeResult.SUCCEEDED


async def probe_visible(locator: Locator, timeout: int) -> ProbeResult:
    """要素が可視になるまで待機する（タイムアウトは不在として扱う）。"""
    return await probe_state(locator, "visible", timeout)


async def probe_hidden(locator: Locator, timeout: int) -> ProbeResult:
    """要素が非表示になるまで待機する（タイムアウトは残存として扱う）。"""
    return await probe_state(locator, "hidden", timeout)


# ---------------------------------------------------------------------------
# ページ状態
# ---------------------------------------------------------------------------

async def probe_load_state(
    page: Page | Frame,
    state: Literal["load", "domcontentloaded", "networkidle"] = "networkidle",
    timeout: int = 2000,
) -> ProbeResult:
    """ページが指定の読み込み状態になるまで待機する。

    Google 系のページは networkidle に到達しないことが多いため、
    上限付きで待機し、到達しなくてもエラーにしない。
    """
    try:
        await page.wait_for_load_state(state, timeout=timeout)
    except PlaywrightTimeoutError:
        logger.debug("読み込み状態 '%s' に %dms 以内に到達しませんでした", state, timeout)
        return ProbeResult.TIMED_OUT
    except Exception as exc:
        logger.debug("読み込み状態 '%s' の待機に失敗: %s", state, exc)
        return ProbeResult.NOT_APPLICABLE
    return ProbeResult.SUCCEEDED


async def settle(page: Page, ms: int) -> None:
    """描画・アニメーションの完了を待つ固定待機。"""
    if ms > 0:
        await page.wait_for_timeout(ms)

"""
ロケータリゾルバ — 候補リストから可視要素を解決

同じコントロールを指す複数の探索候補を先頭から順に試行し、
上限付き待機の中で最初に可視になった候補を採用する。

主な機能:
  - 各候補を短いタイムアウトでプローブ（不在候補に長い待機を払わない）
  - 最初に成功した候補で即座に返し、後続候補は評価しない
  - 全候補失敗時は fallback 候補を長いタイムアウトで必須待機、
    fallback がなければ試行した全候補を列挙して NotFoundError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from .errors import NotFoundError
from .locators import Candidate, build_locator, describe_candidate
from .waits import ElementState, ProbeResult, probe_state

if TYPE_CHECKING:
    from playwright.async_api import Frame, Locator, Page

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_TIMEOUT = 2_000
DEFAULT_FALLBACK_TIMEOUT = 60_000


# ---------------------------------------------------------------------------
# 解決結果
# ---------------------------------------------------------------------------

@dataclass
class CandidateFailure:
    """解決に失敗した候補の情報。

    Attributes:
        index: 候補リスト内のインデックス（fallback は末尾の次）
        description: 候補の説明文字列
        reason: 失敗理由
    """

    index: int
    description: str
    reason: str


@dataclass
class ResolvedElement:
    """解決済み要素。

    Attributes:
        locator: 採用された候補の Locator
        candidate: 採用された候補
        index: 採用された候補のインデックス
        is_fallback: fallback 候補で解決したか
    """

    locator: Locator
    candidate: Candidate
    index: int
    is_fallback: bool = False


_REASONS = {
    ProbeResult.TIMED_OUT: "タイムアウト（{timeout}ms）",
    ProbeResult.NOT_APPLICABLE: "待機できない状態です",
}


# ---------------------------------------------------------------------------
# LocatorResolver 本体
# ---------------------------------------------------------------------------

class LocatorResolver:
    """候補リストを先頭から順に試行して要素を解決する。

    使用例::

        resolver = LocatorResolver()
        resolved = await resolver.resolve(
            page,
            [CssCandidate(css='input[aria-label="Document title"]')],
            fallback=LabelCandidate(label="Document title|Untitled", pattern=True),
        )
    """

    def __init__(
        self,
        candidate_timeout: int = DEFAULT_CANDIDATE_TIMEOUT,
        fallback_timeout: int = DEFAULT_FALLBACK_TIMEOUT,
    ) -> None:
        """LocatorResolver を初期化する。

        Args:
            candidate_timeout: 各候補のデフォルト待機時間（ミリ秒）
            fallback_timeout: fallback 候補のデフォルト待機時間（ミリ秒）
        """
        self._candidate_timeout = candidate_timeout
        self._fallback_timeout = fallback_timeout

    async def resolve(
        self,
        scope: Page | Frame,
        candidates: Sequence[Candidate],
        *,
        timeout: Optional[int] = None,
        fallback: Optional[Candidate] = None,
        fallback_timeout: Optional[int] = None,
        state: ElementState = "visible",
        target: str = "要素",
    ) -> ResolvedElement:
        """候補を順に試行し、最初に state を満たした要素を返す。

        Args:
            scope: 探索範囲（Page またはフレーム降下後の Frame）
            candidates: 探索候補（空は不可）
            timeout: 各候補の待機時間（ミリ秒）。None でデフォルト
            fallback: 全候補失敗時に必須待機する候補
            fallback_timeout: fallback の待機時間（ミリ秒）。None でデフォルト
            state: 満たすべき要素状態（通常は visible）
            target: エラーメッセージ用の探索対象名

        Returns:
            解決済み要素

        Raises:
            ValueError: candidates が空の場合
            NotFoundError: 全候補（と fallback）が解決できなかった場合
        """
        if not candidates:
            raise ValueError("candidates は 1 件以上指定してください")

        per_candidate = self._candidate_timeout if timeout is None else timeout
        failures: list[CandidateFailure] = []

        for idx, candidate in enumerate(candidates):
            desc = describe_candidate(candidate)
            locator = build_locator(scope, candidate)
            outcome = await probe_state(locator, state, per_candidate)
            if outcome.succeeded:
                logger.debug("%s: 候補 %d (%s) で解決しました", target, idx, desc)
                return ResolvedElement(locator=locator, candidate=candidate, index=idx)
            failures.append(CandidateFailure(
                index=idx,
                description=desc,
                reason=_REASONS[outcome].format(timeout=per_candidate),
            ))

        if fallback is None:
            raise NotFoundError(target, failures)

        # fallback は最も安定した経路として長いタイムアウトで必須待機する
        wait_ms = self._fallback_timeout if fallback_timeout is None else fallback_timeout
        desc = describe_candidate(fallback)
        locator = build_locator(scope, fallback)
        try:
            await locator.wait_for(state=state, timeout=wait_ms)
        except PlaywrightError as exc:
            failures.append(CandidateFailure(
                index=len(candidates),
                description=desc,
                reason=f"fallback 待機に失敗（{wait_ms}ms）: {exc.message}",
            ))
            raise NotFoundError(target, failures) from exc

        logger.info("%s: fallback 候補 (%s) で解決しました", target, desc)
        return ResolvedElement(
            locator=locator,
            candidate=fallback,
            index=len(candidates),
            is_fallback=True,
        )

"""
モーダルゲートキーパー — 権限ダイアログの検出・フォーカス・許可

状態遷移: ABSENT → VISIBLE → DISMISSING → GONE

状態は呼び出しごとに実際の UI から観測し直し、呼び出し間で保持しない。
全ての待機は上限付きのため、既に閉じたダイアログに対して繰り返し
呼び出しても処理が止まることはない。
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from playwright.async_api import Error as PlaywrightError
from pydantic import BaseModel, Field

from .errors import ModalNotPresentError, NotFoundError
from .interactor import InteractionOutcome, Interactor
from .locators import DEFAULT_BUTTON_SHAPES, ControlShape, match_control
from .selector import CandidateFailure
from .waits import probe_hidden, probe_visible

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

logger = logging.getLogger(__name__)


class ModalState(enum.Enum):
    """モーダルの観測状態。"""

    ABSENT = "absent"
    VISIBLE = "visible"
    DISMISSING = "dismissing"
    GONE = "gone"


class ModalSpec(BaseModel):
    """対象モーダルの定義。

    Attributes:
        name: モーダル名（ログ・エラーメッセージ用）
        modal: モーダル本体の CSS セレクタ
        container: 外側コンテナの CSS セレクタ（フォーカス誘導用、任意）
        action_label: 許可ボタンの表示テキスト（完全一致、大文字小文字無視）
        shapes: 許可ボタンとして受け付ける要素形状
    """

    name: str
    modal: str
    container: Optional[str] = None
    action_label: str = "Allow"
    shapes: list[ControlShape] = Field(default_factory=lambda: list(DEFAULT_BUTTON_SHAPES))


@dataclass
class ModalResult:
    """dismiss() の結果。

    Attributes:
        state: 最終的に観測した状態
        action: 許可ボタンの操作結果（モーダル不在時は None）
    """

    state: ModalState
    action: Optional[InteractionOutcome] = None


class ModalGatekeeper:
    """権限ダイアログを許可して閉じる。"""

    def __init__(
        self,
        interactor: Interactor,
        appear_timeout: int = 60_000,
        optional_timeout: int = 5_000,
        action_timeout: int = 10_000,
        close_timeout: int = 30_000,
    ) -> None:
        """ModalGatekeeper を初期化する。

        Args:
            interactor: ボタン操作に使うインタラクタ
            appear_timeout: 必須モーダルの表示待機（ミリ秒）
            optional_timeout: 任意モーダルの表示待機（ミリ秒）
            action_timeout: 許可ボタンの表示待機（ミリ秒）
            close_timeout: モーダルが閉じるまでの待機（ミリ秒）
        """
        self._interactor = interactor
        self._appear_timeout = appear_timeout
        self._optional_timeout = optional_timeout
        self._action_timeout = action_timeout
        self._close_timeout = close_timeout

    async def dismiss(
        self,
        scope: Page | Frame,
        spec: ModalSpec,
        *,
        required: bool = True,
    ) -> ModalResult:
        """モーダルの表示を待ち、許可ボタンを押して閉じる。

        Args:
            scope: モーダルを探す範囲
            spec: 対象モーダルの定義
            required: True の場合、モーダルが現れなければ致命的エラー

        Returns:
            最終状態と許可ボタンの操作結果

        Raises:
            ModalNotPresentError: required=True でモーダルが現れなかった場合
            NotFoundError: 許可ボタンが見つからなかった場合
        """
        modal = scope.locator(spec.modal).first
        appear_ms = self._appear_timeout if required else self._optional_timeout

        seen = await probe_visible(modal, appear_ms)
        if not seen.succeeded:
            if required:
                raise ModalNotPresentError(spec.name, appear_ms)
            logger.info("モーダル '%s' は表示されていません（%dms 待機）", spec.name, appear_ms)
            return ModalResult(state=ModalState.ABSENT)

        logger.info("モーダル '%s': %s", spec.name, ModalState.VISIBLE.value)

        # 入れ子の描画面ではフォーカスを移さないと内部コントロールが入力を受け付けない
        if spec.container:
            await self._interactor.trial_click(scope.locator(spec.container).first)
        await self._interactor.trial_click(modal)

        action = match_control(modal, spec.shapes, spec.action_label)
        try:
            await action.wait_for(state="visible", timeout=self._action_timeout)
        except PlaywrightError as exc:
            shapes = ", ".join(shape.selector() for shape in spec.shapes)
            raise NotFoundError(
                f"モーダル '{spec.name}' の '{spec.action_label}' ボタン",
                [CandidateFailure(
                    index=0,
                    description=f"css='{shapes}', text=/^{spec.action_label}$/i",
                    reason=f"タイムアウト（{self._action_timeout}ms）",
                )],
            ) from exc

        logger.info("モーダル '%s': %s", spec.name, ModalState.DISMISSING.value)
        outcome = await self._interactor.click(action)

        closed = await probe_hidden(modal, self._close_timeout)
        if not closed.succeeded:
            # ページ遷移後に非同期で閉じる版があるため続行する
            logger.warning(
                "モーダル '%s' が %dms 以内に閉じませんでした。続行します。",
                spec.name, self._close_timeout,
            )
            return ModalResult(state=ModalState.DISMISSING, action=outcome)

        logger.info("モーダル '%s': %s", spec.name, ModalState.GONE.value)
        return ModalResult(state=ModalState.GONE, action=outcome)

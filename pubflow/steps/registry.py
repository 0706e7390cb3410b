"""
ステップレジストリ — 業務ステップの登録と実行順序

公開フローの各ステップ（login, create-document, open-addon, connect,
publish, verify）を登録順に保持し、Runner へ順序付きパイプラインとして渡す。

主な構成:
  - FlowContext: 1 回の実行で全ステップが共有するコンテキスト
  - StepHandler Protocol: ステップハンドラの共通インターフェース
  - StepInfo: ステップのメタ情報（名前、説明）
  - StepRegistry: ステップハンドラの登録・検索・順序付き一覧
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..config import Credentials, DocumentContent, FlowConfig
    from ..core.frames import FrameNavigator
    from ..core.interactor import Interactor
    from ..core.modal import ModalGatekeeper
    from ..core.selector import LocatorResolver
    from ..core.session import FlowSession
    from .publisher import VerificationResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# フロー実行コンテキスト
# ---------------------------------------------------------------------------

@dataclass
class FlowContext:
    """1 回の実行で全ステップが共有するコンテキスト。

    ステップ間のデータ受け渡しはブラウザの状態を介して行う。
    published_url と verification は報告用の値であり、
    後続ステップの分岐条件には使わない。

    Attributes:
        session: コンテキストとページを所有するセッション
        config: 実行設定
        credentials: 認証情報
        document: 作成するドキュメントの内容
        resolver: ロケータリゾルバ
        navigator: フレームナビゲータ
        interactor: インタラクタ
        gatekeeper: モーダルゲートキーパー
        published_url: publish ステップが報告した URL
        verification: verify ステップの結果
    """

    session: FlowSession
    config: FlowConfig
    credentials: Credentials
    document: DocumentContent
    resolver: LocatorResolver
    navigator: FrameNavigator
    interactor: Interactor
    gatekeeper: ModalGatekeeper
    published_url: Optional[str] = None
    verification: Optional[VerificationResult] = None


# ---------------------------------------------------------------------------
# ステップメタ情報・Protocol
# ---------------------------------------------------------------------------

@dataclass
class StepInfo:
    """ステップのメタ情報。CLI の list-steps で使用する。"""

    name: str
    description: str


@runtime_checkable
class StepHandler(Protocol):
    """ステップハンドラの共通インターフェース。"""

    async def execute(self, context: FlowContext) -> None:
        """ステップを実行する。必須要素が得られない場合は例外を送出する。"""
        ...


# ---------------------------------------------------------------------------
# StepRegistry 本体
# ---------------------------------------------------------------------------

class StepRegistry:
    """ステップハンドラを登録順に管理するレジストリ。

    使用例::

        registry = StepRegistry()
        registry.register("login", LoginStep(), info=StepInfo(...))
        for name, handler in registry.pipeline():
            await handler.execute(context)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, StepHandler] = {}
        self._info: dict[str, StepInfo] = {}

    def register(
        self,
        name: str,
        handler: StepHandler,
        *,
        info: Optional[StepInfo] = None,
    ) -> None:
        """ステップハンドラを末尾に登録する。

        同名のハンドラが既に登録されている場合は位置を保ったまま上書きする。

        Raises:
            TypeError: handler が StepHandler Protocol を満たさない場合
        """
        if not isinstance(handler, StepHandler):
            raise TypeError(
                f"handler は StepHandler Protocol を満たす必要があります: "
                f"{type(handler).__name__}"
            )

        if name in self._handlers:
            logger.warning(
                "ステップ '%s' のハンドラを上書きします（既存: %s → 新規: %s）",
                name,
                type(self._handlers[name]).__name__,
                type(handler).__name__,
            )

        self._handlers[name] = handler
        if info is not None:
            self._info[name] = info
        elif name not in self._info:
            self._info[name] = StepInfo(name=name, description=f"{name} ステップ")

        logger.debug("ステップ '%s' を登録しました: %s", name, type(handler).__name__)

    def pipeline(self) -> list[tuple[str, StepHandler]]:
        """登録順の (ステップ名, ハンドラ) リストを返す。"""
        return list(self._handlers.items())

    def list_all(self) -> list[StepInfo]:
        """登録順のメタ情報リストを返す。"""
        return [self._info[name] for name in self._handlers]

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

"""
ステップライブラリモジュール

公開フローの業務ステップとレジストリを提供する。

主要エクスポート:
  - StepRegistry: ステップハンドラの登録・検索・順序付き一覧
  - StepHandler: ステップハンドラの共通 Protocol
  - FlowContext: 全ステップが共有する実行コンテキスト
  - StepInfo: ステップのメタ情報
  - create_publish_registry: 公開フローの全ステップ登録済みレジストリの生成
"""

from .publisher import PUBLISH_STEPS, VerificationResult, verify_published_location
from .registry import FlowContext, StepHandler, StepInfo, StepRegistry

__all__ = [
    "FlowContext",
    "StepHandler",
    "StepInfo",
    "StepRegistry",
    "VerificationResult",
    "create_publish_registry",
    "verify_published_location",
]


def create_publish_registry() -> StepRegistry:
    """login → create-document → open-addon → connect → publish → verify の順で
    登録された StepRegistry を生成する。
    """
    registry = StepRegistry()
    for info, handler_cls in PUBLISH_STEPS:
        registry.register(info.name, handler_cls(), info=info)
    return registry

"""
エラー定義 — フロー実行時の例外階層

  - ConfigurationAbsentError: 必須の環境変数が未設定（スキップ扱い）
  - NotFoundError: 必須の要素がどの候補でも見つからない
  - ModalNotPresentError: 必須の権限ダイアログが表示されない
  - FrameUnavailableError: 埋め込みフレームが取得できない
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .selector import CandidateFailure


class FlowError(Exception):
    """pubflow の全例外の基底クラス。"""


class ConfigurationAbsentError(FlowError):
    """必須の環境変数が設定されていない場合のエラー。"""

    def __init__(self, missing_keys: Sequence[str]) -> None:
        self.missing_keys = list(missing_keys)
        super().__init__(
            f"必須の環境変数が未設定です: {', '.join(self.missing_keys)}"
        )


class NotFoundError(FlowError):
    """必須の要素がどの候補でも解決できなかった場合のエラー。

    Attributes:
        target: 探索対象の説明
        failures: 試行した各候補の失敗情報
    """

    def __init__(self, target: str, failures: Sequence[CandidateFailure] = ()) -> None:
        self.target = target
        self.failures = list(failures)
        details = "\n".join(
            f"  [{f.index}] {f.description}: {f.reason}" for f in self.failures
        )
        message = f"{target} が見つかりませんでした（{len(self.failures)} 候補を試行）"
        if details:
            message = f"{message}\n試行結果:\n{details}"
        super().__init__(message)

    @property
    def strategies(self) -> list[str]:
        """試行した候補の説明文字列を試行順に返す。"""
        return [f.description for f in self.failures]


class ModalNotPresentError(NotFoundError):
    """必須のモーダルがタイムアウトまでに表示されなかった場合のエラー。"""

    def __init__(self, modal_name: str, timeout: int) -> None:
        self.modal_name = modal_name
        self.timeout = timeout
        super().__init__(f"モーダル '{modal_name}'（{timeout}ms 待機）")


class FrameUnavailableError(FlowError):
    """埋め込みフレームのコンテキストが取得できなかった場合のエラー。

    Attributes:
        step_name: 失敗したフレーム降下ステップ名
        depth: パス内での位置（0始まり）
        reason: 失敗理由
    """

    def __init__(self, step_name: str, depth: int, reason: str) -> None:
        self.step_name = step_name
        self.depth = depth
        self.reason = reason
        super().__init__(
            f"フレーム '{step_name}'（深さ {depth}）を取得できませんでした: {reason}"
        )

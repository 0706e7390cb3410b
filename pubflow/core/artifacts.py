"""
ArtifactsManager — 実行成果物の管理

主な機能:
  - create_run_dir(): 実行ディレクトリ（run-YYYYMMDD-HHMMSS/）の作成
  - save_error_screenshot(): ステップ失敗時のスクリーンショット保存
  - mask_secrets(): 認証情報のマスク処理
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w\-]")
"""ファイル名に使用できない文字を検出する正規表現。"""


@dataclass
class ArtifactsManager:
    """実行成果物の管理クラス。

    Attributes:
        base_dir: 成果物ベースディレクトリ（デフォルト: artifacts/）
        run_dir: 実行ディレクトリ（create_run_dir() で設定される）
    """

    base_dir: Path = field(default_factory=lambda: Path("artifacts"))
    run_dir: Optional[Path] = field(default=None, init=False)

    def create_run_dir(self, timestamp: Optional[datetime] = None) -> Path:
        """実行ディレクトリと screenshots/ サブディレクトリを作成する。

        Args:
            timestamp: ディレクトリ名に使用するタイムスタンプ。None の場合は現在時刻

        Returns:
            作成された実行ディレクトリのパス
        """
        if timestamp is None:
            timestamp = datetime.now()

        self.run_dir = self.base_dir / f"run-{timestamp.strftime('%Y%m%d-%H%M%S')}"
        (self.run_dir / "screenshots").mkdir(parents=True, exist_ok=True)

        logger.info("実行ディレクトリを作成しました: %s", self.run_dir)
        return self.run_dir

    async def save_error_screenshot(
        self, page: Page, step_index: int, step_name: str
    ) -> Optional[Path]:
        """ステップ失敗時のスクリーンショットを保存する。

        ファイル名は NNNN_error-<step-name>.png 形式。保存に失敗しても例外は送出しない。

        Returns:
            保存先のパス。保存できなかった場合は None
        """
        if self.run_dir is None:
            self.create_run_dir()

        filename = f"{step_index:04d}_error-{_sanitize_step_name(step_name)}.png"
        filepath = self.run_dir / "screenshots" / filename
        try:
            await page.screenshot(path=str(filepath), type="png")
        except Exception as exc:
            logger.warning("スクリーンショット保存に失敗: %s", exc)
            return None

        logger.info("スクリーンショットを保存しました: %s", filepath)
        return filepath


def mask_secrets(text: str, secrets: Iterable[str]) -> str:
    """テキスト中の秘密値を *** にマスクする。空文字列は対象外。"""
    result = text
    for secret in secrets:
        if secret:
            result = result.replace(secret, "***")
    return result


def _sanitize_step_name(name: str) -> str:
    """ステップ名をファイル名に安全な文字列に変換する。"""
    sanitized = _UNSAFE_CHARS.sub("-", name)
    sanitized = re.sub(r"-+", "-", sanitized)
    return sanitized.strip("-")

"""
FlowRunner — 公開フロー実行エンジン

登録済みのステップを 1 つのブラウザセッション上で順に実行し、結果を返す。

主な機能:
  - StepResult / FlowResult: 実行結果データクラス
  - FlowRunner.run(): 呼び出し側が用意した Browser 上での実行
  - FlowRunner.run_with_playwright(): Chromium を起動しての実行

失敗時の扱い:
  - 最初に例外を送出したステップを failed とし、以降のステップは skipped
  - エラー文字列は認証情報をマスクしてから記録する
  - セッションは成否に関わらず finally で 1 度だけ閉じる
  - 必須の環境変数が未設定の場合はセッションを作らずに skipped を返す
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Optional, Sequence

from .artifacts import mask_secrets
from .errors import ConfigurationAbsentError
from .frames import FrameNavigator
from .interactor import Interactor
from .modal import ModalGatekeeper
from .selector import LocatorResolver
from .session import FlowSession

if TYPE_CHECKING:
    from playwright.async_api import Browser

    from ..config import Credentials, DocumentContent, EnvSnapshot, FlowConfig
    from ..steps.publisher import VerificationResult
    from ..steps.registry import FlowContext, StepHandler, StepRegistry
    from .artifacts import ArtifactsManager

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 結果データクラス
# ---------------------------------------------------------------------------

@dataclass
class StepResult:
    """単一ステップの実行結果。

    Attributes:
        step_name: ステップ名（login, connect 等）
        step_index: ステップのインデックス（0始まり）
        status: 実行結果（passed / failed / skipped）
        duration_ms: 実行時間（ミリ秒）
        error: エラーメッセージ（失敗時のみ、マスク済み）
        screenshot_path: エラー時スクリーンショットのパス
    """

    step_name: str
    step_index: int
    status: Literal["passed", "failed", "skipped"] = "passed"
    duration_ms: float = 0.0
    error: Optional[str] = None
    screenshot_path: Optional[Path] = None


@dataclass
class FlowResult:
    """フロー全体の実行結果。

    Attributes:
        status: 全体結果（passed / failed / skipped）
        steps: 各ステップの実行結果リスト
        published_url: publish ステップが報告した URL
        verification: verify ステップの結果
        document_title: 作成したドキュメントのタイトル
        skip_reason: スキップ理由（skipped の場合）
        failed_step: 失敗したステップ名
        error: 失敗理由（マスク済み）
        duration_ms: 全体実行時間（ミリ秒）
        started_at: 実行開始日時
        finished_at: 実行終了日時
        artifacts_dir: 成果物ディレクトリ
    """

    status: Literal["passed", "failed", "skipped"] = "passed"
    steps: list[StepResult] = field(default_factory=list)
    published_url: Optional[str] = None
    verification: Optional[VerificationResult] = None
    document_title: Optional[str] = None
    skip_reason: Optional[str] = None
    failed_step: Optional[str] = None
    error: Optional[str] = None
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    artifacts_dir: Optional[Path] = None


# ---------------------------------------------------------------------------
# FlowRunner 本体
# ---------------------------------------------------------------------------

class FlowRunner:
    """公開フロー実行エンジン。

    使用例::

        runner = FlowRunner()
        result = await runner.run_with_playwright(config, EnvSnapshot.capture())
    """

    def __init__(self, registry: Optional[StepRegistry] = None) -> None:
        """FlowRunner を初期化する。

        Args:
            registry: ステップレジストリ。None の場合は公開フローの全ステップ
        """
        if registry is None:
            from ..steps import create_publish_registry

            registry = create_publish_registry()
        self._registry = registry

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def run(
        self,
        browser: Browser,
        config: FlowConfig,
        env: EnvSnapshot,
        artifacts: Optional[ArtifactsManager] = None,
    ) -> FlowResult:
        """browser 上でフローを実行し、結果を返す。

        Args:
            browser: Playwright の Browser。コンテキストはここで生成して閉じる
            config: 実行設定
            env: 環境変数スナップショット
            artifacts: 成果物マネージャ。None の場合はスクリーンショットを保存しない

        Returns:
            フロー全体の実行結果
        """
        from ..config import DocumentContent

        missing = env.missing_keys()
        if missing:
            return self._skipped(missing)

        credentials = env.credentials()
        document = DocumentContent.generate(
            config.document_title_prefix, config.document_body,
        )
        secrets = (credentials.identity, credentials.secret)

        result = FlowResult(started_at=datetime.now(), document_title=document.title)
        if artifacts is not None:
            result.artifacts_dir = artifacts.run_dir
        start_time = time.perf_counter()

        try:
            session = await FlowSession.create(browser, config.session_options())
        except Exception as exc:
            message = mask_secrets(str(exc), secrets)
            logger.error("ブラウザセッションを作成できませんでした: %s", message)
            result.status = "failed"
            result.error = f"ブラウザセッションを作成できませんでした: {message}"
            result.steps = self._all_skipped()
            return self._finish(result, start_time)

        try:
            context = self._build_context(session, config, credentials, document)
            await self._execute_steps(context, result, config, artifacts, secrets)
            result.published_url = context.published_url
            result.verification = context.verification
        finally:
            await session.close()

        if artifacts is not None and artifacts.run_dir is not None:
            result.artifacts_dir = artifacts.run_dir
        return self._finish(result, start_time)

    async def run_with_playwright(
        self,
        config: FlowConfig,
        env: EnvSnapshot,
        artifacts: Optional[ArtifactsManager] = None,
    ) -> FlowResult:
        """Chromium を起動してフローを実行する。

        必須の環境変数が未設定の場合はブラウザを起動せずに skipped を返す。
        """
        missing = env.missing_keys()
        if missing:
            return self._skipped(missing)

        from playwright.async_api import async_playwright

        async with async_playwright() as pw:
            # slow_mo: 各操作間に遅延を挿入（iframe 再生成のタイミング問題を緩和）
            browser = await pw.chromium.launch(
                headless=not config.headed,
                slow_mo=config.slow_mo,
            )
            try:
                return await self.run(browser, config, env, artifacts)
            finally:
                await browser.close()

    # -------------------------------------------------------------------
    # コンテキスト構築
    # -------------------------------------------------------------------

    def _build_context(
        self,
        session: FlowSession,
        config: FlowConfig,
        credentials: Credentials,
        document: DocumentContent,
    ) -> FlowContext:
        from ..steps.registry import FlowContext

        timeouts = config.timeouts
        resolver = LocatorResolver(
            candidate_timeout=timeouts.candidate,
            fallback_timeout=timeouts.mandatory,
        )
        interactor = Interactor(
            action_timeout=timeouts.action,
            scroll_timeout=timeouts.scroll,
        )
        return FlowContext(
            session=session,
            config=config,
            credentials=credentials,
            document=document,
            resolver=resolver,
            navigator=FrameNavigator(resolver, step_timeout=timeouts.mandatory),
            interactor=interactor,
            gatekeeper=ModalGatekeeper(
                interactor,
                appear_timeout=timeouts.mandatory,
                optional_timeout=timeouts.optional_modal,
                action_timeout=timeouts.modal_action,
                close_timeout=timeouts.modal_close,
            ),
        )

    # -------------------------------------------------------------------
    # ステップ実行
    # -------------------------------------------------------------------

    async def _execute_steps(
        self,
        context: FlowContext,
        result: FlowResult,
        config: FlowConfig,
        artifacts: Optional[ArtifactsManager],
        secrets: Sequence[str],
    ) -> None:
        """ステップを登録順に実行する。失敗以降のステップは skipped とする。"""
        for index, (name, handler) in enumerate(self._registry.pipeline()):
            if result.status == "failed":
                result.steps.append(StepResult(step_name=name, step_index=index, status="skipped"))
                continue

            step_result = await self._execute_single_step(
                context, name, index, handler, config.step_timeout, artifacts, secrets,
            )
            result.steps.append(step_result)

            if step_result.status == "failed":
                result.status = "failed"
                result.failed_step = name
                result.error = f"ステップ '{name}' で失敗しました: {step_result.error}"

    async def _execute_single_step(
        self,
        context: FlowContext,
        name: str,
        index: int,
        handler: StepHandler,
        step_timeout: int,
        artifacts: Optional[ArtifactsManager],
        secrets: Sequence[str],
    ) -> StepResult:
        """単一ステップを実行する。

        step_timeout ミリ秒以内に完了しない場合はタイムアウトエラーとする。
        エラー発生時はスクリーンショットを保存し、status を "failed" にする。
        """
        step_result = StepResult(step_name=name, step_index=index)
        logger.info("ステップ開始: [%d] %s", index + 1, name)
        start_time = time.perf_counter()

        try:
            if step_timeout > 0:
                try:
                    await asyncio.wait_for(handler.execute(context), timeout=step_timeout / 1000.0)
                except asyncio.TimeoutError:
                    raise TimeoutError(
                        f"ステップ '{name}' が {step_timeout}ms 以内に完了しませんでした。"
                        f" --step-timeout オプションで調整できます。"
                    )
            else:
                await handler.execute(context)
            step_result.status = "passed"
            logger.info("ステップ完了: [%d] %s", index + 1, name)

        except Exception as exc:
            message = mask_secrets(str(exc) or type(exc).__name__, secrets)
            step_result.status = "failed"
            step_result.error = message
            logger.error("ステップ '%s' (index=%d) でエラー: %s", name, index, message)

            if artifacts is not None:
                step_result.screenshot_path = await artifacts.save_error_screenshot(
                    context.session.page, index, name,
                )

        step_result.duration_ms = (time.perf_counter() - start_time) * 1000
        return step_result

    # -------------------------------------------------------------------
    # ヘルパー
    # -------------------------------------------------------------------

    def _all_skipped(self) -> list[StepResult]:
        return [
            StepResult(step_name=name, step_index=index, status="skipped")
            for index, name in enumerate(self._registry.names)
        ]

    def _skipped(self, missing: Sequence[str]) -> FlowResult:
        reason = str(ConfigurationAbsentError(missing))
        logger.warning("フローをスキップします: %s", reason)
        now = datetime.now()
        return FlowResult(
            status="skipped",
            steps=self._all_skipped(),
            skip_reason=reason,
            started_at=now,
            finished_at=now,
        )

    @staticmethod
    def _finish(result: FlowResult, start_time: float) -> FlowResult:
        result.finished_at = datetime.now()
        result.duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info("フロー終了: %s (%.0fms)", result.status, result.duration_ms)
        return result

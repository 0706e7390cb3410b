"""
FlowRunner のユニットテスト

実ブラウザは起動せず、フェイク Browser / Page と記録用ハンドラで検証する。

テスト対象:
  - 必須環境変数が未設定の場合はセッションを作らずに skipped
  - どのステップで失敗してもコンテキストは 1 度だけ閉じる
  - 失敗以降のステップは skipped、エラーには失敗ステップ名と原因
  - ステップタイムアウト
  - エラー文字列の認証情報マスク
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from conftest import TEST_PASSWORD, make_browser, make_page
from pubflow.config import EnvSnapshot, FlowConfig
from pubflow.core.artifacts import ArtifactsManager
from pubflow.core.runner import FlowRunner
from pubflow.steps import create_publish_registry
from pubflow.steps.registry import StepRegistry

_STEP_NAMES = ["login", "create-document", "open-addon", "connect", "publish", "verify"]


# ---------------------------------------------------------------------------
# ヘルパー: 記録用ハンドラ
# ---------------------------------------------------------------------------

class _RecordingStep:
    """呼び出し順を記録し、指定時は例外を送出するハンドラ。"""

    def __init__(self, name: str, calls: list[str], error: Exception | None = None) -> None:
        self._name = name
        self._calls = calls
        self._error = error

    async def execute(self, context) -> None:
        self._calls.append(self._name)
        if self._error is not None:
            raise self._error


def _make_registry(calls: list[str], failing: str | None = None, error: Exception | None = None) -> StepRegistry:
    registry = StepRegistry()
    for name in _STEP_NAMES:
        step_error = None
        if name == failing:
            step_error = error or RuntimeError(f"{name} broke")
        registry.register(name, _RecordingStep(name, calls, step_error))
    return registry


class TestSkip:
    """必須環境変数が未設定の場合のテスト。"""

    async def test_missing_credentials_skip_without_session(self, env_values: dict) -> None:
        browser = make_browser(make_page())
        env = EnvSnapshot.capture({"GOOGLE_EMAIL": env_values["GOOGLE_EMAIL"]})
        calls: list[str] = []

        result = await FlowRunner(_make_registry(calls)).run(browser, FlowConfig(), env)

        assert result.status == "skipped"
        assert "GOOGLE_PASSWORD" in result.skip_reason
        assert [s.status for s in result.steps] == ["skipped"] * 6
        assert calls == []
        browser.new_context.assert_not_awaited()

    async def test_run_with_playwright_skips_before_launch(self) -> None:
        result = await FlowRunner().run_with_playwright(FlowConfig(), EnvSnapshot.capture({}))

        assert result.status == "skipped"
        assert "GOOGLE_EMAIL" in result.skip_reason


class TestExecution:
    """ステップ実行のテスト。"""

    async def test_all_steps_pass_in_order(self, env_values: dict) -> None:
        browser = make_browser(make_page())
        calls: list[str] = []

        result = await FlowRunner(_make_registry(calls)).run(
            browser, FlowConfig(), EnvSnapshot.capture(env_values),
        )

        assert result.status == "passed"
        assert calls == _STEP_NAMES
        assert [s.step_name for s in result.steps] == _STEP_NAMES
        assert result.document_title.startswith("Content Publisher smoke test ")
        browser.context.close.assert_awaited_once()

    @pytest.mark.parametrize("failing", _STEP_NAMES)
    async def test_fault_in_any_step_closes_session_once(self, failing: str, env_values: dict) -> None:
        browser = make_browser(make_page())
        calls: list[str] = []

        result = await FlowRunner(_make_registry(calls, failing)).run(
            browser, FlowConfig(), EnvSnapshot.capture(env_values),
        )

        index = _STEP_NAMES.index(failing)
        assert result.status == "failed"
        assert result.failed_step == failing
        assert f"ステップ '{failing}' で失敗しました: {failing} broke" == result.error
        assert calls == _STEP_NAMES[: index + 1]
        assert [s.status for s in result.steps] == (
            ["passed"] * index + ["failed"] + ["skipped"] * (5 - index)
        )
        browser.context.close.assert_awaited_once()

    async def test_error_screenshot_saved(self, env_values: dict, tmp_path: Path) -> None:
        page = make_page()
        browser = make_browser(page)
        artifacts = ArtifactsManager(base_dir=tmp_path)
        artifacts.create_run_dir()

        result = await FlowRunner(_make_registry([], "open-addon")).run(
            browser, FlowConfig(), EnvSnapshot.capture(env_values), artifacts,
        )

        failed = result.steps[2]
        assert failed.screenshot_path.name == "0002_error-open-addon.png"
        assert result.artifacts_dir == artifacts.run_dir
        page.screenshot.assert_awaited_once()

    async def test_secret_masked_in_error(self, env_values: dict) -> None:
        error = RuntimeError(f"fill rejected value {TEST_PASSWORD}")

        result = await FlowRunner(_make_registry([], "login", error)).run(
            make_browser(make_page()), FlowConfig(), EnvSnapshot.capture(env_values),
        )

        assert TEST_PASSWORD not in result.error
        assert TEST_PASSWORD not in result.steps[0].error
        assert "***" in result.error

    async def test_step_timeout(self, env_values: dict) -> None:
        class _SlowStep:
            async def execute(self, context) -> None:
                await asyncio.sleep(5)

        registry = StepRegistry()
        registry.register("login", _SlowStep())
        browser = make_browser(make_page())

        result = await FlowRunner(registry).run(
            browser, FlowConfig(step_timeout=20), EnvSnapshot.capture(env_values),
        )

        assert result.status == "failed"
        assert "20ms 以内に完了しませんでした" in result.error
        browser.context.close.assert_awaited_once()

    async def test_session_creation_failure(self, env_values: dict) -> None:
        browser = make_browser(make_page())
        browser.new_context = AsyncMock(side_effect=RuntimeError("browser closed"))
        calls: list[str] = []

        result = await FlowRunner(_make_registry(calls)).run(
            browser, FlowConfig(), EnvSnapshot.capture(env_values),
        )

        assert result.status == "failed"
        assert "browser closed" in result.error
        assert calls == []
        assert all(s.status == "skipped" for s in result.steps)


class TestScenarioMandatoryAbsent:
    """必須要素が存在しない場合は該当ステップ名と探索対象を報告する。"""

    async def test_login_without_email_field(self, env_values: dict, fast_config: FlowConfig) -> None:
        page = make_page()
        browser = make_browser(page)

        result = await FlowRunner(create_publish_registry()).run(
            browser, fast_config, EnvSnapshot.capture(env_values),
        )

        assert result.status == "failed"
        assert result.failed_step == "login"
        assert "メールアドレス欄" in result.error
        assert "css='input[type=\"email\"]'" in result.error
        assert [s.status for s in result.steps[1:]] == ["skipped"] * 5
        browser.context.close.assert_awaited_once()

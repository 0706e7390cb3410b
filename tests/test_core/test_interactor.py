"""
インタラクタのユニットテスト

操作は例外を送出せず、通常操作 → force 再試行 → 無効 の順に結果を返すこと。
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import make_locator
from pubflow.core.interactor import InteractionOutcome, Interactor
from pubflow.core.waits import ProbeResult


class TestClick:
    """Interactor.click のテスト。"""

    async def test_performed(self) -> None:
        locator = make_locator()
        interactor = Interactor(delay=50, action_timeout=1000, scroll_timeout=500)

        outcome = await interactor.click(locator)

        assert outcome is InteractionOutcome.PERFORMED
        locator.scroll_into_view_if_needed.assert_awaited_once_with(timeout=500)
        locator.click.assert_awaited_once_with(delay=50, timeout=1000)

    async def test_delay_override(self) -> None:
        locator = make_locator()

        await Interactor().click(locator, delay=150)

        assert locator.click.await_args.kwargs["delay"] == 150

    async def test_forced_after_intercepted_click(self) -> None:
        locator = make_locator()
        locator.click = AsyncMock(side_effect=[
            PlaywrightTimeoutError("element intercepts pointer events"),
            None,
        ])

        outcome = await Interactor(action_timeout=1000).click(locator)

        assert outcome is InteractionOutcome.FORCED
        assert locator.click.await_count == 2
        assert locator.click.await_args_list[1].kwargs["force"] is True

    async def test_no_effect_never_raises(self) -> None:
        locator = make_locator()
        locator.click = AsyncMock(side_effect=PlaywrightError("Target closed"))
        locator.scroll_into_view_if_needed = AsyncMock(side_effect=PlaywrightError("detached"))

        outcome = await Interactor().click(locator)

        assert outcome is InteractionOutcome.NO_EFFECT
        assert locator.click.await_count == 2


class TestFill:
    """Interactor.fill のテスト。"""

    async def test_performed(self) -> None:
        locator = make_locator()

        outcome = await Interactor(action_timeout=700).fill(locator, "title")

        assert outcome is InteractionOutcome.PERFORMED
        locator.fill.assert_awaited_once_with("title", timeout=700)

    async def test_forced_then_no_effect(self) -> None:
        locator = make_locator()
        locator.fill = AsyncMock(side_effect=[PlaywrightError("not editable"), None])

        assert await Interactor().fill(locator, "x") is InteractionOutcome.FORCED

        locator.fill = AsyncMock(side_effect=PlaywrightError("not editable"))
        assert await Interactor().fill(locator, "x") is InteractionOutcome.NO_EFFECT

    async def test_secret_value_is_never_logged(self, caplog) -> None:
        caplog.set_level(logging.DEBUG, logger="pubflow")
        locator = make_locator()
        locator.fill = AsyncMock(side_effect=[PlaywrightError("hunter2-secret rejected"), None])

        await Interactor().fill(locator, "hunter2-secret", secret=True)

        assert "hunter2-secret" not in caplog.text


class TestBestEffortHelpers:
    """trial_click / blur / scroll_into_view のテスト。"""

    async def test_trial_click(self) -> None:
        locator = make_locator()

        result = await Interactor(action_timeout=300).trial_click(locator)

        assert result is ProbeResult.SUCCEEDED
        locator.click.assert_awaited_once_with(trial=True, timeout=300)

    async def test_trial_click_failure_is_swallowed(self) -> None:
        locator = make_locator()
        locator.click = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout"))

        assert await Interactor().trial_click(locator) is ProbeResult.NOT_APPLICABLE

    async def test_blur(self) -> None:
        locator = make_locator()

        assert await Interactor().blur(locator) is ProbeResult.SUCCEEDED
        locator.evaluate.assert_awaited_once()

        locator.evaluate = AsyncMock(side_effect=PlaywrightError("Execution context was destroyed"))
        assert await Interactor().blur(locator) is ProbeResult.NOT_APPLICABLE

    async def test_scroll_failure_is_not_applicable(self) -> None:
        locator = make_locator()
        locator.scroll_into_view_if_needed = AsyncMock(side_effect=PlaywrightError("detached"))

        assert await Interactor().scroll_into_view(locator) is ProbeResult.NOT_APPLICABLE

"""
テスト共通フィクスチャ・Playwright フェイク

実ブラウザは起動せず、Page / Frame / Locator を unittest.mock で代替する。

  - make_locator: 可視・非表示の振る舞いを指定できる Locator
  - make_scope: セレクタごとに Locator を返す Page / Frame
  - make_frame_host: content_frame() で内部 Frame を返す iframe ホスト要素
  - make_page: goto で URL が変わる Page
  - make_flow_context: 実コンポーネントで組み立てた FlowContext
"""

from __future__ import annotations

import re
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pubflow.config import Credentials, DocumentContent, FlowConfig, FlowTimeouts
from pubflow.core.frames import FrameNavigator
from pubflow.core.interactor import Interactor
from pubflow.core.modal import ModalGatekeeper
from pubflow.core.selector import LocatorResolver
from pubflow.core.session import FlowSession
from pubflow.steps.registry import FlowContext

TEST_EMAIL = "smoke.tester@example.com"
TEST_PASSWORD = "s3cret-passw0rd"


# ---------------------------------------------------------------------------
# Locator / Scope フェイク
# ---------------------------------------------------------------------------

def make_locator(
    *,
    visible: bool = True,
    hides: bool = True,
    detached: bool = False,
    name: str = "locator",
) -> MagicMock:
    """フェイク Locator を生成する。

    Args:
        visible: wait_for(state="visible" / "attached") が成功するか
        hides: wait_for(state="hidden" / "detached") が成功するか
        detached: wait_for が TimeoutError 以外の Playwright エラーを送出するか
    """
    locator = MagicMock(name=name)

    async def _wait_for(state: str = "visible", timeout: Optional[float] = None) -> None:
        if detached:
            raise PlaywrightError("Element is not attached to the DOM")
        if state in ("visible", "attached") and not visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        if state in ("hidden", "detached") and not hides:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    locator.wait_for = AsyncMock(side_effect=_wait_for)
    locator.first = locator
    locator.filter = MagicMock(return_value=locator)
    locator.locator = MagicMock(return_value=locator)
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.focus = AsyncMock()
    locator.evaluate = AsyncMock()
    locator.scroll_into_view_if_needed = AsyncMock()
    locator.is_visible = AsyncMock(return_value=visible)
    locator.element_handle = AsyncMock(return_value=None)
    return locator


def _key(value):
    return value.pattern if isinstance(value, re.Pattern) else value


def make_scope(
    *,
    css: Optional[dict] = None,
    roles: Optional[dict] = None,
    labels: Optional[dict] = None,
) -> MagicMock:
    """セレクタごとに Locator を返すフェイク Page / Frame を生成する。

    未登録のセレクタには表示されない Locator を返す。

    Args:
        css: {CSS セレクタ: Locator}
        roles: {(ロール, 名前 or 正規表現文字列): Locator}
        labels: {ラベル or 正規表現文字列: Locator}
    """
    css = css or {}
    roles = roles or {}
    labels = labels or {}
    absent = make_locator(visible=False, name="absent")

    scope = MagicMock(name="scope")
    scope.absent = absent
    scope.locator = MagicMock(side_effect=lambda selector, **kw: css.get(selector, absent))
    scope.get_by_role = MagicMock(
        side_effect=lambda role, name=None, **kw: roles.get((role, _key(name)), absent)
    )
    scope.get_by_label = MagicMock(side_effect=lambda label, **kw: labels.get(_key(label), absent))
    return scope


def make_frame_host(frame: MagicMock, *, visible: bool = True) -> MagicMock:
    """content_frame() で frame を返す iframe ホスト要素を生成する。"""
    host = make_locator(visible=visible, name="iframe")
    handle = MagicMock(name="element_handle")
    handle.content_frame = AsyncMock(return_value=frame)
    host.element_handle = AsyncMock(return_value=handle)
    return host


def make_page(
    url: str = "about:blank",
    *,
    redirects: Optional[dict] = None,
    **selectors,
) -> MagicMock:
    """フェイク Page を生成する。

    goto(url) で page.url が url（redirects に登録があればその値）に変わる。
    """
    page = make_scope(**selectors)
    page.url = url
    redirects = redirects or {}

    async def _goto(target: str, **kwargs) -> None:
        page.url = redirects.get(target, target)

    page.goto = AsyncMock(side_effect=_goto)
    page.wait_for_load_state = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock()
    page.keyboard = MagicMock()
    page.keyboard.insert_text = AsyncMock()
    return page


def make_browser(page: MagicMock) -> MagicMock:
    """new_context() → new_page() で page を返すフェイク Browser を生成する。"""
    context = MagicMock(name="context")
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    browser = MagicMock(name="browser")
    browser.new_context = AsyncMock(return_value=context)
    browser.context = context
    return browser


# ---------------------------------------------------------------------------
# FlowContext
# ---------------------------------------------------------------------------

def make_flow_context(page: MagicMock, config: Optional[FlowConfig] = None) -> FlowContext:
    """実コンポーネントで FlowContext を組み立てる。"""
    config = config or FlowConfig()
    timeouts = config.timeouts
    context = MagicMock(name="context")
    context.close = AsyncMock()
    resolver = LocatorResolver(
        candidate_timeout=timeouts.candidate,
        fallback_timeout=timeouts.mandatory,
    )
    interactor = Interactor(action_timeout=timeouts.action, scroll_timeout=timeouts.scroll)
    return FlowContext(
        session=FlowSession(context, page),
        config=config,
        credentials=Credentials(identity=TEST_EMAIL, secret=TEST_PASSWORD),
        document=DocumentContent.generate(
            config.document_title_prefix, config.document_body, token=1700000000000,
        ),
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


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def env_values() -> dict:
    """必須の環境変数が揃った環境。"""
    return {"GOOGLE_EMAIL": TEST_EMAIL, "GOOGLE_PASSWORD": TEST_PASSWORD}


@pytest.fixture
def fast_config() -> FlowConfig:
    """待機時間を短縮した FlowConfig。"""
    return FlowConfig(timeouts=FlowTimeouts(
        probe=10, candidate=10, launcher=10, connect_probe=10, secret_field=10,
        mandatory=10, modal_action=10, modal_close=10, optional_modal=10,
        network_settle=10, action=10, scroll=10,
    ))

"""
公開フローのステップハンドラ

  1. login: Google アカウントへのサインイン
  2. create-document: Google ドキュメントの作成と本文入力
  3. open-addon: サイドパネルを開き Content Publisher アドオンを起動
  4. connect: アクセス許可 → 権限ダイアログ → Connect / Go to playground
  5. publish: 再表示された権限ダイアログの処理と公開 URL の報告
  6. verify: 公開 URL の検証（拡張ポイント）

各ハンドラは必須要素が得られない場合に例外を送出し、Runner が実行を中断する。
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional

from playwright.async_api import Error as PlaywrightError

from ..core.locators import build_locator
from ..core.waits import probe_load_state, probe_visible, settle
from . import targets
from .registry import StepInfo

if TYPE_CHECKING:
    from .registry import FlowContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 1. login
# ---------------------------------------------------------------------------

class LoginStep:
    """login: ID とパスワードの 2 画面でサインインする。"""

    async def execute(self, context: FlowContext) -> None:
        page = context.session.page
        config = context.config
        timeouts = config.timeouts

        logger.info("login: %s", config.signin_url)
        await page.goto(config.signin_url, wait_until="load")

        email = await context.resolver.resolve(
            page, targets.EMAIL_INPUT,
            timeout=timeouts.mandatory, target="メールアドレス欄",
        )
        await context.interactor.fill(email.locator, context.credentials.identity, secret=True)
        await self._click_next(context)

        # パスワード欄は ID が受理されてから描画される
        password = await context.resolver.resolve(
            page, targets.PASSWORD_INPUT,
            timeout=timeouts.secret_field, target="パスワード欄",
        )
        await context.interactor.fill(password.locator, context.credentials.secret, secret=True)
        await self._click_next(context)

        await probe_load_state(page, "networkidle", timeout=timeouts.mandatory)
        if not re.match(config.app_url_pattern, page.url):
            logger.info("login: アプリに遷移していないため %s へ移動します", config.app_home_url)
            await page.goto(config.app_home_url, wait_until="domcontentloaded")

    async def _click_next(self, context: FlowContext) -> None:
        timeouts = context.config.timeouts
        next_button = await context.resolver.resolve(
            context.session.page, targets.NEXT_BUTTON,
            timeout=timeouts.candidate,
            fallback=targets.NEXT_BUTTON_FALLBACK,
            fallback_timeout=timeouts.mandatory,
            target="Next ボタン",
        )
        await context.interactor.click(next_button.locator)


# ---------------------------------------------------------------------------
# 2. create-document
# ---------------------------------------------------------------------------

class CreateDocumentStep:
    """create-document: 新規ドキュメントにタイトルと本文を入力する。"""

    async def execute(self, context: FlowContext) -> None:
        page = context.session.page
        config = context.config
        timeouts = config.timeouts
        document = context.document

        logger.info("create-document: %s", document.title)
        await page.goto(config.create_url, wait_until="domcontentloaded")
        await probe_load_state(page, "networkidle", timeout=timeouts.network_settle)

        title = await context.resolver.resolve(
            page, targets.TITLE_INPUT,
            timeout=timeouts.candidate,
            fallback=targets.TITLE_INPUT_FALLBACK,
            fallback_timeout=timeouts.mandatory,
            target="タイトル欄",
        )
        await context.interactor.click(title.locator, delay=150)
        await context.interactor.fill(title.locator, document.title)
        await context.interactor.blur(title.locator)

        editor = await context.navigator.descend(
            page, targets.EDITOR_PATH, timeout=timeouts.mandatory,
        )
        editable = await context.resolver.resolve(
            editor, targets.EDITABLE_REGION,
            timeout=timeouts.mandatory, target="本文の編集領域",
        )
        await editable.locator.focus()
        await page.keyboard.insert_text(document.body)
        await settle(page, 500)


# ---------------------------------------------------------------------------
# 3. open-addon
# ---------------------------------------------------------------------------

class OpenAddonStep:
    """open-addon: サイドパネルを開き、アドオンの起動ボタンを押す。"""

    async def execute(self, context: FlowContext) -> None:
        page = context.session.page
        config = context.config
        timeouts = config.timeouts

        panel = build_locator(page, targets.SIDE_PANEL)
        if not (await probe_visible(panel, timeouts.probe)).succeeded:
            toggle = build_locator(page, targets.SHOW_PANEL_TOGGLE)
            if (await probe_visible(toggle, timeouts.candidate)).succeeded:
                logger.info("open-addon: サイドパネルを開きます")
                await context.interactor.click(toggle)
                await settle(page, 500)

        launcher = await context.resolver.resolve(
            page,
            [
                targets.addon_launcher_by_id(config.addon_launcher_id),
                targets.addon_launcher_by_image(config.addon_name),
            ],
            timeout=timeouts.launcher,
            fallback=targets.addon_launcher_by_role(config.addon_name),
            fallback_timeout=timeouts.mandatory,
            target=f"アドオン '{config.addon_name}' の起動ボタン",
        )
        if launcher.index > 0:
            logger.info("open-addon: 代替の起動ボタン（候補 %d）を使用します", launcher.index)
        await context.interactor.click(launcher.locator)
        await settle(page, 1000)


# ---------------------------------------------------------------------------
# 4. connect
# ---------------------------------------------------------------------------

class ConnectStep:
    """connect: アクセスを許可し、Connect（接続済みなら Go）を押す。"""

    async def execute(self, context: FlowContext) -> None:
        page = context.session.page
        timeouts = context.config.timeouts

        host = await context.navigator.descend(
            page, targets.ADDON_HOST_PATH, timeout=timeouts.mandatory,
        )
        allow = await context.resolver.resolve(
            host, targets.ALLOW_ACCESS,
            timeout=timeouts.mandatory, target="Allow access ボタン",
        )
        await context.interactor.click(allow.locator)

        await context.gatekeeper.dismiss(page, targets.DRIVE_SCOPE_MODAL, required=True)
        await settle(page, 1000)

        # ダイアログの開閉でフレームが再生成されるため取り直す
        host = await context.navigator.descend(
            page, targets.ADDON_HOST_PATH, timeout=timeouts.mandatory,
        )
        target = await context.resolver.resolve(
            host, [targets.CONNECT_CONTROL],
            timeout=timeouts.connect_probe,
            fallback=targets.CONTINUE_CONTROL,
            fallback_timeout=timeouts.mandatory,
            target="Connect / Go to playground ボタン",
        )
        if not target.is_fallback:
            other = build_locator(host, targets.CONTINUE_CONTROL)
            if await _is_visible_now(other):
                logger.warning("connect: Connect と Go to playground が同時に表示されています。Connect を優先します")
        logger.info(
            "connect: %s を押します",
            "Go to playground" if target.is_fallback else "Connect to playground",
        )
        await context.interactor.click(target.locator)


async def _is_visible_now(locator) -> bool:
    try:
        return await locator.is_visible()
    except PlaywrightError:
        return False


# ---------------------------------------------------------------------------
# 5. publish
# ---------------------------------------------------------------------------

class PublishStep:
    """publish: 権限ダイアログが再表示されていれば許可し、現在の URL を報告する。"""

    async def execute(self, context: FlowContext) -> None:
        page = context.session.page
        await context.gatekeeper.dismiss(page, targets.DRIVE_SCOPE_MODAL, required=False)
        context.published_url = page.url
        logger.info("publish: %s", context.published_url)


# ---------------------------------------------------------------------------
# 6. verify
# ---------------------------------------------------------------------------

@dataclass
class VerificationResult:
    """公開 URL の検証結果。

    Attributes:
        url: 検証対象の URL
        status: matched / mismatch / unverified
        detail: 補足説明
    """

    url: Optional[str]
    status: Literal["matched", "mismatch", "unverified"]
    detail: str = ""


def verify_published_location(url: Optional[str], expected_prefix: str) -> VerificationResult:
    """公開 URL がドキュメント URL の形式かを確認する。"""
    if not url:
        return VerificationResult(url=url, status="unverified", detail="公開 URL がありません")
    if url.startswith(expected_prefix):
        return VerificationResult(url=url, status="matched")
    return VerificationResult(
        url=url,
        status="mismatch",
        detail=f"URL が '{expected_prefix}' で始まっていません",
    )


class VerifyStep:
    """verify: 公開 URL を検証する。不一致でも実行は失敗にしない。"""

    async def execute(self, context: FlowContext) -> None:
        result = verify_published_location(
            context.published_url, context.config.document_url_prefix,
        )
        context.verification = result
        if result.status == "mismatch":
            logger.warning("verify: %s (%s)", result.detail, result.url)
        else:
            logger.info("verify: %s", result.status)


# ---------------------------------------------------------------------------
# レジストリ登録用情報
# ---------------------------------------------------------------------------

PUBLISH_STEPS: tuple[tuple[StepInfo, type], ...] = (
    (StepInfo("login", "Google アカウントにサインイン"), LoginStep),
    (StepInfo("create-document", "Google ドキュメントを作成して本文を入力"), CreateDocumentStep),
    (StepInfo("open-addon", "サイドパネルを開きアドオンを起動"), OpenAddonStep),
    (StepInfo("connect", "アクセス許可・権限ダイアログ・playground への接続"), ConnectStep),
    (StepInfo("publish", "権限ダイアログの再処理と公開 URL の報告"), PublishStep),
    (StepInfo("verify", "公開 URL の検証"), VerifyStep),
)

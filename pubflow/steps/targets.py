"""
探索対象の定義 — Google サインイン / Docs / Content Publisher アドオン

各コントロールの探索候補とフレーム降下パスをまとめる。
候補は上から順に試行される（先頭ほど優先）。
"""

from __future__ import annotations

from ..core.frames import FrameStep
from ..core.locators import (
    Candidate,
    CssCandidate,
    LabelCandidate,
    RoleCandidate,
)
from ..core.modal import ModalSpec

# --- サインイン ---

EMAIL_INPUT: list[Candidate] = [CssCandidate(css='input[type="email"]')]
PASSWORD_INPUT: list[Candidate] = [CssCandidate(css='input[type="password"]')]
NEXT_BUTTON: list[Candidate] = [RoleCandidate(role="button", name=r"^Next$", pattern=True)]
NEXT_BUTTON_FALLBACK: Candidate = CssCandidate(css="#identifierNext button, #passwordNext button")

# --- ドキュメント作成 ---

TITLE_INPUT: list[Candidate] = [
    CssCandidate(css='input[aria-label="Document title"]'),
    CssCandidate(css='input[aria-label="Rename"]'),
    CssCandidate(css='[role="textbox"][aria-label*="Title"]'),
]
TITLE_INPUT_FALLBACK: Candidate = LabelCandidate(
    label=r"Document title|Rename|Untitled", pattern=True,
)

# 入力イベント用の iframe は画面上に表示されないため attached で判定する
EDITOR_PATH: tuple[FrameStep, ...] = (
    FrameStep(
        name="editor",
        host=[CssCandidate(css="iframe.docs-texteventtarget-iframe")],
        state="attached",
    ),
)
EDITABLE_REGION: list[Candidate] = [CssCandidate(css='[contenteditable="true"]')]

# --- サイドパネル・アドオン ---

SIDE_PANEL: Candidate = RoleCandidate(role="complementary", name=r"Side panel", pattern=True)
SHOW_PANEL_TOGGLE: Candidate = RoleCandidate(
    role="button", name=r"Show (?:side )?panel", pattern=True,
)


def addon_launcher_by_id(launcher_id: str) -> Candidate:
    """安定 ID によるアドオン起動ボタン。"""
    return CssCandidate(css=", ".join([
        f'[id="{launcher_id}:1"] > .app-switcher-button-icon-container',
        f'[id="{launcher_id}"] > .app-switcher-button-icon-container',
    ]))


def addon_launcher_by_image(addon_name: str) -> Candidate:
    """画像 alt / aria-label によるアドオン起動ボタン。"""
    return CssCandidate(css=", ".join([
        f'img[alt="{addon_name}"]',
        f'img[alt*="{addon_name}"]',
        f'div[aria-label="{addon_name}"]',
        f'div[aria-label*="{addon_name}"]',
    ]))


def addon_launcher_by_role(addon_name: str) -> Candidate:
    """アクセシブルネームによるアドオン起動ボタン。"""
    return RoleCandidate(role="img", name=addon_name)


ADDON_HOST_PATH: tuple[FrameStep, ...] = (
    FrameStep(
        name="add-on host",
        host=[CssCandidate(css=".add-on-host-content iframe")],
    ),
)

ALLOW_ACCESS: list[Candidate] = [
    CssCandidate(css='[alt="Allow access"]'),
    RoleCandidate(role="img", name="Allow access"),
]

CONNECT_CONTROL: Candidate = RoleCandidate(
    role="img", name=r"Connect to playground", pattern=True,
)
CONTINUE_CONTROL: Candidate = RoleCandidate(
    role="img", name=r"Go to playground", pattern=True,
)

# --- 権限ダイアログ ---

DRIVE_SCOPE_MODAL = ModalSpec(
    name="Drive file scope",
    modal=".request-file-scope-modal",
    container=".request-file-scope-modal-container",
    action_label="Allow",
)

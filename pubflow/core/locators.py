"""
ロケータ候補 — 要素探索戦略の定義と Playwright Locator への変換

同じコントロールを見つけるための「代替の」探索方法を候補モデルとして表現する。
候補は組み合わせではなく択一であり、LocatorResolver が先頭から順に試行する。

候補の種別:
  - RoleCandidate: ARIA ロール + アクセシブルネーム（文字列 or 正規表現）
  - LabelCandidate: ラベルテキスト（文字列 or 正規表現）
  - CssCandidate: CSS セレクタ（text 補助条件あり）

ボタン状の要素（button / role="button" / スタイル付き div）は ControlShape の
タグ付きユニオンで表現し、match_control() が単一の Locator にまとめる。
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Literal, Optional, Union

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from playwright.async_api import Frame, Locator, Page


# ---------------------------------------------------------------------------
# 候補モデル
# ---------------------------------------------------------------------------

class RoleCandidate(BaseModel):
    """ARIA ロールによる候補。

    pattern=True の場合、name は大文字小文字を区別しない正規表現として扱う。
    """

    role: str = Field(..., description="ARIA ロール名（button, img, complementary 等）")
    name: Optional[str] = Field(default=None, description="アクセシブルネーム")
    pattern: bool = Field(default=False, description="name を正規表現として扱うか")
    exact: Optional[bool] = Field(default=None, description="name の完全一致検索")


class LabelCandidate(BaseModel):
    """ラベルテキストによる候補。"""

    label: str = Field(..., description="ラベルテキスト")
    pattern: bool = Field(default=False, description="label を正規表現として扱うか")


class CssCandidate(BaseModel):
    """CSS セレクタによる候補。"""

    css: str = Field(..., description="CSS セレクタ文字列")
    text: Optional[str] = Field(default=None, description="テキスト内容による補助条件")


Candidate = Union[RoleCandidate, LabelCandidate, CssCandidate]
"""単一の探索戦略。"""


# ---------------------------------------------------------------------------
# ボタン状コントロールの形状
# ---------------------------------------------------------------------------

class ControlShape(BaseModel):
    """ボタン状コントロールの DOM 形状。

    kind:
      - native: ネイティブ <button>
      - aria: role="button" を持つ任意要素
      - styled: クラス名でボタンとして描画される要素（css_class 必須）
    """

    kind: Literal["native", "aria", "styled"]
    css_class: Optional[str] = None

    def selector(self) -> str:
        if self.kind == "native":
            return "button"
        if self.kind == "aria":
            return '[role="button"]'
        if not self.css_class:
            raise ValueError("styled 形状には css_class が必要です")
        return f".{self.css_class}"


DEFAULT_BUTTON_SHAPES: tuple[ControlShape, ...] = (
    ControlShape(kind="aria"),
    ControlShape(kind="styled", css_class="jfk-button"),
    ControlShape(kind="native"),
)


# ---------------------------------------------------------------------------
# Locator への変換
# ---------------------------------------------------------------------------

def build_locator(scope: Page | Frame, candidate: Candidate) -> Locator:
    """候補を scope 内の Playwright Locator に変換する。

    複数要素にヒットしても strict モード違反にならないよう、
    常に先頭要素（.first）を返す。

    Args:
        scope: Page またはフレーム降下後の Frame
        candidate: 変換対象の候補

    Returns:
        先頭要素を指す Locator

    Raises:
        TypeError: 未知の候補種別の場合
    """
    if isinstance(candidate, RoleCandidate):
        kwargs: dict = {}
        if candidate.name is not None:
            kwargs["name"] = _text_matcher(candidate.name, candidate.pattern)
        if candidate.exact is not None:
            kwargs["exact"] = candidate.exact
        return scope.get_by_role(candidate.role, **kwargs).first

    if isinstance(candidate, LabelCandidate):
        return scope.get_by_label(_text_matcher(candidate.label, candidate.pattern)).first

    if isinstance(candidate, CssCandidate):
        if candidate.text is not None:
            return scope.locator(candidate.css, has_text=candidate.text).first
        return scope.locator(candidate.css).first

    raise TypeError(f"未知の候補種別です: {type(candidate).__name__}")


def match_control(
    scope: Page | Frame | Locator,
    shapes: tuple[ControlShape, ...] | list[ControlShape],
    label: str,
) -> Locator:
    """表示テキストが label に一致するボタン状コントロールを返す。

    全形状のセレクタを 1 つの CSS ユニオンにまとめ、表示テキストが
    label と完全一致（大文字小文字無視）する最初の要素を採用する。
    """
    if not shapes:
        raise ValueError("shapes が空です")
    union = ", ".join(shape.selector() for shape in shapes)
    text = re.compile(rf"^\s*{re.escape(label)}\s*$", re.IGNORECASE)
    return scope.locator(union).filter(has_text=text).first


def describe_candidate(candidate: Candidate) -> str:
    """候補の人間可読な説明文字列を生成する。"""
    if isinstance(candidate, RoleCandidate):
        if candidate.name is None:
            return f"role='{candidate.role}'"
        name = f"/{candidate.name}/i" if candidate.pattern else f"'{candidate.name}'"
        return f"role='{candidate.role}', name={name}"
    if isinstance(candidate, LabelCandidate):
        label = f"/{candidate.label}/i" if candidate.pattern else f"'{candidate.label}'"
        return f"label={label}"
    if isinstance(candidate, CssCandidate):
        if candidate.text:
            return f"css='{candidate.css}', text='{candidate.text}'"
        return f"css='{candidate.css}'"
    return f"unknown({type(candidate).__name__})"


def _text_matcher(value: str, pattern: bool) -> str | re.Pattern[str]:
    return re.compile(value, re.IGNORECASE) if pattern else value

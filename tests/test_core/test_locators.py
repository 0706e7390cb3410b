"""
ロケータ候補のユニットテスト

  - build_locator: 各候補種別が正しい Playwright API に変換されること
  - match_control: 形状ユニオンと表示テキストの完全一致
  - describe_candidate: エラーメッセージ用の説明文字列
"""

from __future__ import annotations

import re
from unittest.mock import MagicMock

import pytest

from pubflow.core.locators import (
    DEFAULT_BUTTON_SHAPES,
    ControlShape,
    CssCandidate,
    LabelCandidate,
    RoleCandidate,
    build_locator,
    describe_candidate,
    match_control,
)


def _make_mock_scope() -> MagicMock:
    scope = MagicMock()
    return scope


class TestBuildLocator:
    """build_locator のテスト。"""

    def test_role_with_plain_name(self) -> None:
        scope = _make_mock_scope()
        result = build_locator(scope, RoleCandidate(role="img", name="Allow access"))

        scope.get_by_role.assert_called_once_with("img", name="Allow access")
        assert result == scope.get_by_role.return_value.first

    def test_role_with_pattern_compiles_case_insensitive_regex(self) -> None:
        scope = _make_mock_scope()
        build_locator(scope, RoleCandidate(role="button", name=r"^Next$", pattern=True))

        _, kwargs = scope.get_by_role.call_args
        assert isinstance(kwargs["name"], re.Pattern)
        assert kwargs["name"].pattern == r"^Next$"
        assert kwargs["name"].flags & re.IGNORECASE
        assert kwargs["name"].search("next")

    def test_role_without_name(self) -> None:
        scope = _make_mock_scope()
        build_locator(scope, RoleCandidate(role="complementary"))

        scope.get_by_role.assert_called_once_with("complementary")

    def test_role_with_exact(self) -> None:
        scope = _make_mock_scope()
        build_locator(scope, RoleCandidate(role="button", name="Go", exact=True))

        scope.get_by_role.assert_called_once_with("button", name="Go", exact=True)

    def test_label_pattern(self) -> None:
        scope = _make_mock_scope()
        result = build_locator(
            scope, LabelCandidate(label="Document title|Rename|Untitled", pattern=True),
        )

        (label,), _ = scope.get_by_label.call_args
        assert label.search("Untitled document")
        assert result == scope.get_by_label.return_value.first

    def test_css_without_text(self) -> None:
        scope = _make_mock_scope()
        result = build_locator(scope, CssCandidate(css='input[type="email"]'))

        scope.locator.assert_called_once_with('input[type="email"]')
        assert result == scope.locator.return_value.first

    def test_css_with_text(self) -> None:
        scope = _make_mock_scope()
        build_locator(scope, CssCandidate(css="div.item", text="Pantheon"))

        scope.locator.assert_called_once_with("div.item", has_text="Pantheon")

    def test_unknown_candidate_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            build_locator(_make_mock_scope(), object())  # type: ignore[arg-type]


class TestControlShape:
    """ControlShape のテスト。"""

    def test_selectors(self) -> None:
        assert ControlShape(kind="native").selector() == "button"
        assert ControlShape(kind="aria").selector() == '[role="button"]'
        assert ControlShape(kind="styled", css_class="jfk-button").selector() == ".jfk-button"

    def test_styled_without_class_raises(self) -> None:
        with pytest.raises(ValueError):
            ControlShape(kind="styled").selector()


class TestMatchControl:
    """match_control のテスト。"""

    def test_union_of_default_shapes(self) -> None:
        scope = _make_mock_scope()
        result = match_control(scope, DEFAULT_BUTTON_SHAPES, "Allow")

        scope.locator.assert_called_once_with('[role="button"], .jfk-button, button')
        _, kwargs = scope.locator.return_value.filter.call_args
        matcher = kwargs["has_text"]
        assert matcher.search("  allow ")
        assert not matcher.search("Allow access")
        assert result == scope.locator.return_value.filter.return_value.first

    def test_label_is_escaped(self) -> None:
        scope = _make_mock_scope()
        match_control(scope, [ControlShape(kind="native")], "OK (1)")

        _, kwargs = scope.locator.return_value.filter.call_args
        assert kwargs["has_text"].search("OK (1)")

    def test_empty_shapes_raises(self) -> None:
        with pytest.raises(ValueError):
            match_control(_make_mock_scope(), [], "Allow")


class TestDescribeCandidate:
    """describe_candidate のテスト。"""

    @pytest.mark.parametrize(
        ("candidate", "expected"),
        [
            (RoleCandidate(role="button", name="^Next$", pattern=True), "role='button', name=/^Next$/i"),
            (RoleCandidate(role="img", name="Pantheon"), "role='img', name='Pantheon'"),
            (RoleCandidate(role="complementary"), "role='complementary'"),
            (LabelCandidate(label="Rename", pattern=True), "label=/Rename/i"),
            (CssCandidate(css="#id"), "css='#id'"),
            (CssCandidate(css="div", text="Go"), "css='div', text='Go'"),
        ],
    )
    def test_descriptions(self, candidate, expected: str) -> None:
        assert describe_candidate(candidate) == expected

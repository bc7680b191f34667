"""Tests for keyboard synthesis against a recording pyautogui stand-in."""
from __future__ import annotations

from typing import List

import pytest

from aigamer_os import input_handler as input_module
from aigamer_os.config import InputConfig
from aigamer_os.input_handler import ArrowDirection, InputHandler


class _RecordingKeyboard:
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def keyDown(self, key: str) -> None:  # noqa: N802 - pyautogui API
        self.events.append(("down", key))

    def keyUp(self, key: str) -> None:  # noqa: N802 - pyautogui API
        self.events.append(("up", key))

    def isShiftCharacter(self, char: str) -> bool:  # noqa: N802 - pyautogui API
        return char in '~!@#$%^&*()_+{}|:"<>?'


class _StubWindow:
    def __init__(self, focused: bool = True) -> None:
        self.focused = focused
        self.focus_calls = 0

    def focus(self) -> bool:
        self.focus_calls += 1
        return self.focused


@pytest.fixture
def keyboard(monkeypatch: pytest.MonkeyPatch) -> _RecordingKeyboard:
    recorder = _RecordingKeyboard()
    monkeypatch.setattr(input_module, "pyautogui", recorder)
    return recorder


def _handler(window: _StubWindow) -> InputHandler:
    return InputHandler(window, InputConfig(key_down_ms=0, settle_ms=0))


def test_plain_key_is_down_then_up(keyboard: _RecordingKeyboard) -> None:
    window = _StubWindow()
    assert _handler(window).send_key("3")
    assert keyboard.events == [("down", "3"), ("up", "3")]
    assert window.focus_calls == 1


def test_uppercase_and_symbols_hold_shift(keyboard: _RecordingKeyboard) -> None:
    handler = _handler(_StubWindow())

    assert handler.send_key("Y")
    assert handler.send_key("?")
    assert keyboard.events == [
        ("down", "shift"),
        ("down", "y"),
        ("up", "y"),
        ("up", "shift"),
        ("down", "shift"),
        ("down", "?"),
        ("up", "?"),
        ("up", "shift"),
    ]


def test_text_maps_space_to_named_key(keyboard: _RecordingKeyboard) -> None:
    assert _handler(_StubWindow()).send_text("a b")
    pressed = [key for kind, key in keyboard.events if kind == "down"]
    assert pressed == ["a", "space", "b"]


def test_enter_and_arrows(keyboard: _RecordingKeyboard) -> None:
    handler = _handler(_StubWindow())
    assert handler.send_enter()
    assert handler.send_arrow_key(ArrowDirection.LEFT)
    assert keyboard.events == [("down", "enter"), ("up", "enter"), ("down", "left"), ("up", "left")]


def test_focus_failure_sends_nothing(keyboard: _RecordingKeyboard) -> None:
    handler = _handler(_StubWindow(focused=False))

    assert not handler.send_key("1")
    assert not handler.send_text("abc")
    assert not handler.send_enter()
    assert not handler.send_arrow_key(ArrowDirection.UP)
    assert keyboard.events == []


def test_missing_backend_reports_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(input_module, "pyautogui", None)
    assert not _handler(_StubWindow()).send_key("1")

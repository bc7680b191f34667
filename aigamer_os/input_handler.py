"""Keyboard synthesis for the game console.

Every public action focuses the game window first and reports success as a
bool instead of raising, so the loop can count failed attempts as retries.
Keys are sent as explicit down/up pairs with short holds, which console hosts
pick up more reliably than instantaneous presses.
"""
from __future__ import annotations

import logging
import sys
import time
from enum import Enum
from typing import Optional

from .config import InputConfig
from .window import GameWindow

Logger = logging.Logger

_IS_WINDOWS = sys.platform.startswith("win32")

if _IS_WINDOWS:
    try:
        import pyautogui  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise ImportError("pyautogui is required on Windows hosts") from exc
else:  # pragma: no cover - tooling on non-Windows
    pyautogui = None  # type: ignore


class ArrowDirection(str, Enum):
    """Arrow keys the game understands."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


_NAMED_KEYS = {
    " ": "space",
    "\n": "enter",
    "\r": "enter",
    "\t": "tab",
}


class InputHandler:
    """Sends characters, text, Enter and arrow keys to the game window."""

    def __init__(
        self,
        window: GameWindow,
        config: Optional[InputConfig] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._window = window
        self._config = config or InputConfig()
        self._logger = logger or logging.getLogger(__name__)

        if not _IS_WINDOWS:
            self._logger.warning("InputHandler instantiated on non-Windows; operations will fail")

    def send_key(self, char: str) -> bool:
        """Send a single character as a key press (shifted when needed)."""
        if not self._ensure_focus():
            return False
        self._logger.info("Sending key '%s'", char)
        return self._attempt(self._tap_char, char)

    def send_text(self, text: str) -> bool:
        """Type each character of `text` in order."""
        if not self._ensure_focus():
            return False
        self._logger.info("Sending text '%s'", text)

        def _type_all(value: str) -> None:
            for char in value:
                self._tap_char(char)

        return self._attempt(_type_all, text)

    def send_enter(self) -> bool:
        """Press Enter."""
        if not self._ensure_focus():
            return False
        self._logger.debug("Sending Enter")
        return self._attempt(self._tap, "enter", False)

    def send_arrow_key(self, direction: ArrowDirection) -> bool:
        """Press one arrow key."""
        if not self._ensure_focus():
            return False
        direction = ArrowDirection(direction)
        self._logger.info("Sending arrow key %s", direction.value.upper())
        return self._attempt(self._tap, direction.value, False)

    def focus(self) -> bool:
        """Bring the game window to the foreground."""
        return self._window.focus()

    def _ensure_focus(self) -> bool:
        if self.focus():
            return True
        self._logger.warning("Game window could not be focused; input not sent")
        return False

    def _attempt(self, action, *args) -> bool:
        try:
            action(*args)
        except Exception as exc:
            self._logger.error("Input synthesis failed: %s", exc)
            return False
        return True

    def _tap_char(self, char: str) -> None:
        key = _NAMED_KEYS.get(char, char)
        shifted = len(char) == 1 and (char.isupper() or _is_shift_character(char))
        self._tap(key.lower() if shifted else key, shifted)

    def _tap(self, key: str, shifted: bool) -> None:
        """Press and release a key with the configured hold and settle delays."""
        if pyautogui is None:
            raise RuntimeError("pyautogui not available")

        if shifted:
            pyautogui.keyDown("shift")
        try:
            pyautogui.keyDown(key)
            time.sleep(self._config.key_down_ms / 1000.0)
            pyautogui.keyUp(key)
        finally:
            if shifted:
                pyautogui.keyUp("shift")
        time.sleep(self._config.settle_ms / 1000.0)


def _is_shift_character(char: str) -> bool:
    if pyautogui is None:
        return False
    return bool(pyautogui.isShiftCharacter(char))


__all__ = [
    "ArrowDirection",
    "InputHandler",
]

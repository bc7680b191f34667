"""OS layer for the AI text-game player.

This package covers configuration loading, locating and focusing the game's
console window, capturing its on-screen rectangle for the vision pipeline,
synthesizing keystrokes, and reading operator keys from the console.

Implementations target Windows while remaining importable from other
platforms for tooling and tests.

IMPORTANT: Call set_dpi_aware() once at program startup before any window,
capture, or input operations.
"""

from .capture import CaptureError, CaptureManager
from .config import AppConfig, load_configs
from .console import read_console_key
from .input_handler import ArrowDirection, InputHandler
from .window import NULL_HANDLE, GameWindow, WindowLocator, set_dpi_aware

__all__ = [
    "AppConfig",
    "ArrowDirection",
    "CaptureError",
    "CaptureManager",
    "GameWindow",
    "InputHandler",
    "NULL_HANDLE",
    "WindowLocator",
    "load_configs",
    "read_console_key",
    "set_dpi_aware",
]

"""Window discovery and focus utilities for the game console on Windows.

IMPORTANT: Call set_dpi_aware() once at program startup before locating or
capturing any window. Without DPI awareness, GetWindowRect() returns
virtualized coordinates on displays with scaling != 100% and captures are
cropped incorrectly.
"""
from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

import psutil

from .config import WindowConfig

Logger = logging.Logger

NULL_HANDLE = 0

_IS_WINDOWS = sys.platform.startswith("win32")

if _IS_WINDOWS:
    try:
        import pygetwindow as gw  # type: ignore
    except Exception as exc:  # pragma: no cover - import error surfaced once
        raise ImportError("pygetwindow is required on Windows hosts") from exc

    import ctypes
    from ctypes import wintypes
else:  # pragma: no cover - used only when running tooling on non-Windows hosts
    gw = None  # type: ignore
    ctypes = None  # type: ignore
    wintypes = None  # type: ignore


def set_dpi_aware() -> None:
    """Enable DPI awareness for accurate window rectangles.

    This function is safe to call multiple times and is a no-op on non-Windows platforms.
    """
    if not _IS_WINDOWS:
        return

    try:
        assert ctypes is not None  # noqa: S101 - guarded by _IS_WINDOWS
        ctypes.windll.user32.SetProcessDPIAware()
    except Exception as exc:  # pragma: no cover - depends on host
        logging.getLogger(__name__).warning("Failed to set DPI awareness: %s", exc)


class WindowNotFoundError(RuntimeError):
    """Raised when the game window cannot be located."""


class WindowRectError(RuntimeError):
    """Raised when the window rectangle cannot be queried."""


@dataclass(slots=True)
class Rect:
    """Simple rectangle helper expressed in physical pixels."""

    left: int
    top: int
    width: int
    height: int


class WindowLocator:
    """Finds the game window by process name, title keywords, or terminal host.

    The public entry point is `locate()`, which never raises: enumeration
    failures are logged and the search moves on, returning NULL_HANDLE when
    nothing suitable exists.
    """

    def __init__(self, config: WindowConfig, logger: Optional[Logger] = None) -> None:
        self._config = config
        self._logger = logger or logging.getLogger(__name__)

    def locate(self) -> int:
        """Return the handle of the game window, or NULL_HANDLE."""
        self._logger.info("Searching for the %s window...", self._config.process_name)

        for handle in self._safe(self._process_windows, self._config.process_name):
            self._logger.info("Found %s process window %s", self._config.process_name, handle)
            return handle

        terminals = self._safe(self._windows_with_title, self._config.terminal_title)
        self._logger.debug("Found %d host terminal windows", len(terminals))

        for handle in terminals:
            title = self._window_title(handle)
            self._logger.debug("Terminal window title: '%s'", title)
            if self._matches_keyword(title):
                self._logger.info("Found terminal hosting the game: '%s' (%s)", title, handle)
                return handle

        for terminal in terminals:
            for child in self._safe(self._child_windows, terminal):
                title = self._window_title(child)
                if self._matches_keyword(title):
                    self._logger.info("Found terminal tab hosting the game: '%s' (%s)", title, child)
                    return child

        for keyword in self._config.title_keywords:
            matches = self._safe(self._windows_with_title, keyword)
            if matches:
                self._logger.info("Found %d windows titled like '%s'", len(matches), keyword)
                return matches[0]

        if terminals:
            self._logger.warning(
                "No game window found; falling back to the first terminal window %s", terminals[0]
            )
            return terminals[0]

        self._logger.error("Could not find any suitable window for %s", self._config.process_name)
        return NULL_HANDLE

    def _matches_keyword(self, title: str) -> bool:
        lowered = title.lower()
        return any(keyword.lower() in lowered for keyword in self._config.title_keywords if keyword)

    def _safe(self, func, *args) -> List[int]:
        try:
            return list(func(*args))
        except Exception as exc:
            self._logger.warning("Window enumeration step %s failed: %s", func.__name__, exc)
            return []

    def _process_windows(self, process_name: str) -> Iterable[int]:
        """Visible titled top-level windows owned by processes named `process_name`."""
        wanted = {process_name.lower(), f"{process_name.lower()}.exe"}
        pids = set()
        for proc in psutil.process_iter(["pid", "name"]):
            name = (proc.info.get("name") or "").lower()
            if name in wanted:
                pids.add(proc.info["pid"])

        if not pids:
            return []

        self._logger.debug("Found %d %s processes: %s", len(pids), process_name, sorted(pids))
        return [
            window._hWnd  # pylint: disable=protected-access
            for window in self._all_windows()
            if window.title and window.visible and _window_pid(window._hWnd) in pids  # pylint: disable=protected-access
        ]

    def _windows_with_title(self, fragment: str) -> Iterable[int]:
        _require_windows()
        assert gw is not None  # noqa: S101 - guarded by _require_windows
        return [window._hWnd for window in gw.getWindowsWithTitle(fragment)]  # pylint: disable=protected-access

    def _child_windows(self, parent: int) -> Iterable[int]:
        _require_windows()
        assert ctypes is not None and wintypes is not None  # noqa: S101

        children: List[int] = []
        enum_proc = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.HWND, wintypes.LPARAM)

        def _collect(hwnd, _lparam):
            children.append(int(hwnd))
            return True

        ctypes.windll.user32.EnumChildWindows(parent, enum_proc(_collect), 0)
        return children

    def _window_title(self, handle: int) -> str:
        if not _IS_WINDOWS:
            return ""
        assert ctypes is not None  # noqa: S101
        buffer = ctypes.create_unicode_buffer(256)
        ctypes.windll.user32.GetWindowTextW(handle, buffer, len(buffer))
        return buffer.value

    def _all_windows(self) -> list:
        _require_windows()
        assert gw is not None  # noqa: S101
        return gw.getAllWindows()


class GameWindow:
    """High-level helper wrapping a located game window handle."""

    def __init__(self, handle: int, logger: Optional[Logger] = None) -> None:
        if handle == NULL_HANDLE:
            raise WindowNotFoundError("Cannot wrap a null window handle")
        self._handle = handle
        self._logger = logger or logging.getLogger(__name__)

        if not _IS_WINDOWS:
            self._logger.warning("GameWindow instantiated on non-Windows platform; operations will fail")

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def title(self) -> str:
        if not _IS_WINDOWS:
            return ""
        return self._win32_window().title

    def process_id(self) -> int:
        """Return the id of the process owning the window (0 if unknown)."""
        _require_windows()
        return _window_pid(self._handle)

    def focus(self) -> bool:
        """Bring the window to the foreground; returns whether it succeeded."""
        try:
            window = self._win32_window()
            if window.isMinimized:
                self._logger.debug("Window is minimized; restoring")
                window.restore()
                time.sleep(0.05)
            window.activate()
            time.sleep(0.05)
        except Exception as exc:  # pragma: no cover - dependent on GUI state
            self._logger.warning("Failed to focus game window: %s", exc)
            return False
        return True

    def get_rect(self) -> Rect:
        """Return the on-screen bounding rectangle of the window."""
        _require_windows()
        assert ctypes is not None and wintypes is not None  # noqa: S101

        rect = wintypes.RECT()
        if not ctypes.windll.user32.GetWindowRect(self._handle, ctypes.byref(rect)):
            raise WindowRectError(f"Failed to get window rectangle for handle {self._handle}")
        return Rect(
            left=int(rect.left),
            top=int(rect.top),
            width=int(rect.right - rect.left),
            height=int(rect.bottom - rect.top),
        )

    def _win32_window(self) -> "gw.Win32Window":
        _require_windows()
        assert gw is not None  # noqa: S101
        return gw.Win32Window(self._handle)


def _require_windows() -> None:
    if not _IS_WINDOWS:
        raise RuntimeError("Window operations require Windows")


def _window_pid(handle: int) -> int:
    assert ctypes is not None and wintypes is not None  # noqa: S101
    pid = wintypes.DWORD()
    ctypes.windll.user32.GetWindowThreadProcessId(handle, ctypes.byref(pid))
    return int(pid.value)


__all__ = [
    "GameWindow",
    "NULL_HANDLE",
    "Rect",
    "WindowLocator",
    "WindowNotFoundError",
    "WindowRectError",
    "set_dpi_aware",
]

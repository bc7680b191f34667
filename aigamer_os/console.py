"""Non-blocking key reads from the controlling console."""
from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator, Optional

ESCAPE = "\x1b"

# getwch() reports arrows, Insert, Delete and function keys as one of these
# prefixes followed by a scan-code character.
_EXTENDED_KEY_PREFIXES = ("\x00", "\xe0")

_IS_WINDOWS = sys.platform.startswith("win32")


def read_console_key() -> Optional[str]:
    """Return the next pending console key (lower-cased), or None when idle."""
    if _IS_WINDOWS:
        import msvcrt  # type: ignore

        return _read_windows_key(msvcrt)

    import select

    if not sys.stdin or not sys.stdin.isatty():
        return None
    rlist, _, _ = select.select([sys.stdin], [], [], 0)
    if rlist:
        ch = sys.stdin.read(1)
        return ch.lower() if ch else None
    return None


def _read_windows_key(msvcrt) -> Optional[str]:
    if not msvcrt.kbhit():
        return None
    key = msvcrt.getwch()
    if key in _EXTENDED_KEY_PREFIXES:
        msvcrt.getwch()
        return None
    return key.lower()


@contextmanager
def cbreak_console() -> Iterator[None]:
    """Deliver POSIX tty keys one at a time instead of after Enter.

    No-op on Windows and when stdin is not a terminal. The previous terminal
    mode is restored on exit.
    """
    if _IS_WINDOWS or not sys.stdin or not sys.stdin.isatty():
        yield
        return

    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


__all__ = ["ESCAPE", "cbreak_console", "read_console_key"]

"""Reduce a model reply to one game command."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aigamer_os.input_handler import ArrowDirection

PARSE_ERROR = "ERROR"
ACTION_MARKER = "action:"
MAX_ACTION_CHARS = 20
_STRIP_CHARS = "\"'` \t\r\n"


class CommandKind(str, Enum):
    KEY = "key"
    TEXT = "text"
    ARROW_KEY = "arrow_key"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class GameCommand:
    """A classified action token ready for dispatch."""

    kind: CommandKind
    value: str

    @property
    def direction(self) -> Optional[ArrowDirection]:
        if self.kind is CommandKind.ARROW_KEY:
            return ArrowDirection(self.value)
        return None


_ARROW_TOKENS = {
    **{direction.name: direction for direction in ArrowDirection},
    **{f"ARROW {direction.name}": direction for direction in ArrowDirection},
}


def parse_action(reply: str) -> str:
    """Extract the action token from a free-form reply.

    Returns "ERROR" for blank replies or an empty ``ACTION:`` payload.
    """
    if not reply or not reply.strip():
        return PARSE_ERROR

    marker_at = reply.lower().find(ACTION_MARKER)
    if marker_at != -1:
        rest = reply[marker_at + len(ACTION_MARKER):].lstrip()
        first_line = rest.splitlines()[0] if rest else ""
        token = first_line.strip(_STRIP_CHARS)
        return token or PARSE_ERROR

    for line in reply.splitlines():
        candidate = line.strip()
        if 0 < len(candidate) < MAX_ACTION_CHARS and not candidate.endswith("."):
            return candidate

    first_line = next(line for line in reply.splitlines() if line.strip())
    return first_line.strip()[:MAX_ACTION_CHARS]


def classify_command(token: str) -> GameCommand:
    """Classify an action token as a key, text, arrow key or unknown."""
    trimmed = (token or "").strip()
    normalized = trimmed.upper()

    if not normalized:
        return GameCommand(CommandKind.UNKNOWN, "")

    direction = _ARROW_TOKENS.get(" ".join(normalized.split()))
    if direction is not None:
        return GameCommand(CommandKind.ARROW_KEY, direction.value)

    if len(trimmed) == 1 or _is_integer(trimmed):
        return GameCommand(CommandKind.KEY, trimmed)

    return GameCommand(CommandKind.TEXT, trimmed)


def _is_integer(value: str) -> bool:
    try:
        int(value)
    except ValueError:
        return False
    return True


__all__ = [
    "CommandKind",
    "GameCommand",
    "PARSE_ERROR",
    "classify_command",
    "parse_action",
]

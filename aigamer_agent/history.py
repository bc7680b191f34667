"""Bounded conversation history shared by the decision clients."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .prompts import (
    GAME_STATE_HEADER,
    GAME_STATE_QUESTION,
    SUMMARY_ACKNOWLEDGEMENT,
    SUMMARY_FOOTER,
    SUMMARY_HEADER,
)

Logger = logging.Logger

MIN_HISTORY_MESSAGES = 4
_SUMMARY_EXCHANGES = 2


class TrimPolicy(str, Enum):
    """How older dialogue is dropped once the ceiling is reached."""

    EVICT = "evict"
    SUMMARIZE = "summarize"


@dataclass(slots=True)
class Message:
    """One conversation turn."""

    role: str
    content: str
    synthetic: bool = False

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """Ordered user/assistant turns with an optional system turn.

    `max_messages` bounds the dialogue only; the system turn is stored apart
    from it and is never evicted. Dialogue always starts with a user turn and
    alternates roles.
    """

    def __init__(
        self,
        max_messages: int = 20,
        policy: TrimPolicy = TrimPolicy.EVICT,
        system_prompt: Optional[str] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        if max_messages < MIN_HISTORY_MESSAGES:
            raise ValueError(f"max_messages must be at least {MIN_HISTORY_MESSAGES} (got {max_messages})")
        self._max_messages = max_messages
        self._policy = TrimPolicy(policy)
        self._system_prompt = system_prompt
        self._entries: List[Message] = []
        self._logger = logger or logging.getLogger(__name__)

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @property
    def system_prompt(self) -> Optional[str]:
        return self._system_prompt

    @property
    def messages(self) -> List[Message]:
        """Copy of the dialogue turns, oldest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append_user(self, content: str) -> None:
        """Append a user turn, trimming so the reply still fits under the ceiling."""
        self._entries.append(Message("user", content))
        self._trim(reserve=1)

    def append_assistant(self, content: str) -> None:
        self._entries.append(Message("assistant", content))
        self._trim(reserve=0)

    def discard_pending_user(self) -> bool:
        """Drop a trailing user turn that never received a reply."""
        if self._entries and self._entries[-1].role == "user":
            self._entries.pop()
            return True
        return False

    def as_payload(self, include_system: bool = False) -> List[Dict[str, str]]:
        """Serialize for a chat API; the system turn is inlined first on request."""
        payload = [entry.to_dict() for entry in self._entries]
        if include_system and self._system_prompt:
            payload.insert(0, {"role": "system", "content": self._system_prompt})
        return payload

    def _trim(self, reserve: int) -> None:
        limit = self._max_messages - reserve
        if len(self._entries) <= limit:
            return

        before = len(self._entries)
        if self._policy is TrimPolicy.SUMMARIZE:
            self._summarize()
        else:
            while len(self._entries) > limit:
                del self._entries[:2]

        self._logger.debug(
            "Trimmed conversation history (%s): %d -> %d messages",
            self._policy.value,
            before,
            len(self._entries),
        )

    def _summarize(self) -> None:
        # An odd tail starts with a user turn when the newest turn is a user turn,
        # so summary (user) + acknowledgement (assistant) + tail keeps alternation.
        keep = self._max_messages // 2
        if keep % 2 == 0:
            keep -= 1
        if self._entries[-1].role == "assistant":
            keep += 1

        evicted = self._entries[:-keep]
        recent = self._entries[-keep:]
        summary = Message("user", build_context_summary(evicted), synthetic=True)
        ack = Message("assistant", SUMMARY_ACKNOWLEDGEMENT, synthetic=True)
        self._entries = [summary, ack, *recent]


def build_context_summary(evicted: List[Message]) -> str:
    """Render the most recent real exchanges of `evicted` as a context note."""
    exchanges = []
    for index in range(len(evicted) - 1):
        first, second = evicted[index], evicted[index + 1]
        if first.synthetic or second.synthetic:
            continue
        if first.role == "user" and second.role == "assistant":
            exchanges.append((first.content, second.content))

    lines = [SUMMARY_HEADER]
    for game_state, action in exchanges[-_SUMMARY_EXCHANGES:]:
        lines.append(f"Game showed: {extract_state_snippet(game_state)}")
        lines.append(f"You chose: {action}")
        lines.append("")
    lines.append(SUMMARY_FOOTER)
    return "\n".join(lines)


def extract_state_snippet(message: str) -> str:
    """Shorten a game-state user turn to its first two lines."""
    if GAME_STATE_HEADER not in message:
        return message

    start = message.index(GAME_STATE_HEADER) + len(GAME_STATE_HEADER)
    end = message.find(GAME_STATE_QUESTION, start)
    if end == -1:
        end = len(message)

    game_state = message[start:end].strip()
    lines = [line.strip() for line in game_state.splitlines() if line.strip()]
    if len(lines) > 2:
        return " | ".join(lines[:2]) + "..."
    return game_state


__all__ = [
    "ConversationHistory",
    "MIN_HISTORY_MESSAGES",
    "Message",
    "TrimPolicy",
    "build_context_summary",
    "extract_state_snippet",
]

"""Agent orchestration for the AI text-game player."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import typing aid only
    from .coordinator import GameLoopCoordinator
    from .providers import DecisionClient, create_decision_client
    from .session_log import SessionLog

__all__ = ["DecisionClient", "GameLoopCoordinator", "SessionLog", "create_decision_client"]


def __getattr__(name: str):
    if name == "GameLoopCoordinator":
        from .coordinator import GameLoopCoordinator

        return GameLoopCoordinator
    if name == "DecisionClient":
        from .providers import DecisionClient

        return DecisionClient
    if name == "create_decision_client":
        from .providers import create_decision_client

        return create_decision_client
    if name == "SessionLog":
        from .session_log import SessionLog

        return SessionLog
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

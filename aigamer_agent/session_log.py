"""Per-session transcript of game states, AI actions and system events."""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

Logger = logging.Logger

SESSION_LOG_PREFIX = "warsim_session"


def session_file_name(session_name: Optional[str], started: datetime) -> str:
    """Build `warsim_session_[<name>_]<YYYYmmdd_HHMMSS>.log`."""
    timestamp = started.strftime("%Y%m%d_%H%M%S")
    label = re.sub(r"[^A-Za-z0-9._-]", "_", session_name.strip()) if session_name else ""
    if label:
        return f"{SESSION_LOG_PREFIX}_{label}_{timestamp}.log"
    return f"{SESSION_LOG_PREFIX}_{timestamp}.log"


class _SessionFileHandler(logging.FileHandler):
    """File handler that switches its session log off after a write error."""

    def __init__(self, path: Path, owner: "SessionLog") -> None:
        super().__init__(path, mode="a", encoding="utf-8")
        self._owner = owner
        self.setFormatter(logging.Formatter("%(message)s"))

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802 - logging API
        self._owner._disable(f"write to {self.baseFilename} failed")


class SessionLog:
    """Append-only session log file.

    Each write is flushed immediately. The first write error disables the log
    for the rest of the session; the game loop keeps running.
    """

    def __init__(
        self,
        logs_dir: Path = Path("logs"),
        session_name: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[Logger] = None,
    ) -> None:
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._started = clock()
        self._path = Path(logs_dir) / session_file_name(session_name, self._started)
        self._enabled = True
        self._handler: Optional[_SessionFileHandler] = None

        self._writer = logging.Logger(f"{__name__}.file", level=logging.INFO)
        self._writer.propagate = False

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handler = _SessionFileHandler(self._path, self)
        except OSError as exc:
            self._disable(f"could not open {self._path}: {exc}")
            return

        self._writer.addHandler(self._handler)
        self.log_message("=== WARSIM AI PLAYER SESSION LOG ===")
        self.log_message(f"Session started: {self._started:%Y-%m-%d %H:%M:%S}")
        self.log_message("=" * 36)
        self.log_message("")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log_message(self, message: str) -> None:
        if not self._enabled:
            return
        self._writer.info(message)

    def log_system(self, message: str) -> None:
        self.log_message(f"[SYSTEM] [{self._stamp()}] {message}")

    def log_game_state(self, game_state: str) -> None:
        self._log_block("------ GAME STATE ------", [game_state], "-" * 24)

    def log_action(self, action: str, raw_response: Optional[str] = None) -> None:
        lines = [f"Action: {action}"]
        if raw_response:
            lines.extend(["", "Raw Response:", raw_response])
        self._log_block("------ AI ACTION -------", lines, "-" * 24)

    def log_error(self, message: str) -> None:
        self._log_block("------ ERROR -------", [message], "-" * 19)

    def close(self) -> None:
        if self._handler is not None:
            self._writer.removeHandler(self._handler)
            try:
                self._handler.close()
            except (OSError, ValueError) as exc:
                self._logger.debug("Error closing session log: %s", exc)
            self._handler = None
        self._enabled = False

    def _log_block(self, header: str, lines: list, footer: str) -> None:
        self.log_message("\n".join([header, f"[{self._stamp()}]", *lines, footer, ""]))

    def _stamp(self) -> str:
        return f"{self._clock():%H:%M:%S}"

    def _disable(self, reason: str) -> None:
        if self._enabled:
            self._logger.error("Session log disabled: %s", reason)
        self._enabled = False


__all__ = [
    "SESSION_LOG_PREFIX",
    "SessionLog",
    "session_file_name",
]

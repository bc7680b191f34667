"""Run-state shared between the game loop and the console key listener."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from aigamer_os.config import DELAY_CEILING_MS, DELAY_FLOOR_MS, LoopConfig
from aigamer_os.console import ESCAPE, read_console_key

from .prompts import CONTROLS_HELP
from .session_log import SessionLog

Logger = logging.Logger


class LoopState(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STEP_WAITING = "step_waiting"
    STOPPED = "stopped"


class LoopControl:
    """Pause, step and speed flags plus the inter-cycle delay.

    All fields are guarded by one lock. `console_lock` serializes console
    reads and writes between the listener thread and the loop.
    """

    def __init__(self, config: Optional[LoopConfig] = None, logger: Optional[Logger] = None) -> None:
        self._config = config or LoopConfig()
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self.console_lock = threading.Lock()

        self._paused = False
        self._step_mode = False
        self._step_pending = False
        self._delay_ms = self._clamp(self._config.default_delay_ms)

    @property
    def delay_ms(self) -> int:
        with self._lock:
            return self._delay_ms

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def step_mode(self) -> bool:
        with self._lock:
            return self._step_mode

    @property
    def state(self) -> LoopState:
        if self._stop_event.is_set():
            return LoopState.STOPPED
        with self._lock:
            if self._paused and self._step_mode:
                return LoopState.STEP_WAITING
            if self._paused:
                return LoopState.PAUSED
            return LoopState.RUNNING

    def stop(self) -> None:
        self._stop_event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True if a stop was requested meanwhile."""
        if seconds <= 0:
            return self._stop_event.is_set()
        return self._stop_event.wait(seconds)

    def acquire_cycle(self) -> bool:
        """Return True when the loop may run one cycle now.

        A pending step is consumed here, so a single N press runs exactly one
        cycle even if the loop polls again before the cycle finishes.
        """
        if self._stop_event.is_set():
            return False
        with self._lock:
            if not self._paused:
                return True
            if self._step_pending:
                self._step_pending = False
                return True
            return False

    def finish_cycle(self) -> None:
        """Re-pause after a cycle when step mode is active."""
        with self._lock:
            if self._step_mode:
                self._paused = True

    def toggle_pause(self) -> bool:
        with self._lock:
            self._paused = not self._paused
            self._step_pending = False
            return self._paused

    def toggle_step_mode(self) -> bool:
        with self._lock:
            self._step_mode = not self._step_mode
            self._paused = self._step_mode
            self._step_pending = False
            return self._step_mode

    def next_step(self) -> bool:
        """Handle N: run one cycle (step mode) or resume. Returns False when not paused."""
        with self._lock:
            if not self._paused:
                return False
            if self._step_mode:
                self._step_pending = True
            else:
                self._paused = False
            return True

    def speed_up(self) -> int:
        return self._set_delay(lambda delay: delay - self._config.delay_step_ms)

    def slow_down(self) -> int:
        return self._set_delay(lambda delay: delay + self._config.delay_step_ms)

    def reset_delay(self) -> int:
        return self._set_delay(lambda _delay: self._config.default_delay_ms)

    def _set_delay(self, update: Callable[[int], int]) -> int:
        with self._lock:
            self._delay_ms = self._clamp(update(self._delay_ms))
            return self._delay_ms

    def _clamp(self, delay_ms: int) -> int:
        floor = max(DELAY_FLOOR_MS, self._config.min_delay_ms)
        ceiling = min(DELAY_CEILING_MS, self._config.max_delay_ms)
        return max(floor, min(ceiling, int(delay_ms)))


class KeyListener:
    """Daemon thread mapping console keys to `LoopControl` transitions."""

    def __init__(
        self,
        control: LoopControl,
        session_log: Optional[SessionLog] = None,
        read_key: Callable[[], Optional[str]] = read_console_key,
        poll_interval_s: float = 0.1,
        echo: Callable[[str], None] = print,
        logger: Optional[Logger] = None,
    ) -> None:
        self._control = control
        self._session_log = session_log
        self._read_key = read_key
        self._poll_interval_s = poll_interval_s
        self._echo = echo
        self._logger = logger or logging.getLogger(__name__)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="key-listener", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._control.stopped:
            try:
                with self._control.console_lock:
                    key = self._read_key()
            except Exception as exc:
                self._logger.warning("Console key read failed: %s", exc)
                key = None
            if key:
                self.handle_key(key)
            self._control.wait(self._poll_interval_s)

    def handle_key(self, key: str) -> bool:
        """Apply one key press; returns False for unmapped keys."""
        key = key.lower()
        control = self._control

        if key == ESCAPE:
            control.stop()
            self._announce("Stop requested (ESC)")
        elif key == "p":
            paused = control.toggle_pause()
            self._announce("Paused" if paused else "Resumed")
        elif key == "s":
            step_mode = control.toggle_step_mode()
            self._announce(
                "Step mode enabled (press N for the next step)" if step_mode else "Step mode disabled"
            )
        elif key == "n":
            if control.next_step():
                self._announce("Next step" if control.step_mode else "Resumed")
        elif key in ("+", "="):
            self._announce(f"Delay decreased to {control.speed_up()} ms")
        elif key == "-":
            self._announce(f"Delay increased to {control.slow_down()} ms")
        elif key == "r":
            self._announce(f"Delay reset to {control.reset_delay()} ms")
        elif key == "h":
            self._print(CONTROLS_HELP)
        else:
            return False
        return True

    def _announce(self, message: str) -> None:
        self._logger.info(message)
        self._print(message)
        if self._session_log is not None:
            self._session_log.log_system(message)

    def _print(self, message: str) -> None:
        with self._control.console_lock:
            self._echo(message)


__all__ = [
    "KeyListener",
    "LoopControl",
    "LoopState",
]

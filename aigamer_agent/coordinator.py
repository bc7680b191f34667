"""Main game loop coordinator: capture → transcribe → decide → type."""
from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Any, Optional

from aigamer_os.capture import CaptureManager
from aigamer_os.config import AppConfig
from aigamer_os.console import cbreak_console
from aigamer_os.input_handler import InputHandler
from aigamer_os.window import NULL_HANDLE, GameWindow, WindowLocator, set_dpi_aware
from aigamer_vision.transcriber import VisionTranscriber, create_transcriber, is_transcription_error

from .actions import PARSE_ERROR, CommandKind, GameCommand, classify_command, parse_action
from .control import KeyListener, LoopControl
from .prompts import CONTROLS_HELP, GAME_SCREEN_PROMPT
from .providers import DECISION_ERROR, DecisionClient, ProviderNotConfiguredError, create_decision_client
from .session_log import SessionLog

Logger = logging.Logger


class CoordinatorError(RuntimeError):
    """Raised when the coordinator cannot start."""


class GameLoopCoordinator:
    """Orchestrates the main game loop.

    Collaborators default to the real OS and provider implementations built
    from `config`; any of them can be injected instead.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        window: Optional[GameWindow] = None,
        capture: Optional[CaptureManager] = None,
        transcriber: Optional[VisionTranscriber] = None,
        decision_client: Optional[DecisionClient] = None,
        input_handler: Optional[InputHandler] = None,
        control: Optional[LoopControl] = None,
        session_log: Optional[SessionLog] = None,
        key_listener: Optional[KeyListener] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialize the coordinator and all subsystems.

        Args:
            config: Loaded application configuration
            window: Pre-located game window (located from config when omitted)
            capture: Screen capturer for the window
            transcriber: Vision transcriber for the configured provider
            decision_client: Decision client for the configured provider
            input_handler: Keyboard input dispatcher for the window
            control: Shared pause/step/speed state
            session_log: Per-session transcript file
            key_listener: Console key listener driving `control`
            logger: Optional logger instance

        Raises:
            CoordinatorError: The game window is missing or the provider is
                not configured.
        """
        self._logger = logger or logging.getLogger(__name__)
        self._config = config
        self._loop_config = config.loop
        self._session_log = session_log
        self._cycle_counter = 0
        self._interrupt_count = 0

        self._control = control or LoopControl(config.loop, logger=self._logger)

        self._logger.info("Initializing subsystems...")
        if window is None:
            set_dpi_aware()
            handle = WindowLocator(config.window, logger=self._logger).locate()
            if handle == NULL_HANDLE:
                raise CoordinatorError(
                    f"Could not find the {config.window.process_name} window; make sure the game is running"
                )
            window = GameWindow(handle, logger=self._logger)
        self._window = window

        try:
            self._transcriber = transcriber or create_transcriber(
                config.ai, config.agent, config.capture, logger=self._logger
            )
            self._decision_client = decision_client or create_decision_client(
                config.ai, config.agent, logger=self._logger
            )
        except ProviderNotConfiguredError as exc:
            raise CoordinatorError(str(exc)) from exc

        self._capture = capture or CaptureManager(window, config.capture, logger=self._logger)
        self._input = input_handler or InputHandler(window, config.input, logger=self._logger)
        self._key_listener = key_listener or KeyListener(
            self._control,
            session_log=session_log,
            poll_interval_s=config.loop.poll_interval_s,
            logger=self._logger,
        )

        self._logger.info("Coordinator initialized successfully")

    @property
    def control(self) -> LoopControl:
        return self._control

    @property
    def cycle_count(self) -> int:
        return self._cycle_counter

    def run(self) -> None:
        """Run the game loop until ESC, a signal, or `control.stop()`."""
        previous_handlers = {}
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous_handlers[signum] = signal.signal(signum, self._handle_signal)

        self._logger.info("Starting game loop (provider: %s)", self._config.ai.provider)
        self._log_system(f"Game loop started with provider {self._config.ai.provider}")
        self._print(CONTROLS_HELP)

        try:
            with cbreak_console():
                self._key_listener.start()
                while not self._control.stopped:
                    if not self._control.acquire_cycle():
                        self._control.wait(self._loop_config.pause_poll_s)
                        continue
                    try:
                        self._execute_cycle()
                    finally:
                        self._control.finish_cycle()
        except KeyboardInterrupt:
            self._logger.info("Received keyboard interrupt, stopping gracefully")
        finally:
            self._control.stop()
            self._key_listener.join(timeout=1.0)
            for signum, handler in previous_handlers.items():
                if handler is not None:
                    signal.signal(signum, handler)
            self._log_system(f"Game loop stopped after {self._cycle_counter} cycles")
            self._logger.info("Game loop terminated")

    def _execute_cycle(self) -> None:
        """Execute one capture → decide → dispatch cycle."""
        self._cycle_counter += 1
        cycle_id = f"cycle_{self._cycle_counter:06d}"
        self._logger.info("=" * 60)
        self._logger.info("Starting %s", cycle_id)

        try:
            if not self._input.focus():
                self._logger.warning("Failed to focus game window before capturing; retrying")
                self._control.wait(self._loop_config.retry_pause_s)
                return

            if self._control.wait(self._loop_config.focus_settle_s):
                return

            self._logger.info("Capturing game screen...")
            capture = self._capture.capture(cycle_id)

            self._logger.info("Transcribing screen with %s vision...", self._config.ai.provider)
            game_text = self._transcriber.transcribe(capture.image, GAME_SCREEN_PROMPT)
            if is_transcription_error(game_text):
                self._logger.warning("Vision transcription failed; skipping cycle")
                self._log_error(f"Vision transcription failed: {game_text}")
                self._control.wait(self._loop_config.retry_pause_s)
                return
            if self._session_log is not None:
                self._session_log.log_game_state(game_text)

            self._logger.info("Requesting next action...")
            raw_reply = self._decision_client.decide(game_text)
            action = PARSE_ERROR if raw_reply == DECISION_ERROR else parse_action(raw_reply)
            if action == PARSE_ERROR:
                self._logger.warning("Failed to get an AI action from the screen; retrying")
                self._log_error("Failed to get AI action from screen")
                self._control.wait(self._loop_config.retry_pause_s)
                return

            command = classify_command(action)
            if self._session_log is not None:
                self._session_log.log_action(command.value, raw_reply)
            self._logger.info("Executing command: %s - %s", command.kind.name, command.value)

            self._dispatch(command)

            delay_ms = self._control.delay_ms
            self._logger.info("Waiting %.1f seconds before next action", delay_ms / 1000.0)
            self._control.wait(delay_ms / 1000.0)

        except Exception as exc:
            self._logger.exception("Error in game loop: %s", exc)
            self._log_error(f"Error in game loop: {exc}")
            self._control.wait(self._loop_config.error_backoff_s)
        finally:
            self._logger.info("Completed %s", cycle_id)

    def _dispatch(self, command: GameCommand) -> bool:
        """Deliver `command`, re-focusing before each of up to `max_retries` attempts."""
        max_retries = max(1, self._loop_config.max_retries)
        for attempt in range(1, max_retries + 1):
            if self._control.stopped:
                return False
            try:
                if not self._input.focus():
                    self._logger.warning("Failed to focus game window (attempt %d/%d)", attempt, max_retries)
                    self._log_error("Failed to focus game window")
                elif self._send(command):
                    return True
                else:
                    self._logger.warning("Input delivery failed (attempt %d/%d)", attempt, max_retries)
                    self._log_error(f"Input delivery failed for {command.kind.name} '{command.value}'")
            except Exception as exc:
                self._logger.error("Error executing action: %s (attempt %d/%d)", exc, attempt, max_retries)
                self._log_error(f"Error executing action: {exc}")
            self._control.wait(self._loop_config.retry_pause_s)

        self._logger.error("Giving up on %s '%s' after %d attempts", command.kind.name, command.value, max_retries)
        return False

    def _send(self, command: GameCommand) -> bool:
        if command.kind is CommandKind.ARROW_KEY:
            return self._input.send_arrow_key(command.direction)

        if command.kind is CommandKind.KEY and len(command.value) == 1:
            return self._input.send_key(command.value) and self._input.send_enter()

        if command.kind is CommandKind.UNKNOWN:
            self._logger.info("Unknown command type; sending as text")
        return self._input.send_text(command.value) and self._input.send_enter()

    def _log_system(self, message: str) -> None:
        if self._session_log is not None:
            self._session_log.log_system(message)

    def _log_error(self, message: str) -> None:
        if self._session_log is not None:
            self._session_log.log_error(message)

    def _print(self, message: str) -> None:
        with self._control.console_lock:
            print(message)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        """Handle termination signals gracefully.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        self._interrupt_count += 1

        if self._interrupt_count == 1:
            self._logger.info("Received signal %d, stopping after current cycle (press Ctrl+C again to force-stop)", signum)
            self._control.stop()
        else:
            self._logger.warning("Force-stop requested, terminating immediately")
            sys.exit(130)  # Standard exit code for SIGINT


__all__ = ["GameLoopCoordinator", "CoordinatorError"]

"""Tests for the per-session log file."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

from aigamer_agent.session_log import SessionLog, session_file_name

_FIXED = datetime(2024, 3, 5, 14, 7, 9)


def _clock() -> datetime:
    return _FIXED


def test_file_name_with_and_without_label() -> None:
    assert session_file_name(None, _FIXED) == "warsim_session_20240305_140709.log"
    assert session_file_name("", _FIXED) == "warsim_session_20240305_140709.log"
    assert session_file_name("run 1", _FIXED) == "warsim_session_run_1_20240305_140709.log"


def test_writes_header_and_blocks(tmp_path: Path) -> None:
    log = SessionLog(tmp_path / "logs", "demo", clock=_clock)
    log.log_system("Paused")
    log.log_game_state("1) Explore\n2) Rest")
    log.log_action("1", "ACTION: 1")
    log.log_error("Failed to focus game window")
    log.close()

    assert log.path == tmp_path / "logs" / "warsim_session_demo_20240305_140709.log"
    text = log.path.read_text(encoding="utf-8")

    assert text.startswith("=== WARSIM AI PLAYER SESSION LOG ===\nSession started: 2024-03-05 14:07:09\n")
    assert "[SYSTEM] [14:07:09] Paused" in text
    assert "------ GAME STATE ------\n[14:07:09]\n1) Explore\n2) Rest\n" in text
    assert "------ AI ACTION -------\n[14:07:09]\nAction: 1\n\nRaw Response:\nACTION: 1\n" in text
    assert "------ ERROR -------\n[14:07:09]\nFailed to focus game window\n" in text


def test_action_without_raw_response_omits_section(tmp_path: Path) -> None:
    log = SessionLog(tmp_path, clock=_clock)
    log.log_action("UP")
    log.close()

    text = log.path.read_text(encoding="utf-8")
    assert "Action: UP" in text
    assert "Raw Response:" not in text


def test_write_failure_disables_log(tmp_path: Path) -> None:
    log = SessionLog(tmp_path, clock=_clock)
    assert log.enabled

    log._handler.stream.close()  # pylint: disable=protected-access
    log.log_system("this write fails")

    assert not log.enabled
    log.log_error("ignored")
    log.close()


def test_unwritable_directory_disables_log(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    log = SessionLog(blocker, clock=_clock)

    assert not log.enabled
    log.log_system("ignored")

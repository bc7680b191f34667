"""Tests for bounded conversation history."""
from __future__ import annotations

import pytest

from aigamer_agent.history import (
    ConversationHistory,
    TrimPolicy,
    build_context_summary,
    extract_state_snippet,
)
from aigamer_agent.prompts import SUMMARY_ACKNOWLEDGEMENT, format_game_state


def _play(history: ConversationHistory, turns: int) -> None:
    for index in range(turns):
        history.append_user(format_game_state(f"Screen {index}\nLine two\nLine three"))
        history.append_assistant(str(index))


def _assert_alternates(history: ConversationHistory) -> None:
    roles = [message.role for message in history.messages]
    assert roles[0] == "user"
    for previous, current in zip(roles, roles[1:]):
        assert previous != current


def test_rejects_tiny_ceiling() -> None:
    with pytest.raises(ValueError):
        ConversationHistory(max_messages=3)


def test_evict_policy_never_exceeds_ceiling() -> None:
    history = ConversationHistory(max_messages=6, policy=TrimPolicy.EVICT, system_prompt="system")

    for index in range(10):
        history.append_user(f"state {index}")
        assert len(history) <= 5
        history.append_assistant(f"reply {index}")
        assert len(history) <= 6
        _assert_alternates(history)

    assert history.messages[-1].content == "reply 9"
    assert history.messages[0].content == "state 7"
    assert history.system_prompt == "system"


def test_payload_inlines_system_turn_first() -> None:
    history = ConversationHistory(max_messages=4, system_prompt="be brief")
    history.append_user("hello")

    assert history.as_payload() == [{"role": "user", "content": "hello"}]
    assert history.as_payload(include_system=True) == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]


def test_discard_pending_user_only_removes_trailing_user() -> None:
    history = ConversationHistory(max_messages=4)
    history.append_user("state")
    history.append_assistant("1")

    assert history.discard_pending_user() is False
    history.append_user("next")
    assert history.discard_pending_user() is True
    assert [m.content for m in history.messages] == ["state", "1"]


def test_summarize_policy_collapses_old_turns() -> None:
    history = ConversationHistory(max_messages=20, policy=TrimPolicy.SUMMARIZE, system_prompt="system")
    _play(history, 10)
    assert len(history) == 20

    history.append_user(format_game_state("Newest screen"))

    messages = history.messages
    assert len(messages) <= 19
    assert messages[0].synthetic and messages[0].role == "user"
    assert messages[0].content.startswith("PREVIOUS GAME CONTEXT:")
    assert messages[1].synthetic and messages[1].content == SUMMARY_ACKNOWLEDGEMENT
    assert messages[-1].content.endswith("What action should I take next?")
    assert "Newest screen" in messages[-1].content
    _assert_alternates(history)
    assert history.as_payload(include_system=True)[0] == {"role": "system", "content": "system"}


def test_summarize_policy_stays_bounded_over_many_turns() -> None:
    history = ConversationHistory(max_messages=8, policy=TrimPolicy.SUMMARIZE)
    for index in range(30):
        history.append_user(format_game_state(f"Screen {index}"))
        assert len(history) <= 7
        history.append_assistant(str(index))
        assert len(history) <= 8
        _assert_alternates(history)

    summaries = [m for m in history.messages if m.synthetic and m.role == "user"]
    assert len(summaries) == 1


def test_summary_mentions_latest_evicted_exchanges() -> None:
    history = ConversationHistory(max_messages=10)
    for index in range(3):
        history.append_user(format_game_state(f"Screen {index}\nsecond\nthird"))
        history.append_assistant(str(index))
    summary = build_context_summary(history.messages)

    assert "Game showed: Screen 0" not in summary
    assert "Game showed: Screen 1 | second..." in summary
    assert "You chose: 2" in summary
    assert summary.endswith("Continue making decisions based on the current game state.")


def test_state_snippet_keeps_short_states_whole() -> None:
    assert extract_state_snippet(format_game_state("Only line")) == "Only line"
    assert extract_state_snippet("no header here") == "no header here"
    assert extract_state_snippet(format_game_state("a\n\nb\nc")) == "a | b..."

"""Tests for the per-session runtime state."""

from interview_session_engine.orchestrator.session_state import SessionRuntimeState
from interview_session_engine.schemas import Interaction


def test_history_sorted_and_counted() -> None:
    state = SessionRuntimeState("s")
    state.load_history(
        [
            Interaction(session_id="s", question_text="Second?", answer_text="b", order=2),
            Interaction(session_id="s", question_text="First?", answer_text="a", order=1),
        ]
    )

    assert state.question_count == 2
    assert state.next_order == 3
    assert [item.question for item in state.history()] == ["First?", "Second?"]
    assert not state.cap_reached


def test_final_segments_join_with_single_space() -> None:
    state = SessionRuntimeState("s")

    state.apply_final("I worked on ")
    state.apply_final("payments")
    state.apply_interim("last")

    assert state.final_text == "I worked on payments"
    assert state.answer_text == "I worked on payments last"

    state.commit_interim()
    assert state.interim_text == ""
    assert state.final_text == "I worked on payments last"


def test_typed_text_replaces_transcript() -> None:
    state = SessionRuntimeState("s")
    state.apply_final("spoken")
    state.apply_interim("more")

    state.set_answer_text("typed instead")

    assert state.answer_text == "typed instead"
    assert state.has_unsent_text


def test_clear_answer_resets_question() -> None:
    state = SessionRuntimeState("s")
    state.current_question = "Why?"
    state.set_answer_text("Because")

    state.clear_answer()

    assert state.current_question is None
    assert state.answer_text == ""
    assert not state.has_unsent_text

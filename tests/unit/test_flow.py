import threading
import time

import pytest

from interview.errors import InvalidInput, InvalidStateTransition, SessionNotFound
from interview.flow import InterviewEngine
from interview.models import SKIPPED_ANSWER, SPOKEN_STATES, CodingSlot, InterviewState, MCQSlot, SpokenSlot
from oracle.guarded import FALLBACK_FEEDBACK


ROLE = "Frontend Developer"
GOOD_ANSWER = "A closure keeps a reference to the scope it was created in."
BEHAVIOR = {"paste_count": 0, "time_to_first_keystroke_ms": 8000, "total_time_ms": 120000}


def _start(engine, **kwargs):
    session = engine.create_session(ROLE, "Ada", **kwargs)
    step = engine.start(session.id).unwrap()
    return session, step


def _answer_current(engine, session):
    state = session.state
    if state in SPOKEN_STATES:
        return engine.submit_spoken_answer(session.id, GOOD_ANSWER)
    if state == InterviewState.MCQ:
        return engine.submit_mcq_answer(session.id, "B", 4000)
    if state == InterviewState.MCQ_JUSTIFY:
        return engine.submit_mcq_justification(session.id, "Effects run after the render is committed.")
    if state == InterviewState.CODING:
        return engine.submit_code(session.id, "def reverse(head): ...", "Walk and flip pointers.", BEHAVIOR)
    raise AssertionError(f"unexpected state {state}")


def _run_to_completion(engine, session, clock=None):
    for _ in range(60):
        if session.state == InterviewState.COMPLETED:
            return
        if clock is not None:
            clock.tick(6000)
        _answer_current(engine, session).unwrap()
    raise AssertionError("interview did not complete")


def test_create_makes_no_oracle_calls(engine, fake_oracle):
    session = engine.create_session(ROLE, "Ada")
    assert session.state == InterviewState.CREATED
    assert session.slots == []
    assert fake_oracle.calls == []
    assert engine.get_session(session.id) is session


def test_create_rejects_unknown_difficulty(engine):
    with pytest.raises(ValueError):
        engine.create_session(ROLE, "Ada", difficulty="impossible")


def test_start_opens_warmup_slot(engine, fake_oracle):
    session, step = _start(engine)
    assert step.type == "spoken"
    assert step.state == InterviewState.WARMUP
    assert step.slot_number == 1
    assert step.total_slots == 10
    assert step.question == f"Question 1 for {ROLE}?"
    assert len(session.slots) == 1
    assert isinstance(session.slots[0], SpokenSlot)
    assert fake_oracle.calls[0] == ("generate_question", (ROLE, 1, "easy", []))


def test_difficulty_preference_shifts_slot_difficulty(engine, fake_oracle):
    _start(engine, difficulty="hard")
    assert fake_oracle.calls[0][1][2] == "medium"


def test_start_twice_is_rejected(engine):
    session, _ = _start(engine)
    result = engine.start(session.id)
    assert not result.ok
    assert isinstance(result.error, InvalidStateTransition)
    assert result.kind == "invalid_state_transition"


def test_unknown_session_is_reported():
    engine = InterviewEngine(object())
    for result in (engine.start("missing"), engine.skip("missing"), engine.get_transcript("missing")):
        assert not result.ok
        assert isinstance(result.error, SessionNotFound)
        assert result.kind == "session_not_found"


def test_follow_ups_are_bounded_and_depth_resets(engine, fake_oracle):
    session, _ = _start(engine)

    first = engine.submit_spoken_answer(session.id, GOOD_ANSWER).unwrap()
    assert first.state == InterviewState.FOLLOW_UP
    assert first.is_follow_up and first.follow_up_depth == 1
    assert first.question == "Follow-up 1?"
    assert first.evaluation.quality == 7
    assert ("generate_follow_up", (f"Question 1 for {ROLE}?", GOOD_ANSWER, 1)) in fake_oracle.calls

    second = engine.submit_spoken_answer(session.id, "It is stored on the function object.").unwrap()
    assert second.follow_up_depth == 2
    assert session.current_follow_up_depth == 2

    third = engine.submit_spoken_answer(session.id, "The engine keeps the environment alive.").unwrap()
    assert third.type == "spoken"
    assert third.state == InterviewState.CORE_QUESTION
    assert not third.is_follow_up
    assert third.slot_number == 2
    assert session.current_follow_up_depth == 0
    assert session.current_slot_index == 1

    slot = session.slots[0]
    assert slot.answer == GOOD_ANSWER
    assert [fu.depth for fu in slot.follow_ups] == [1, 2]
    assert all(fu.evaluation is not None for fu in slot.follow_ups)
    assert slot.follow_ups[1].answer == "The engine keeps the environment alive."


def test_concepts_from_main_answers_feed_the_next_question(engine, fake_oracle):
    session, _ = _start(engine)
    engine.submit_spoken_answer(session.id, GOOD_ANSWER)
    fake_oracle.concepts = ["event loop"]
    engine.submit_spoken_answer(session.id, "More detail.")
    engine.submit_spoken_answer(session.id, "Even more detail.")
    assert session.covered_topics == ["closures"]
    assert session.slots[0].topic == "closures"
    assert fake_oracle.calls[-1] == ("generate_question", (ROLE, 2, "easy", ["closures"]))


def test_dont_know_suppresses_follow_ups_regardless_of_quality(engine, fake_oracle):
    fake_oracle.qualities = [9]
    session, _ = _start(engine)
    step = engine.submit_spoken_answer(session.id, "I don't know").unwrap()
    assert step.state == InterviewState.CORE_QUESTION
    assert "generate_follow_up" not in fake_oracle.names()
    assert session.slots[0].follow_ups == []
    assert session.slots[0].evaluation.quality == 9


def test_low_quality_suppresses_follow_ups(engine, fake_oracle):
    fake_oracle.qualities = [2]
    session, _ = _start(engine)
    step = engine.submit_spoken_answer(session.id, "Closures are a kind of loop.").unwrap()
    assert step.state == InterviewState.CORE_QUESTION
    assert session.current_slot_index == 1


def test_cursor_and_depth_invariants_hold_for_a_full_interview(engine):
    session, _ = _start(engine)
    seen = [session.current_slot_index]
    for _ in range(60):
        if session.state == InterviewState.COMPLETED:
            break
        assert len(session.slots) == session.current_slot_index + 1
        assert session.current_follow_up_depth <= engine.plan.max_follow_ups
        _answer_current(engine, session).unwrap()
        assert session.current_slot_index >= seen[-1]
        seen.append(session.current_slot_index)
    assert session.state == InterviewState.COMPLETED
    assert session.current_slot_index == 10
    assert len(session.slots) == 10
    assert session.current_follow_up_depth == 0
    assert [slot.type for slot in session.slots] == list(engine.plan.slot_types)


def test_mcq_selection_and_justification(short_engine, fake_oracle):
    session, _ = _start(short_engine)
    step = short_engine.submit_spoken_answer(session.id, "idk").unwrap()
    assert step.type == "mcq"
    assert step.state == InterviewState.MCQ
    assert step.options == fake_oracle.mcq.options
    assert isinstance(session.current_mcq, MCQSlot)
    assert session.current_mcq is session.slots[1]

    step = short_engine.submit_mcq_answer(session.id, "b) useEffect", 3500).unwrap()
    assert step.type == "mcq_justify"
    assert step.state == InterviewState.MCQ_JUSTIFY
    assert step.is_correct is True
    assert step.question == "Why that option?"
    assert fake_oracle.calls[-1] == (
        "generate_mcq_follow_up",
        (fake_oracle.mcq.question, "b) useEffect", "B"),
    )

    wrong_state = short_engine.submit_spoken_answer(session.id, GOOD_ANSWER)
    assert isinstance(wrong_state.error, InvalidStateTransition)

    step = short_engine.submit_mcq_justification(session.id, "It runs after commit.").unwrap()
    assert step.type == "coding"
    assert step.state == InterviewState.CODING
    assert step.example_input == "1->2->3"
    assert step.evaluation.quality == 7

    slot = session.slots[1]
    assert slot.selection_time_ms == 3500
    assert slot.justification == "It runs after commit."
    assert slot.justification_evaluation.quality == 7
    assert session.current_mcq is None


def test_wrong_mcq_option_is_marked_incorrect(short_engine):
    session, _ = _start(short_engine)
    short_engine.submit_spoken_answer(session.id, "idk")
    step = short_engine.submit_mcq_answer(session.id, "A", 2000).unwrap()
    assert step.is_correct is False
    assert session.slots[1].is_correct is False


def test_mcq_answer_outside_mcq_state_is_rejected(engine):
    session, _ = _start(engine)
    result = engine.submit_mcq_answer(session.id, "A", 1000)
    assert isinstance(result.error, InvalidStateTransition)
    assert session.state == InterviewState.WARMUP


def _to_coding(engine, session):
    engine.submit_spoken_answer(session.id, "idk").unwrap()
    engine.submit_mcq_answer(session.id, "B", 3000).unwrap()
    engine.submit_mcq_justification(session.id, "It runs after commit.").unwrap()
    assert session.state == InterviewState.CODING


def test_coding_interruption_happens_at_most_once(short_engine, fake_oracle):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)

    step = short_engine.trigger_coding_interruption(session.id, "def reverse(head):").unwrap()
    assert step.type == "coding_interrupt"
    assert step.state == InterviewState.CODING_INTERRUPT
    assert step.question == "Why iterate instead of recurse?"
    assert short_engine.trigger_coding_interruption(session.id, "def reverse(head):").unwrap() is None

    resume = short_engine.submit_interruption_response(session.id, "Recursion could overflow the stack.").unwrap()
    assert resume.type == "coding_resume"
    assert resume.state == InterviewState.CODING
    assert resume.question == "Reverse a linked list."

    slot = session.slots[2]
    assert isinstance(slot, CodingSlot)
    assert slot.interrupted is True
    assert slot.pending_interruption is None
    assert slot.interruptions[0].question == "Why iterate instead of recurse?"
    assert slot.interruptions[0].answer == "Recursion could overflow the stack."

    assert short_engine.trigger_coding_interruption(session.id, "prev = None").unwrap() is None
    assert fake_oracle.names().count("generate_coding_interruption") == 1
    assert session.current_slot_index == 2


def test_interruption_response_requires_pending_interruption(short_engine):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)
    result = short_engine.submit_interruption_response(session.id, "Because.")
    assert isinstance(result.error, InvalidStateTransition)


def test_interruption_outside_coding_is_rejected(engine):
    session, _ = _start(engine)
    result = engine.trigger_coding_interruption(session.id, "x = 1")
    assert isinstance(result.error, InvalidStateTransition)


def test_code_submission_completes_the_interview(short_engine, fake_oracle, archive):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)
    step = short_engine.submit_code(session.id, "def reverse(head): ...", "Flip pointers.", BEHAVIOR).unwrap()

    assert step.type == "completed"
    assert step.state == InterviewState.COMPLETED
    assert step.evaluation.code_quality == 8
    assert step.score is not None
    assert step.summary.total_slots == 3
    assert session.end_time is not None
    assert session.score == step.score
    assert session.current_coding is None
    assert session.slots[2].behavior_data.total_time_ms == 120000
    assert ("evaluate_coding_answer", ("Reverse a linked list.", "def reverse(head): ...", "Flip pointers.", "hard")) in fake_oracle.calls
    assert archive.saved[session.id]["score"]["overall"] == step.score.overall


def test_code_submission_while_interrupted_clears_pending_question(short_engine):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)
    short_engine.trigger_coding_interruption(session.id, "def reverse(head):")
    step = short_engine.submit_code(session.id, "def reverse(head): ...", "", BEHAVIOR).unwrap()
    assert step.type == "completed"
    assert session.slots[2].pending_interruption is None


def test_invalid_behavior_data_is_rejected_without_touching_the_slot(short_engine, fake_oracle):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)
    slot = session.slots[2]
    before = slot.model_dump()

    result = short_engine.submit_code(session.id, "print(1)", "expl", {"paste_count": -1})

    assert not result.ok
    assert isinstance(result.error, InvalidInput)
    assert result.kind == "invalid_input"
    assert slot.model_dump() == before
    assert slot.code is None and slot.explanation is None
    assert session.state == InterviewState.CODING
    assert "evaluate_coding_answer" not in fake_oracle.names()

    step = short_engine.submit_code(session.id, "def reverse(head): ...", "Flip pointers.", BEHAVIOR).unwrap()
    assert step.type == "completed"


def test_skip_marks_slot_and_advances(engine):
    session, _ = _start(engine)
    step = engine.skip(session.id).unwrap()
    assert step.state == InterviewState.CORE_QUESTION
    assert session.slots[0].skipped is True
    assert session.slots[0].answer == SKIPPED_ANSWER
    assert session.current_slot_index == 1


def test_skip_during_follow_up_resets_depth(engine):
    session, _ = _start(engine)
    engine.submit_spoken_answer(session.id, GOOD_ANSWER)
    assert session.current_follow_up_depth == 1
    engine.skip(session.id).unwrap()
    slot = session.slots[0]
    assert slot.skipped is True
    assert slot.answer == GOOD_ANSWER
    assert slot.follow_ups[0].answer == SKIPPED_ANSWER
    assert session.current_follow_up_depth == 0
    assert session.current_slot_index == 1


def test_skip_before_start_is_rejected(engine):
    session = engine.create_session(ROLE, "Ada")
    assert isinstance(engine.skip(session.id).error, InvalidStateTransition)


def test_skipping_everything_scores_neutral_dimensions(engine):
    session, _ = _start(engine)
    step = None
    for _ in range(10):
        step = engine.skip(session.id).unwrap()
    assert step.type == "completed"
    report = step.score
    assert report.total_skipped == 10
    assert report.total_answered == 0
    assert report.breakdown.answer_quality == 0
    assert report.breakdown.depth_stability == 50
    assert report.breakdown.mcq_accuracy == 50
    assert report.breakdown.coding_score == 50
    assert report.breakdown.consistency == 70
    assert report.overall == 42
    assert report.grade.letter == "C"


def test_completed_session_rejects_every_mutation_unchanged(short_engine, fake_oracle):
    session, _ = _start(short_engine)
    _to_coding(short_engine, session)
    short_engine.submit_code(session.id, "code", "", BEHAVIOR).unwrap()
    snapshot = session.model_dump()
    calls = len(fake_oracle.calls)

    results = [
        short_engine.start(session.id),
        short_engine.submit_spoken_answer(session.id, "late"),
        short_engine.submit_mcq_answer(session.id, "B", 100),
        short_engine.submit_mcq_justification(session.id, "late"),
        short_engine.submit_code(session.id, "late", "", None),
        short_engine.trigger_coding_interruption(session.id, "late"),
        short_engine.submit_interruption_response(session.id, "late"),
        short_engine.skip(session.id),
        short_engine.record_signal(session.id, "paste", {}),
    ]

    for result in results:
        assert not result.ok
        assert isinstance(result.error, InvalidStateTransition)
    assert session.model_dump() == snapshot
    assert len(fake_oracle.calls) == calls


def test_oracle_failure_falls_back_and_is_recorded(engine, fake_oracle):
    fake_oracle.failing = {"evaluate_answer"}
    session, _ = _start(engine)
    step = engine.submit_spoken_answer(session.id, GOOD_ANSWER).unwrap()

    evaluation = step.evaluation
    assert evaluation.quality == 5
    assert evaluation.feedback == FALLBACK_FEEDBACK
    assert evaluation.fallback_reason.startswith("RuntimeError")
    assert session.covered_topics == []
    assert step.state == InterviewState.FOLLOW_UP
    fallbacks = [event for event in session.events if event.get("kind") == "oracle_fallback"]
    assert fallbacks and fallbacks[0]["call"] == "evaluate_answer"


def test_question_generation_failure_uses_fallback_question(engine, fake_oracle):
    fake_oracle.failing = {"generate_question"}
    session, step = _start(engine)
    assert step.question.startswith("Tell me about yourself")
    assert session.state == InterviewState.WARMUP


def test_oracle_calls_are_traced(engine):
    session, _ = _start(engine)
    spans = [event for event in session.events if "span" in event]
    assert spans[0]["span"] == "generate_question"
    assert spans[0]["ms"] >= 0


def test_record_signal_appends_without_state_change(engine):
    session, _ = _start(engine)
    signal = engine.record_signal(session.id, "paste", {"chars": 120}).unwrap()
    assert signal.type == "paste"
    assert session.behavior_signals == [signal]
    assert session.state == InterviewState.WARMUP


def test_record_signal_requires_started_session(engine):
    session = engine.create_session(ROLE, "Ada")
    assert isinstance(engine.record_signal(session.id, "blur", {}).error, InvalidStateTransition)


def test_spoken_latency_is_measured_from_prompt(engine, clock):
    session, _ = _start(engine)
    clock.tick(7000)
    engine.submit_spoken_answer(session.id, GOOD_ANSWER)
    assert session.slots[0].response_time_ms == 7000
    assert session.last_activity == clock()


def test_end_to_end_scenario_lands_in_a_band(short_engine, fake_oracle, clock):
    fake_oracle.qualities = [8, 9]
    fake_oracle.code_quality = 9
    fake_oracle.logic = "high"
    session, _ = _start(short_engine)

    clock.tick(6000)
    short_engine.submit_spoken_answer(session.id, "I don't know").unwrap()
    clock.tick(6000)
    assert short_engine.submit_mcq_answer(session.id, "B", 6000).unwrap().is_correct
    clock.tick(6000)
    short_engine.submit_mcq_justification(session.id, "Effects are flushed after the commit phase.").unwrap()
    clock.tick(6000)
    step = short_engine.submit_code(session.id, "def reverse(head): ...", "Flip pointers.", BEHAVIOR).unwrap()

    report = step.score
    assert report.breakdown.behavioral_trust == 100
    assert report.breakdown.answer_quality == 80
    assert report.breakdown.depth_stability == 60
    assert report.breakdown.mcq_accuracy == 95
    assert report.breakdown.coding_score == 90
    assert report.breakdown.consistency == 100
    assert report.overall == 84
    assert report.grade.letter in ("A", "A+")
    assert report.risk_flags == []
    assert step.summary.duration_ms == 24000
    assert step.summary.duration_formatted == "0m 24s"
    assert step.summary.average_quality == 8.0


def test_transcript_is_available_during_and_after_the_interview(engine, clock):
    session, _ = _start(engine)
    live = engine.get_transcript(session.id).unwrap()
    assert live["state"] == "WARMUP"
    assert live["slots"][0]["type"] == "spoken"
    assert live["score"] is None

    _run_to_completion(engine, session, clock)
    final = engine.get_transcript(session.id).unwrap()
    assert final["state"] == "COMPLETED"
    assert final["score"]["overall"] == session.score.overall
    assert final["summary"]["total_slots"] == 10


def test_evicted_session_transcript_comes_from_archive(fake_oracle, clock, archive, short_plan):
    engine = InterviewEngine(fake_oracle, plan=short_plan, archive=archive, now=clock, evict_on_complete=True)
    session, _ = _start(engine)
    _to_coding(engine, session)
    engine.submit_code(session.id, "code", "", BEHAVIOR).unwrap()

    assert engine.get_session(session.id) is None
    transcript = engine.get_transcript(session.id).unwrap()
    assert transcript["id"] == session.id
    assert transcript["state"] == "COMPLETED"


def test_signals_from_parallel_callers_are_serialized(engine):
    session, _ = _start(engine)

    def worker():
        for _ in range(50):
            engine.record_signal(session.id, "keystroke", {})

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(session.behavior_signals) == 200


def test_parallel_answers_during_slow_evaluation_are_serialized(short_engine, fake_oracle):
    session, _ = _start(short_engine)
    evaluate = fake_oracle.evaluate_answer
    in_flight = []
    peak = []
    guard = threading.Lock()

    def slow_evaluate(question, answer, difficulty):
        with guard:
            in_flight.append(1)
            peak.append(len(in_flight))
        time.sleep(0.02)
        try:
            return evaluate(question, answer, difficulty)
        finally:
            with guard:
                in_flight.pop()

    fake_oracle.evaluate_answer = slow_evaluate
    results = []
    gate = threading.Barrier(8)

    def worker():
        gate.wait()
        result = short_engine.submit_spoken_answer(session.id, GOOD_ANSWER)
        with guard:
            results.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    # main answer plus two follow-ups, then the slot moves on to the MCQ
    assert sum(1 for result in results if result.ok) == 3
    assert all(isinstance(result.error, InvalidStateTransition) for result in results if not result.ok)
    assert max(peak) == 1
    assert fake_oracle.names().count("evaluate_answer") == 3
    slot = session.slots[0]
    assert [fu.depth for fu in slot.follow_ups] == [1, 2]
    assert all(fu.answer == GOOD_ANSWER for fu in slot.follow_ups)
    assert session.current_follow_up_depth == 0
    assert session.state == InterviewState.MCQ

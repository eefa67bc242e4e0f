"""Interview flow state machine.

The engine is the only component that mutates session state. Every public
operation is identified by a session id, runs under that session's lock and
returns an explicit :class:`~interview.result.Ok` or :class:`~interview.result.Err`.
Oracle calls go through :class:`~oracle.guarded.GuardedOracle`, so an oracle
outage degrades to neutral defaults instead of stalling the interview.
"""
from __future__ import annotations

import functools
import logging
import sqlite3
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field, ValidationError

from config.interview import DIFFICULTY_LADDER, InterviewPlan, ScoringSettings
from observability import log_event, span
from oracle.contracts import InterviewOracle
from oracle.guarded import GuardedOracle, OracleOutcome
from services.scoring import compute_score
from services.sessions import InMemorySessionStore, SessionStore

from .errors import InterviewError, InvalidInput, InvalidStateTransition, SessionNotFound
from .heuristics import should_skip_follow_ups
from .models import (
    SKIPPED_ANSWER,
    SPOKEN_STATES,
    AnswerEvaluation,
    BehaviorData,
    BehaviorSignal,
    CodingEvaluation,
    CodingSlot,
    FollowUp,
    InterruptionResponse,
    InterviewState,
    MCQSlot,
    ScoreReport,
    Session,
    SpokenSlot,
    utcnow,
)
from .result import Err, Ok, Result
from .transcript import Transcript, TranscriptSummary, build_transcript

logger = logging.getLogger(__name__)

StepType = Literal["spoken", "mcq", "mcq_justify", "coding", "coding_interrupt", "coding_resume", "completed"]

CODING_STATES: FrozenSet[InterviewState] = frozenset({InterviewState.CODING, InterviewState.CODING_INTERRUPT})
COMPLETION_MESSAGE = "Interview completed. Thank you!"
RESUME_MESSAGE = "Thanks. Carry on with your solution."


class StepResponse(BaseModel):
    """Prompt payload returned to the caller after each operation."""

    type: StepType
    state: InterviewState
    slot_number: int
    total_slots: int
    question: Optional[str] = None
    is_follow_up: bool = False
    follow_up_depth: int = 0
    options: List[str] = Field(default_factory=list)
    example_input: Optional[str] = None
    example_output: Optional[str] = None
    is_correct: Optional[bool] = None
    evaluation: Optional[Union[AnswerEvaluation, CodingEvaluation]] = None
    score: Optional[ScoreReport] = None
    summary: Optional[TranscriptSummary] = None
    message: Optional[str] = None


class TranscriptSink(Protocol):
    def save(self, session: Session, transcript: Transcript) -> str: ...

    def load(self, session_id: str) -> Optional[Dict[str, Any]]: ...


def _operation(name: str):
    """Resolve the session, serialize on its lock and wrap the outcome in a Result."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self: "InterviewEngine", session_id: str, *args, **kwargs) -> Result:
            try:
                self._require(session_id)
                with self._store.locked(session_id):
                    session = self._require(session_id)
                    before = session.state
                    value = fn(self, session, *args, **kwargs)
                    session.last_activity = self._now()
            except InterviewError as exc:
                log_event("operation_rejected", session_id, level=logging.WARNING, operation=name, reason=exc.kind)
                return Err(exc)
            if session.state != before:
                log_event(
                    "state_transition",
                    session.id,
                    operation=name,
                    state=session.state.value,
                    slot=session.current_slot_index,
                )
            return Ok(value)

        return wrapper

    return decorator


class InterviewEngine:
    def __init__(
        self,
        oracle: InterviewOracle,
        *,
        store: Optional[SessionStore] = None,
        plan: Optional[InterviewPlan] = None,
        scoring: Optional[ScoringSettings] = None,
        archive: Optional[TranscriptSink] = None,
        now: Callable[[], datetime] = utcnow,
        evict_on_complete: bool = False,
    ) -> None:
        self._oracle = oracle if isinstance(oracle, GuardedOracle) else GuardedOracle(oracle)
        self._store = store if store is not None else InMemorySessionStore(now=now)
        self._plan = plan or InterviewPlan()
        self._scoring = scoring or ScoringSettings()
        self._archive = archive
        self._now = now
        self._evict_on_complete = evict_on_complete

    @property
    def plan(self) -> InterviewPlan:
        return self._plan

    @property
    def store(self) -> SessionStore:
        return self._store

    # ------------------------------------------------------------------ lookups

    def create_session(self, role: str, candidate_name: str, difficulty: str = "medium") -> Session:
        if difficulty not in DIFFICULTY_LADDER:
            raise ValueError(f"Unknown difficulty '{difficulty}'")
        now = self._now()
        session = Session(
            role=role,
            candidate_name=candidate_name,
            difficulty=difficulty,
            start_time=now,
            last_activity=now,
        )
        self._store.add(session)
        log_event("session_created", session.id, state=session.state.value)
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._store.get(session_id)

    def get_transcript(self, session_id: str) -> Result:
        session = self._store.get(session_id)
        if session is not None:
            with self._store.locked(session_id):
                return Ok(build_transcript(session).model_dump(mode="json"))
        if self._archive is not None:
            stored = self._archive.load(session_id)
            if stored is not None:
                return Ok(stored)
        return Err(SessionNotFound(session_id))

    # --------------------------------------------------------------- operations

    @_operation("start")
    def start(self, session: Session) -> StepResponse:
        if session.state != InterviewState.CREATED:
            raise InvalidStateTransition("start", session.state.value, "interview already started")
        return self._open_slot(session, 0)

    @_operation("submit_spoken_answer")
    def submit_spoken_answer(self, session: Session, text: str) -> StepResponse:
        self._ensure_state(session, "submit a spoken answer", SPOKEN_STATES)
        slot = self._active_slot(session)
        if not isinstance(slot, SpokenSlot):
            raise InvalidStateTransition("submit a spoken answer", session.state.value, f"slot is {slot.type}")

        depth = session.current_follow_up_depth
        if depth > 0:
            follow_up = slot.follow_ups[depth - 1]
            follow_up.answer = text
            follow_up.answered_at = self._now()
            evaluation = self._call(
                session,
                "evaluate_answer",
                lambda: self._oracle.evaluate_answer(follow_up.question, text, slot.difficulty),
            )
            follow_up.evaluation = evaluation
        else:
            slot.answer = text
            slot.answered_at = self._now()
            evaluation = self._call(
                session,
                "evaluate_answer",
                lambda: self._oracle.evaluate_answer(slot.question, text, slot.difficulty),
            )
            slot.evaluation = evaluation
            if not evaluation.is_fallback:
                self._cover(session, evaluation.concept_coverage)
                if slot.topic is None and evaluation.concept_coverage:
                    slot.topic = evaluation.concept_coverage[0]

        if depth < self._plan.max_follow_ups and not should_skip_follow_ups(text, evaluation.quality):
            next_depth = depth + 1
            session.current_follow_up_depth = next_depth
            session.state = InterviewState.FOLLOW_UP
            question = self._call(
                session,
                "generate_follow_up",
                lambda: self._oracle.generate_follow_up(slot.question, text, next_depth),
            )
            slot.follow_ups.append(FollowUp(depth=next_depth, question=question, asked_at=self._now()))
            return self._response(
                session,
                "spoken",
                question=question,
                is_follow_up=True,
                follow_up_depth=next_depth,
                evaluation=evaluation,
            )

        response = self._advance(session)
        response.evaluation = evaluation
        return response

    @_operation("submit_mcq_answer")
    def submit_mcq_answer(self, session: Session, selected_option: str, selection_time_ms: Optional[int] = None) -> StepResponse:
        self._ensure_state(session, "submit an MCQ answer", {InterviewState.MCQ})
        slot = self._require_mcq(session, "submit an MCQ answer")
        slot.selected_option = selected_option
        slot.selection_time_ms = selection_time_ms
        slot.answered_at = self._now()
        slot.is_correct = slot.check_selection(selected_option)
        session.state = InterviewState.MCQ_JUSTIFY
        prompt = self._call(
            session,
            "generate_mcq_follow_up",
            lambda: self._oracle.generate_mcq_follow_up(slot.question, selected_option, slot.correct),
        )
        slot.justification_prompt = prompt
        return self._response(session, "mcq_justify", question=prompt, is_correct=slot.is_correct)

    @_operation("submit_mcq_justification")
    def submit_mcq_justification(self, session: Session, text: str) -> StepResponse:
        self._ensure_state(session, "submit an MCQ justification", {InterviewState.MCQ_JUSTIFY})
        slot = self._require_mcq(session, "submit an MCQ justification")
        slot.justification = text
        evaluation = self._call(
            session,
            "evaluate_answer",
            lambda: self._oracle.evaluate_answer(slot.justification_prompt or slot.question, text, slot.difficulty),
        )
        slot.justification_evaluation = evaluation
        response = self._advance(session)
        response.evaluation = evaluation
        return response

    @_operation("submit_code")
    def submit_code(
        self,
        session: Session,
        code: str,
        explanation: str = "",
        behavior_data: Optional[Union[BehaviorData, Dict[str, Any]]] = None,
    ) -> StepResponse:
        self._ensure_state(session, "submit code", CODING_STATES)
        slot = self._require_coding(session, "submit code")
        try:
            behavior = BehaviorData.model_validate(behavior_data or {})
        except ValidationError as exc:
            raise InvalidInput("submit code", f"invalid behavior data ({exc.error_count()} error(s))") from exc
        slot.code = code
        slot.explanation = explanation
        slot.behavior_data = behavior
        slot.pending_interruption = None
        slot.answered_at = self._now()
        evaluation = self._call(
            session,
            "evaluate_coding_answer",
            lambda: self._oracle.evaluate_coding_answer(slot.problem, code, explanation, slot.difficulty),
        )
        slot.evaluation = evaluation
        response = self._advance(session)
        response.evaluation = evaluation
        return response

    @_operation("trigger_coding_interruption")
    def trigger_coding_interruption(self, session: Session, code_snapshot: str) -> Optional[StepResponse]:
        self._ensure_state(session, "interrupt coding", CODING_STATES)
        slot = self._require_coding(session, "interrupt coding")
        if slot.interrupted or session.state == InterviewState.CODING_INTERRUPT:
            return None
        question = self._call(
            session,
            "generate_coding_interruption",
            lambda: self._oracle.generate_coding_interruption(code_snapshot, slot.problem),
        )
        slot.pending_interruption = question
        session.state = InterviewState.CODING_INTERRUPT
        return self._response(session, "coding_interrupt", question=question)

    @_operation("submit_interruption_response")
    def submit_interruption_response(self, session: Session, text: str) -> StepResponse:
        self._ensure_state(session, "answer an interruption", {InterviewState.CODING_INTERRUPT})
        slot = self._require_coding(session, "answer an interruption")
        slot.interruptions.append(
            InterruptionResponse(question=slot.pending_interruption or "", answer=text, answered_at=self._now())
        )
        slot.pending_interruption = None
        slot.interrupted = True
        session.state = InterviewState.CODING
        return self._response(
            session,
            "coding_resume",
            question=slot.problem,
            example_input=slot.example_input,
            example_output=slot.example_output,
            message=RESUME_MESSAGE,
        )

    @_operation("skip")
    def skip(self, session: Session) -> StepResponse:
        self._ensure_started(session, "skip")
        slot = session.last_slot()
        slot.skipped = True
        if slot.answered_at is None:
            slot.answered_at = self._now()
        if isinstance(slot, SpokenSlot):
            if slot.answer is None:
                slot.answer = SKIPPED_ANSWER
            for follow_up in slot.follow_ups:
                if follow_up.answer is None:
                    follow_up.answer = SKIPPED_ANSWER
        elif isinstance(slot, MCQSlot):
            if slot.justification is None:
                slot.justification = SKIPPED_ANSWER
        elif isinstance(slot, CodingSlot):
            if slot.code is None:
                slot.code = SKIPPED_ANSWER
            slot.pending_interruption = None
        else:
            raise TypeError(f"Unsupported slot type: {type(slot).__name__}")
        log_event("slot_skipped", session.id, slot=slot.index, slot_type=slot.type)
        return self._advance(session)

    @_operation("record_signal")
    def record_signal(self, session: Session, signal_type: str, data: Optional[Dict[str, Any]] = None) -> BehaviorSignal:
        self._ensure_started(session, "record a behavior signal")
        signal = BehaviorSignal(type=signal_type, data=dict(data or {}), recorded_at=self._now())
        session.behavior_signals.append(signal)
        return signal

    def evict_idle(self, max_idle_s: float) -> List[str]:
        return self._store.evict_idle(max_idle_s)

    # ---------------------------------------------------------------- internals

    def _require(self, session_id: str) -> Session:
        session = self._store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    @staticmethod
    def _ensure_state(session: Session, operation: str, allowed) -> None:
        if session.state == InterviewState.COMPLETED:
            raise InvalidStateTransition(operation, session.state.value, "interview already completed")
        if session.state not in allowed:
            raise InvalidStateTransition(operation, session.state.value)

    @staticmethod
    def _ensure_started(session: Session, operation: str) -> None:
        if session.state in (InterviewState.CREATED, InterviewState.COMPLETED):
            raise InvalidStateTransition(operation, session.state.value)

    @staticmethod
    def _active_slot(session: Session):
        return session.slots[session.current_slot_index]

    @staticmethod
    def _require_mcq(session: Session, operation: str) -> MCQSlot:
        if session.current_mcq is None:
            raise InvalidStateTransition(operation, session.state.value, "no active multiple-choice slot")
        return session.current_mcq

    @staticmethod
    def _require_coding(session: Session, operation: str) -> CodingSlot:
        if session.current_coding is None:
            raise InvalidStateTransition(operation, session.state.value, "no active coding slot")
        return session.current_coding

    @staticmethod
    def _cover(session: Session, concepts: List[str]) -> None:
        for concept in concepts:
            if concept not in session.covered_topics:
                session.covered_topics.append(concept)

    def _call(self, session: Session, name: str, fn: Callable[[], OracleOutcome[Any]]) -> Any:
        with span(session, name, slot=session.current_slot_index):
            outcome = fn()
        if outcome.is_fallback:
            session.events.append(
                {
                    "kind": "oracle_fallback",
                    "call": name,
                    "slot": session.current_slot_index,
                    "reason": outcome.fallback_reason,
                }
            )
            log_event(
                "oracle_fallback",
                session.id,
                level=logging.WARNING,
                operation=name,
                slot=session.current_slot_index,
                reason=outcome.fallback_reason,
            )
        return outcome.value

    def _response(self, session: Session, step: StepType, **fields: Any) -> StepResponse:
        return StepResponse(
            type=step,
            state=session.state,
            slot_number=min(session.current_slot_index, self._plan.total_slots - 1) + 1,
            total_slots=self._plan.total_slots,
            **fields,
        )

    def _open_slot(self, session: Session, index: int) -> StepResponse:
        slot_type = self._plan.slot_types[index]
        difficulty = self._plan.difficulty_for(index, session.difficulty)
        role = session.role
        topics = list(session.covered_topics)

        if slot_type == "spoken":
            question = self._call(
                session,
                "generate_question",
                lambda: self._oracle.generate_question(role, index + 1, difficulty, topics),
            )
            session.slots.append(SpokenSlot(index=index, difficulty=difficulty, question=question, created_at=self._now()))
            session.state = InterviewState.WARMUP if index == 0 else InterviewState.CORE_QUESTION
            return self._response(session, "spoken", question=question)

        if slot_type == "mcq":
            mcq = self._call(session, "generate_mcq", lambda: self._oracle.generate_mcq(role, difficulty, topics))
            slot = MCQSlot(
                index=index,
                difficulty=difficulty,
                topic=mcq.topic or None,
                question=mcq.question,
                options=list(mcq.options),
                correct=mcq.correct_key.upper(),
                created_at=self._now(),
            )
            session.slots.append(slot)
            session.current_mcq = slot
            session.state = InterviewState.MCQ
            return self._response(session, "mcq", question=slot.question, options=slot.options)

        if slot_type == "coding":
            problem = self._call(
                session,
                "generate_coding_question",
                lambda: self._oracle.generate_coding_question(role, difficulty),
            )
            slot = CodingSlot(
                index=index,
                difficulty=difficulty,
                topic=problem.topic or None,
                problem=problem.problem,
                example_input=problem.example_input,
                example_output=problem.example_output,
                created_at=self._now(),
            )
            session.slots.append(slot)
            session.current_coding = slot
            session.state = InterviewState.CODING
            return self._response(
                session,
                "coding",
                question=slot.problem,
                example_input=slot.example_input,
                example_output=slot.example_output,
            )

        raise ValueError(f"Unsupported slot type: {slot_type}")

    def _advance(self, session: Session) -> StepResponse:
        session.current_follow_up_depth = 0
        session.current_mcq = None
        session.current_coding = None
        session.current_slot_index += 1
        if session.current_slot_index >= self._plan.total_slots:
            return self._complete(session)
        return self._open_slot(session, session.current_slot_index)

    def _complete(self, session: Session) -> StepResponse:
        session.state = InterviewState.COMPLETED
        session.end_time = self._now()
        report = compute_score(session, self._scoring)
        session.score = report
        transcript = build_transcript(session)
        if self._archive is not None:
            try:
                self._archive.save(session, transcript)
            except (OSError, sqlite3.Error) as exc:
                logger.error("Failed to archive interview %s: %s", session.id, exc)
                session.events.append({"kind": "archive_failed", "reason": str(exc)})
        log_event(
            "interview_completed",
            session.id,
            state=session.state.value,
            overall=report.overall,
            grade=report.grade.letter,
            ms=session.duration_ms,
        )
        if self._evict_on_complete:
            self._store.evict(session.id)
        return StepResponse(
            type="completed",
            state=session.state,
            slot_number=self._plan.total_slots,
            total_slots=self._plan.total_slots,
            score=report,
            summary=transcript.summary,
            message=COMPLETION_MESSAGE,
        )


__all__ = ["InterviewEngine", "StepResponse", "TranscriptSink"]

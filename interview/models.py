"""Session, slot and score models for the interview engine."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

Clarity = Literal["low", "medium", "high"]
LogicLevel = Literal["low", "medium", "high"]
Severity = Literal["warning", "danger"]
RiskFlagType = Literal[
    "confidence_decay",
    "paste_detected",
    "instant_coding",
    "vocabulary_jump",
    "mcq_spoken_mismatch",
]

SKIPPED_ANSWER = "[SKIPPED]"

LOGIC_SCORES: Dict[str, int] = {"low": 3, "medium": 6, "high": 9}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return int((end - start).total_seconds() * 1000)


class InterviewState(str, Enum):
    CREATED = "CREATED"
    WARMUP = "WARMUP"
    CORE_QUESTION = "CORE_QUESTION"
    FOLLOW_UP = "FOLLOW_UP"
    MCQ = "MCQ"
    MCQ_JUSTIFY = "MCQ_JUSTIFY"
    CODING = "CODING"
    CODING_INTERRUPT = "CODING_INTERRUPT"
    COMPLETED = "COMPLETED"


SPOKEN_STATES = frozenset({InterviewState.WARMUP, InterviewState.CORE_QUESTION, InterviewState.FOLLOW_UP})


class AnswerEvaluation(BaseModel):
    """Quality assessment of a spoken answer or MCQ justification."""

    quality: int = Field(ge=1, le=10)
    concept_coverage: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    clarity: Clarity = "medium"
    feedback: str = ""
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


class CodingEvaluation(BaseModel):
    code_quality: int = Field(ge=1, le=10)
    logic_understanding: LogicLevel = "medium"
    explanation_alignment: float = Field(default=0.5, ge=0.0, le=1.0)
    feedback: str = ""
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    @property
    def logic_score(self) -> int:
        return LOGIC_SCORES[self.logic_understanding]


class FollowUp(BaseModel):
    depth: int = Field(ge=1)
    question: str
    answer: Optional[str] = None
    evaluation: Optional[AnswerEvaluation] = None
    asked_at: datetime = Field(default_factory=utcnow)
    answered_at: Optional[datetime] = None

    @property
    def response_time_ms(self) -> Optional[int]:
        return elapsed_ms(self.asked_at, self.answered_at)


class SlotBase(BaseModel):
    index: int = Field(ge=0)
    difficulty: str = "medium"
    topic: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    answered_at: Optional[datetime] = None
    skipped: bool = False

    @property
    def response_time_ms(self) -> Optional[int]:
        """Latency between the prompt being issued and the answer arriving."""

        return elapsed_ms(self.created_at, self.answered_at)


class SpokenSlot(SlotBase):
    type: Literal["spoken"] = "spoken"
    question: str
    answer: Optional[str] = None
    evaluation: Optional[AnswerEvaluation] = None
    follow_ups: List[FollowUp] = Field(default_factory=list)


class MCQSlot(SlotBase):
    type: Literal["mcq"] = "mcq"
    question: str
    options: List[str] = Field(min_length=2)
    correct: str = Field(min_length=1, max_length=1)
    selected_option: Optional[str] = None
    selection_time_ms: Optional[int] = None
    is_correct: Optional[bool] = None
    justification_prompt: Optional[str] = None
    justification: Optional[str] = None
    justification_evaluation: Optional[AnswerEvaluation] = None

    def check_selection(self, selected_option: str) -> bool:
        key = selected_option.strip()[:1].upper()
        return bool(key) and key == self.correct.upper()


class BehaviorData(BaseModel):
    """Editor telemetry captured while the candidate writes code."""

    paste_count: int = Field(default=0, ge=0)
    time_to_first_keystroke_ms: Optional[int] = Field(default=None, ge=0)
    total_time_ms: Optional[int] = Field(default=None, ge=0)
    edit_events: List[Dict[str, Any]] = Field(default_factory=list)


class InterruptionResponse(BaseModel):
    question: str
    answer: str
    answered_at: datetime = Field(default_factory=utcnow)


class CodingSlot(SlotBase):
    type: Literal["coding"] = "coding"
    problem: str
    example_input: str = ""
    example_output: str = ""
    code: Optional[str] = None
    explanation: Optional[str] = None
    evaluation: Optional[CodingEvaluation] = None
    behavior_data: Optional[BehaviorData] = None
    pending_interruption: Optional[str] = None
    interruptions: List[InterruptionResponse] = Field(default_factory=list)
    interrupted: bool = False


Slot = Annotated[Union[SpokenSlot, MCQSlot, CodingSlot], Field(discriminator="type")]


class BehaviorSignal(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    recorded_at: datetime = Field(default_factory=utcnow)


class RiskFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RiskFlagType
    severity: Severity
    label: str
    detail: str


class Grade(BaseModel):
    model_config = ConfigDict(frozen=True)

    letter: str
    label: str


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer_quality: int
    depth_stability: int
    mcq_accuracy: int
    coding_score: int
    behavioral_trust: int
    consistency: int


class ScoreReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    grade: Grade
    risk_flags: List[RiskFlag] = Field(default_factory=list)
    total_answered: int
    total_skipped: int


class Session(BaseModel):
    """One interview attempt, owned by the session store."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: str
    candidate_name: str
    difficulty: str = "medium"

    state: InterviewState = InterviewState.CREATED
    current_slot_index: int = 0
    current_follow_up_depth: int = 0
    covered_topics: List[str] = Field(default_factory=list)
    slots: List[Slot] = Field(default_factory=list)
    behavior_signals: List[BehaviorSignal] = Field(default_factory=list)

    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    last_activity: datetime = Field(default_factory=utcnow)

    score: Optional[ScoreReport] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)

    current_mcq: Optional[MCQSlot] = Field(default=None, exclude=True)
    current_coding: Optional[CodingSlot] = Field(default=None, exclude=True)

    @property
    def completed(self) -> bool:
        return self.state == InterviewState.COMPLETED

    @property
    def duration_ms(self) -> Optional[int]:
        return elapsed_ms(self.start_time, self.end_time)

    def last_slot(self) -> Optional[Union[SpokenSlot, MCQSlot, CodingSlot]]:
        return self.slots[-1] if self.slots else None


__all__ = [
    "AnswerEvaluation",
    "BehaviorData",
    "BehaviorSignal",
    "CodingEvaluation",
    "CodingSlot",
    "FollowUp",
    "Grade",
    "InterruptionResponse",
    "InterviewState",
    "LOGIC_SCORES",
    "MCQSlot",
    "RiskFlag",
    "SKIPPED_ANSWER",
    "SPOKEN_STATES",
    "ScoreBreakdown",
    "ScoreReport",
    "Session",
    "Slot",
    "SpokenSlot",
    "elapsed_ms",
    "utcnow",
]

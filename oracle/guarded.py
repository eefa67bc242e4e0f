"""Neutral fallbacks wrapped around any oracle implementation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from interview.models import AnswerEvaluation, CodingEvaluation

from .contracts import CodingProblem, GeneratedMCQ, InterviewOracle

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_FEEDBACK = "Could not parse AI evaluation."
FALLBACK_WARMUP_QUESTION = "Tell me about yourself and the technologies you are most comfortable with."
FALLBACK_CORE_QUESTION = "Walk me through a core concept you rely on every day as a {role}."
FALLBACK_FOLLOW_UP = "Can you walk me through that in more detail?"
FALLBACK_MCQ_FOLLOW_UP = "Why did you pick that option over the others?"
FALLBACK_INTERRUPTION = "Why did you choose this approach?"
FALLBACK_MCQ = GeneratedMCQ(
    question="Which keyword is used to prevent method overriding in Java?",
    options=["A) static", "B) final", "C) abstract", "D) volatile"],
    correct_key="B",
    topic="Java basics",
)
FALLBACK_CODING = CodingProblem(
    problem="Write a function that checks if a number is prime.",
    example_input="7",
    example_output="true",
    topic="logic",
)


@dataclass(frozen=True)
class OracleOutcome(Generic[T]):
    """Oracle value tagged with the reason a neutral default replaced it, if any."""

    value: T
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


def neutral_evaluation(reason: str) -> AnswerEvaluation:
    return AnswerEvaluation(
        quality=5,
        concept_coverage=[],
        confidence=0.5,
        clarity="medium",
        feedback=FALLBACK_FEEDBACK,
        fallback_reason=reason,
    )


def neutral_coding_evaluation(reason: str) -> CodingEvaluation:
    return CodingEvaluation(
        code_quality=5,
        logic_understanding="medium",
        explanation_alignment=0.5,
        feedback=FALLBACK_FEEDBACK,
        fallback_reason=reason,
    )


class GuardedOracle:
    """Delegates to an oracle and substitutes documented defaults on any failure."""

    def __init__(self, inner: InterviewOracle) -> None:
        self._inner = inner

    def generate_question(
        self, role: str, slot_number: int, difficulty: str, covered_topics: List[str]
    ) -> OracleOutcome[str]:
        fallback = FALLBACK_WARMUP_QUESTION if slot_number == 1 else FALLBACK_CORE_QUESTION.format(role=role)
        return self._text(
            "generate_question",
            lambda: self._inner.generate_question(role, slot_number, difficulty, list(covered_topics)),
            fallback,
        )

    def generate_follow_up(self, original_question: str, answer: str, depth: int) -> OracleOutcome[str]:
        return self._text(
            "generate_follow_up",
            lambda: self._inner.generate_follow_up(original_question, answer, depth),
            FALLBACK_FOLLOW_UP,
        )

    def evaluate_answer(self, question: str, answer: str, difficulty: str) -> OracleOutcome[AnswerEvaluation]:
        outcome = self._guard(
            "evaluate_answer",
            lambda: AnswerEvaluation.model_validate(self._inner.evaluate_answer(question, answer, difficulty)),
            None,
        )
        if outcome.is_fallback:
            return OracleOutcome(neutral_evaluation(outcome.fallback_reason), outcome.fallback_reason)
        return outcome

    def generate_mcq(self, role: str, difficulty: str, covered_topics: List[str]) -> OracleOutcome[GeneratedMCQ]:
        return self._guard(
            "generate_mcq",
            lambda: GeneratedMCQ.model_validate(self._inner.generate_mcq(role, difficulty, list(covered_topics))),
            FALLBACK_MCQ.model_copy(deep=True),
        )

    def generate_mcq_follow_up(self, question: str, selected_option: str, correct_key: str) -> OracleOutcome[str]:
        return self._text(
            "generate_mcq_follow_up",
            lambda: self._inner.generate_mcq_follow_up(question, selected_option, correct_key),
            FALLBACK_MCQ_FOLLOW_UP,
        )

    def generate_coding_question(self, role: str, difficulty: str) -> OracleOutcome[CodingProblem]:
        return self._guard(
            "generate_coding_question",
            lambda: CodingProblem.model_validate(self._inner.generate_coding_question(role, difficulty)),
            FALLBACK_CODING.model_copy(deep=True),
        )

    def generate_coding_interruption(self, partial_code: str, problem: str) -> OracleOutcome[str]:
        return self._text(
            "generate_coding_interruption",
            lambda: self._inner.generate_coding_interruption(partial_code, problem),
            FALLBACK_INTERRUPTION,
        )

    def evaluate_coding_answer(
        self, problem: str, code: str, explanation: str, difficulty: str
    ) -> OracleOutcome[CodingEvaluation]:
        outcome = self._guard(
            "evaluate_coding_answer",
            lambda: CodingEvaluation.model_validate(
                self._inner.evaluate_coding_answer(problem, code, explanation, difficulty)
            ),
            None,
        )
        if outcome.is_fallback:
            return OracleOutcome(neutral_coding_evaluation(outcome.fallback_reason), outcome.fallback_reason)
        return outcome

    def _text(self, name: str, fn: Callable[[], str], fallback: str) -> OracleOutcome[str]:
        outcome = self._guard(name, fn, fallback)
        if outcome.is_fallback:
            return outcome
        text = outcome.value.strip() if isinstance(outcome.value, str) else ""
        if not text:
            logger.warning("Oracle %s returned empty text; using fallback", name)
            return OracleOutcome(fallback, "empty response")
        return OracleOutcome(text)

    def _guard(self, name: str, fn: Callable[[], T], fallback: T) -> OracleOutcome[T]:
        try:
            value = fn()
        except Exception as exc:  # noqa: BLE001
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("Oracle %s failed; using neutral default (%s)", name, reason)
            return OracleOutcome(fallback, reason)
        if value is None:
            logger.warning("Oracle %s returned nothing; using neutral default", name)
            return OracleOutcome(fallback, "empty response")
        return OracleOutcome(value)


__all__ = [
    "FALLBACK_CODING",
    "FALLBACK_FEEDBACK",
    "FALLBACK_MCQ",
    "GuardedOracle",
    "OracleOutcome",
    "neutral_coding_evaluation",
    "neutral_evaluation",
]

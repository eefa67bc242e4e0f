from __future__ import annotations  # LLM-backed question generation and answer evaluation

from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, Field, field_validator

from config import LlmRoute
from interview.errors import OracleFailure
from interview.models import AnswerEvaluation, CodingEvaluation
from llm_gateway import HttpClient, LlmGatewayError, call, chat

from .contracts import CodingProblem, GeneratedMCQ

INTERVIEWER_GUIDANCE = dedent(  # Persona and output rules shared by every prompt
    """
    You are a real human technical interviewer sitting across the table from a candidate.
    Never open with filler such as "Got it", "Sure", "Okay", "Great" or "So".
    Never use markdown formatting.
    Ask exactly one thing at a time, in one short sentence of at most 15 words.
    Talk like a person: "Tell me about...", "Walk me through...", "What happens when...".
    Test understanding rather than memorization and build follow-ups on the candidate's own words.
    """
).strip()

_CLARITY_LEVELS = ("low", "medium", "high")

R = TypeVar("R", bound=BaseModel)


def _clamp(value: Any, low: float, high: float) -> float:
    return min(max(float(value), low), high)


def _level(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in _CLARITY_LEVELS else "medium"


class QuestionReply(BaseModel):  # Plain question wrapped in JSON
    question: str = Field(min_length=1)


class EvaluationReply(BaseModel):  # Raw answer evaluation as emitted by the model
    answer_quality: int
    concept_coverage: List[str] = Field(default_factory=list)
    confidence: float = 0.5
    clarity: str = "medium"
    brief_feedback: str = ""

    @field_validator("answer_quality", mode="before")
    @classmethod
    def _bound_quality(cls, value: Any) -> int:
        return int(round(_clamp(value, 1, 10)))

    @field_validator("confidence", mode="before")
    @classmethod
    def _bound_confidence(cls, value: Any) -> float:
        return _clamp(value, 0.0, 1.0)

    @field_validator("clarity", mode="before")
    @classmethod
    def _bound_clarity(cls, value: Any) -> str:
        return _level(value)

    def to_evaluation(self) -> AnswerEvaluation:
        return AnswerEvaluation(
            quality=self.answer_quality,
            concept_coverage=[concept.strip() for concept in self.concept_coverage if concept.strip()],
            confidence=self.confidence,
            clarity=self.clarity,  # type: ignore[arg-type]
            feedback=self.brief_feedback[:300],
        )


class MCQReply(BaseModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct: str = Field(min_length=1)
    topic: str = ""

    def to_mcq(self) -> GeneratedMCQ:
        return GeneratedMCQ(
            question=self.question,
            options=self.options,
            correct_key=self.correct.strip()[:1].upper(),
            topic=self.topic,
        )


class CodingQuestionReply(BaseModel):
    problem: str = Field(min_length=1)
    example_input: str = ""
    example_output: str = ""
    topic: str = ""

    @field_validator("example_input", "example_output", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)


class CodingEvaluationReply(BaseModel):
    logic_understanding: str = "medium"
    explanation_alignment: float = 0.5
    code_quality: int
    brief_feedback: str = ""

    @field_validator("code_quality", mode="before")
    @classmethod
    def _bound_quality(cls, value: Any) -> int:
        return int(round(_clamp(value, 1, 10)))

    @field_validator("explanation_alignment", mode="before")
    @classmethod
    def _bound_alignment(cls, value: Any) -> float:
        return _clamp(value, 0.0, 1.0)

    @field_validator("logic_understanding", mode="before")
    @classmethod
    def _bound_logic(cls, value: Any) -> str:
        return _level(value)

    def to_evaluation(self) -> CodingEvaluation:
        return CodingEvaluation(
            code_quality=self.code_quality,
            logic_understanding=self.logic_understanding,  # type: ignore[arg-type]
            explanation_alignment=self.explanation_alignment,
            feedback=self.brief_feedback[:300],
        )


class LlmOracle:  # Oracle implementation backed by a chat-completions route
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._route = route
        self._client = client

    def generate_question(self, role: str, slot_number: int, difficulty: str, covered_topics: List[str]) -> str:
        focus = (
            'Warm-up: something like "Tell me about yourself" or "What tech are you most comfortable with?"'
            if slot_number == 1
            else "Ask about ONE core technical concept for this role."
        )
        prompt = (
            f"Ask interview question #{slot_number} for a {role} candidate.\n"
            f"Difficulty: {difficulty}.\n"
            f"{focus}{_avoid(covered_topics)}"
        )
        return self._ask(prompt, QuestionReply, temperature=0.8).question.strip()

    def generate_follow_up(self, original_question: str, answer: str, depth: int) -> str:
        if depth <= 1:
            probe = 'Pick ONE specific thing they said and ask about it, e.g. "Why?" or "What do you mean by X?"'
        else:
            probe = 'Go one level deeper: challenge something or change a constraint, e.g. "What if the input is null?"'
        messages = [
            {"role": "user", "content": f'You asked: "{original_question}"'},
            {"role": "user", "content": f'Candidate said: "{answer}"'},
            {"role": "user", "content": f"Generate a SHORT follow-up. {probe}"},
        ]
        return self._chat(messages, QuestionReply, temperature=0.75).question.strip()

    def evaluate_answer(self, question: str, answer: str, difficulty: str) -> AnswerEvaluation:
        prompt = dedent(
            f"""
            Evaluate this interview answer for a {difficulty} question.
            Question: "{question}"
            Answer: "{answer}"
            Score answer_quality from 1 to 10, list the concepts covered, confidence from 0 to 1,
            clarity as low, medium or high, and one sentence of brief_feedback.
            """
        ).strip()
        return self._ask(prompt, EvaluationReply, temperature=0.3).to_evaluation()

    def generate_mcq(self, role: str, difficulty: str, covered_topics: List[str]) -> GeneratedMCQ:
        prompt = (
            f"Generate a multiple choice question for a {role} interview.\n"
            f"Difficulty: {difficulty}.{_avoid(covered_topics)}\n"
            'Use four options labelled "A) ...", "B) ...", "C) ...", "D) ..." and give the correct letter.'
        )
        return self._ask(prompt, MCQReply, temperature=0.7).to_mcq()

    def generate_mcq_follow_up(self, question: str, selected_option: str, correct_key: str) -> str:
        is_correct = selected_option.strip()[:1].upper() == correct_key.upper()
        verdict = "(correct)" if is_correct else f"(wrong, correct was {correct_key})"
        prompt = (
            f'Candidate was asked: "{question}"\n'
            f"They chose: {selected_option} {verdict}\n"
            'Ask a SHORT follow-up such as "Why did you pick that?" or "Why not the other options?"'
        )
        return self._ask(prompt, QuestionReply, temperature=0.7).question.strip()

    def generate_coding_question(self, role: str, difficulty: str) -> CodingProblem:
        prompt = (
            f"Generate a simple coding question for a {role} candidate.\n"
            f"Difficulty: {difficulty}.\n"
            "It must be a logic problem solvable in 10-15 lines, not a trick question.\n"
            "Describe the problem in at most two sentences with one example input and output."
        )
        reply = self._ask(prompt, CodingQuestionReply, temperature=0.7)
        return CodingProblem(**reply.model_dump())

    def generate_coding_interruption(self, partial_code: str, problem: str) -> str:
        prompt = (
            f'Candidate is solving: "{problem}"\n'
            f"Their code so far:\n{partial_code}\n\n"
            'Ask ONE short interruption question about their approach, e.g. "What\'s the time complexity?"'
        )
        return self._ask(prompt, QuestionReply, temperature=0.7).question.strip()

    def evaluate_coding_answer(self, problem: str, code: str, explanation: str, difficulty: str) -> CodingEvaluation:
        prompt = dedent(
            f"""
            Evaluate this {difficulty} coding submission.
            Problem: "{problem}"
            Code:
            {code}
            Explanation: "{explanation or 'none provided'}"
            Rate logic_understanding as low, medium or high, explanation_alignment from 0 to 1,
            code_quality from 1 to 10, and give one sentence of brief_feedback.
            """
        ).strip()
        return self._ask(prompt, CodingEvaluationReply, temperature=0.3).to_evaluation()

    def _ask(self, prompt: str, schema: Type[R], *, temperature: float) -> R:
        try:
            return call(
                prompt,
                schema,
                cfg=self._route,
                system=INTERVIEWER_GUIDANCE,
                client=self._client,
                options=_options(temperature),
            )
        except LlmGatewayError as exc:
            raise OracleFailure(f"{schema.__name__} request failed: {exc}") from exc

    def _chat(self, messages: Sequence[Dict[str, str]], schema: Type[R], *, temperature: float) -> R:
        conversation = [{"role": "system", "content": INTERVIEWER_GUIDANCE}, *messages]
        try:
            return chat(
                conversation,
                schema,
                cfg=self._route,
                client=self._client,
                options=_options(temperature),
            )
        except LlmGatewayError as exc:
            raise OracleFailure(f"{schema.__name__} request failed: {exc}") from exc


def _options(temperature: float) -> Dict[str, Any]:
    return {"temperature": temperature, "max_tokens": 400}


def _avoid(covered_topics: List[str]) -> str:
    if not covered_topics:
        return ""
    return f"\nDo NOT ask about these topics (already covered): {', '.join(covered_topics)}"


__all__ = ["INTERVIEWER_GUIDANCE", "LlmOracle"]

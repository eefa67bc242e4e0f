"""Question/evaluation oracle contract consumed by the interview flow."""
from __future__ import annotations

from typing import List, Protocol

from pydantic import BaseModel, Field

from interview.models import AnswerEvaluation, CodingEvaluation


class GeneratedMCQ(BaseModel):
    question: str
    options: List[str] = Field(min_length=2)
    correct_key: str = Field(min_length=1, max_length=1)
    topic: str = ""


class CodingProblem(BaseModel):
    problem: str
    example_input: str = ""
    example_output: str = ""
    topic: str = ""


class InterviewOracle(Protocol):
    def generate_question(self, role: str, slot_number: int, difficulty: str, covered_topics: List[str]) -> str: ...

    def generate_follow_up(self, original_question: str, answer: str, depth: int) -> str: ...

    def evaluate_answer(self, question: str, answer: str, difficulty: str) -> AnswerEvaluation: ...

    def generate_mcq(self, role: str, difficulty: str, covered_topics: List[str]) -> GeneratedMCQ: ...

    def generate_mcq_follow_up(self, question: str, selected_option: str, correct_key: str) -> str: ...

    def generate_coding_question(self, role: str, difficulty: str) -> CodingProblem: ...

    def generate_coding_interruption(self, partial_code: str, problem: str) -> str: ...

    def evaluate_coding_answer(
        self, problem: str, code: str, explanation: str, difficulty: str
    ) -> CodingEvaluation: ...


__all__ = ["CodingProblem", "GeneratedMCQ", "InterviewOracle"]

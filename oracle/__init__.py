"""Question generation and answer evaluation collaborators."""
from .contracts import CodingProblem, GeneratedMCQ, InterviewOracle
from .guarded import GuardedOracle, OracleOutcome
from .llm_oracle import LlmOracle

__all__ = ["CodingProblem", "GeneratedMCQ", "GuardedOracle", "InterviewOracle", "LlmOracle", "OracleOutcome"]

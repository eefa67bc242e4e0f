"""Error taxonomy for interview operations."""
from __future__ import annotations


class InterviewError(RuntimeError):
    """Base error for interview operations."""

    kind = "interview_error"


class SessionNotFound(InterviewError):
    kind = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidStateTransition(InterviewError):
    kind = "invalid_state_transition"

    def __init__(self, operation: str, state: str, detail: str = "") -> None:
        message = f"Cannot {operation} while session is {state}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.operation = operation
        self.state = state


class InvalidInput(InterviewError):
    kind = "invalid_input"

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"Cannot {operation}: {detail}")
        self.operation = operation


class OracleFailure(InterviewError):
    """Question generation or evaluation failed; recovered by neutral defaults."""

    kind = "oracle_failure"


__all__ = ["InterviewError", "SessionNotFound", "InvalidStateTransition", "InvalidInput", "OracleFailure"]

"""Explicit success/failure values returned at operation boundaries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import InterviewError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: InterviewError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> str:
        return self.error.kind

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]

__all__ = ["Ok", "Err", "Result"]

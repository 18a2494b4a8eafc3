"""Result of one analysis attempt: success, degraded fallback, or failure."""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    result: T

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """A usable result produced without real provider input."""

    result: T
    reason: str

    @property
    def degraded(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    error: Exception

    @property
    def degraded(self) -> bool:
        return True


AnalysisOutcome = Union[Success[T], Degraded[T], Failed]


def outcome_label(outcome: "Success | Degraded | Failed") -> str:
    if isinstance(outcome, Success):
        return "success"
    if isinstance(outcome, Degraded):
        return "degraded"
    return "failed"

"""Domain models for ledger entries and daily checks."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID


class LogType(StrEnum):
    """Kinds of events recorded on the ledger."""

    BEER = "beer"
    EXERCISE = "exercise"


@dataclass(frozen=True)
class BeerLog:
    """A drink recorded on the ledger; kcal is a debit fixed at save time."""

    id: UUID
    timestamp: int
    kcal: float | None
    name: str
    style: str | None = None
    size: str | None = None
    ml: float | None = None
    abv: float | None = None
    carb: float | None = None
    count: int = 1
    brewery: str | None = None
    brand: str | None = None
    rating: int | None = None
    memo: str = ""
    is_custom: bool = False
    custom_type: str | None = None

    @property
    def type(self) -> LogType:
        return LogType.BEER


@dataclass(frozen=True)
class ExerciseLog:
    """An exercise session; kcal and memo are rewritten by recalculation."""

    id: UUID
    timestamp: int
    kcal: float | None
    exercise_key: str
    minutes: float
    name: str = ""
    memo: str = ""

    @property
    def type(self) -> LogType:
        return LogType.EXERCISE


LogEntry = BeerLog | ExerciseLog


@dataclass(frozen=True)
class CheckEntry:
    """Wellness record for one virtual day."""

    id: UUID
    timestamp: int
    is_dry_day: bool
    weight: float | None = None
    is_saved: bool = False
    flags: dict[str, bool] = field(default_factory=dict)

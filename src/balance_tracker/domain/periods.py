"""Domain models for accounting periods and their archives."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from balance_tracker.domain.ledger import LogEntry


class PeriodMode(StrEnum):
    """How the active accounting period is delimited."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class PeriodSettings:
    """Persisted period configuration.

    ``start`` is the first instant (epoch ms) of the active period, ``0`` when
    unset. ``end`` is only meaningful for custom periods.
    """

    mode: PeriodMode = PeriodMode.WEEKLY
    start: int = 0
    end: int | None = None
    label: str | None = None


@dataclass(frozen=True)
class PeriodArchive:
    """Sealed snapshot of a finished period.

    ``start_date`` and ``end_date`` are inclusive epoch-ms bounds and never
    change after creation. ``total_balance`` always equals the kcal sum of
    ``logs``.
    """

    id: UUID
    start_date: int
    end_date: int
    mode: PeriodMode
    total_balance: float
    logs: list[LogEntry] = field(default_factory=list)
    created_at: int = 0
    updated_at: int | None = None


@dataclass(frozen=True)
class RolloverResult:
    """Outcome of a rollover check."""

    rolled_over: bool
    period_ended: bool
    settings: PeriodSettings
    archive: PeriodArchive | None = None


@dataclass(frozen=True)
class ArchiveResult:
    """Outcome of sealing a period."""

    archive: PeriodArchive | None
    created: bool
    settings: PeriodSettings


@dataclass(frozen=True)
class PeriodUpdateResult:
    """Outcome of changing the period mode."""

    settings: PeriodSettings
    restored_count: int = 0

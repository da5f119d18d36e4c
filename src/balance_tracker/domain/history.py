"""Per-day aggregates and recalculation results."""

from dataclasses import dataclass, field
from datetime import date

from balance_tracker.domain.ledger import ExerciseLog


@dataclass
class DayAggregate:
    """Running totals for one virtual day."""

    has_debit_event: bool = False
    has_credit_event: bool = False
    balance: float = 0.0


@dataclass
class LedgerSnapshot:
    """Aggregates built from one scan of the ledger.

    Owned by a single recalculation run; the forward walk mutates
    ``day_aggregate`` balances in place.
    """

    day_aggregate: dict[date, DayAggregate] = field(default_factory=dict)
    dry_day_flag: dict[date, bool] = field(default_factory=dict)
    exercise_logs_by_day: dict[date, list[ExerciseLog]] = field(default_factory=dict)
    anchor_date: date | None = None


@dataclass(frozen=True)
class RecalcResult:
    """Summary of a recalculation run."""

    start_day: date
    end_day: date
    days_walked: int
    updated_logs: int
    refreshed_archives: int
    truncated: bool = False

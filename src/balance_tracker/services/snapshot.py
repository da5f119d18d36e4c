"""Per-day aggregation of the full ledger."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from balance_tracker.domain.catalog import exercise_mets, style_carb
from balance_tracker.domain.history import DayAggregate, LedgerSnapshot
from balance_tracker.domain.ledger import BeerLog, CheckEntry, ExerciseLog, LogEntry
from balance_tracker.domain.profile import Profile
from balance_tracker.services.duplicates import resolve_duplicates
from balance_tracker.services.oracle import BonusOracle
from balance_tracker.services.virtual_day import VirtualDayResolver

DEFAULT_BEER_ML = 350.0
DEFAULT_BEER_ABV = 5.0


@dataclass(frozen=True)
class SnapshotBuilder:
    """Folds logs and checks into virtual-day aggregates in one pass."""

    resolver: VirtualDayResolver
    oracle: BonusOracle

    def build(
        self,
        logs: Iterable[LogEntry],
        checks: Iterable[CheckEntry],
        profile: Profile,
    ) -> LedgerSnapshot:
        """Build aggregates, dry-day flags, the exercise index and the anchor."""
        snapshot = LedgerSnapshot()
        earliest: int | None = None

        for log in logs:
            if earliest is None or log.timestamp < earliest:
                earliest = log.timestamp
            day = self.resolver.virtual_date(log.timestamp)
            aggregate = snapshot.day_aggregate.setdefault(day, DayAggregate())
            match log:
                case BeerLog():
                    aggregate.has_debit_event = True
                case ExerciseLog():
                    aggregate.has_credit_event = True
                    snapshot.exercise_logs_by_day.setdefault(day, []).append(log)
                case _:
                    assert_never(log)
            aggregate.balance += self.log_kcal(log, profile)

        checks = list(checks)
        for check in checks:
            if earliest is None or check.timestamp < earliest:
                earliest = check.timestamp
        for check in resolve_duplicates(checks, self.resolver.virtual_date):
            snapshot.dry_day_flag[self.resolver.virtual_date(check.timestamp)] = (
                check.is_dry_day
            )

        if earliest is not None:
            snapshot.anchor_date = self.resolver.virtual_date(earliest)
        return snapshot

    def log_kcal(self, log: LogEntry, profile: Profile) -> float:
        """Return the stored kcal of a log, deriving it when absent."""
        if log.kcal is not None:
            return log.kcal
        match log:
            case BeerLog():
                return self.oracle.beer_debit(
                    _parse_ml(log),
                    log.abv if log.abv is not None else DEFAULT_BEER_ABV,
                    log.carb if log.carb is not None else style_carb(log.style),
                    log.count or 1,
                )
            case ExerciseLog():
                return self.oracle.exercise_burn(
                    exercise_mets(log.exercise_key), log.minutes, profile
                )
            case _:
                assert_never(log)


def _parse_ml(log: BeerLog) -> float:
    if log.ml:
        return log.ml
    digits = "".join(ch for ch in log.size or "" if ch.isdigit())
    return float(digits) if digits else DEFAULT_BEER_ML

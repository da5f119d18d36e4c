"""Ledger log operations."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import assert_never
from uuid import UUID, uuid4

from balance_tracker.domain.catalog import (
    DEFAULT_CARB_G_PER_100ML,
    DRY_SPIRIT_CARB_G_PER_100ML,
    exercise_label,
    exercise_mets,
    style_carb,
)
from balance_tracker.domain.errors import LogNotFoundError
from balance_tracker.domain.history import RecalcResult
from balance_tracker.domain.ledger import BeerLog, CheckEntry, ExerciseLog, LogEntry
from balance_tracker.domain.periods import PeriodMode, PeriodSettings
from balance_tracker.services.duplicates import resolve_duplicates, split_primary
from balance_tracker.services.history import HistoryRecalculator, bonus_memo
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction
from balance_tracker.services.settings import ProfileService
from balance_tracker.services.snapshot import SnapshotBuilder
from balance_tracker.services.virtual_day import to_ms

logger = logging.getLogger(__name__)

CUSTOM_DRY_TYPE = "dry"


@dataclass(frozen=True)
class BeerInput:
    """Validated drink details from the beer form."""

    timestamp: int
    ml: float
    abv: float
    count: int = 1
    style: str | None = None
    size: str | None = None
    carb: float | None = None
    brewery: str | None = None
    brand: str | None = None
    rating: int | None = None
    memo: str = ""
    is_custom: bool = False
    custom_type: str | None = None


@dataclass(frozen=True)
class BeerSaveResult:
    log: BeerLog
    is_update: bool
    kcal: float
    dry_day_canceled: bool
    recalc: RecalcResult


@dataclass(frozen=True)
class ExerciseSaveResult:
    log: ExerciseLog
    is_update: bool
    kcal: float
    bonus_multiplier: float
    recalc: RecalcResult


@dataclass(frozen=True)
class DeleteResult:
    timestamp: int
    recalc: RecalcResult


@dataclass(frozen=True)
class BulkDeleteResult:
    count: int
    oldest_timestamp: int | None
    recalc: RecalcResult | None


@dataclass(frozen=True)
class AppSnapshot:
    """Current period view used by callers to render balances."""

    mode: PeriodMode
    logs: list[LogEntry]
    all_logs: list[LogEntry]
    checks: list[CheckEntry]
    balance: float


@dataclass(frozen=True)
class LogPage:
    logs: list[LogEntry]
    total_count: int


@dataclass
class LogService:
    """Saves, edits and deletes logs; every mutation ends with a recalculation."""

    store: LedgerStore
    snapshot_builder: SnapshotBuilder
    recalculator: HistoryRecalculator
    profile_service: ProfileService

    async def save_beer_log(
        self, data: BeerInput, log_id: UUID | None = None
    ) -> BeerSaveResult:
        """Save a drink and cancel the dry-day flag of its virtual day."""
        resolver = self.snapshot_builder.resolver
        carb = _resolve_carb(data)
        kcal = self.snapshot_builder.oracle.beer_debit(
            data.ml, data.abv, carb, data.count
        )
        log = BeerLog(
            id=log_id or uuid4(),
            timestamp=data.timestamp,
            kcal=kcal,
            name=_beer_name(data),
            style="Custom" if data.is_custom else data.style,
            size=None if data.is_custom else data.size,
            ml=data.ml,
            abv=data.abv,
            carb=carb,
            count=data.count,
            brewery=data.brewery,
            brand=data.brand,
            rating=data.rating,
            memo=data.memo,
            is_custom=data.is_custom,
            custom_type=data.custom_type if data.is_custom else None,
        )
        day = resolver.virtual_date(data.timestamp)
        day_start = resolver.day_start(day)
        day_end = resolver.day_end(day)

        async def body(tx: LedgerTransaction) -> tuple[int, bool]:
            changed_from = _store_log(tx, log, log_id)
            dry_day_canceled = False
            checks = tx.list_checks(day_start, day_end)
            if checks:
                primary, redundant = split_primary(checks)
                if primary.is_dry_day:
                    tx.update_check(replace(primary, is_dry_day=False))
                    dry_day_canceled = True
                if redundant:
                    tx.delete_checks(check.id for check in redundant)
                    logger.info(
                        "Cleaned up %d redundant checks for consistency",
                        len(redundant),
                    )
            return changed_from, dry_day_canceled

        changed_from, dry_day_canceled = await self.store.run_atomic(body)
        recalc = await self.recalculator.recalculate(changed_from)
        return BeerSaveResult(
            log=log,
            is_update=log_id is not None,
            kcal=kcal,
            dry_day_canceled=dry_day_canceled,
            recalc=recalc,
        )

    async def save_exercise_log(  # noqa: PLR0913
        self,
        exercise_key: str,
        minutes: float,
        when: int | date,
        apply_bonus: bool = True,
        log_id: UUID | None = None,
        memo: str = "",
    ) -> ExerciseSaveResult:
        """Save an exercise session, crediting the current streak bonus."""
        resolver = self.snapshot_builder.resolver
        oracle = self.snapshot_builder.oracle
        timestamp = _resolve_timestamp(when, resolver.anchor)
        profile = self.profile_service.get_profile()
        base_kcal = oracle.exercise_burn(exercise_mets(exercise_key), minutes, profile)

        async def body(tx: LedgerTransaction) -> tuple[ExerciseLog, int, float]:
            kcal = base_kcal
            multiplier = 1.0
            if apply_bonus:
                snapshot = self.snapshot_builder.build(
                    tx.list_logs(), tx.list_checks(), profile
                )
                streak = oracle.streak_length(
                    snapshot.day_aggregate,
                    snapshot.dry_day_flag,
                    snapshot.anchor_date,
                    resolver.virtual_date(timestamp),
                )
                credit = oracle.exercise_credit(base_kcal, streak)
                kcal = credit.kcal
                multiplier = credit.bonus_multiplier
            log = ExerciseLog(
                id=log_id or uuid4(),
                timestamp=timestamp,
                kcal=kcal,
                exercise_key=exercise_key,
                minutes=minutes,
                name=exercise_label(exercise_key),
                memo=bonus_memo(memo, multiplier),
            )
            return log, _store_log(tx, log, log_id), multiplier

        log, changed_from, multiplier = await self.store.run_atomic(body)
        recalc = await self.recalculator.recalculate(changed_from)
        return ExerciseSaveResult(
            log=log,
            is_update=log_id is not None,
            kcal=log.kcal or 0.0,
            bonus_multiplier=multiplier,
            recalc=recalc,
        )

    async def delete_log(self, log_id: UUID) -> DeleteResult:
        """Delete one log and recalculate from its timestamp."""

        async def body(tx: LedgerTransaction) -> int:
            log = tx.get_log(log_id)
            if log is None:
                raise LogNotFoundError(log_id)
            tx.delete_logs([log_id])
            return log.timestamp

        timestamp = await self.store.run_atomic(body)
        recalc = await self.recalculator.recalculate(timestamp)
        return DeleteResult(timestamp=timestamp, recalc=recalc)

    async def bulk_delete_logs(self, log_ids: Iterable[UUID]) -> BulkDeleteResult:
        """Delete several logs and recalculate once from the oldest of them."""
        ids = list(log_ids)
        if not ids:
            return BulkDeleteResult(count=0, oldest_timestamp=None, recalc=None)

        async def body(tx: LedgerTransaction) -> tuple[int, int | None]:
            found = [log for log_id in ids if (log := tx.get_log(log_id)) is not None]
            tx.delete_logs(log.id for log in found)
            oldest = min((log.timestamp for log in found), default=None)
            return len(found), oldest

        count, oldest = await self.store.run_atomic(body)
        if oldest is None:
            return BulkDeleteResult(count=0, oldest_timestamp=None, recalc=None)
        recalc = await self.recalculator.recalculate(oldest)
        return BulkDeleteResult(count=count, oldest_timestamp=oldest, recalc=recalc)

    async def repeat_log(
        self, log_id: UUID
    ) -> BeerSaveResult | ExerciseSaveResult:
        """Record a copy of an existing log stamped with the current time."""
        log = await self.get_log(log_id)
        now = self.snapshot_builder.resolver.now()
        match log:
            case BeerLog():
                return await self.save_beer_log(
                    BeerInput(
                        timestamp=now,
                        ml=log.ml or 0.0,
                        abv=log.abv or 0.0,
                        count=log.count,
                        style=None if log.is_custom else log.style,
                        size=log.size,
                        carb=log.carb,
                        brewery=log.brewery,
                        brand=log.brand,
                        rating=log.rating,
                        memo=log.memo,
                        is_custom=log.is_custom,
                        custom_type=log.custom_type,
                    )
                )
            case ExerciseLog():
                return await self.save_exercise_log(
                    log.exercise_key, log.minutes, now, apply_bonus=True
                )
            case _:
                assert_never(log)

    async def get_log(self, log_id: UUID) -> LogEntry:
        async def body(tx: LedgerTransaction) -> LogEntry | None:
            return tx.get_log(log_id)

        log = await self.store.run_atomic(body)
        if log is None:
            raise LogNotFoundError(log_id)
        return log

    async def get_snapshot(self, settings: PeriodSettings) -> AppSnapshot:
        """Return the active period's logs, de-duplicated checks and balance."""

        async def body(
            tx: LedgerTransaction,
        ) -> tuple[list[LogEntry], list[CheckEntry]]:
            return tx.list_logs(), tx.list_checks()

        all_logs, raw_checks = await self.store.run_atomic(body)
        checks = resolve_duplicates(
            raw_checks, self.snapshot_builder.resolver.virtual_date
        )
        period_logs = [log for log in all_logs if _in_period(log, settings)]
        return AppSnapshot(
            mode=settings.mode,
            logs=period_logs,
            all_logs=all_logs,
            checks=checks,
            balance=sum(log.kcal or 0.0 for log in period_logs),
        )

    async def list_logs_page(
        self, settings: PeriodSettings, offset: int = 0, limit: int = 20
    ) -> LogPage:
        """Return the active period's logs, newest first."""

        async def body(tx: LedgerTransaction) -> list[LogEntry]:
            if settings.mode is PeriodMode.PERMANENT:
                return tx.list_logs()
            return tx.list_logs(start=settings.start)

        logs = await self.store.run_atomic(body)
        newest_first = list(reversed(logs))
        return LogPage(
            logs=newest_first[offset : offset + limit], total_count=len(logs)
        )


def _store_log(tx: LedgerTransaction, log: LogEntry, log_id: UUID | None) -> int:
    """Add or replace a log; return the earliest instant the change affects."""
    if log_id is None:
        tx.add_logs([log])
        return log.timestamp
    previous = tx.get_log(log_id)
    if previous is None:
        raise LogNotFoundError(log_id)
    tx.update_log(log)
    return min(previous.timestamp, log.timestamp)


def _resolve_carb(data: BeerInput) -> float:
    if data.carb is not None:
        return data.carb
    if data.is_custom:
        if data.custom_type == CUSTOM_DRY_TYPE:
            return DRY_SPIRIT_CARB_G_PER_100ML
        return DEFAULT_CARB_G_PER_100ML
    return style_carb(data.style)


def _beer_name(data: BeerInput) -> str:
    if data.is_custom:
        if data.custom_type == CUSTOM_DRY_TYPE:
            return "Distilled spirits (zero carb)"
        return "Brewed drink / cocktail"
    suffix = f" x{data.count}" if data.count != 1 else ""
    return f"{data.style or 'Beer'}{suffix}"


def _resolve_timestamp(when: int | date, anchor: Callable[[date], int]) -> int:
    if isinstance(when, datetime):
        return to_ms(when)
    if isinstance(when, date):
        return anchor(when)
    return when


def _in_period(log: LogEntry, settings: PeriodSettings) -> bool:
    if settings.mode is PeriodMode.PERMANENT:
        return True
    return log.timestamp >= settings.start

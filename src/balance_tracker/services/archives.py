"""Accounting period rollover and archive management."""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from uuid import UUID, uuid4

from balance_tracker.domain.ledger import LogEntry
from balance_tracker.domain.periods import (
    ArchiveResult,
    PeriodArchive,
    PeriodMode,
    PeriodSettings,
    PeriodUpdateResult,
    RolloverResult,
)
from balance_tracker.services.history import HistoryRecalculator
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction
from balance_tracker.services.settings import PeriodSettingsService
from balance_tracker.services.virtual_day import VirtualDayResolver

logger = logging.getLogger(__name__)

DEFAULT_CUSTOM_LABEL = "Project"


@dataclass
class ArchiveService:
    """Seals finished periods into archives and restores them on demand."""

    store: LedgerStore
    resolver: VirtualDayResolver
    settings_service: PeriodSettingsService
    recalculator: HistoryRecalculator

    def calculate_period_start(self, mode: PeriodMode, now: int | None = None) -> int:
        """Return the first instant of the period containing ``now``."""
        today = self.resolver.virtual_date(now)
        match mode:
            case PeriodMode.WEEKLY:
                return self.resolver.day_start(today - timedelta(days=today.weekday()))
            case PeriodMode.MONTHLY:
                return self.resolver.day_start(today.replace(day=1))
            case PeriodMode.CUSTOM:
                return self.resolver.day_start(today)
            case PeriodMode.PERMANENT:
                return 0

    async def check_rollover(self, settings: PeriodSettings) -> RolloverResult:
        """Detect a period change, archiving automatically for weekly/monthly."""
        if settings.mode is PeriodMode.PERMANENT:
            return RolloverResult(
                rolled_over=False, period_ended=False, settings=settings
            )

        if not settings.start:
            initialized = replace(
                settings, start=self.calculate_period_start(settings.mode)
            )
            self.settings_service.save(initialized)
            return RolloverResult(
                rolled_over=False, period_ended=False, settings=initialized
            )

        if settings.mode is PeriodMode.CUSTOM:
            ended = settings.end is not None and self.resolver.now() > settings.end
            return RolloverResult(
                rolled_over=False, period_ended=ended, settings=settings
            )

        next_start = self.calculate_period_start(settings.mode)
        if self.resolver.virtual_date(next_start) == self.resolver.virtual_date(
            settings.start
        ):
            return RolloverResult(
                rolled_over=False, period_ended=False, settings=settings
            )

        result = await self.archive_and_reset(
            settings.start, next_start, settings.mode, settings=settings
        )
        return RolloverResult(
            rolled_over=True,
            period_ended=False,
            settings=result.settings,
            archive=result.archive,
        )

    async def archive_and_reset(
        self,
        current_start: int,
        next_start: int,
        mode: PeriodMode,
        settings: PeriodSettings | None = None,
    ) -> ArchiveResult:
        """Seal every live log before ``next_start`` and advance the period start.

        Only one archive may exist per start date, so repeating a call with the
        same arguments changes nothing. Logs older than ``current_start`` that
        were never archived are swept into the new archive.
        """
        now = self.resolver.now()

        async def body(tx: LedgerTransaction) -> tuple[PeriodArchive | None, bool]:
            logs = tx.list_logs(end=next_start - 1)
            if not logs:
                return None, False
            existing = tx.find_archive_by_start(current_start)
            if existing is not None:
                logger.warning(
                    "Archive for period starting %d already exists, skipping",
                    current_start,
                )
                return existing, False
            archive = PeriodArchive(
                id=uuid4(),
                start_date=current_start,
                end_date=next_start - 1,
                mode=mode,
                total_balance=sum(log.kcal or 0.0 for log in logs),
                logs=logs,
                created_at=now,
            )
            tx.add_archive(archive)
            return archive, True

        archive, created = await self.store.run_atomic(body)
        base = settings or self.settings_service.load()
        updated = replace(base, mode=mode, start=next_start)
        if updated != base:
            self.settings_service.save(updated)
        if created:
            logger.info("Archived %d logs for %s period", len(archive.logs), mode)
        return ArchiveResult(archive=archive, created=created, settings=updated)

    async def update_period_settings(
        self,
        mode: PeriodMode,
        start_day: date | None = None,
        end_day: date | None = None,
        label: str | None = None,
    ) -> PeriodUpdateResult:
        """Switch the period mode, restoring archived logs for permanent mode."""
        current = self.settings_service.load()
        restored_count = 0
        match mode:
            case PeriodMode.CUSTOM:
                updated = PeriodSettings(
                    mode=mode,
                    start=(
                        self.resolver.day_start(start_day)
                        if start_day
                        else current.start or self.calculate_period_start(mode)
                    ),
                    end=self.resolver.day_end(end_day) if end_day else current.end,
                    label=label or current.label or DEFAULT_CUSTOM_LABEL,
                )
            case PeriodMode.PERMANENT:
                restored_count = await self.restore_archives()
                updated = PeriodSettings(mode=mode, start=0)
            case PeriodMode.WEEKLY | PeriodMode.MONTHLY:
                updated = PeriodSettings(
                    mode=mode, start=self.calculate_period_start(mode)
                )
        self.settings_service.save(updated)
        return PeriodUpdateResult(settings=updated, restored_count=restored_count)

    async def restore_archives(self) -> int:
        """Return archived logs to the live ledger and drop every archive.

        Snapshot copies share the id of the live log they were taken from, so
        logs that are still live or that appear in several snapshots are
        inserted at most once. Restored logs change the history, so the
        ledger is recalculated from the oldest of them.
        """

        async def body(tx: LedgerTransaction) -> list[LogEntry]:
            archives = tx.list_archives()
            if not archives:
                return []
            live_ids = {log.id for log in tx.list_logs()}
            missing: dict[UUID, LogEntry] = {}
            for archive in archives:
                for log in archive.logs:
                    if log.id not in live_ids:
                        missing.setdefault(log.id, log)
            tx.add_logs(missing.values())
            tx.clear_archives()
            return list(missing.values())

        restored = await self.store.run_atomic(body)
        logger.info("Restored %d archived logs to the live ledger", len(restored))
        if restored:
            await self.recalculator.recalculate(min(log.timestamp for log in restored))
        return len(restored)

    async def list_archives(self) -> list[PeriodArchive]:
        async def body(tx: LedgerTransaction) -> list[PeriodArchive]:
            return tx.list_archives()

        return await self.store.run_atomic(body)

"""Daily wellness check operations."""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from uuid import uuid4

from balance_tracker.domain.history import RecalcResult
from balance_tracker.domain.ledger import CheckEntry
from balance_tracker.services.duplicates import split_primary
from balance_tracker.services.history import HistoryRecalculator
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction
from balance_tracker.services.settings import ProfileService
from balance_tracker.services.virtual_day import VirtualDayResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyCheckForm:
    """User input for a daily check."""

    day: date
    is_dry_day: bool
    weight: float | None = None
    flags: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckSaveResult:
    """Outcome of saving a daily check."""

    check: CheckEntry
    is_update: bool
    is_dry_day: bool
    recalc: RecalcResult


@dataclass
class CheckService:
    """Keeps exactly one check record per virtual day."""

    store: LedgerStore
    resolver: VirtualDayResolver
    recalculator: HistoryRecalculator
    profile_service: ProfileService

    async def save_daily_check(self, form: DailyCheckForm) -> CheckSaveResult:
        """Create or update the check of a day, then recalculate from it."""
        timestamp = self.resolver.anchor(form.day)
        start = self.resolver.day_start(form.day)
        end = self.resolver.day_end(form.day)

        async def body(tx: LedgerTransaction) -> tuple[CheckEntry, bool]:
            existing = tx.list_checks(start, end)
            if not existing:
                created = CheckEntry(
                    id=uuid4(),
                    timestamp=timestamp,
                    is_dry_day=form.is_dry_day,
                    weight=form.weight,
                    is_saved=True,
                    flags=dict(form.flags),
                )
                tx.add_check(created)
                return created, False
            primary, redundant = split_primary(existing)
            updated = replace(
                primary,
                timestamp=timestamp,
                is_dry_day=form.is_dry_day,
                weight=form.weight,
                is_saved=True,
                flags={**primary.flags, **form.flags},
            )
            tx.update_check(updated)
            if redundant:
                tx.delete_checks(check.id for check in redundant)
                logger.info("Cleaned up %d duplicate check records", len(redundant))
            return updated, True

        check, is_update = await self.store.run_atomic(body)
        if form.weight:
            self.profile_service.set_weight(form.weight)
        recalc = await self.recalculator.recalculate(timestamp)
        return CheckSaveResult(
            check=check,
            is_update=is_update,
            is_dry_day=form.is_dry_day,
            recalc=recalc,
        )

    async def ensure_today_check(self) -> CheckEntry | None:
        """Create an unsaved placeholder for today if no record exists yet."""
        today = self.resolver.virtual_date()

        async def body(tx: LedgerTransaction) -> CheckEntry | None:
            existing = tx.list_checks(
                self.resolver.day_start(today), self.resolver.day_end(today)
            )
            if existing:
                return None
            placeholder = CheckEntry(
                id=uuid4(),
                timestamp=self.resolver.anchor(today),
                is_dry_day=False,
                is_saved=False,
            )
            tx.add_check(placeholder)
            return placeholder

        return await self.store.run_atomic(body)

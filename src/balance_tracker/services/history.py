"""Retroactive recalculation of streak bonuses and archive totals."""

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, timedelta

from balance_tracker.domain.catalog import exercise_mets
from balance_tracker.domain.history import DayAggregate, LedgerSnapshot, RecalcResult
from balance_tracker.domain.ledger import ExerciseLog
from balance_tracker.domain.profile import Profile
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction
from balance_tracker.services.settings import ProfileService
from balance_tracker.services.snapshot import SnapshotBuilder

logger = logging.getLogger(__name__)

KCAL_EPSILON = 0.1
DEFAULT_SAFETY_CAP = 3650
BONUS_MARKER = re.compile(r"Streak Bonus x[0-9.]+")


def bonus_memo(memo: str | None, bonus_multiplier: float) -> str:
    """Strip any bonus marker from a memo and append a fresh one if earned."""
    cleaned = BONUS_MARKER.sub("", memo or "").strip()
    if bonus_multiplier <= 1.0:
        return cleaned
    marker = f"Streak Bonus x{bonus_multiplier:.1f}"
    return f"{cleaned} {marker}" if cleaned else marker


@dataclass
class HistoryRecalculator:
    """Rewrites derived exercise credits and archive snapshots after a change.

    Exercise kcal and memo are owned by this class. Beer logs and every other
    field are left as their save operation wrote them.
    """

    store: LedgerStore
    snapshot_builder: SnapshotBuilder
    profile_service: ProfileService
    safety_cap: int = DEFAULT_SAFETY_CAP

    async def recalculate(self, changed_timestamp: int) -> RecalcResult:
        """Restore consistency of everything dated at or after the change."""
        profile = self.profile_service.get_profile()

        async def body(tx: LedgerTransaction) -> RecalcResult:
            return self._recalculate(tx, changed_timestamp, profile)

        result = await self.store.run_atomic(body)
        if result.updated_logs:
            logger.info(
                "Recalculated %d exercise logs due to streak change",
                result.updated_logs,
            )
        if result.refreshed_archives:
            logger.info("Refreshed %d period archives", result.refreshed_archives)
        return result

    def _recalculate(
        self, tx: LedgerTransaction, changed_timestamp: int, profile: Profile
    ) -> RecalcResult:
        resolver = self.snapshot_builder.resolver
        snapshot = self.snapshot_builder.build(
            tx.list_logs(), tx.list_checks(), profile
        )
        now = resolver.now()
        start_day = resolver.virtual_date(changed_timestamp)
        end_day = resolver.virtual_date(now)

        current_day = start_day
        days_walked = 0
        updated_logs = 0
        truncated = False
        while current_day <= end_day:
            if days_walked >= self.safety_cap:
                truncated = True
                logger.warning(
                    "Recalculation stopped at %s after %d days (safety cap)",
                    current_day,
                    days_walked,
                )
                break
            updated_logs += self._rewrite_day(tx, snapshot, current_day, profile)
            days_walked += 1
            current_day += timedelta(days=1)

        refreshed = self._refresh_archives(tx, changed_timestamp, now)
        return RecalcResult(
            start_day=start_day,
            end_day=end_day,
            days_walked=days_walked,
            updated_logs=updated_logs,
            refreshed_archives=refreshed,
            truncated=truncated,
        )

    def _rewrite_day(
        self,
        tx: LedgerTransaction,
        snapshot: LedgerSnapshot,
        day: date,
        profile: Profile,
    ) -> int:
        oracle = self.snapshot_builder.oracle
        streak = oracle.streak_length(
            snapshot.day_aggregate, snapshot.dry_day_flag, snapshot.anchor_date, day
        )
        updated = 0
        for log in snapshot.exercise_logs_by_day.get(day, []):
            base_kcal = oracle.exercise_burn(
                exercise_mets(log.exercise_key), log.minutes, profile
            )
            credit = oracle.exercise_credit(base_kcal, streak)
            memo = bonus_memo(log.memo, credit.bonus_multiplier)
            unchanged = (
                log.kcal is not None
                and abs(log.kcal - credit.kcal) <= KCAL_EPSILON
                and log.memo == memo
            )
            if unchanged:
                continue
            counted_kcal = self.snapshot_builder.log_kcal(log, profile)
            rewritten: ExerciseLog = replace(log, kcal=credit.kcal, memo=memo)
            tx.update_log(rewritten)
            aggregate = snapshot.day_aggregate.setdefault(day, DayAggregate())
            aggregate.balance += credit.kcal - counted_kcal
            updated += 1
        return updated

    def _refresh_archives(
        self, tx: LedgerTransaction, changed_timestamp: int, now: int
    ) -> int:
        # Archives that ended before the change cannot contain affected logs.
        refreshed = 0
        for archive in tx.list_archives(min_end_date=changed_timestamp):
            logs = tx.list_logs(archive.start_date, archive.end_date)
            total = sum(log.kcal or 0.0 for log in logs)
            if logs == archive.logs and total == archive.total_balance:
                continue
            tx.update_archive(
                replace(archive, logs=logs, total_balance=total, updated_at=now)
            )
            refreshed += 1
        return refreshed

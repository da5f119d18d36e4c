"""Staged ledger transaction over in-memory copies of the collections."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

from balance_tracker.domain.errors import CheckNotFoundError, LogNotFoundError
from balance_tracker.domain.ledger import CheckEntry, LogEntry
from balance_tracker.domain.periods import PeriodArchive
from balance_tracker.services.ledger_store import LedgerTransaction

RecordT = TypeVar("RecordT")


@dataclass
class CollectionChanges(Generic[RecordT]):
    """Upserts and deletions recorded for one collection."""

    upserted: dict[UUID, RecordT] = field(default_factory=dict)
    deleted: set[UUID] = field(default_factory=set)

    def record_upsert(self, record_id: UUID, record: RecordT) -> None:
        self.upserted[record_id] = record
        self.deleted.discard(record_id)

    def record_delete(self, record_id: UUID) -> None:
        self.upserted.pop(record_id, None)
        self.deleted.add(record_id)

    @property
    def write_count(self) -> int:
        return len(self.upserted) + len(self.deleted)


@dataclass
class ChangeSet:
    """Every write a transaction body performed."""

    logs: CollectionChanges[LogEntry] = field(default_factory=CollectionChanges)
    checks: CollectionChanges[CheckEntry] = field(default_factory=CollectionChanges)
    archives: CollectionChanges[PeriodArchive] = field(
        default_factory=CollectionChanges
    )

    @property
    def write_count(self) -> int:
        return (
            self.logs.write_count + self.checks.write_count + self.archives.write_count
        )

    @property
    def is_empty(self) -> bool:
        return self.write_count == 0


class StagedLedger(LedgerTransaction):
    """Applies writes to private copies and records them as a change set.

    The caller decides whether to publish the staged collections (commit) or
    drop them (rollback).
    """

    def __init__(
        self,
        logs: Iterable[LogEntry] = (),
        checks: Iterable[CheckEntry] = (),
        archives: Iterable[PeriodArchive] = (),
    ) -> None:
        self.logs: dict[UUID, LogEntry] = {log.id: log for log in logs}
        self.checks: dict[UUID, CheckEntry] = {check.id: check for check in checks}
        self.archives: dict[UUID, PeriodArchive] = {
            archive.id: archive for archive in archives
        }
        self.changes = ChangeSet()

    def list_logs(
        self, start: int | None = None, end: int | None = None
    ) -> list[LogEntry]:
        return sorted(
            (log for log in self.logs.values() if _in_range(log.timestamp, start, end)),
            key=lambda log: (log.timestamp, str(log.id)),
        )

    def get_log(self, log_id: UUID) -> LogEntry | None:
        return self.logs.get(log_id)

    def add_logs(self, logs: Iterable[LogEntry]) -> None:
        for log in logs:
            self.logs[log.id] = log
            self.changes.logs.record_upsert(log.id, log)

    def update_log(self, log: LogEntry) -> None:
        if log.id not in self.logs:
            raise LogNotFoundError(log.id)
        self.logs[log.id] = log
        self.changes.logs.record_upsert(log.id, log)

    def delete_logs(self, log_ids: Iterable[UUID]) -> None:
        for log_id in log_ids:
            if self.logs.pop(log_id, None) is not None:
                self.changes.logs.record_delete(log_id)

    def list_checks(
        self, start: int | None = None, end: int | None = None
    ) -> list[CheckEntry]:
        return sorted(
            (
                check
                for check in self.checks.values()
                if _in_range(check.timestamp, start, end)
            ),
            key=lambda check: (check.timestamp, str(check.id)),
        )

    def add_check(self, check: CheckEntry) -> None:
        self.checks[check.id] = check
        self.changes.checks.record_upsert(check.id, check)

    def update_check(self, check: CheckEntry) -> None:
        if check.id not in self.checks:
            raise CheckNotFoundError(check.id)
        self.checks[check.id] = check
        self.changes.checks.record_upsert(check.id, check)

    def delete_checks(self, check_ids: Iterable[UUID]) -> None:
        for check_id in check_ids:
            if self.checks.pop(check_id, None) is not None:
                self.changes.checks.record_delete(check_id)

    def list_archives(self, min_end_date: int | None = None) -> list[PeriodArchive]:
        return sorted(
            (
                archive
                for archive in self.archives.values()
                if min_end_date is None or archive.end_date >= min_end_date
            ),
            key=lambda archive: archive.start_date,
        )

    def find_archive_by_start(self, start_date: int) -> PeriodArchive | None:
        for archive in self.archives.values():
            if archive.start_date == start_date:
                return archive
        return None

    def add_archive(self, archive: PeriodArchive) -> None:
        self.archives[archive.id] = archive
        self.changes.archives.record_upsert(archive.id, archive)

    def update_archive(self, archive: PeriodArchive) -> None:
        if archive.id not in self.archives:
            raise KeyError(archive.id)
        self.archives[archive.id] = archive
        self.changes.archives.record_upsert(archive.id, archive)

    def clear_archives(self) -> None:
        for archive_id in list(self.archives):
            del self.archives[archive_id]
            self.changes.archives.record_delete(archive_id)


def _in_range(timestamp: int, start: int | None, end: int | None) -> bool:
    if start is not None and timestamp < start:
        return False
    return end is None or timestamp <= end

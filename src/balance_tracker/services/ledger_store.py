"""Persistence interfaces for the ledger collections."""

from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol, TypeVar
from uuid import UUID

from balance_tracker.domain.ledger import CheckEntry, LogEntry
from balance_tracker.domain.periods import PeriodArchive

T = TypeVar("T")


class LedgerTransaction(Protocol):
    """View over logs, checks and archives inside one atomic unit.

    Range bounds are inclusive epoch milliseconds; ``None`` leaves a side
    open. Results are ordered by timestamp ascending.
    """

    def list_logs(
        self, start: int | None = None, end: int | None = None
    ) -> list[LogEntry]:
        """Return logs within a timestamp range."""

    def get_log(self, log_id: UUID) -> LogEntry | None:
        """Return a log by id."""

    def add_logs(self, logs: Iterable[LogEntry]) -> None:
        """Insert logs."""

    def update_log(self, log: LogEntry) -> None:
        """Replace a stored log with the same id."""

    def delete_logs(self, log_ids: Iterable[UUID]) -> None:
        """Delete logs by id; unknown ids are ignored."""

    def list_checks(
        self, start: int | None = None, end: int | None = None
    ) -> list[CheckEntry]:
        """Return checks within a timestamp range."""

    def add_check(self, check: CheckEntry) -> None:
        """Insert a check."""

    def update_check(self, check: CheckEntry) -> None:
        """Replace a stored check with the same id."""

    def delete_checks(self, check_ids: Iterable[UUID]) -> None:
        """Delete checks by id."""

    def list_archives(self, min_end_date: int | None = None) -> list[PeriodArchive]:
        """Return archives ending at or after ``min_end_date``."""

    def find_archive_by_start(self, start_date: int) -> PeriodArchive | None:
        """Return the archive that starts at ``start_date``, if any."""

    def add_archive(self, archive: PeriodArchive) -> None:
        """Insert an archive."""

    def update_archive(self, archive: PeriodArchive) -> None:
        """Replace a stored archive with the same id."""

    def clear_archives(self) -> None:
        """Delete every archive."""


class LedgerStore(Protocol):
    """Storage that runs a body atomically over the ledger collections."""

    async def run_atomic(
        self, body: Callable[[LedgerTransaction], Awaitable[T]]
    ) -> T:
        """Run ``body``; commit all of its writes or none of them."""

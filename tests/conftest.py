"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TypeVar
from uuid import UUID, uuid4

import pytest

from balance_tracker.adapters.staged_ledger import ChangeSet, StagedLedger
from balance_tracker.config import Settings
from balance_tracker.containers import AppContainer, wire_container
from balance_tracker.domain.errors import LedgerCommitError
from balance_tracker.domain.ledger import BeerLog, CheckEntry, ExerciseLog, LogEntry
from balance_tracker.domain.periods import PeriodArchive
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction
from balance_tracker.services.settings import SettingsRepository
from balance_tracker.services.virtual_day import VirtualDayResolver, to_ms

T = TypeVar("T")

# Wednesday afternoon, well past the day boundary.
NOW = to_ms(datetime(2024, 3, 13, 15, 0, tzinfo=UTC))
TODAY = date(2024, 3, 13)


@dataclass
class FakeClock:
    """Settable clock returning epoch milliseconds."""

    now: int = NOW

    def __call__(self) -> int:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now += int(timedelta(days=days, hours=hours).total_seconds() * 1000)


@dataclass
class InMemoryLedgerStore(LedgerStore):
    """Ledger store that publishes staged collections on success."""

    logs: dict[UUID, LogEntry] = field(default_factory=dict)
    checks: dict[UUID, CheckEntry] = field(default_factory=dict)
    archives: dict[UUID, PeriodArchive] = field(default_factory=dict)
    commits: list[ChangeSet] = field(default_factory=list)
    fail_on_commit: bool = False

    async def run_atomic(
        self, body: Callable[[LedgerTransaction], Awaitable[T]]
    ) -> T:
        staged = StagedLedger(
            logs=self.logs.values(),
            checks=self.checks.values(),
            archives=self.archives.values(),
        )
        result = await body(staged)
        if not staged.changes.is_empty:
            if self.fail_on_commit:
                raise LedgerCommitError("Commit rejected")
            self.logs = staged.logs
            self.checks = staged.checks
            self.archives = staged.archives
            self.commits.append(staged.changes)
        return result

    @property
    def write_count(self) -> int:
        return sum(changes.write_count for changes in self.commits)

    def add(self, *entries: LogEntry | CheckEntry | PeriodArchive) -> None:
        for entry in entries:
            if isinstance(entry, CheckEntry):
                self.checks[entry.id] = entry
            elif isinstance(entry, PeriodArchive):
                self.archives[entry.id] = entry
            else:
                self.logs[entry.id] = entry


@dataclass
class InMemorySettingsRepository(SettingsRepository):
    """In-memory key-value settings for tests."""

    values: dict[str, str] = field(default_factory=dict)

    def get_value(self, key: str) -> str | None:
        return self.values.get(key)

    def set_value(self, key: str, value: str | None) -> None:
        if value is None:
            self.values.pop(key, None)
            return
        self.values[key] = value


def make_exercise(
    timestamp: int,
    kcal: float | None = 100.0,
    exercise_key: str = "walking",
    minutes: float = 30.0,
    memo: str = "",
) -> ExerciseLog:
    return ExerciseLog(
        id=uuid4(),
        timestamp=timestamp,
        kcal=kcal,
        exercise_key=exercise_key,
        minutes=minutes,
        name="Walking",
        memo=memo,
    )


def make_beer(timestamp: int, kcal: float | None = -140.0) -> BeerLog:
    return BeerLog(
        id=uuid4(),
        timestamp=timestamp,
        kcal=kcal,
        name="Pilsner",
        style="Pilsner",
        size="350",
        ml=350.0,
        abv=5.0,
        carb=3.0,
    )


def make_check(
    timestamp: int, is_dry_day: bool = True, is_saved: bool = True
) -> CheckEntry:
    return CheckEntry(
        id=uuid4(), timestamp=timestamp, is_dry_day=is_dry_day, is_saved=is_saved
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        api_token="api-token",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def resolver(clock: FakeClock) -> VirtualDayResolver:
    return VirtualDayResolver(clock=clock)


@pytest.fixture
def ledger_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def settings_repository() -> InMemorySettingsRepository:
    return InMemorySettingsRepository()


@pytest.fixture
def container(
    settings: Settings,
    ledger_store: InMemoryLedgerStore,
    settings_repository: InMemorySettingsRepository,
    clock: FakeClock,
) -> AppContainer:
    return wire_container(
        settings=settings,
        store=ledger_store,
        settings_repository=settings_repository,
        clock=clock,
    )

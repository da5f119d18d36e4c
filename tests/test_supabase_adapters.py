"""Tests for Supabase adapter implementations."""

import asyncio
from dataclasses import dataclass, field
from uuid import uuid4

import pytest

from balance_tracker.adapters.supabase_ledger_store import (
    SupabaseLedgerStore,
    archive_from_row,
    archive_to_row,
    log_from_row,
    log_to_row,
)
from balance_tracker.adapters.supabase_settings_repository import (
    SupabaseSettingsRepository,
)
from balance_tracker.domain.errors import LedgerCommitError
from balance_tracker.domain.periods import PeriodArchive, PeriodMode
from balance_tracker.services.ledger_store import LedgerTransaction
from tests.conftest import NOW, make_beer, make_exercise


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | dict[str, object] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    ranges: list[tuple[int, int]] = field(default_factory=list)
    orders: list[str] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.orders.append(column)
        return self

    def range(self, start: int, end: int) -> "FakeTable":
        self.ranges.append((start, end))
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeRpc:
    data: dict[str, object] | None

    def execute(self) -> FakeResponse:
        return FakeResponse(data=self.data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    rpc_result: dict[str, object] | None = field(
        default_factory=lambda: {"applied": 1}
    )

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append((name, params))
        return FakeRpc(data=self.rpc_result)


def test_ledger_store_commits_change_set_through_rpc() -> None:
    client = FakeSupabaseClient()
    existing = make_beer(NOW)
    client.table("logs").queue("select", [log_to_row(existing)])
    store = SupabaseLedgerStore(client)
    added = make_exercise(NOW + 1)

    async def body(tx: LedgerTransaction) -> int:
        tx.add_logs([added])
        tx.delete_logs([existing.id])
        return len(tx.list_logs())

    count = asyncio.run(store.run_atomic(body))

    assert count == 1
    name, params = client.rpc_calls[0]
    assert name == "apply_ledger_changes"
    changes = params["changes"]
    assert changes["logs"]["upsert"][0]["id"] == str(added.id)
    assert changes["logs"]["delete"] == [str(existing.id)]
    assert changes["checks"] == {"upsert": [], "delete": []}


def test_ledger_store_skips_rpc_without_writes() -> None:
    client = FakeSupabaseClient()
    client.table("logs").queue("select", [log_to_row(make_beer(NOW))])
    store = SupabaseLedgerStore(client)

    async def body(tx: LedgerTransaction) -> int:
        return len(tx.list_logs())

    assert asyncio.run(store.run_atomic(body)) == 1
    assert client.rpc_calls == []


def test_ledger_store_raises_when_commit_not_applied() -> None:
    client = FakeSupabaseClient(rpc_result=None)
    store = SupabaseLedgerStore(client)

    async def body(tx: LedgerTransaction) -> None:
        tx.add_logs([make_beer(NOW)])

    with pytest.raises(LedgerCommitError):
        asyncio.run(store.run_atomic(body))


def test_ledger_store_does_not_commit_failed_body() -> None:
    client = FakeSupabaseClient()
    store = SupabaseLedgerStore(client)

    async def body(tx: LedgerTransaction) -> None:
        tx.add_logs([make_beer(NOW)])
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(store.run_atomic(body))

    assert client.rpc_calls == []


def test_ledger_store_pages_through_large_tables(monkeypatch) -> None:
    monkeypatch.setattr(
        "balance_tracker.adapters.supabase_ledger_store.PAGE_SIZE", 2
    )
    client = FakeSupabaseClient()
    logs_table = client.table("logs")
    logs = [make_beer(NOW + offset) for offset in range(3)]
    logs_table.queue("select", [log_to_row(log) for log in logs[:2]])
    logs_table.queue("select", [log_to_row(logs[2])])
    store = SupabaseLedgerStore(client)

    async def body(tx: LedgerTransaction) -> int:
        return len(tx.list_logs())

    assert asyncio.run(store.run_atomic(body)) == 3
    assert logs_table.ranges == [(0, 1), (2, 3)]


def test_log_rows_keep_type_specific_fields() -> None:
    beer = make_beer(NOW)
    exercise = make_exercise(NOW, memo="Streak Bonus x1.2")

    assert log_from_row(log_to_row(beer)) == beer
    restored = log_from_row(log_to_row(exercise))
    assert restored == exercise
    assert log_to_row(exercise)["type"] == "exercise"


def test_archive_row_embeds_log_snapshot() -> None:
    log = make_beer(NOW)
    archive = PeriodArchive(
        id=uuid4(),
        start_date=NOW - 10,
        end_date=NOW + 10,
        mode=PeriodMode.WEEKLY,
        total_balance=-140.0,
        logs=[log],
        created_at=NOW,
    )

    row = archive_to_row(archive)

    assert row["logs"][0]["details"]["ml"] == 350.0
    assert archive_from_row(row) == archive


def test_supabase_settings_repository() -> None:
    client = FakeSupabaseClient()
    settings_table = client.table("app_settings")
    settings_table.queue("select", [{"value": "monthly"}])
    repository = SupabaseSettingsRepository(client)

    assert repository.get_value("period_mode") == "monthly"
    assert repository.get_value("period_start") is None

    repository.set_value("period_start", "123")
    assert isinstance(settings_table.last_payload, dict)
    assert settings_table.last_payload["value"] == "123"

    repository.set_value("custom_label", None)
    assert ("key", "custom_label") in settings_table.last_filters


def test_ledger_store_breaks_timestamp_ties_by_id() -> None:
    client = FakeSupabaseClient()
    first, second = make_beer(NOW), make_beer(NOW)
    client.table("logs").queue(
        "select", [log_to_row(second), log_to_row(first)]
    )
    store = SupabaseLedgerStore(client)

    async def body(tx: LedgerTransaction) -> list[str]:
        return [str(log.id) for log in tx.list_logs()]

    ordered = asyncio.run(store.run_atomic(body))

    assert ordered == sorted([str(first.id), str(second.id)])
    assert client.table("logs").orders == ["timestamp", "id"]
    assert client.table("period_archives").orders == ["start_date", "id"]

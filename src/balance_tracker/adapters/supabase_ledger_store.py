"""Supabase-backed ledger store."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar, assert_never
from uuid import UUID

from supabase import Client

from balance_tracker.adapters.staged_ledger import (
    ChangeSet,
    CollectionChanges,
    StagedLedger,
)
from balance_tracker.domain.errors import LedgerCommitError
from balance_tracker.domain.ledger import (
    BeerLog,
    CheckEntry,
    ExerciseLog,
    LogEntry,
    LogType,
)
from balance_tracker.domain.periods import PeriodArchive, PeriodMode
from balance_tracker.services.ledger_store import LedgerStore, LedgerTransaction

logger = logging.getLogger(__name__)

T = TypeVar("T")
RecordT = TypeVar("RecordT")

LOGS_TABLE = "logs"
CHECKS_TABLE = "checks"
ARCHIVES_TABLE = "period_archives"
PAGE_SIZE = 1000


@dataclass
class SupabaseLedgerStore(LedgerStore):
    """Loads the ledger fresh for every run and commits through one RPC call.

    The commit function applies the whole change set inside a single Postgres
    transaction, so a run either lands completely or not at all.
    """

    client: Client
    commit_function: str = "apply_ledger_changes"

    async def run_atomic(
        self, body: Callable[[LedgerTransaction], Awaitable[T]]
    ) -> T:
        """Run ``body`` against a staged copy and commit its writes."""
        staged = StagedLedger(
            logs=[log_from_row(row) for row in self._load(LOGS_TABLE)],
            checks=[check_from_row(row) for row in self._load(CHECKS_TABLE)],
            archives=[archive_from_row(row) for row in self._load(ARCHIVES_TABLE)],
        )
        try:
            result = await body(staged)
            if not staged.changes.is_empty:
                self._commit(staged.changes)
        except Exception:
            logger.exception("Ledger transaction rolled back")
            raise
        return result

    def _load(self, table: str) -> list[dict[str, object]]:
        rows: list[dict[str, object]] = []
        offset = 0
        # Ties on the sort column are broken by id so snapshots compare stably.
        sort_column = "start_date" if table == ARCHIVES_TABLE else "timestamp"
        while True:
            response = (
                self.client.table(table)
                .select("*")
                .order(sort_column)
                .order("id")
                .range(offset, offset + PAGE_SIZE - 1)
                .execute()
            )
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    def _commit(self, changes: ChangeSet) -> None:
        payload = {
            LOGS_TABLE: _collection_payload(changes.logs, log_to_row),
            CHECKS_TABLE: _collection_payload(changes.checks, check_to_row),
            ARCHIVES_TABLE: _collection_payload(changes.archives, archive_to_row),
        }
        response = self.client.rpc(self.commit_function, {"changes": payload}).execute()
        if response.data is None:
            raise LedgerCommitError(
                "Ledger change set was not applied",
                details={"writes": changes.write_count},
            )


def _collection_payload(
    changes: CollectionChanges[RecordT],
    to_row: Callable[[RecordT], dict[str, object]],
) -> dict[str, list[object]]:
    return {
        "upsert": [to_row(record) for record in changes.upserted.values()],
        "delete": [str(record_id) for record_id in sorted(changes.deleted, key=str)],
    }


def log_to_row(log: LogEntry) -> dict[str, object]:
    """Serialize a log into a ``logs`` row; type-specific fields go to details."""
    match log:
        case BeerLog():
            details: dict[str, object] = {
                "name": log.name,
                "style": log.style,
                "size": log.size,
                "ml": log.ml,
                "abv": log.abv,
                "carb": log.carb,
                "count": log.count,
                "brewery": log.brewery,
                "brand": log.brand,
                "rating": log.rating,
                "is_custom": log.is_custom,
                "custom_type": log.custom_type,
            }
        case ExerciseLog():
            details = {
                "name": log.name,
                "exercise_key": log.exercise_key,
                "minutes": log.minutes,
            }
        case _:
            assert_never(log)
    return {
        "id": str(log.id),
        "timestamp": log.timestamp,
        "type": log.type.value,
        "kcal": log.kcal,
        "memo": log.memo,
        "details": details,
    }


def log_from_row(row: dict[str, object]) -> LogEntry:
    details = row.get("details") or {}
    log_id = UUID(str(row["id"]))
    timestamp = int(row["timestamp"])
    kcal = float(row["kcal"]) if row.get("kcal") is not None else None
    memo = str(row.get("memo") or "")
    match LogType(row["type"]):
        case LogType.BEER:
            return BeerLog(
                id=log_id,
                timestamp=timestamp,
                kcal=kcal,
                name=str(details.get("name") or ""),
                style=details.get("style"),
                size=details.get("size"),
                ml=_optional_float(details.get("ml")),
                abv=_optional_float(details.get("abv")),
                carb=_optional_float(details.get("carb")),
                count=int(details.get("count") or 1),
                brewery=details.get("brewery"),
                brand=details.get("brand"),
                rating=details.get("rating"),
                memo=memo,
                is_custom=bool(details.get("is_custom", False)),
                custom_type=details.get("custom_type"),
            )
        case LogType.EXERCISE:
            return ExerciseLog(
                id=log_id,
                timestamp=timestamp,
                kcal=kcal,
                exercise_key=str(details.get("exercise_key") or ""),
                minutes=float(details.get("minutes") or 0.0),
                name=str(details.get("name") or ""),
                memo=memo,
            )


def check_to_row(check: CheckEntry) -> dict[str, object]:
    return {
        "id": str(check.id),
        "timestamp": check.timestamp,
        "is_dry_day": check.is_dry_day,
        "weight": check.weight,
        "is_saved": check.is_saved,
        "flags": dict(check.flags),
    }


def check_from_row(row: dict[str, object]) -> CheckEntry:
    return CheckEntry(
        id=UUID(str(row["id"])),
        timestamp=int(row["timestamp"]),
        is_dry_day=bool(row.get("is_dry_day", False)),
        weight=_optional_float(row.get("weight")),
        is_saved=bool(row.get("is_saved", False)),
        flags={
            str(key): bool(value) for key, value in (row.get("flags") or {}).items()
        },
    )


def archive_to_row(archive: PeriodArchive) -> dict[str, object]:
    return {
        "id": str(archive.id),
        "start_date": archive.start_date,
        "end_date": archive.end_date,
        "mode": archive.mode.value,
        "total_balance": archive.total_balance,
        "logs": [log_to_row(log) for log in archive.logs],
        "created_at": archive.created_at,
        "updated_at": archive.updated_at,
    }


def archive_from_row(row: dict[str, object]) -> PeriodArchive:
    updated_at = row.get("updated_at")
    return PeriodArchive(
        id=UUID(str(row["id"])),
        start_date=int(row["start_date"]),
        end_date=int(row["end_date"]),
        mode=PeriodMode(row["mode"]),
        total_balance=float(row.get("total_balance") or 0.0),
        logs=[log_from_row(log_row) for log_row in row.get("logs") or []],
        created_at=int(row.get("created_at") or 0),
        updated_at=int(updated_at) if updated_at is not None else None,
    )


def _optional_float(value: object) -> float | None:
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None

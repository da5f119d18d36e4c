"""Tests for period rollover and archive management."""

import asyncio
from datetime import UTC, date, datetime
from uuid import uuid4

from balance_tracker.domain.periods import PeriodArchive, PeriodMode, PeriodSettings
from balance_tracker.services.virtual_day import to_ms
from tests.conftest import make_beer, make_exercise

MONDAY_T0 = date(2024, 3, 4)
MONDAY_T1 = date(2024, 3, 11)


def _set_now(clock, moment: datetime) -> None:
    clock.now = to_ms(moment)


def test_weekly_rollover_archives_previous_week(
    container, ledger_store, clock
) -> None:
    _set_now(clock, datetime(2024, 3, 11, 15, 0, tzinfo=UTC))
    resolver = container.resolver
    t0 = resolver.day_start(MONDAY_T0)
    t1 = resolver.day_start(MONDAY_T1)
    before_tracking = make_beer(resolver.anchor(date(2024, 2, 28)), kcal=-70.0)
    last_week = make_beer(resolver.anchor(date(2024, 3, 6)))
    this_week = make_exercise(resolver.anchor(MONDAY_T1))
    ledger_store.add(before_tracking, last_week, this_week)
    container.period_settings_service.save(
        PeriodSettings(mode=PeriodMode.WEEKLY, start=t0)
    )

    result = asyncio.run(
        container.archive_service.check_rollover(
            container.period_settings_service.load()
        )
    )

    assert result.rolled_over is True
    assert result.archive is not None
    assert result.archive.start_date == t0
    assert result.archive.end_date == t1 - 1
    assert result.archive.logs == [before_tracking, last_week]
    assert result.archive.total_balance == -210.0
    assert container.period_settings_service.load().start == t1
    assert set(ledger_store.logs) == {
        before_tracking.id,
        last_week.id,
        this_week.id,
    }

    _set_now(clock, datetime(2024, 3, 14, 9, 0, tzinfo=UTC))
    again = asyncio.run(
        container.archive_service.check_rollover(
            container.period_settings_service.load()
        )
    )

    assert again.rolled_over is False
    assert len(ledger_store.archives) == 1


def test_archive_and_reset_is_idempotent(container, ledger_store) -> None:
    resolver = container.resolver
    t0 = resolver.day_start(MONDAY_T0)
    t1 = resolver.day_start(MONDAY_T1)
    ledger_store.add(make_beer(resolver.anchor(date(2024, 3, 5))))
    service = container.archive_service

    first = asyncio.run(service.archive_and_reset(t0, t1, PeriodMode.WEEKLY))
    writes = ledger_store.write_count
    second = asyncio.run(service.archive_and_reset(t0, t1, PeriodMode.WEEKLY))

    assert first.created is True
    assert second.created is False
    assert second.archive == first.archive
    assert len(ledger_store.archives) == 1
    assert ledger_store.write_count == writes


def test_archive_and_reset_skips_empty_period(container, ledger_store) -> None:
    resolver = container.resolver
    t0 = resolver.day_start(MONDAY_T0)
    t1 = resolver.day_start(MONDAY_T1)

    result = asyncio.run(
        container.archive_service.archive_and_reset(t0, t1, PeriodMode.WEEKLY)
    )

    assert result.archive is None
    assert result.settings.start == t1
    assert ledger_store.archives == {}


def test_custom_period_past_end_reports_ended(
    container, ledger_store, settings_repository
) -> None:
    resolver = container.resolver
    ledger_store.add(make_beer(resolver.anchor(date(2024, 3, 1))))
    settings = PeriodSettings(
        mode=PeriodMode.CUSTOM,
        start=resolver.day_start(date(2024, 2, 1)),
        end=resolver.day_end(date(2024, 3, 1)),
        label="Dry February",
    )
    container.period_settings_service.save(settings)
    stored = dict(settings_repository.values)

    result = asyncio.run(container.archive_service.check_rollover(settings))

    assert result.period_ended is True
    assert result.rolled_over is False
    assert result.archive is None
    assert ledger_store.archives == {}
    assert settings_repository.values == stored


def test_first_run_initializes_period_start(container) -> None:
    result = asyncio.run(
        container.archive_service.check_rollover(
            PeriodSettings(mode=PeriodMode.MONTHLY)
        )
    )

    expected = container.resolver.day_start(date(2024, 3, 1))
    assert result.rolled_over is False
    assert result.settings.start == expected
    assert container.period_settings_service.load().start == expected


def test_calculate_period_start(container) -> None:
    service = container.archive_service
    resolver = container.resolver

    assert service.calculate_period_start(PeriodMode.WEEKLY) == resolver.day_start(
        date(2024, 3, 11)
    )
    assert service.calculate_period_start(PeriodMode.MONTHLY) == resolver.day_start(
        date(2024, 3, 1)
    )
    assert service.calculate_period_start(PeriodMode.PERMANENT) == 0


def test_switch_to_permanent_restores_archived_logs(
    container, ledger_store, clock
) -> None:
    resolver = container.resolver
    archived_only = make_beer(resolver.anchor(date(2024, 2, 27)))
    still_live = make_beer(resolver.anchor(date(2024, 3, 5)))
    shared = make_beer(resolver.anchor(date(2024, 3, 6)))
    ledger_store.add(
        still_live,
        PeriodArchive(
            id=uuid4(),
            start_date=resolver.day_start(date(2024, 2, 26)),
            end_date=resolver.day_start(date(2024, 3, 4)) - 1,
            mode=PeriodMode.WEEKLY,
            total_balance=(archived_only.kcal or 0.0) + (shared.kcal or 0.0),
            logs=[archived_only, shared],
        ),
        PeriodArchive(
            id=uuid4(),
            start_date=resolver.day_start(date(2024, 3, 4)),
            end_date=resolver.day_start(date(2024, 3, 11)) - 1,
            mode=PeriodMode.WEEKLY,
            total_balance=(still_live.kcal or 0.0) + (shared.kcal or 0.0),
            logs=[still_live, shared],
        ),
    )

    result = asyncio.run(
        container.archive_service.update_period_settings(PeriodMode.PERMANENT)
    )

    assert result.restored_count == 2
    assert result.settings == PeriodSettings(mode=PeriodMode.PERMANENT, start=0)
    assert ledger_store.archives == {}
    assert set(ledger_store.logs) == {archived_only.id, still_live.id, shared.id}
    assert sum(log.kcal or 0.0 for log in ledger_store.logs.values()) == (
        (archived_only.kcal or 0.0) + (still_live.kcal or 0.0) + (shared.kcal or 0.0)
    )


def test_switch_to_custom_uses_given_days(container) -> None:
    resolver = container.resolver

    result = asyncio.run(
        container.archive_service.update_period_settings(
            PeriodMode.CUSTOM,
            start_day=date(2024, 3, 1),
            end_day=date(2024, 3, 31),
        )
    )

    assert result.settings.start == resolver.day_start(date(2024, 3, 1))
    assert result.settings.end == resolver.day_end(date(2024, 3, 31))
    assert result.settings.label == "Project"
    assert container.period_settings_service.load() == result.settings


def test_permanent_mode_never_rolls_over(container, ledger_store) -> None:
    result = asyncio.run(
        container.archive_service.check_rollover(
            PeriodSettings(mode=PeriodMode.PERMANENT)
        )
    )

    assert result.rolled_over is False
    assert ledger_store.commits == []


def test_archive_sweeps_older_unarchived_logs(container, ledger_store) -> None:
    resolver = container.resolver
    t0 = resolver.day_start(MONDAY_T0)
    t1 = resolver.day_start(MONDAY_T1)
    older = make_beer(resolver.anchor(date(2024, 2, 20)))
    in_week = make_exercise(resolver.anchor(date(2024, 3, 5)))
    ledger_store.add(older, in_week)

    result = asyncio.run(
        container.archive_service.archive_and_reset(t0, t1, PeriodMode.WEEKLY)
    )

    assert result.created is True
    assert result.archive is not None
    assert result.archive.logs == [older, in_week]
    assert result.archive.start_date == t0
    assert result.archive.total_balance == (older.kcal or 0.0) + (
        in_week.kcal or 0.0
    )


def test_archive_created_when_only_older_history_exists(
    container, ledger_store
) -> None:
    resolver = container.resolver
    older = make_beer(resolver.anchor(date(2024, 2, 20)))
    ledger_store.add(older)

    result = asyncio.run(
        container.archive_service.archive_and_reset(
            resolver.day_start(MONDAY_T0),
            resolver.day_start(MONDAY_T1),
            PeriodMode.WEEKLY,
        )
    )

    assert result.created is True
    assert result.archive is not None
    assert result.archive.logs == [older]


def test_restore_recalculates_from_oldest_restored_log(
    container, ledger_store
) -> None:
    resolver = container.resolver
    day1 = date(2024, 3, 12)
    day2 = date(2024, 3, 13)
    e1 = make_exercise(resolver.anchor(day1), kcal=None)
    e2 = make_exercise(resolver.anchor(day2), kcal=None)
    archived_beer = make_beer(resolver.anchor(day1) + 1000, kcal=-50.0)
    ledger_store.add(
        e1,
        e2,
        PeriodArchive(
            id=uuid4(),
            start_date=resolver.day_start(day1),
            end_date=resolver.day_end(day1),
            mode=PeriodMode.CUSTOM,
            total_balance=-50.0,
            logs=[e1, archived_beer],
        ),
    )

    result = asyncio.run(
        container.archive_service.update_period_settings(PeriodMode.PERMANENT)
    )

    assert result.restored_count == 1
    assert ledger_store.logs[archived_beer.id] == archived_beer
    # The restored drink is offset by e1, so day1 now counts toward e2's streak.
    assert ledger_store.logs[e2.id].memo == "Streak Bonus x1.2"
    again = asyncio.run(container.recalculator.recalculate(resolver.anchor(day1)))
    assert again.updated_logs == 0

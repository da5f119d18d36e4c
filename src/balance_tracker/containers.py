"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from balance_tracker.adapters.supabase_ledger_store import SupabaseLedgerStore
from balance_tracker.adapters.supabase_settings_repository import (
    SupabaseSettingsRepository,
)
from balance_tracker.config import Settings
from balance_tracker.domain.periods import PeriodMode
from balance_tracker.services.archives import ArchiveService
from balance_tracker.services.checks import CheckService
from balance_tracker.services.history import HistoryRecalculator
from balance_tracker.services.ledger_store import LedgerStore
from balance_tracker.services.logs import LogService
from balance_tracker.services.oracle import BonusOracle, StandardBonusOracle
from balance_tracker.services.settings import (
    PeriodSettingsService,
    ProfileService,
    SettingsRepository,
)
from balance_tracker.services.snapshot import SnapshotBuilder
from balance_tracker.services.virtual_day import VirtualDayResolver, current_time_ms


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    resolver: VirtualDayResolver
    store: LedgerStore
    period_settings_service: PeriodSettingsService
    profile_service: ProfileService
    recalculator: HistoryRecalculator
    archive_service: ArchiveService
    check_service: CheckService
    log_service: LogService
    close_resources: Callable[[], Awaitable[None]]


def wire_container(
    settings: Settings,
    store: LedgerStore,
    settings_repository: SettingsRepository,
    clock: Callable[[], int] = current_time_ms,
    oracle: BonusOracle | None = None,
) -> AppContainer:
    """Wire services around the given storage collaborators."""
    resolver = VirtualDayResolver(
        timezone_name=settings.timezone,
        boundary_hour=settings.day_boundary_hour,
        clock=clock,
    )
    snapshot_builder = SnapshotBuilder(
        resolver=resolver, oracle=oracle or StandardBonusOracle()
    )
    period_settings_service = PeriodSettingsService(
        settings_repository, default_mode=PeriodMode(settings.default_period_mode)
    )
    profile_service = ProfileService(settings_repository)
    recalculator = HistoryRecalculator(
        store=store,
        snapshot_builder=snapshot_builder,
        profile_service=profile_service,
        safety_cap=settings.recalc_safety_cap,
    )
    archive_service = ArchiveService(
        store=store,
        resolver=resolver,
        settings_service=period_settings_service,
        recalculator=recalculator,
    )
    check_service = CheckService(
        store=store,
        resolver=resolver,
        recalculator=recalculator,
        profile_service=profile_service,
    )
    log_service = LogService(
        store=store,
        snapshot_builder=snapshot_builder,
        recalculator=recalculator,
        profile_service=profile_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        resolver=resolver,
        store=store,
        period_settings_service=period_settings_service,
        profile_service=profile_service,
        recalculator=recalculator,
        archive_service=archive_service,
        check_service=check_service,
        log_service=log_service,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default Supabase-backed container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    return wire_container(
        settings=resolved_settings,
        store=SupabaseLedgerStore(
            supabase_client, commit_function=resolved_settings.ledger_commit_function
        ),
        settings_repository=SupabaseSettingsRepository(supabase_client),
    )

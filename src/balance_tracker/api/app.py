"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from balance_tracker.api.models import (
    ArchiveRequest,
    BeerLogRequest,
    BulkDeleteRequest,
    DailyCheckRequest,
    ExerciseLogRequest,
    PeriodSettingsRequest,
    RecalculateRequest,
    serialize_archive,
    serialize_log,
)
from balance_tracker.app_logging import configure_logging
from balance_tracker.containers import AppContainer
from balance_tracker.domain.errors import BalanceTrackerError, NotFoundError
from balance_tracker.services.checks import DailyCheckForm


def _get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_token(
    x_api_token: str | None = Header(default=None),
    container: AppContainer = Depends(_get_container),
) -> None:
    """Ensure requests include the configured API token."""
    if not x_api_token or x_api_token != container.settings.api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


async def balance_tracker_error_handler(
    request: Request, exc: BalanceTrackerError
) -> JSONResponse:
    status_code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, NotFoundError)
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        settings = state_container.period_settings_service.load()
        rollover = await state_container.archive_service.check_rollover(settings)
        if rollover.rolled_over:
            logger.info("Period rolled over on startup")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.add_exception_handler(BalanceTrackerError, balance_tracker_error_handler)

    router = APIRouter(dependencies=[Depends(require_token)])

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @router.get("/snapshot")
    async def snapshot(request: Request) -> dict[str, object]:
        """Return the active period's logs, checks and balance."""
        state_container = _get_container(request)
        settings = state_container.period_settings_service.load()
        result = await state_container.log_service.get_snapshot(settings)
        return {
            "mode": result.mode.value,
            "balance": result.balance,
            "logs": [serialize_log(log) for log in result.logs],
            "checks": jsonable_encoder(result.checks),
        }

    @router.get("/logs")
    async def list_logs(
        request: Request, offset: int = 0, limit: int = 20
    ) -> dict[str, object]:
        """Return a page of the active period's logs, newest first."""
        state_container = _get_container(request)
        settings = state_container.period_settings_service.load()
        page = await state_container.log_service.list_logs_page(
            settings, offset=offset, limit=limit
        )
        return {
            "logs": [serialize_log(log) for log in page.logs],
            "total_count": page.total_count,
        }

    @router.post("/logs/beer")
    async def create_beer_log(
        payload: BeerLogRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).log_service.save_beer_log(
            payload.to_input()
        )
        return {
            "log": serialize_log(result.log),
            "is_update": result.is_update,
            "kcal": result.kcal,
            "dry_day_canceled": result.dry_day_canceled,
        }

    @router.put("/logs/beer/{log_id}")
    async def update_beer_log(
        log_id: UUID, payload: BeerLogRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).log_service.save_beer_log(
            payload.to_input(), log_id=log_id
        )
        return {
            "log": serialize_log(result.log),
            "is_update": result.is_update,
            "kcal": result.kcal,
            "dry_day_canceled": result.dry_day_canceled,
        }

    @router.post("/logs/exercise")
    async def create_exercise_log(
        payload: ExerciseLogRequest, request: Request
    ) -> dict[str, object]:
        return await _save_exercise(_get_container(request), payload, None)

    @router.put("/logs/exercise/{log_id}")
    async def update_exercise_log(
        log_id: UUID, payload: ExerciseLogRequest, request: Request
    ) -> dict[str, object]:
        return await _save_exercise(_get_container(request), payload, log_id)

    @router.delete("/logs/{log_id}")
    async def delete_log(log_id: UUID, request: Request) -> dict[str, object]:
        result = await _get_container(request).log_service.delete_log(log_id)
        return {"success": True, "timestamp": result.timestamp}

    @router.post("/logs/bulk-delete")
    async def bulk_delete_logs(
        payload: BulkDeleteRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).log_service.bulk_delete_logs(
            payload.ids
        )
        return {
            "success": result.count > 0,
            "count": result.count,
            "oldest_timestamp": result.oldest_timestamp,
        }

    @router.post("/logs/{log_id}/repeat")
    async def repeat_log(log_id: UUID, request: Request) -> dict[str, object]:
        result = await _get_container(request).log_service.repeat_log(log_id)
        return {"log": serialize_log(result.log), "kcal": result.kcal}

    @router.post("/checks")
    async def save_check(
        payload: DailyCheckRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).check_service.save_daily_check(
            DailyCheckForm(
                day=payload.day,
                is_dry_day=payload.is_dry_day,
                weight=payload.weight,
                flags=payload.flags,
            )
        )
        return {
            "check": jsonable_encoder(result.check),
            "is_update": result.is_update,
            "is_dry_day": result.is_dry_day,
        }

    @router.post("/checks/today")
    async def ensure_today_check(request: Request) -> dict[str, object]:
        """Create today's placeholder check when the day has none yet."""
        created = await _get_container(request).check_service.ensure_today_check()
        return {
            "created": created is not None,
            "check": jsonable_encoder(created) if created else None,
        }

    @router.post("/recalculate")
    async def recalculate(
        payload: RecalculateRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).recalculator.recalculate(
            payload.changed_timestamp
        )
        return jsonable_encoder(result)

    @router.get("/archives")
    async def list_archives(request: Request) -> dict[str, object]:
        archives = await _get_container(request).archive_service.list_archives()
        return {"archives": [serialize_archive(archive) for archive in archives]}

    @router.post("/period/rollover")
    async def check_rollover(request: Request) -> dict[str, object]:
        """Check for a period change; weekly and monthly periods archive here."""
        state_container = _get_container(request)
        settings = state_container.period_settings_service.load()
        result = await state_container.archive_service.check_rollover(settings)
        return {
            "rolled_over": result.rolled_over,
            "period_ended": result.period_ended,
            "settings": jsonable_encoder(result.settings),
            "archive": serialize_archive(result.archive) if result.archive else None,
        }

    @router.post("/period/archive")
    async def archive_period(
        payload: ArchiveRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(request).archive_service.archive_and_reset(
            payload.current_start, payload.next_start, payload.mode
        )
        return {
            "created": result.created,
            "archive": serialize_archive(result.archive) if result.archive else None,
            "settings": jsonable_encoder(result.settings),
        }

    @router.put("/period/settings")
    async def update_period_settings(
        payload: PeriodSettingsRequest, request: Request
    ) -> dict[str, object]:
        result = await _get_container(
            request
        ).archive_service.update_period_settings(
            payload.mode,
            start_day=payload.start_day,
            end_day=payload.end_day,
            label=payload.label,
        )
        return {
            "settings": jsonable_encoder(result.settings),
            "restored_count": result.restored_count,
        }

    app.include_router(router)
    return app


async def _save_exercise(
    container: AppContainer, payload: ExerciseLogRequest, log_id: UUID | None
) -> dict[str, object]:
    when = payload.timestamp or payload.day or container.resolver.now()
    result = await container.log_service.save_exercise_log(
        payload.exercise_key,
        payload.minutes,
        when,
        apply_bonus=payload.apply_bonus,
        log_id=log_id,
        memo=payload.memo,
    )
    return {
        "log": serialize_log(result.log),
        "is_update": result.is_update,
        "kcal": result.kcal,
        "bonus_multiplier": result.bonus_multiplier,
    }

"""Request models and response serializers for the HTTP API."""

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from balance_tracker.domain.ledger import LogEntry
from balance_tracker.domain.periods import PeriodArchive, PeriodMode
from balance_tracker.services.logs import BeerInput


class BeerLogRequest(BaseModel):
    """Drink details submitted from the beer form."""

    timestamp: int
    ml: float = Field(gt=0)
    abv: float = Field(ge=0, le=100)
    count: int = Field(default=1, ge=1)
    style: str | None = None
    size: str | None = None
    carb: float | None = Field(default=None, ge=0)
    brewery: str | None = None
    brand: str | None = None
    rating: int | None = Field(default=None, ge=0, le=5)
    memo: str = ""
    is_custom: bool = False
    custom_type: Literal["dry", "brewed"] | None = None

    def to_input(self) -> BeerInput:
        return BeerInput(**self.model_dump())


class ExerciseLogRequest(BaseModel):
    """Exercise session; ``day`` stamps the session at the day's anchor."""

    exercise_key: str
    minutes: float = Field(gt=0)
    timestamp: int | None = None
    day: date | None = None
    apply_bonus: bool = True
    memo: str = ""


class BulkDeleteRequest(BaseModel):
    ids: list[UUID]


class DailyCheckRequest(BaseModel):
    day: date
    is_dry_day: bool
    weight: float | None = Field(default=None, gt=0)
    flags: dict[str, bool] = Field(default_factory=dict)


class RecalculateRequest(BaseModel):
    changed_timestamp: int


class ArchiveRequest(BaseModel):
    current_start: int
    next_start: int
    mode: PeriodMode


class PeriodSettingsRequest(BaseModel):
    mode: PeriodMode
    start_day: date | None = None
    end_day: date | None = None
    label: str | None = None


def serialize_log(log: LogEntry) -> dict[str, object]:
    """Encode a log including its type tag."""
    payload = jsonable_encoder(log)
    payload["type"] = log.type.value
    return payload


def serialize_archive(archive: PeriodArchive) -> dict[str, object]:
    payload = jsonable_encoder(archive)
    payload["logs"] = [serialize_log(log) for log in archive.logs]
    return payload

"""Virtual day resolution.

A virtual day starts ``boundary_hour`` hours after local midnight, so late
night activity is attributed to the previous calendar day. Every day-bucketing
decision in the engine goes through :class:`VirtualDayResolver`.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

ANCHOR_HOUR = 12


def current_time_ms() -> int:
    """Return the current instant in epoch milliseconds."""
    return int(datetime.now(tz=UTC).timestamp() * 1000)


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True)
class VirtualDayResolver:
    """Maps instants to virtual days in a fixed timezone."""

    timezone_name: str = "UTC"
    boundary_hour: int = 4
    clock: Callable[[], int] = field(default=current_time_ms, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.boundary_hour < ANCHOR_HOUR:
            raise ValueError("boundary_hour must be between 0 and 11")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)

    def now(self) -> int:
        return self.clock()

    def virtual_date(self, instant: int | None = None) -> date:
        """Return the virtual day an instant (default: now) belongs to."""
        ms = self.now() if instant is None else instant
        local = datetime.fromtimestamp(ms / 1000, tz=self.tz)
        return (local - timedelta(hours=self.boundary_hour)).date()

    def day_start(self, day: date) -> int:
        """Return the first instant of a virtual day."""
        return to_ms(
            datetime(day.year, day.month, day.day, self.boundary_hour, tzinfo=self.tz)
        )

    def day_end(self, day: date) -> int:
        """Return the last instant (inclusive) of a virtual day."""
        return self.day_start(day + timedelta(days=1)) - 1

    def anchor(self, day: date) -> int:
        """Return the representative instant used to stamp day-level records."""
        return to_ms(
            datetime(day.year, day.month, day.day, ANCHOR_HOUR, tzinfo=self.tz)
        )

"""Collapsing of redundant same-day check records."""

import logging
from collections.abc import Callable, Iterable
from datetime import date

from balance_tracker.domain.ledger import CheckEntry

logger = logging.getLogger(__name__)


def resolve_duplicates(
    raw_checks: Iterable[CheckEntry], day_of: Callable[[int], date]
) -> list[CheckEntry]:
    """Return one check per virtual day.

    On collision the record already kept wins, unless it is an unsaved
    placeholder and the incoming record was saved by the user.
    """
    by_day: dict[date, CheckEntry] = {}
    collisions = 0
    for check in raw_checks:
        day = day_of(check.timestamp)
        existing = by_day.get(day)
        if existing is None:
            by_day[day] = check
            continue
        collisions += 1
        if not existing.is_saved and check.is_saved:
            by_day[day] = check
    if collisions:
        logger.info("Collapsed %d duplicate check records", collisions)
    return list(by_day.values())


def split_primary(
    checks: list[CheckEntry],
) -> tuple[CheckEntry, list[CheckEntry]]:
    """Pick the record to keep among same-day checks.

    The first saved record wins, otherwise the first record. Returns the
    keeper and the redundant rest.
    """
    primary = next((check for check in checks if check.is_saved), checks[0])
    return primary, [check for check in checks if check.id != primary.id]

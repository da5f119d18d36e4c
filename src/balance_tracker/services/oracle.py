"""Streak and bonus calculations consulted by the recalculation engine."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol

from balance_tracker.domain.history import DayAggregate
from balance_tracker.domain.profile import Profile

ALCOHOL_DENSITY_G_PER_ML = 0.8
ALCOHOL_KCAL_PER_G = 7.0
CARB_KCAL_PER_G = 4.0
NET_METS_CORRECTION = 1.05

# (minimum streak, multiplier), highest threshold first.
STREAK_TIERS: tuple[tuple[int, float], ...] = ((7, 2.0), (3, 1.5), (1, 1.2))


@dataclass(frozen=True)
class ExerciseCredit:
    """Bonus-adjusted exercise credit."""

    kcal: float
    bonus_multiplier: float


class BonusOracle(Protocol):
    """Pure calculations the engine treats as opaque."""

    def streak_length(
        self,
        day_aggregate: dict[date, DayAggregate],
        dry_day_flag: dict[date, bool],
        anchor_date: date | None,
        target_day: date,
    ) -> int:
        """Return the qualifying-day streak ending at ``target_day``."""

    def exercise_credit(self, base_kcal: float, streak: int) -> ExerciseCredit:
        """Return the credit for an exercise given the current streak."""

    def exercise_burn(self, mets: float, minutes: float, profile: Profile) -> float:
        """Return the base kcal burned by an exercise session."""

    def beer_debit(self, ml: float, abv: float, carb: float, count: int) -> float:
        """Return the (negative) kcal debit of a drink."""


@dataclass(frozen=True)
class StandardBonusOracle(BonusOracle):
    """Default streak rules.

    The streak at a day counts the consecutive qualifying days immediately
    before it, never reaching past the anchor date. A day qualifies when it
    is flagged dry, or when its drinks were fully offset by exercise.
    """

    def streak_length(
        self,
        day_aggregate: dict[date, DayAggregate],
        dry_day_flag: dict[date, bool],
        anchor_date: date | None,
        target_day: date,
    ) -> int:
        """Count qualifying days walking backwards from the day before target."""
        if anchor_date is None:
            return 0
        streak = 0
        day = target_day - timedelta(days=1)
        while day >= anchor_date and _qualifies(day, day_aggregate, dry_day_flag):
            streak += 1
            day -= timedelta(days=1)
        return streak

    def exercise_credit(self, base_kcal: float, streak: int) -> ExerciseCredit:
        multiplier = 1.0
        for threshold, tier_multiplier in STREAK_TIERS:
            if streak >= threshold:
                multiplier = tier_multiplier
                break
        return ExerciseCredit(
            kcal=round(base_kcal * multiplier, 1), bonus_multiplier=multiplier
        )

    def exercise_burn(self, mets: float, minutes: float, profile: Profile) -> float:
        if minutes <= 0:
            return 0.0
        net_mets = max(mets - 1.0, 0.0)
        hours = minutes / 60.0
        return round(net_mets * profile.weight_kg * hours * NET_METS_CORRECTION, 1)

    def beer_debit(self, ml: float, abv: float, carb: float, count: int) -> float:
        alcohol_g = ml * (abv / 100.0) * ALCOHOL_DENSITY_G_PER_ML
        carb_g = (ml / 100.0) * carb
        per_drink = alcohol_g * ALCOHOL_KCAL_PER_G + carb_g * CARB_KCAL_PER_G
        return -round(per_drink * count, 1)


def _qualifies(
    day: date,
    day_aggregate: dict[date, DayAggregate],
    dry_day_flag: dict[date, bool],
) -> bool:
    if dry_day_flag.get(day):
        return True
    aggregate = day_aggregate.get(day)
    if aggregate is None:
        return False
    return aggregate.has_debit_event and aggregate.balance >= 0

"""Period settings and profile stored as key-value pairs."""

from dataclasses import dataclass
from typing import Protocol

from balance_tracker.domain.periods import PeriodMode, PeriodSettings
from balance_tracker.domain.profile import Profile

PERIOD_MODE_KEY = "period_mode"
PERIOD_START_KEY = "period_start"
PERIOD_END_KEY = "period_end_date"
CUSTOM_LABEL_KEY = "custom_label"
WEIGHT_KEY = "profile_weight"
HEIGHT_KEY = "profile_height"
AGE_KEY = "profile_age"
GENDER_KEY = "profile_gender"


class SettingsRepository(Protocol):
    """Plain key-value persistence."""

    def get_value(self, key: str) -> str | None:
        """Return the stored value for a key, if any."""

    def set_value(self, key: str, value: str | None) -> None:
        """Store a value; ``None`` removes it."""


@dataclass
class PeriodSettingsService:
    """Reads and writes the period configuration record."""

    repository: SettingsRepository
    default_mode: PeriodMode = PeriodMode.WEEKLY

    def load(self) -> PeriodSettings:
        """Return the persisted period settings."""
        raw_mode = self.repository.get_value(PERIOD_MODE_KEY)
        try:
            mode = PeriodMode(raw_mode) if raw_mode else self.default_mode
        except ValueError:
            mode = self.default_mode
        return PeriodSettings(
            mode=mode,
            start=_to_int(self.repository.get_value(PERIOD_START_KEY)) or 0,
            end=_to_int(self.repository.get_value(PERIOD_END_KEY)),
            label=self.repository.get_value(CUSTOM_LABEL_KEY),
        )

    def save(self, settings: PeriodSettings) -> None:
        """Persist every field of the period settings."""
        self.repository.set_value(PERIOD_MODE_KEY, settings.mode.value)
        self.repository.set_value(PERIOD_START_KEY, str(settings.start))
        self.repository.set_value(
            PERIOD_END_KEY, str(settings.end) if settings.end is not None else None
        )
        self.repository.set_value(CUSTOM_LABEL_KEY, settings.label)


@dataclass
class ProfileService:
    """Read access to the profile plus weight sync from daily checks."""

    repository: SettingsRepository

    def get_profile(self) -> Profile:
        """Return the profile, falling back to defaults for unset fields."""
        defaults = Profile()
        return Profile(
            weight_kg=_to_float(self.repository.get_value(WEIGHT_KEY))
            or defaults.weight_kg,
            height_cm=_to_float(self.repository.get_value(HEIGHT_KEY))
            or defaults.height_cm,
            age=_to_int(self.repository.get_value(AGE_KEY)) or defaults.age,
            gender=self.repository.get_value(GENDER_KEY) or defaults.gender,
        )

    def update_profile(self, profile: Profile) -> None:
        self.repository.set_value(WEIGHT_KEY, str(profile.weight_kg))
        self.repository.set_value(HEIGHT_KEY, str(profile.height_cm))
        self.repository.set_value(AGE_KEY, str(profile.age))
        self.repository.set_value(GENDER_KEY, profile.gender)

    def set_weight(self, weight_kg: float) -> None:
        self.repository.set_value(WEIGHT_KEY, str(weight_kg))


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _to_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None

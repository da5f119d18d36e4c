"""User profile model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Profile:
    """Body metrics used to estimate exercise burn."""

    weight_kg: float = 60.0
    height_cm: float = 160.0
    age: int = 30
    gender: str = "female"

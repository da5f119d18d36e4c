"""Reference tables for exercise intensity and beer styles."""

from dataclasses import dataclass

DEFAULT_METS = 3.0
DEFAULT_CARB_G_PER_100ML = 3.0
DRY_SPIRIT_CARB_G_PER_100ML = 0.0


@dataclass(frozen=True)
class ExerciseSpec:
    """Display label and metabolic equivalent for an exercise category."""

    label: str
    mets: float


@dataclass(frozen=True)
class StyleSpec:
    """Carbohydrate density of a beer style in grams per 100 ml."""

    carb: float


EXERCISES: dict[str, ExerciseSpec] = {
    "walking": ExerciseSpec(label="Walking", mets=3.5),
    "brisk_walking": ExerciseSpec(label="Brisk walking", mets=4.3),
    "jogging": ExerciseSpec(label="Jogging", mets=7.0),
    "running": ExerciseSpec(label="Running", mets=9.8),
    "cycling": ExerciseSpec(label="Cycling", mets=6.8),
    "swimming": ExerciseSpec(label="Swimming", mets=8.0),
    "strength": ExerciseSpec(label="Strength training", mets=5.0),
    "yoga": ExerciseSpec(label="Yoga", mets=2.5),
    "housework": ExerciseSpec(label="Housework", mets=3.3),
    "stepper": ExerciseSpec(label="Stepper", mets=6.0),
}

STYLES: dict[str, StyleSpec] = {
    "Pilsner": StyleSpec(carb=3.0),
    "Lager": StyleSpec(carb=3.1),
    "Pale Ale": StyleSpec(carb=3.5),
    "IPA": StyleSpec(carb=4.0),
    "Hazy IPA": StyleSpec(carb=4.5),
    "Stout": StyleSpec(carb=4.3),
    "Weizen": StyleSpec(carb=3.8),
    "Sour": StyleSpec(carb=3.5),
    "Low Carb": StyleSpec(carb=0.5),
}


def exercise_mets(exercise_key: str) -> float:
    """Return the METs for an exercise key, falling back to a moderate default."""
    entry = EXERCISES.get(exercise_key)
    return entry.mets if entry else DEFAULT_METS


def exercise_label(exercise_key: str) -> str:
    entry = EXERCISES.get(exercise_key)
    return entry.label if entry else "Exercise"


def style_carb(style: str | None) -> float:
    entry = STYLES.get(style or "")
    return entry.carb if entry else DEFAULT_CARB_G_PER_100ML

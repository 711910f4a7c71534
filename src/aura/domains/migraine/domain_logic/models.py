"""Migraine domain models: events, input snapshots, feature vector, risk results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Event tags
# ---------------------------------------------------------------------------

class Trigger(str, Enum):
    STRESS = "stress"
    LACK_OF_SLEEP = "lack_of_sleep"
    DEHYDRATION = "dehydration"
    WEATHER = "weather"
    HORMONES = "hormones"
    ALCOHOL = "alcohol"
    CAFFEINE = "caffeine"
    FOOD = "food"
    EXERCISE = "exercise"
    SCREEN_TIME = "screen_time"
    OTHER = "other"


class Medication(str, Enum):
    TYLENOL = "tylenol"
    IBUPROFEN = "ibuprofen"
    NAPROXEN = "naproxen"
    EXCEDRIN = "excedrin"
    UBRELVY = "ubrelvy"
    NURTEC = "nurtec"
    SYMBRAVO = "symbravo"
    SUMATRIPTAN = "sumatriptan"
    RIZATRIPTAN = "rizatriptan"
    ELETRIPTAN = "eletriptan"
    NARATRIPTAN = "naratriptan"
    FROVATRIPTAN = "frovatriptan"
    REYVOW = "reyvow"
    TRUDHESA = "trudhesa"
    ELYXYB = "elyxyb"
    OTHER = "other"


TRIPTANS = frozenset({
    Medication.SUMATRIPTAN,
    Medication.RIZATRIPTAN,
    Medication.ELETRIPTAN,
    Medication.NARATRIPTAN,
    Medication.FROVATRIPTAN,
})

NSAIDS = frozenset({
    Medication.IBUPROFEN,
    Medication.NAPROXEN,
    Medication.EXCEDRIN,
})


# ---------------------------------------------------------------------------
# Input snapshots (supplied by external collaborators)
# ---------------------------------------------------------------------------

_WEATHER_DESCRIPTIONS: dict[tuple[int, ...], str] = {
    (0,): "Clear sky",
    (1,): "Mainly clear",
    (2,): "Partly cloudy",
    (3,): "Overcast",
    (45, 48): "Foggy",
    (51, 53, 55): "Light to moderate drizzle",
    (56, 57): "Freezing drizzle",
    (61, 63, 65): "Light to heavy rain",
    (66, 67): "Freezing rain",
    (71, 73, 75): "Light to heavy snow",
    (77,): "Snow grains",
    (80, 81, 82): "Rain showers",
    (85, 86): "Snow showers",
    (95,): "Thunderstorm",
    (96, 99): "Thunderstorm with hail",
}


def describe_weather_code(code: int) -> str:
    """Map a WMO weather interpretation code to a short description."""
    for codes, text in _WEATHER_DESCRIPTIONS.items():
        if code in codes:
            return text
    return "Unknown conditions"


@dataclass(frozen=True)
class WeatherSnapshot:
    """Point-in-time weather, for "now" or for one forecast hour."""

    timestamp: datetime
    temperature: float              # °F
    pressure: float                 # hPa
    pressure_change_24h: float      # hPa, negative = falling
    precipitation: float = 0.0
    cloud_cover: int = 0            # %
    weather_code: int = 0           # WMO code
    condition: str = ""
    icon: str = ""

    @property
    def description(self) -> str:
        return describe_weather_code(self.weather_code)


@dataclass(frozen=True)
class ForecastHour:
    """One hour of an externally supplied weather forecast."""

    timestamp: datetime
    weather: WeatherSnapshot

    @property
    def hour(self) -> int:
        return self.timestamp.hour


@dataclass(frozen=True)
class HealthKitSnapshot:
    """Wearable readings. Every field is independently optional."""

    sleep_hours: float | None = None
    hrv: float | None = None
    resting_heart_rate: float | None = None
    steps: int | None = None
    days_since_menstruation: int | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class DailyCheckInData:
    """Same-day self report. Only meaningful on the calendar day it was made."""

    stress_level: int | None = None       # 1-5
    hydration_level: int | None = None    # 1-5
    caffeine_intake: int | None = None    # cups
    date: date = field(default_factory=date.today)

    def __post_init__(self) -> None:
        for name in ("stress_level", "hydration_level"):
            value = getattr(self, name)
            if value is not None and not 1 <= value <= 5:
                raise ValueError(f"{name} must be between 1 and 5, got {value}")
        if self.caffeine_intake is not None and self.caffeine_intake < 0:
            raise ValueError("caffeine_intake must not be negative")

    def is_valid_for(self, day: date) -> bool:
        return self.date == day

    def is_empty(self) -> bool:
        return (
            self.stress_level is None
            and self.hydration_level is None
            and self.caffeine_intake is None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stress_level": self.stress_level,
            "hydration_level": self.hydration_level,
            "caffeine_intake": self.caffeine_intake,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyCheckInData:
        return cls(
            stress_level=data.get("stress_level"),
            hydration_level=data.get("hydration_level"),
            caffeine_intake=data.get("caffeine_intake"),
            date=date.fromisoformat(data["date"]),
        )


# ---------------------------------------------------------------------------
# Historical events (owned by the event store, read-only here)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MigraineEvent:
    """An immutable snapshot of one logged migraine."""

    id: str
    start_time: datetime
    pain_level: int = 5
    end_time: datetime | None = None
    location: str = ""
    notes: str | None = None

    has_aura: bool = False
    has_photophobia: bool = False
    has_phonophobia: bool = False
    has_nausea: bool = False
    has_vomiting: bool = False
    has_wake_up_headache: bool = False
    has_tinnitus: bool = False
    has_vertigo: bool = False
    missed_work: bool = False
    missed_school: bool = False
    missed_events: bool = False

    triggers: frozenset[Trigger] = frozenset()
    medications: frozenset[Medication] = frozenset()

    # Weather recorded at the time of the event, if it was fetched
    weather: WeatherSnapshot | None = None

    @property
    def duration(self) -> timedelta | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def has_weather_data(self) -> bool:
        return self.weather is not None

    @property
    def took_triptan(self) -> bool:
        return bool(self.medications & TRIPTANS)

    @property
    def took_nsaid(self) -> bool:
        return bool(self.medications & NSAIDS)


# ---------------------------------------------------------------------------
# Feature vector
# ---------------------------------------------------------------------------

# Sentinels used when an input group is absent
NO_HISTORY_DAYS_SINCE = 30.0
DEFAULT_PRESSURE = 1013.0
DEFAULT_TEMPERATURE = 70.0

# Scored triggers, in evaluation order: (trigger, feature field, display name, icon)
SCORED_TRIGGERS: list[tuple[Trigger, str, str, str]] = [
    (Trigger.STRESS, "trigger_stress_freq", "Stress", "brain"),
    (Trigger.LACK_OF_SLEEP, "trigger_sleep_freq", "Lack of Sleep", "bed.double.fill"),
    (Trigger.DEHYDRATION, "trigger_dehydration_freq", "Dehydration", "drop.fill"),
    (Trigger.WEATHER, "trigger_weather_freq", "Weather", "cloud.sun.rain.fill"),
    (Trigger.HORMONES, "trigger_hormones_freq", "Menstrual", "waveform.path.ecg"),
    (Trigger.ALCOHOL, "trigger_alcohol_freq", "Alcohol", "wineglass.fill"),
    (Trigger.CAFFEINE, "trigger_caffeine_freq", "Caffeine", "cup.and.saucer.fill"),
    (Trigger.FOOD, "trigger_food_freq", "Food", "fork.knife"),
    (Trigger.EXERCISE, "trigger_exercise_freq", "Exercise", "figure.run"),
    (Trigger.SCREEN_TIME, "trigger_screen_time_freq", "Screen Time", "desktopcomputer"),
]


@dataclass(frozen=True)
class MigraineFeatureVector:
    """Fixed-schema numeric representation consumed by both scorers.

    The field set never changes with the inputs supplied: absent weather keeps
    the neutral defaults below and absent health / check-in data stays ``None``.
    """

    # Temporal
    day_of_week: int = 0                 # 0 = Sunday
    hour_of_day: int = 0
    month_of_year: int = 1
    is_weekend: bool = False

    # Recency / frequency
    days_since_last_migraine: float = NO_HISTORY_DAYS_SINCE
    migraines_in_last_7_days: int = 0
    migraines_in_last_30_days: int = 0
    avg_pain_level_last_5: float = 0.0

    # Weather
    pressure_current: float = DEFAULT_PRESSURE
    pressure_change_24h: float = 0.0
    pressure_change_rate: float = 0.0    # hPa/hr
    temperature: float = DEFAULT_TEMPERATURE
    precipitation: float = 0.0
    cloud_cover: int = 0
    weather_code: int = 0

    # Personal trigger frequencies (0-1)
    trigger_stress_freq: float = 0.0
    trigger_sleep_freq: float = 0.0
    trigger_dehydration_freq: float = 0.0
    trigger_weather_freq: float = 0.0
    trigger_hormones_freq: float = 0.0
    trigger_alcohol_freq: float = 0.0
    trigger_caffeine_freq: float = 0.0
    trigger_food_freq: float = 0.0
    trigger_exercise_freq: float = 0.0
    trigger_screen_time_freq: float = 0.0

    # Medication rebound
    triptan_uses_last_7_days: int = 0
    nsaid_uses_last_7_days: int = 0

    # Wearable (optional)
    sleep_hours_last_night: float | None = None
    hrv_last_night: float | None = None
    resting_heart_rate: float | None = None
    steps_yesterday: int | None = None
    days_since_menstruation: int | None = None

    # Daily check-in (optional)
    self_reported_stress: int | None = None
    self_reported_hydration: int | None = None
    self_reported_caffeine: int | None = None

    # Which input groups were supplied; not classifier features
    weather_present: bool = field(default=False, compare=False)
    health_present: bool = field(default=False, compare=False)
    check_in_present: bool = field(default=False, compare=False)

    def to_dict(self) -> dict[str, float | int | bool | None]:
        """Every feature, keyed by name. Absent optionals map to ``None``."""
        return {name: getattr(self, name) for name in FEATURE_NAMES}

    def as_row(self) -> list[float]:
        """Features as floats in ``FEATURE_NAMES`` order, ``NaN`` for absent values."""
        row = []
        for name in FEATURE_NAMES:
            value = getattr(self, name)
            row.append(math.nan if value is None else float(value))
        return row


_PRESENCE_FLAGS = {"weather_present", "health_present", "check_in_present"}

FEATURE_NAMES: tuple[str, ...] = tuple(
    f.name for f in fields(MigraineFeatureVector) if f.name not in _PRESENCE_FLAGS
)


# ---------------------------------------------------------------------------
# Risk results
# ---------------------------------------------------------------------------

class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @classmethod
    def from_risk(cls, risk: float) -> RiskLevel:
        if risk < 0.25:
            return cls.LOW
        if risk < 0.50:
            return cls.MODERATE
        if risk < 0.75:
            return cls.HIGH
        return cls.VERY_HIGH

    @classmethod
    def from_label(cls, label: str) -> RiskLevel:
        for level in cls:
            if level.label == label or level.value == label:
                return level
        raise ValueError(f"Unknown risk level: {label!r}")

    @property
    def label(self) -> str:
        return _LEVEL_DISPLAY[self][0]

    @property
    def color(self) -> str:
        return _LEVEL_DISPLAY[self][1]

    @property
    def icon(self) -> str:
        return _LEVEL_DISPLAY[self][2]


_LEVEL_DISPLAY: dict[RiskLevel, tuple[str, str, str]] = {
    RiskLevel.LOW: ("Low", "green", "checkmark.shield.fill"),
    RiskLevel.MODERATE: ("Moderate", "yellow", "exclamationmark.shield.fill"),
    RiskLevel.HIGH: ("High", "orange", "exclamationmark.triangle.fill"),
    RiskLevel.VERY_HIGH: ("Very High", "red", "xmark.shield.fill"),
}


class PredictionSource(str, Enum):
    RULE_BASED = "rule_based"
    MACHINE_LEARNING = "machine_learning"
    HYBRID = "hybrid"

    @property
    def description(self) -> str:
        return {
            PredictionSource.RULE_BASED: "Pattern Analysis",
            PredictionSource.MACHINE_LEARNING: "Personalized ML Model",
            PredictionSource.HYBRID: "Hybrid Analysis",
        }[self]

    @property
    def icon(self) -> str:
        return {
            PredictionSource.RULE_BASED: "brain",
            PredictionSource.MACHINE_LEARNING: "cpu",
            PredictionSource.HYBRID: "brain.head.profile",
        }[self]


class ModelStatus(str, Enum):
    RULE_BASED = "rule_based"
    TRAINING = "training"
    ML_ACTIVE = "ml_active"
    ML_FAILED = "ml_failed"


@dataclass(frozen=True)
class RiskFactor:
    """One fired rule and its contribution to the total risk."""

    name: str
    contribution: float
    icon: str
    color: str
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "contribution": round(self.contribution, 4),
            "icon": self.icon,
            "color": self.color,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class MigraineRiskScore:
    """A single risk estimate with its explanation and provenance."""

    overall_risk: float                  # 0-1
    risk_level: RiskLevel
    top_factors: list[RiskFactor]
    recommendations: list[str]
    confidence: float                    # 0-0.95
    prediction_source: PredictionSource
    timestamp: datetime

    @property
    def risk_percentage(self) -> int:
        return int(self.overall_risk * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_risk": round(self.overall_risk, 4),
            "risk_percentage": self.risk_percentage,
            "risk_level": self.risk_level.value,
            "risk_level_label": self.risk_level.label,
            "top_factors": [f.to_dict() for f in self.top_factors],
            "recommendations": list(self.recommendations),
            "confidence": round(self.confidence, 4),
            "prediction_source": self.prediction_source.value,
            "prediction_source_description": self.prediction_source.description,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class HourlyRiskForecast:
    """Tier 1 risk for one forecast hour."""

    hour: int
    timestamp: datetime
    risk: float
    primary_factor: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hour": self.hour,
            "timestamp": self.timestamp.isoformat(),
            "risk": round(self.risk, 4),
            "primary_factor": self.primary_factor,
        }

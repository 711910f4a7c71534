"""Feature extraction: history + optional snapshots -> MigraineFeatureVector.

Every function here is pure. Inputs are read, never mutated, so the extractor
can be shared between concurrent scoring and forecast calls.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from aura.domains.migraine.domain_logic.models import (
    DEFAULT_TEMPERATURE,
    NO_HISTORY_DAYS_SINCE,
    SCORED_TRIGGERS,
    DailyCheckInData,
    HealthKitSnapshot,
    MigraineEvent,
    MigraineFeatureVector,
    WeatherSnapshot,
)

_SECONDS_PER_DAY = 86_400


def day_of_week(moment: datetime) -> int:
    """Day index with Sunday = 0 through Saturday = 6."""
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class WeatherAverages:
    """Mean weather across migraines that had weather recorded."""

    avg_pressure_change: float
    avg_temperature: float
    avg_precipitation: float
    sample_size: int


class FeatureExtractor:
    """Builds feature vectors and historical time distributions.

    Usage::

        extractor = FeatureExtractor()
        features = extractor.extract(history, weather=now_weather)
        by_hour = extractor.hourly_distribution(history)
    """

    def extract(
        self,
        history: Sequence[MigraineEvent],
        weather: WeatherSnapshot | None = None,
        health: HealthKitSnapshot | None = None,
        check_in: DailyCheckInData | None = None,
        reference_time: datetime | None = None,
    ) -> MigraineFeatureVector:
        """Build the feature vector "as of" ``reference_time`` (default: now)."""
        now = reference_time or datetime.now()
        values: dict = {}

        # --- Temporal ---
        values["day_of_week"] = day_of_week(now)
        values["hour_of_day"] = now.hour
        values["month_of_year"] = now.month
        values["is_weekend"] = now.weekday() >= 5

        # --- Recency / frequency ---
        ordered = sorted(history, key=lambda e: e.start_time, reverse=True)
        seven_days_ago = now - timedelta(days=7)
        thirty_days_ago = now - timedelta(days=30)

        if ordered:
            since_last = (now - ordered[0].start_time).total_seconds() / _SECONDS_PER_DAY
            values["days_since_last_migraine"] = max(0.0, since_last)
            last_five = ordered[:5]
            values["avg_pain_level_last_5"] = sum(e.pain_level for e in last_five) / len(last_five)
        else:
            values["days_since_last_migraine"] = NO_HISTORY_DAYS_SINCE

        recent_week = [e for e in ordered if e.start_time >= seven_days_ago]
        values["migraines_in_last_7_days"] = len(recent_week)
        values["migraines_in_last_30_days"] = sum(
            1 for e in ordered if e.start_time >= thirty_days_ago
        )

        # --- Weather ---
        if weather is not None:
            values["pressure_current"] = weather.pressure
            values["pressure_change_24h"] = weather.pressure_change_24h
            values["pressure_change_rate"] = weather.pressure_change_24h / 24.0
            values["temperature"] = weather.temperature
            values["precipitation"] = weather.precipitation
            values["cloud_cover"] = weather.cloud_cover
            values["weather_code"] = weather.weather_code

        # --- Trigger frequencies ---
        # Normalized by all history, including entries logged without triggers.
        total = max(len(history), 1)
        trigger_counts = Counter(t for e in history for t in e.triggers)
        for trigger, field_name, _, _ in SCORED_TRIGGERS:
            values[field_name] = trigger_counts[trigger] / total

        # --- Medication rebound ---
        values["triptan_uses_last_7_days"] = sum(1 for e in recent_week if e.took_triptan)
        values["nsaid_uses_last_7_days"] = sum(1 for e in recent_week if e.took_nsaid)

        # --- Wearable ---
        if health is not None:
            values["sleep_hours_last_night"] = health.sleep_hours
            values["hrv_last_night"] = health.hrv
            values["resting_heart_rate"] = health.resting_heart_rate
            values["steps_yesterday"] = health.steps
            values["days_since_menstruation"] = health.days_since_menstruation

        # --- Daily check-in ---
        if check_in is not None:
            values["self_reported_stress"] = check_in.stress_level
            values["self_reported_hydration"] = check_in.hydration_level
            values["self_reported_caffeine"] = check_in.caffeine_intake

        return MigraineFeatureVector(
            **values,
            weather_present=weather is not None,
            health_present=health is not None and not health.is_empty(),
            check_in_present=check_in is not None and not check_in.is_empty(),
        )

    # ------------------------------------------------------------------
    # Historical patterns
    # ------------------------------------------------------------------

    def hourly_distribution(self, history: Sequence[MigraineEvent]) -> dict[int, float]:
        """Share of migraines starting in each hour 0-23. Empty history -> {}."""
        if not history:
            return {}
        counts = Counter(e.start_time.hour for e in history)
        total = len(history)
        return {hour: counts[hour] / total for hour in range(24)}

    def day_of_week_distribution(self, history: Sequence[MigraineEvent]) -> dict[int, float]:
        """Share of migraines starting on each weekday, Sunday = 0. Empty -> {}."""
        if not history:
            return {}
        counts = Counter(day_of_week(e.start_time) for e in history)
        total = len(history)
        return {day: counts[day] / total for day in range(7)}

    def average_weather_during_migraines(
        self, history: Sequence[MigraineEvent]
    ) -> WeatherAverages:
        """Average weather across events with recorded weather."""
        with_weather = [e.weather for e in history if e.weather is not None]
        if not with_weather:
            return WeatherAverages(0.0, DEFAULT_TEMPERATURE, 0.0, 0)

        n = len(with_weather)
        return WeatherAverages(
            avg_pressure_change=sum(w.pressure_change_24h for w in with_weather) / n,
            avg_temperature=sum(w.temperature for w in with_weather) / n,
            avg_precipitation=sum(w.precipitation for w in with_weather) / n,
            sample_size=n,
        )

"""Deterministic mock inputs for development and testing.

The mock history describes an episodic migraine patient: roughly two dozen
attacks over two months, stress and poor sleep as the dominant triggers, a
preference for late-afternoon onsets. Every generator takes an anchor time so
results are reproducible in tests.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from aura.domains.migraine.domain_logic.models import (
    ForecastHour,
    HealthKitSnapshot,
    Medication,
    MigraineEvent,
    Trigger,
    WeatherSnapshot,
)

_TRIGGER_WEIGHTS = [
    (Trigger.STRESS, 0.55),
    (Trigger.LACK_OF_SLEEP, 0.45),
    (Trigger.WEATHER, 0.30),
    (Trigger.DEHYDRATION, 0.20),
    (Trigger.CAFFEINE, 0.15),
    (Trigger.SCREEN_TIME, 0.15),
    (Trigger.ALCOHOL, 0.05),
]

_ONSET_HOURS = [7, 9, 13, 15, 16, 16, 17, 17, 18, 21]


def get_mock_history(
    now: datetime | None = None,
    count: int = 24,
    span_days: int = 60,
    seed: int = 7,
) -> list[MigraineEvent]:
    """Return ``count`` migraines spread over the last ``span_days`` days."""
    anchor = now or datetime.now()
    rng = random.Random(seed)
    events = []

    for i in range(count):
        day_offset = rng.randint(1, span_days)
        start = (anchor - timedelta(days=day_offset)).replace(
            hour=rng.choice(_ONSET_HOURS), minute=rng.choice([0, 15, 30, 45]),
            second=0, microsecond=0,
        )
        triggers = frozenset(t for t, p in _TRIGGER_WEIGHTS if rng.random() < p)

        medications: set[Medication] = set()
        if rng.random() < 0.5:
            medications.add(Medication.SUMATRIPTAN)
        if rng.random() < 0.4:
            medications.add(Medication.IBUPROFEN)

        pressure_change = round(rng.uniform(-8.0, 3.0), 1)
        weather = WeatherSnapshot(
            timestamp=start,
            temperature=round(rng.uniform(40.0, 85.0), 1),
            pressure=round(1013.0 + pressure_change, 1),
            pressure_change_24h=pressure_change,
            precipitation=round(max(0.0, rng.uniform(-1.0, 4.0)), 1),
            cloud_cover=rng.randint(0, 100),
            weather_code=rng.choice([0, 1, 2, 3, 61, 63, 80]),
        )

        events.append(MigraineEvent(
            id=f"mock-{i:03d}",
            start_time=start,
            end_time=start + timedelta(hours=rng.randint(2, 18)),
            pain_level=rng.randint(3, 9),
            location=rng.choice(["left temple", "right temple", "forehead", "behind eyes"]),
            has_aura=rng.random() < 0.25,
            has_photophobia=rng.random() < 0.7,
            has_phonophobia=rng.random() < 0.5,
            has_nausea=rng.random() < 0.4,
            triggers=triggers,
            medications=frozenset(medications),
            weather=weather,
        ))

    return sorted(events, key=lambda e: e.start_time)


def get_mock_current_weather(now: datetime | None = None) -> WeatherSnapshot:
    """A falling-pressure, rainy afternoon."""
    anchor = now or datetime.now()
    return WeatherSnapshot(
        timestamp=anchor,
        temperature=62.0,
        pressure=1006.5,
        pressure_change_24h=-4.2,
        precipitation=1.8,
        cloud_cover=90,
        weather_code=61,
        condition="Light rain",
        icon="cloud.rain.fill",
    )


def get_mock_forecast_hours(
    now: datetime | None = None, hours: int = 24
) -> list[ForecastHour]:
    """Hourly forecast starting at the next full hour; pressure keeps falling, then recovers."""
    anchor = (now or datetime.now()).replace(minute=0, second=0, microsecond=0)
    forecast = []
    for i in range(1, hours + 1):
        ts = anchor + timedelta(hours=i)
        change = -4.2 - 0.25 * i if i <= 12 else -7.2 + 0.4 * (i - 12)
        weather = WeatherSnapshot(
            timestamp=ts,
            temperature=62.0 - 0.3 * i,
            pressure=round(1010.7 + change, 1),
            pressure_change_24h=round(change, 1),
            precipitation=1.5 if i <= 10 else 0.0,
            cloud_cover=90 if i <= 10 else 40,
            weather_code=63 if i <= 10 else 2,
        )
        forecast.append(ForecastHour(timestamp=ts, weather=weather))
    return forecast


def get_mock_health_snapshot() -> HealthKitSnapshot:
    """A short night with suppressed HRV."""
    return HealthKitSnapshot(
        sleep_hours=5.6,
        hrv=34.0,
        resting_heart_rate=66.0,
        steps=5400,
        days_since_menstruation=12,
    )

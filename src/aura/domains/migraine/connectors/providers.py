"""Mock connector implementations. Always available."""

from __future__ import annotations

from datetime import datetime

from aura.domains.migraine.connectors.mock_data import (
    get_mock_current_weather,
    get_mock_forecast_hours,
    get_mock_health_snapshot,
    get_mock_history,
)
from aura.domains.migraine.domain_logic.models import (
    ForecastHour,
    HealthKitSnapshot,
    MigraineEvent,
    WeatherSnapshot,
)


class MockMigraineHistoryProvider:
    """Serves the deterministic mock history, anchored at construction time."""

    def __init__(self, now: datetime | None = None, count: int = 24) -> None:
        self._events = get_mock_history(now=now, count=count)

    async def get_history(self) -> list[MigraineEvent]:
        return list(self._events)

    @property
    def data_source(self) -> str:
        return "mock"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": (
                "Using simulated migraine history. "
                "Point HISTORY_EXPORT_PATH at a diary export for real data."
            ),
        }


class MockWeatherProvider:
    def __init__(self, now: datetime | None = None) -> None:
        self._now = now

    async def get_current_weather(self) -> WeatherSnapshot | None:
        return get_mock_current_weather(self._now)

    async def get_forecast_hours(self) -> list[ForecastHour]:
        return get_mock_forecast_hours(self._now)


class MockHealthReadingsProvider:
    async def get_health_snapshot(self) -> HealthKitSnapshot | None:
        return get_mock_health_snapshot()

"""Migraine engine connectors: boundaries to the external collaborators."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from aura.domains.migraine.domain_logic.models import (
    ForecastHour,
    HealthKitSnapshot,
    MigraineEvent,
    WeatherSnapshot,
)


@runtime_checkable
class MigraineHistoryProvider(Protocol):
    """Read-only access to the persistent migraine event store."""

    async def get_history(self) -> list[MigraineEvent]:
        """All logged migraines, any order."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active source: 'json_export' or 'mock'."""
        ...

    def get_provenance(self) -> dict[str, str]:
        """Provenance metadata suitable for merging into a tool response."""
        ...


@runtime_checkable
class WeatherProvider(Protocol):
    """Current conditions plus an hourly forecast for the user's location."""

    async def get_current_weather(self) -> WeatherSnapshot | None:
        ...

    async def get_forecast_hours(self) -> list[ForecastHour]:
        ...


@runtime_checkable
class HealthReadingsProvider(Protocol):
    """Wearable readings: sleep, HRV, resting HR, steps, cycle day."""

    async def get_health_snapshot(self) -> HealthKitSnapshot | None:
        ...


@runtime_checkable
class CompanionSyncChannel(Protocol):
    """Outbound channel to the companion device. Delivery is not confirmed."""

    def send_risk_update(self, payload: dict[str, Any]) -> None:
        ...

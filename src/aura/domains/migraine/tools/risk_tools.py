"""MCP tools for migraine risk scoring, forecasting and daily check-ins.

Collaborator failures (weather service down, wearable unavailable) never fail
a tool: the missing snapshot is treated as absent and scoring continues with
what is there.
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from aura.core.storage.state import StateStoreError
from aura.domains.migraine.domain_logic.feature_extractor import FeatureExtractor
from aura.domains.migraine.domain_logic.models import (
    SCORED_TRIGGERS,
    DailyCheckInData,
    ForecastHour,
    HealthKitSnapshot,
    MigraineEvent,
    WeatherSnapshot,
)

if TYPE_CHECKING:
    from aura.core.audit.logger import AuditLogger
    from aura.core.storage.state import EngineStateStore
    from aura.domains.migraine.connectors import (
        HealthReadingsProvider,
        MigraineHistoryProvider,
        WeatherProvider,
    )
    from aura.domains.migraine.ml.trainer import ClassifierTrainer
    from aura.domains.migraine.service import MigrainePredictionService

logger = logging.getLogger(__name__)

_DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def register_risk_tools(
    mcp: FastMCP,
    service: MigrainePredictionService,
    history_provider: MigraineHistoryProvider,
    state: EngineStateStore,
    trainer: ClassifierTrainer,
    weather_provider: WeatherProvider | None = None,
    health_provider: HealthReadingsProvider | None = None,
    audit_logger: AuditLogger | None = None,
    backend_name: str = "none",
    min_ml_entries: int = 20,
) -> None:
    """Register migraine risk tools on the MCP server."""

    extractor = service.extractor

    # ------------------------------------------------------------------
    # Input gathering
    # ------------------------------------------------------------------

    async def _current_weather() -> WeatherSnapshot | None:
        if weather_provider is None:
            return None
        try:
            return await weather_provider.get_current_weather()
        except Exception:
            logger.warning("Weather unavailable; scoring without weather", exc_info=True)
            return None

    async def _health_snapshot() -> HealthKitSnapshot | None:
        if health_provider is None:
            return None
        try:
            return await health_provider.get_health_snapshot()
        except Exception:
            logger.warning("Health readings unavailable; scoring without them", exc_info=True)
            return None

    async def _forecast_hours() -> list[ForecastHour]:
        if weather_provider is None:
            return []
        try:
            return await weather_provider.get_forecast_hours()
        except Exception:
            logger.warning("Weather forecast unavailable", exc_info=True)
            return []

    def _todays_check_in() -> DailyCheckInData | None:
        try:
            return state.load_check_in(date.today())
        except StateStoreError:
            logger.warning("Stored check-in unreadable; ignoring it", exc_info=True)
            return None

    def _audit(
        tool_name: str,
        tool_input: Any,
        start_time: float,
        *,
        prediction_source: str | None = None,
        error: Exception | None = None,
    ) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            prediction_source=prediction_source,
            duration_ms=(time.monotonic() - start_time) * 1000,
            status="failure" if error else "success",
            error_type=type(error).__name__ if error else None,
        )

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    @mcp.tool
    async def migraine_risk(
        ctx: Context,
        include_forecast: bool = False,
    ) -> str:
        """Calculate your current migraine risk from history, weather, wearable and check-in.

        Returns the overall risk (0-1), risk level, the top contributing factors
        with explanations, recommendations, confidence, and which scoring tier
        produced the result.

        Args:
            include_forecast: Also return the 24-hour hourly risk forecast.
        """
        start_time = time.monotonic()
        tool_input = {"include_forecast": include_forecast}
        try:
            history = await history_provider.get_history()
            weather = await _current_weather()
            health = await _health_snapshot()
            check_in = _todays_check_in()

            score = await service.calculate_risk_score(
                history, weather=weather, health=health, check_in=check_in
            )
            result: dict[str, Any] = {
                "status": "ok",
                "risk": score.to_dict(),
                "inputs_used": {
                    "history_size": len(history),
                    "weather": weather is not None,
                    "health": health is not None and not health.is_empty(),
                    "check_in": check_in is not None and not check_in.is_empty(),
                },
                "model_status": service.model_status.value,
                "provenance": history_provider.get_provenance(),
            }

            if include_forecast and weather_provider is not None:
                hours = await _forecast_hours()
                forecast = service.generate_24_hour_forecast(
                    history, hours, health=health, check_in=check_in
                )
                result["forecast"] = [h.to_dict() for h in forecast]
        except Exception as exc:
            _audit("migraine_risk", tool_input, start_time, error=exc)
            raise

        _audit(
            "migraine_risk", tool_input, start_time,
            prediction_source=score.prediction_source.value,
        )
        return json.dumps(result, indent=2)

    @mcp.tool
    async def migraine_forecast(ctx: Context) -> str:
        """Hour-by-hour migraine risk for the next 24 hours, driven by the weather forecast.

        Uses pattern analysis only. Returns an empty forecast when no migraines
        have been logged yet or no weather forecast is available.
        """
        start_time = time.monotonic()
        try:
            history = await history_provider.get_history()
            hours = await _forecast_hours()
            forecast = service.generate_24_hour_forecast(
                history, hours, health=await _health_snapshot(), check_in=_todays_check_in()
            )
        except Exception as exc:
            _audit("migraine_forecast", None, start_time, error=exc)
            raise

        peak = max(forecast, key=lambda h: h.risk) if forecast else None
        _audit("migraine_forecast", None, start_time, prediction_source="rule_based")

        if not history:
            message = "Log your first migraine to start building your personal risk profile."
        elif not forecast:
            message = "No weather forecast is available right now."
        else:
            message = None

        return json.dumps({
            "status": "ok" if forecast else "no_forecast",
            "hours": [h.to_dict() for h in forecast],
            "peak": peak.to_dict() if peak else None,
            "message": message,
        }, indent=2)

    @mcp.tool
    async def current_migraine_risk(ctx: Context) -> str:
        """Return the most recently calculated risk without recalculating it."""
        start_time = time.monotonic()
        score = service.current_risk
        payload = score.to_dict() if score is not None else state.get_current_risk_payload()
        _audit("current_migraine_risk", None, start_time)

        if payload is None:
            return json.dumps({
                "status": "no_score",
                "message": "No risk has been calculated yet. Run migraine_risk first.",
            })
        return json.dumps({"status": "ok", "risk": payload}, indent=2)

    @mcp.tool
    async def daily_check_in(
        ctx: Context,
        stress_level: int | None = None,
        hydration_level: int | None = None,
        caffeine_intake: int | None = None,
    ) -> str:
        """Record today's self-reported stress, hydration and caffeine.

        The check-in is used by risk scoring for the rest of the calendar day.

        Args:
            stress_level: 1 (calm) to 5 (very stressed).
            hydration_level: 1 (very low) to 5 (well hydrated).
            caffeine_intake: Cups of caffeinated drinks today.
        """
        start_time = time.monotonic()
        tool_input = {
            "stress_level": stress_level,
            "hydration_level": hydration_level,
            "caffeine_intake": caffeine_intake,
        }
        try:
            check_in = DailyCheckInData(
                stress_level=stress_level,
                hydration_level=hydration_level,
                caffeine_intake=caffeine_intake,
            )
        except ValueError as exc:
            _audit("daily_check_in", tool_input, start_time, error=exc)
            return json.dumps({"status": "error", "message": str(exc)})

        if check_in.is_empty():
            _audit("daily_check_in", tool_input, start_time)
            return json.dumps({
                "status": "error",
                "message": "Provide at least one of stress_level, hydration_level, caffeine_intake.",
            })

        state.save_check_in(check_in)
        _audit("daily_check_in", tool_input, start_time)
        return json.dumps({
            "status": "ok",
            "date": check_in.date.isoformat(),
            "message": "Check-in saved. It will be used in today's risk calculations.",
        })

    @mcp.tool
    async def migraine_patterns(ctx: Context) -> str:
        """Summarize your personal migraine patterns.

        Peak hours and days, trigger frequencies, weather during attacks and
        recent medication use.
        """
        start_time = time.monotonic()
        history = await history_provider.get_history()
        _audit("migraine_patterns", None, start_time)

        if not history:
            return json.dumps({
                "status": "insufficient_data",
                "message": "Log your first migraine to start building your personal risk profile.",
            })

        return json.dumps(
            {"status": "ok", **_summarize_patterns(history, extractor)}, indent=2
        )

    @mcp.tool
    async def migraine_model_status(ctx: Context) -> str:
        """Show whether the personalized ML model is active, training or unavailable."""
        start_time = time.monotonic()
        history = await history_provider.get_history()
        try:
            last_retrain = state.get_last_retrain()
        except StateStoreError:
            logger.warning("Stored retrain timestamp unreadable", exc_info=True)
            last_retrain = None
        _audit("migraine_model_status", None, start_time)

        remaining = max(0, min_ml_entries - len(history))
        return json.dumps({
            "status": "ok",
            "model_status": service.model_status.value,
            "backend": backend_name,
            "is_training": trainer.is_training,
            "model_file_present": trainer.model_path.exists(),
            "last_retrain": last_retrain.isoformat() if last_retrain else None,
            "history_size": len(history),
            "min_entries_for_ml": min_ml_entries,
            "entries_until_ml": remaining,
        }, indent=2)

    @mcp.tool
    async def companion_risk_payload(ctx: Context) -> str:
        """Return the pending risk update queued for the companion device."""
        start_time = time.monotonic()
        payload = state.get_pending_payload()
        _audit("companion_risk_payload", None, start_time)
        if payload is None:
            return json.dumps({"status": "empty", "payload": None})
        return json.dumps({"status": "ok", "payload": payload}, indent=2)


def _summarize_patterns(
    history: list[MigraineEvent], extractor: FeatureExtractor
) -> dict[str, Any]:
    hourly = extractor.hourly_distribution(history)
    daily = extractor.day_of_week_distribution(history)
    weather = extractor.average_weather_during_migraines(history)

    peak_hours = sorted(hourly.items(), key=lambda kv: kv[1], reverse=True)[:3]
    peak_days = sorted(daily.items(), key=lambda kv: kv[1], reverse=True)[:3]

    trigger_counts = Counter(t for e in history for t in e.triggers)
    total = len(history)
    triggers = [
        {"trigger": name, "frequency": round(trigger_counts[trigger] / total, 3)}
        for trigger, _, name, _ in SCORED_TRIGGERS
        if trigger_counts[trigger]
    ]
    triggers.sort(key=lambda t: t["frequency"], reverse=True)

    features = extractor.extract(history, reference_time=datetime.now())

    return {
        "total_migraines": total,
        "migraines_last_7_days": features.migraines_in_last_7_days,
        "migraines_last_30_days": features.migraines_in_last_30_days,
        "average_pain_last_5": round(features.avg_pain_level_last_5, 1),
        "peak_hours": [{"hour": h, "share": round(p, 3)} for h, p in peak_hours if p > 0],
        "peak_days": [{"day": _DAY_NAMES[d], "share": round(p, 3)} for d, p in peak_days if p > 0],
        "triggers": triggers,
        "weather_during_migraines": {
            "avg_pressure_change_24h": round(weather.avg_pressure_change, 2),
            "avg_temperature": round(weather.avg_temperature, 1),
            "avg_precipitation": round(weather.avg_precipitation, 2),
            "events_with_weather": weather.sample_size,
        },
        "medication_last_7_days": {
            "triptan_uses": features.triptan_uses_last_7_days,
            "nsaid_uses": features.nsaid_uses_last_7_days,
        },
    }

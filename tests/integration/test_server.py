"""Integration tests for the Aura migraine MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from aura.core.server.app import create_app
from aura.domains.migraine.connectors.providers import MockMigraineHistoryProvider


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "migraine_risk",
    "migraine_forecast",
    "current_migraine_risk",
    "daily_check_in",
    "migraine_patterns",
    "migraine_model_status",
    "companion_risk_payload",
    "audit_summary",
]


class _EmptyHistoryProvider:
    async def get_history(self):
        return []

    @property
    def data_source(self) -> str:
        return "empty"

    def get_provenance(self) -> dict[str, str]:
        return {"data_source": "empty", "data_source_note": "test"}


class _BrokenWeatherProvider:
    async def get_current_weather(self):
        raise ConnectionError("weather service down")

    async def get_forecast_hours(self):
        raise ConnectionError("weather service down")


@pytest.fixture
def client(state_store, tmp_path):
    """MCP client against a fresh server with mock connectors."""
    mcp = create_app(
        state_override=state_store,
        history_provider_override=MockMigraineHistoryProvider(),
        model_path_override=str(tmp_path / "model.pkl"),
    )
    return Client(mcp)


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    async def _check():
        async with client:
            data = _payload(await client.call_tool("health_check", {}))
            assert data["status"] == "ok"
            assert data["history_source"] == "mock"
            assert data["classifier_backend"] == "none"
            assert data["model_status"] == "rule_based"
            assert data["storage_persistent"] is False
    _run(_check())


class TestMigraineRisk:
    def test_returns_explained_score(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("migraine_risk", {}))
                assert data["status"] == "ok"
                risk = data["risk"]
                assert 0.0 <= risk["overall_risk"] <= 1.0
                assert risk["prediction_source"] == "rule_based"
                assert risk["top_factors"]
                assert risk["recommendations"]
                assert data["inputs_used"]["weather"] is True
                assert data["inputs_used"]["history_size"] == 24
                assert data["provenance"]["data_source"] == "mock"
                assert "forecast" not in data
        _run(_check())

    def test_include_forecast(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "migraine_risk", {"include_forecast": True}
                ))
                assert len(data["forecast"]) == 24
        _run(_check())

    def test_weather_outage_does_not_fail_scoring(self, state_store, tmp_path):
        mcp = create_app(
            state_override=state_store,
            history_provider_override=MockMigraineHistoryProvider(),
            weather_provider_override=_BrokenWeatherProvider(),
            model_path_override=str(tmp_path / "model.pkl"),
        )

        async def _check():
            async with Client(mcp) as client:
                data = _payload(await client.call_tool("migraine_risk", {}))
                assert data["status"] == "ok"
                assert data["inputs_used"]["weather"] is False
        _run(_check())

    def test_current_risk_before_and_after(self, client):
        async def _check():
            async with client:
                before = _payload(await client.call_tool("current_migraine_risk", {}))
                assert before["status"] == "no_score"

                scored = _payload(await client.call_tool("migraine_risk", {}))
                after = _payload(await client.call_tool("current_migraine_risk", {}))
                assert after["status"] == "ok"
                assert after["risk"]["overall_risk"] == scored["risk"]["overall_risk"]
        _run(_check())

    def test_companion_payload_queued_after_scoring(self, client):
        async def _check():
            async with client:
                empty = _payload(await client.call_tool("companion_risk_payload", {}))
                assert empty["status"] == "empty"

                scored = _payload(await client.call_tool("migraine_risk", {}))
                queued = _payload(await client.call_tool("companion_risk_payload", {}))
                assert queued["status"] == "ok"
                assert queued["payload"]["riskPercentage"] == scored["risk"]["risk_percentage"]
                assert len(queued["payload"]["factors"]) <= 3
        _run(_check())


class TestForecastTool:
    def test_hourly_forecast_with_peak(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("migraine_forecast", {}))
                assert data["status"] == "ok"
                assert len(data["hours"]) == 24
                assert data["peak"]["risk"] == max(h["risk"] for h in data["hours"])
        _run(_check())

    def test_empty_history_has_no_forecast(self, state_store, tmp_path):
        mcp = create_app(
            state_override=state_store,
            history_provider_override=_EmptyHistoryProvider(),
            model_path_override=str(tmp_path / "model.pkl"),
        )

        async def _check():
            async with Client(mcp) as client:
                data = _payload(await client.call_tool("migraine_forecast", {}))
                assert data["status"] == "no_forecast"
                assert data["hours"] == []
                assert "first migraine" in data["message"]
        _run(_check())


class TestDailyCheckIn:
    def test_saves_check_in_used_for_scoring(self, client, state_store):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "daily_check_in", {"stress_level": 5, "hydration_level": 1}
                ))
                assert data["status"] == "ok"
                assert state_store.load_check_in().stress_level == 5

                risk = _payload(await client.call_tool("migraine_risk", {}))
                assert risk["inputs_used"]["check_in"] is True
        _run(_check())

    def test_out_of_range_is_rejected(self, client, state_store):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("daily_check_in", {"stress_level": 9}))
                assert data["status"] == "error"
                assert state_store.load_check_in() is None
        _run(_check())

    def test_empty_check_in_is_rejected(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("daily_check_in", {}))
                assert data["status"] == "error"
        _run(_check())


class TestInsightTools:
    def test_patterns(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("migraine_patterns", {}))
                assert data["status"] == "ok"
                assert data["total_migraines"] == 24
                assert data["peak_hours"]
                assert data["triggers"]
        _run(_check())

    def test_patterns_without_history(self, state_store, tmp_path):
        mcp = create_app(
            state_override=state_store,
            history_provider_override=_EmptyHistoryProvider(),
            model_path_override=str(tmp_path / "model.pkl"),
        )

        async def _check():
            async with Client(mcp) as client:
                data = _payload(await client.call_tool("migraine_patterns", {}))
                assert data["status"] == "insufficient_data"
        _run(_check())

    def test_model_status(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("migraine_model_status", {}))
                assert data["model_status"] == "rule_based"
                assert data["backend"] == "none"
                assert data["is_training"] is False
                assert data["model_file_present"] is False
                assert data["history_size"] == 24
                assert data["entries_until_ml"] == 0
        _run(_check())

    def test_audit_summary_counts_tool_calls(self, client):
        async def _check():
            async with client:
                await client.call_tool("migraine_risk", {})
                await client.call_tool("current_migraine_risk", {})
                data = _payload(await client.call_tool("audit_summary", {"days": 1}))
                assert data["total_events"] >= 2
                assert data["by_prediction_source"].get("rule_based", 0) >= 1
                assert "no health data" in data["note"]
        _run(_check())

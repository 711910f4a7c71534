"""Tests for MigrainePredictionService orchestration."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from aura.domains.migraine.domain_logic.models import (
    ForecastHour,
    HealthKitSnapshot,
    ModelStatus,
    PredictionSource,
)
from aura.domains.migraine.ml.predictor import ClassifierPredictor
from aura.domains.migraine.ml.trainer import ClassifierTrainer
from aura.domains.migraine.service import MigrainePredictionService

NOW = datetime(2026, 3, 11, 14, 0)


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class RecordingSync:
    def __init__(self, fail: bool = False) -> None:
        self.payloads: list[dict] = []
        self.fail = fail

    def send_risk_update(self, payload: dict) -> None:
        if self.fail:
            raise ConnectionError("companion unreachable")
        self.payloads.append(payload)


@pytest.fixture
def trainer(fake_backend, state_store, tmp_path) -> ClassifierTrainer:
    return ClassifierTrainer(fake_backend, state_store, model_path=str(tmp_path / "model.pkl"))


@pytest.fixture
def sync() -> RecordingSync:
    return RecordingSync()


@pytest.fixture
def service(fake_backend, trainer, state_store, sync) -> MigrainePredictionService:
    predictor = ClassifierPredictor(fake_backend, trainer, confidence=0.75)
    return MigrainePredictionService(trainer, predictor, state=state_store, sync=sync)


@pytest.fixture
def no_background_training(trainer, monkeypatch) -> list:
    calls = []
    monkeypatch.setattr(trainer, "train_in_background", lambda history: calls.append(len(history)))
    return calls


class TestCalculateRiskScore:
    def test_small_history_is_rule_based_only(self, service, quiet_history, no_background_training):
        score = _run(service.calculate_risk_score(quiet_history, now=NOW))
        assert score.prediction_source is PredictionSource.RULE_BASED
        assert no_background_training == []

    def test_large_history_without_model_falls_back(self, service, long_history, no_background_training):
        score = _run(service.calculate_risk_score(long_history, now=NOW))
        assert score.prediction_source is PredictionSource.RULE_BASED
        assert no_background_training == [len(long_history)]

    def test_large_history_with_model_is_hybrid(self, service, trainer, long_history):
        trainer.train_if_needed(long_history, now=NOW)
        score = _run(service.calculate_risk_score(long_history, now=NOW))
        assert score.prediction_source is PredictionSource.HYBRID
        assert score.top_factors  # explanations come from the rule score
        assert service.model_status is ModelStatus.ML_ACTIVE

    def test_caches_persists_and_publishes(self, service, state_store, sync, quiet_history):
        score = _run(service.calculate_risk_score(
            quiet_history, health=HealthKitSnapshot(sleep_hours=4.0), now=NOW
        ))
        assert service.current_risk is score
        assert state_store.get_current_risk_payload()["overall_risk"] == pytest.approx(0.25)
        assert sync.payloads[-1]["riskPercentage"] == 25
        assert sync.payloads[-1]["factors"][0]["name"] == "Very Poor Sleep"

    def test_sync_failure_is_not_propagated(self, trainer, fake_backend, state_store, quiet_history):
        predictor = ClassifierPredictor(fake_backend, trainer)
        service = MigrainePredictionService(
            trainer, predictor, state=state_store, sync=RecordingSync(fail=True)
        )
        score = _run(service.calculate_risk_score(quiet_history, now=NOW))
        assert service.current_risk is score
        assert state_store.get_current_risk_payload() is not None

    def test_empty_history(self, service):
        score = _run(service.calculate_risk_score([], now=NOW))
        assert score.overall_risk == 0.0
        assert score.confidence == 0.10


class TestForecast:
    def test_replaces_cached_forecast(self, service, quiet_history, make_weather):
        hours = [
            ForecastHour(NOW + timedelta(hours=i), make_weather(timestamp=NOW + timedelta(hours=i)))
            for i in range(1, 5)
        ]
        first = service.generate_24_hour_forecast(quiet_history, hours, now=NOW)
        assert len(first) == 4
        assert service.hourly_forecast == first

        service.generate_24_hour_forecast(quiet_history, hours[:2], now=NOW)
        assert len(service.hourly_forecast) == 2

    def test_empty_history_clears_forecast(self, service, quiet_history, make_weather):
        hours = [ForecastHour(NOW + timedelta(hours=1), make_weather())]
        service.generate_24_hour_forecast(quiet_history, hours, now=NOW)
        assert service.generate_24_hour_forecast([], hours, now=NOW) == []
        assert service.hourly_forecast == []

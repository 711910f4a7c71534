"""Tests for EngineStateStore: retrain gate, check-in, risk history, outbox."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from aura.core.storage.state import StateStoreError
from aura.domains.migraine.domain_logic.models import (
    DailyCheckInData,
    MigraineRiskScore,
    PredictionSource,
    RiskFactor,
    RiskLevel,
)

TODAY = date(2026, 3, 11)


def _score(risk: float, when: datetime) -> MigraineRiskScore:
    return MigraineRiskScore(
        overall_risk=risk,
        risk_level=RiskLevel.from_risk(risk),
        top_factors=[RiskFactor("Poor Sleep", 0.2, "moon.fill", "orange", "5.5 hours")],
        recommendations=["Rest."],
        confidence=0.6,
        prediction_source=PredictionSource.RULE_BASED,
        timestamp=when,
    )


class TestRetrainGate:
    def test_round_trip(self, state_store):
        assert state_store.get_last_retrain() is None
        when = datetime(2026, 3, 4, 9, 30)
        state_store.set_last_retrain(when)
        assert state_store.get_last_retrain() == when

    def test_training_attempt_is_tracked_separately(self, state_store):
        when = datetime(2026, 3, 5, 7, 0)
        state_store.set_last_training_attempt(when)
        assert state_store.get_last_training_attempt() == when
        assert state_store.get_last_retrain() is None

    def test_corrupt_value_raises(self, state_store, engine_db):
        engine_db.connection.execute(
            "INSERT INTO engine_state (key, value) VALUES ('last_retrain', 'yesterday')"
        )
        with pytest.raises(StateStoreError):
            state_store.get_last_retrain()


class TestCheckIn:
    def test_valid_only_on_its_day(self, state_store):
        state_store.save_check_in(DailyCheckInData(stress_level=4, date=TODAY))
        assert state_store.load_check_in(TODAY).stress_level == 4
        assert state_store.load_check_in(date(2026, 3, 12)) is None

    def test_stored_encrypted(self, state_store, engine_db):
        state_store.save_check_in(DailyCheckInData(stress_level=5, caffeine_intake=6, date=TODAY))
        raw = engine_db.connection.execute(
            "SELECT value FROM engine_state WHERE key = 'daily_check_in'"
        ).fetchone()["value"]
        assert "stress_level" not in raw

    def test_latest_check_in_wins(self, state_store):
        state_store.save_check_in(DailyCheckInData(stress_level=2, date=TODAY))
        state_store.save_check_in(DailyCheckInData(stress_level=5, date=TODAY))
        assert state_store.load_check_in(TODAY).stress_level == 5

    def test_clear(self, state_store):
        state_store.save_check_in(DailyCheckInData(stress_level=2, date=TODAY))
        state_store.clear_check_in()
        assert state_store.load_check_in(TODAY) is None

    def test_undecodable_check_in_raises(self, state_store, engine_db):
        engine_db.connection.execute(
            "INSERT INTO engine_state (key, value) VALUES ('daily_check_in', 'garbage')"
        )
        with pytest.raises(StateStoreError):
            state_store.load_check_in(TODAY)


class TestRiskHistory:
    def test_current_risk_and_history(self, state_store):
        assert state_store.get_current_risk_payload() is None
        state_store.save_current_risk(_score(0.2, datetime(2026, 3, 10, 8)))
        state_store.save_current_risk(_score(0.6, datetime(2026, 3, 11, 8)))

        current = state_store.get_current_risk_payload()
        assert current["overall_risk"] == 0.6
        assert current["risk_level"] == "high"

        history = state_store.get_risk_history(limit=10)
        assert [h["overall_risk"] for h in history] == [0.6, 0.2]
        assert history[0]["factor_names"] == ["Poor Sleep"]
        assert history[0]["source"] == "rule_based"

    def test_history_limit(self, state_store):
        for i in range(5):
            state_store.save_current_risk(_score(i / 10, datetime(2026, 3, 1 + i)))
        assert len(state_store.get_risk_history(limit=3)) == 3


class TestPendingPayload:
    def test_round_trip(self, state_store):
        assert state_store.get_pending_payload() is None
        state_store.set_pending_payload({"riskPercentage": 40, "riskLevel": "Moderate"})
        assert state_store.get_pending_payload() == {"riskPercentage": 40, "riskLevel": "Moderate"}

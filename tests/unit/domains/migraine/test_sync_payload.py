"""Tests for the companion-device risk payload."""

from __future__ import annotations

from datetime import datetime

import pytest

from aura.domains.migraine.domain_logic.models import (
    MigraineRiskScore,
    PredictionSource,
    RiskFactor,
    RiskLevel,
)
from aura.domains.migraine.domain_logic.sync_payload import from_sync_payload, to_sync_payload

NOW = datetime(2026, 3, 11, 14, 0)


@pytest.fixture
def score() -> MigraineRiskScore:
    factors = [
        RiskFactor("Rapid Pressure Drop", 0.25, "arrow.down.to.line", "red", "dropped 7.0 hPa"),
        RiskFactor("Very Poor Sleep", 0.25, "moon.zzz.fill", "red", "Only 4.5 hours"),
        RiskFactor("High Stress", 0.15, "brain.head.profile", "orange", "5/5"),
        RiskFactor("Low Activity", 0.05, "figure.walk", "gray", "500 steps"),
    ]
    return MigraineRiskScore(
        overall_risk=0.687,
        risk_level=RiskLevel.HIGH,
        top_factors=factors,
        recommendations=["a", "b", "c", "d"],
        confidence=0.8,
        prediction_source=PredictionSource.HYBRID,
        timestamp=NOW,
    )


class TestToSyncPayload:
    def test_keys_and_truncation(self, score):
        payload = to_sync_payload(score)
        assert payload["riskPercentage"] == 68
        assert payload["riskLevel"] == "High"
        assert len(payload["factors"]) == 3
        assert set(payload["factors"][0]) == {"name", "contribution", "icon", "detail"}
        assert payload["recommendations"] == ["a", "b", "c"]
        assert payload["timestamp"] == NOW.timestamp()
        assert payload["predictionSource"] == "hybrid"


class TestRoundTrip:
    def test_preserves_risk_level_and_factor_order(self, score):
        restored = from_sync_payload(to_sync_payload(score))
        assert restored.overall_risk == pytest.approx(score.overall_risk, abs=0.01)
        assert restored.risk_level is score.risk_level
        assert [f.name for f in restored.top_factors] == [
            f.name for f in score.top_factors[:3]
        ]
        assert restored.prediction_source is PredictionSource.HYBRID
        assert restored.timestamp == NOW

    def test_level_label_survives_boundary_truncation(self):
        # 0.7499 -> 74% but the level travels by label
        edge = MigraineRiskScore(
            overall_risk=0.7499,
            risk_level=RiskLevel.HIGH,
            top_factors=[],
            recommendations=[],
            confidence=0.5,
            prediction_source=PredictionSource.RULE_BASED,
            timestamp=NOW,
        )
        assert from_sync_payload(to_sync_payload(edge)).risk_level is RiskLevel.HIGH

    def test_missing_source_defaults_to_rule_based(self, score):
        payload = to_sync_payload(score)
        del payload["predictionSource"]
        assert from_sync_payload(payload).prediction_source is PredictionSource.RULE_BASED

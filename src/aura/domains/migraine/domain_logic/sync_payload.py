"""Flat key/value payload sent to the companion device."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from aura.domains.migraine.domain_logic.models import (
    MigraineRiskScore,
    PredictionSource,
    RiskFactor,
    RiskLevel,
)

MAX_SYNCED_FACTORS = 3
MAX_SYNCED_RECOMMENDATIONS = 3


def to_sync_payload(score: MigraineRiskScore) -> dict[str, Any]:
    """Encode a score for the companion device. Only the top 3 factors travel."""
    return {
        "riskPercentage": score.risk_percentage,
        "riskLevel": score.risk_level.label,
        "factors": [
            {
                "name": f.name,
                "contribution": f.contribution,
                "icon": f.icon,
                "detail": f.detail,
            }
            for f in score.top_factors[:MAX_SYNCED_FACTORS]
        ],
        "recommendations": list(score.recommendations[:MAX_SYNCED_RECOMMENDATIONS]),
        "confidence": score.confidence,
        "timestamp": score.timestamp.timestamp(),
        "predictionSource": score.prediction_source.value,
    }


def from_sync_payload(payload: dict[str, Any]) -> MigraineRiskScore:
    """Rebuild a score from a companion payload.

    Risk precision is limited to whole percentage points. Factor colors are
    not transmitted and come back as "gray".
    """
    risk = float(payload["riskPercentage"]) / 100.0
    factors = [
        RiskFactor(
            name=f["name"],
            contribution=float(f.get("contribution", 0.0)),
            icon=f.get("icon", ""),
            color="gray",
            detail=f.get("detail", ""),
        )
        for f in payload.get("factors", [])
    ]
    source = payload.get("predictionSource", PredictionSource.RULE_BASED.value)

    return MigraineRiskScore(
        overall_risk=risk,
        risk_level=RiskLevel.from_label(payload["riskLevel"]),
        top_factors=factors,
        recommendations=list(payload.get("recommendations", [])),
        confidence=float(payload.get("confidence", 0.0)),
        prediction_source=PredictionSource(source),
        timestamp=datetime.fromtimestamp(float(payload["timestamp"])),
    )

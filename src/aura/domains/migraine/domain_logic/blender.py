"""Hybrid blend of the rule-based score and the classifier score."""

from __future__ import annotations

from datetime import datetime

from aura.domains.migraine.domain_logic.models import (
    MigraineRiskScore,
    PredictionSource,
    RiskLevel,
)

# Fraction of the classifier's own confidence that becomes its blend weight
ML_WEIGHT_SCALE = 0.6


def blend(
    rule: MigraineRiskScore,
    ml: MigraineRiskScore,
    now: datetime | None = None,
) -> MigraineRiskScore:
    """Convex combination of the two tiers.

    Explanations always come from the rule score, since the classifier
    produces none.
    """
    ml_weight = ml.confidence * ML_WEIGHT_SCALE
    rule_weight = 1.0 - ml_weight

    risk = rule.overall_risk * rule_weight + ml.overall_risk * ml_weight
    risk = max(0.0, min(1.0, risk))

    return MigraineRiskScore(
        overall_risk=risk,
        risk_level=RiskLevel.from_risk(risk),
        top_factors=list(rule.top_factors),
        recommendations=list(rule.recommendations),
        confidence=max(rule.confidence, ml.confidence),
        prediction_source=PredictionSource.HYBRID,
        timestamp=now or datetime.now(),
    )

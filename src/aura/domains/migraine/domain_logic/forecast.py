"""24-hour risk forecast: Tier 1 re-run against each forecast hour."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from aura.domains.migraine.domain_logic.feature_extractor import FeatureExtractor
from aura.domains.migraine.domain_logic.models import (
    DailyCheckInData,
    ForecastHour,
    HealthKitSnapshot,
    HourlyRiskForecast,
    MigraineEvent,
)
from aura.domains.migraine.domain_logic.rule_scorer import RuleBasedScorer

FORECAST_HORIZON_HOURS = 24
GENERAL_FACTOR = "General"


class ForecastGenerator:
    """Sweeps future forecast hours through the rule-based scorer.

    Tier 1 only: the classifier is never consulted for forecast hours.
    """

    def __init__(
        self,
        extractor: FeatureExtractor | None = None,
        scorer: RuleBasedScorer | None = None,
    ) -> None:
        self._extractor = extractor or FeatureExtractor()
        self._scorer = scorer or RuleBasedScorer(self._extractor)

    def forecast(
        self,
        history: Sequence[MigraineEvent],
        forecast_hours: Sequence[ForecastHour],
        health: HealthKitSnapshot | None = None,
        check_in: DailyCheckInData | None = None,
        now: datetime | None = None,
    ) -> list[HourlyRiskForecast]:
        if not history:
            return []

        current = now or datetime.now()
        upcoming = sorted(
            (h for h in forecast_hours if h.timestamp >= current),
            key=lambda h: h.timestamp,
        )[:FORECAST_HORIZON_HOURS]

        results: list[HourlyRiskForecast] = []
        for hour in upcoming:
            features = self._extractor.extract(
                history,
                weather=hour.weather,
                health=health,
                check_in=check_in,
                reference_time=hour.timestamp,
            )
            score = self._scorer.score(features, history, now=hour.timestamp)
            primary = score.top_factors[0].name if score.top_factors else GENERAL_FACTOR
            results.append(HourlyRiskForecast(
                hour=hour.hour,
                timestamp=hour.timestamp,
                risk=score.overall_risk,
                primary_factor=primary,
            ))
        return results

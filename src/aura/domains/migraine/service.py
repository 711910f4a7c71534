"""MigrainePredictionService: orchestrates one scoring call end to end.

Explicitly constructed and injected; there is no process-wide instance.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Sequence

from aura.core.storage.state import EngineStateStore
from aura.domains.migraine.connectors import CompanionSyncChannel
from aura.domains.migraine.domain_logic.blender import blend
from aura.domains.migraine.domain_logic.feature_extractor import FeatureExtractor
from aura.domains.migraine.domain_logic.forecast import ForecastGenerator
from aura.domains.migraine.domain_logic.models import (
    DailyCheckInData,
    ForecastHour,
    HealthKitSnapshot,
    HourlyRiskForecast,
    MigraineEvent,
    MigraineRiskScore,
    ModelStatus,
    WeatherSnapshot,
)
from aura.domains.migraine.domain_logic.rule_scorer import RuleBasedScorer
from aura.domains.migraine.domain_logic.sync_payload import to_sync_payload
from aura.domains.migraine.ml.predictor import ClassifierPredictor
from aura.domains.migraine.ml.trainer import ClassifierTrainer

logger = logging.getLogger(__name__)


class MigrainePredictionService:
    """Runs Tier 1, optionally Tier 2, blends, caches and publishes.

    Usage::

        service = MigrainePredictionService(trainer, predictor, state=state)
        score = await service.calculate_risk_score(history, weather=now_weather)
        hours = service.generate_24_hour_forecast(history, forecast_hours)
    """

    def __init__(
        self,
        trainer: ClassifierTrainer,
        predictor: ClassifierPredictor,
        state: EngineStateStore | None = None,
        sync: CompanionSyncChannel | None = None,
        min_ml_entries: int = 20,
        extractor: FeatureExtractor | None = None,
    ) -> None:
        self._extractor = extractor or FeatureExtractor()
        self._scorer = RuleBasedScorer(self._extractor)
        self._forecaster = ForecastGenerator(self._extractor, self._scorer)
        self._trainer = trainer
        self._predictor = predictor
        self._state = state
        self._sync = sync
        self._min_ml_entries = min_ml_entries

        self._current_risk: MigraineRiskScore | None = None
        self._hourly_forecast: list[HourlyRiskForecast] = []

    @property
    def current_risk(self) -> MigraineRiskScore | None:
        return self._current_risk

    @property
    def hourly_forecast(self) -> list[HourlyRiskForecast]:
        return list(self._hourly_forecast)

    @property
    def model_status(self) -> ModelStatus:
        return self._trainer.status

    @property
    def extractor(self) -> FeatureExtractor:
        return self._extractor

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(
        self,
        history: Sequence[MigraineEvent],
        weather: WeatherSnapshot | None = None,
        health: HealthKitSnapshot | None = None,
        check_in: DailyCheckInData | None = None,
        now: datetime | None = None,
    ) -> MigraineRiskScore:
        """Compute a score without caching or publishing it."""
        now = now or datetime.now()
        features = self._extractor.extract(
            history, weather=weather, health=health, check_in=check_in, reference_time=now
        )
        rule_score = self._scorer.score(features, history, now=now)

        if len(history) < self._min_ml_entries:
            return rule_score

        ml_score = self._predictor.predict(features, history, now=now)
        if ml_score is None:
            return rule_score
        return blend(rule_score, ml_score, now=now)

    async def calculate_risk_score(
        self,
        history: Sequence[MigraineEvent],
        weather: WeatherSnapshot | None = None,
        health: HealthKitSnapshot | None = None,
        check_in: DailyCheckInData | None = None,
        now: datetime | None = None,
    ) -> MigraineRiskScore:
        """Score, then cache as current risk, persist and publish to the companion."""
        snapshot = list(history)
        # Model loading and inference can touch disk; keep them off the event loop
        score = await asyncio.to_thread(
            self.score, snapshot, weather, health, check_in, now
        )
        self._current_risk = score
        self._publish(score)
        return score

    def generate_24_hour_forecast(
        self,
        history: Sequence[MigraineEvent],
        forecast_hours: Sequence[ForecastHour],
        health: HealthKitSnapshot | None = None,
        check_in: DailyCheckInData | None = None,
        now: datetime | None = None,
    ) -> list[HourlyRiskForecast]:
        """Tier 1 sweep over the forecast; replaces the cached forecast wholesale."""
        forecast = self._forecaster.forecast(
            history, forecast_hours, health=health, check_in=check_in, now=now
        )
        self._hourly_forecast = forecast
        return list(forecast)

    def _publish(self, score: MigraineRiskScore) -> None:
        if self._state is not None:
            try:
                self._state.save_current_risk(score)
            except Exception:
                logger.exception("Failed to persist current risk")

        if self._sync is not None:
            try:
                self._sync.send_risk_update(to_sync_payload(score))
            except Exception:
                logger.exception("Failed to send risk update to companion device")

"""Tier 2 inference against the persisted classifier."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence

from aura.domains.migraine.domain_logic.models import (
    FEATURE_NAMES,
    MigraineEvent,
    MigraineFeatureVector,
    MigraineRiskScore,
    PredictionSource,
    RiskLevel,
)
from aura.domains.migraine.ml.backend import ClassifierBackend, load_artifact
from aura.domains.migraine.ml.trainer import ClassifierTrainer

logger = logging.getLogger(__name__)


class ClassifierPredictor:
    """Scores a feature vector with the trained model. Never raises.

    Returns ``None`` whenever no usable model exists, and asks the trainer to
    build one in the background. The loaded model is cached by file
    modification time, so a retrain is picked up on the next call.
    """

    def __init__(
        self,
        backend: ClassifierBackend,
        trainer: ClassifierTrainer,
        confidence: float = 0.75,
    ) -> None:
        self._backend = backend
        self._trainer = trainer
        self._confidence = confidence
        self._cached_model: Any = None
        self._cached_columns: list[str] = list(FEATURE_NAMES)
        self._cached_mtime: float | None = None

    def predict(
        self,
        features: MigraineFeatureVector,
        history: Sequence[MigraineEvent],
        now: datetime | None = None,
    ) -> MigraineRiskScore | None:
        if not self._backend.available:
            return None

        try:
            model = self._load_model()
        except Exception:
            logger.exception("Failed to load classifier model")
            self._trainer.record_prediction(succeeded=False)
            model = None

        if model is None:
            self._schedule_training(history)
            return None

        values = dict(zip(FEATURE_NAMES, features.as_row()))
        try:
            row = [values[name] for name in self._cached_columns]
            probability = self._backend.predict_probability(model, row)
        except Exception:
            logger.exception("Classifier prediction failed")
            self._trainer.record_prediction(succeeded=False)
            return None

        self._trainer.record_prediction(succeeded=True)

        risk = max(0.0, min(1.0, probability))
        return MigraineRiskScore(
            overall_risk=risk,
            risk_level=RiskLevel.from_risk(risk),
            top_factors=[],
            recommendations=[],
            confidence=self._confidence,
            prediction_source=PredictionSource.MACHINE_LEARNING,
            timestamp=now or datetime.now(),
        )

    def _load_model(self) -> Any:
        path = self._trainer.model_path
        if not path.exists():
            self._cached_model = None
            self._cached_mtime = None
            return None

        mtime = path.stat().st_mtime
        if self._cached_model is None or mtime != self._cached_mtime:
            artifact = load_artifact(path)
            self._cached_model = artifact["model"]
            self._cached_columns = list(artifact.get("feature_names") or FEATURE_NAMES)
            self._cached_mtime = mtime
            logger.info("Loaded classifier trained at %s", artifact.get("trained_at"))
        return self._cached_model

    def _schedule_training(self, history: Sequence[MigraineEvent]) -> None:
        try:
            self._trainer.train_in_background(history)
        except Exception:
            logger.exception("Could not schedule classifier training")

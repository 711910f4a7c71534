"""Tier 2 training: per-day onset dataset, weekly gated retraining."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Sequence

import pandas as pd

from aura.core.storage.state import EngineStateStore, StateStoreError
from aura.domains.migraine.domain_logic.feature_extractor import FeatureExtractor
from aura.domains.migraine.domain_logic.models import (
    FEATURE_NAMES,
    MigraineEvent,
    ModelStatus,
)
from aura.domains.migraine.ml.backend import ClassifierBackend, save_artifact

logger = logging.getLogger(__name__)

LABEL_COLUMN = "had_migraine"
MIN_TRAINING_ROWS = 20


def build_training_frame(
    history: Sequence[MigraineEvent],
    extractor: FeatureExtractor | None = None,
) -> pd.DataFrame:
    """One row per calendar day from the first to the last logged migraine.

    Each row holds the features "as of" midnight of that day, computed only
    from migraines that started strictly before it, plus the label
    ``had_migraine`` (1 if any migraine started that day).
    """
    columns = [*FEATURE_NAMES, LABEL_COLUMN]
    if not history:
        return pd.DataFrame(columns=columns)

    extractor = extractor or FeatureExtractor()
    ordered = sorted(history, key=lambda e: e.start_time)
    onset_days = {e.start_time.date() for e in ordered}

    first_day = ordered[0].start_time.date()
    last_day = ordered[-1].start_time.date()

    rows = []
    day = first_day
    while day <= last_day:
        midnight = datetime.combine(day, time.min)
        prior = [e for e in ordered if e.start_time < midnight]
        features = extractor.extract(prior, reference_time=midnight)
        row = dict(zip(FEATURE_NAMES, features.as_row()))
        row[LABEL_COLUMN] = 1 if day in onset_days else 0
        rows.append(row)
        day += timedelta(days=1)

    return pd.DataFrame(rows, columns=columns)


class ClassifierTrainer:
    """Trains and persists the classifier, at most once per retrain interval.

    Usage::

        trainer = ClassifierTrainer(backend, state, model_path="~/.aura/model.pkl")
        trainer.train_if_needed(history)        # synchronous
        trainer.train_in_background(history)    # fire-and-forget
    """

    def __init__(
        self,
        backend: ClassifierBackend,
        state: EngineStateStore,
        model_path: str,
        min_entries: int = 20,
        retrain_interval_days: int = 7,
        extractor: FeatureExtractor | None = None,
    ) -> None:
        self._backend = backend
        self._state = state
        self._model_path = Path(model_path).expanduser()
        self._min_entries = min_entries
        self._retrain_interval = timedelta(days=retrain_interval_days)
        self._extractor = extractor or FeatureExtractor()
        self._lock = threading.Lock()

        if backend.available and self._model_path.exists():
            self._status = ModelStatus.ML_ACTIVE
        else:
            self._status = ModelStatus.RULE_BASED

    @property
    def model_path(self) -> Path:
        return self._model_path

    @property
    def status(self) -> ModelStatus:
        return self._status

    @property
    def is_training(self) -> bool:
        return self._lock.locked()

    def should_train(self, history_size: int, now: datetime | None = None) -> bool:
        """Size, capability and weekly gates. Does not look at label balance.

        The weekly gate counts the last attempt as well as the last success,
        so skipped or failed runs are not retried before the interval passes.
        """
        if not self._backend.available:
            return False
        if history_size < self._min_entries:
            return False
        recent = [
            t for t in (
                self._read_timestamp(self._state.get_last_retrain),
                self._read_timestamp(self._state.get_last_training_attempt),
            )
            if t is not None
        ]
        if recent and (now or datetime.now()) - max(recent) < self._retrain_interval:
            return False
        return True

    def record_prediction(self, succeeded: bool) -> None:
        """Reflect whether the persisted model could score, unless training is under way."""
        if self._status is ModelStatus.TRAINING:
            return
        self._status = ModelStatus.ML_ACTIVE if succeeded else ModelStatus.ML_FAILED

    @staticmethod
    def _read_timestamp(getter) -> datetime | None:
        # An unreadable timestamp counts as never set; the next run overwrites it
        try:
            return getter()
        except StateStoreError:
            logger.warning("Ignoring unreadable training timestamp", exc_info=True)
            return None

    def train_if_needed(
        self,
        history: Sequence[MigraineEvent],
        now: datetime | None = None,
    ) -> bool:
        """Train synchronously when the gates allow it.

        Returns True when a new model was written. Failures are logged and
        leave the previous model in place.
        """
        now = now or datetime.now()
        snapshot = list(history)
        try:
            if not self.should_train(len(snapshot), now):
                return False
            self._state.set_last_training_attempt(now)
        except Exception:
            logger.exception("Could not check or record the training schedule")
            return False

        previous_status = self._status
        self._status = ModelStatus.TRAINING
        try:
            frame = build_training_frame(snapshot, self._extractor)
            labels = frame[LABEL_COLUMN].astype(int)

            if len(frame) < MIN_TRAINING_ROWS:
                logger.info(
                    "Skipping classifier training: %d day rows (need %d)",
                    len(frame), MIN_TRAINING_ROWS,
                )
                self._status = previous_status
                return False
            if labels.nunique() < 2:
                logger.info("Skipping classifier training: only one label class present")
                self._status = previous_status
                return False

            # A column with no observed value at all cannot be binned by the classifier
            columns = [name for name in FEATURE_NAMES if frame[name].notna().any()]
            features = frame[columns].to_numpy(dtype=float)
            model = self._backend.fit(features, labels.tolist())
            save_artifact(self._model_path, {
                "model": model,
                "feature_names": columns,
                "trained_at": now.isoformat(),
                "rows": len(frame),
                "backend": self._backend.name,
            })
            self._state.set_last_retrain(now)
        except Exception:
            logger.exception("Classifier training failed")
            self._status = ModelStatus.ML_FAILED
            return False

        self._status = ModelStatus.ML_ACTIVE
        logger.info("Classifier trained on %d day rows", len(frame))
        return True

    def train_in_background(
        self, history: Sequence[MigraineEvent]
    ) -> threading.Thread | None:
        """Start a daemon training thread unless one is running or the gates say no."""
        snapshot = list(history)
        if not self.should_train(len(snapshot)):
            return None
        if not self._lock.acquire(blocking=False):
            return None

        def _run() -> None:
            try:
                self.train_if_needed(snapshot)
            finally:
                self._lock.release()

        thread = threading.Thread(target=_run, name="aura-classifier-training", daemon=True)
        thread.start()
        return thread

"""Classifier capability: the Tier 2 model behind an injected interface.

A backend is chosen once at startup by :func:`select_backend`. When
scikit-learn is not installed (or the classifier is switched off) the
:class:`NullClassifierBackend` is used and Tier 2 simply never produces a
score; the rule-based scorer keeps working unchanged.
"""

from __future__ import annotations

import logging
import os
import pickle
import tempfile
from pathlib import Path
from typing import Any, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


class ClassifierUnavailableError(Exception):
    """Raised when a classifier backend is requested but cannot be used."""


def _require_sklearn():
    """Lazy import with clear error message."""
    try:
        from sklearn.ensemble import HistGradientBoostingClassifier

        return HistGradientBoostingClassifier
    except ImportError:
        raise ClassifierUnavailableError(
            "scikit-learn is required for the migraine classifier. "
            "Install with: pip install scikit-learn"
        ) from None


@runtime_checkable
class ClassifierBackend(Protocol):
    """Fits and applies a binary "migraine today" classifier."""

    @property
    def name(self) -> str: ...

    @property
    def available(self) -> bool: ...

    def fit(self, features: Any, labels: Sequence[int]) -> Any:
        """Train on a feature table (rows x FEATURE_NAMES) and return the model."""
        ...

    def predict_probability(self, model: Any, row: Sequence[float]) -> float:
        """Probability of the positive class for one feature row."""
        ...


class SklearnClassifierBackend:
    """Gradient-boosted trees. Handles ``NaN`` for absent optional features natively."""

    def __init__(self, random_state: int = 42) -> None:
        self._estimator_cls = _require_sklearn()
        self._random_state = random_state

    @property
    def name(self) -> str:
        return "sklearn"

    @property
    def available(self) -> bool:
        return True

    def fit(self, features: Any, labels: Sequence[int]) -> Any:
        model = self._estimator_cls(
            max_iter=200,
            learning_rate=0.05,
            max_depth=4,
            random_state=self._random_state,
        )
        model.fit(features, list(labels))
        return model

    def predict_probability(self, model: Any, row: Sequence[float]) -> float:
        import numpy as np

        proba = model.predict_proba(np.asarray([row], dtype=float))[0]
        classes = list(model.classes_)
        if 1 not in classes:
            return 0.0
        return float(proba[classes.index(1)])


class NullClassifierBackend:
    """No-op backend for runtimes without classifier support."""

    @property
    def name(self) -> str:
        return "none"

    @property
    def available(self) -> bool:
        return False

    def fit(self, features: Any, labels: Sequence[int]) -> Any:
        raise ClassifierUnavailableError("No classifier backend is available")

    def predict_probability(self, model: Any, row: Sequence[float]) -> float:
        raise ClassifierUnavailableError("No classifier backend is available")


def select_backend(preference: str = "auto") -> ClassifierBackend:
    """Pick the classifier backend for this process.

    ``auto`` falls back to the no-op backend when scikit-learn is missing;
    an explicit ``sklearn`` request raises instead.
    """
    if preference == "none":
        logger.info("Classifier disabled by configuration; using rule-based scoring only")
        return NullClassifierBackend()

    try:
        backend = SklearnClassifierBackend()
    except ClassifierUnavailableError:
        if preference == "sklearn":
            raise
        logger.warning("scikit-learn not installed; falling back to rule-based scoring only")
        return NullClassifierBackend()

    logger.info("Classifier backend: %s", backend.name)
    return backend


# ---------------------------------------------------------------------------
# Model artifact
# ---------------------------------------------------------------------------

def save_artifact(path: str | Path, artifact: dict[str, Any]) -> None:
    """Write the artifact atomically: temp file in the target dir, then rename.

    Readers see either the previous model or the new one, never a partial file.
    """
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".model-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            pickle.dump(artifact, fh)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def load_artifact(path: str | Path) -> dict[str, Any]:
    with open(Path(path).expanduser(), "rb") as fh:
        return pickle.load(fh)

"""Shared test fixtures for Aura tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("HISTORY_EXPORT_PATH", "")
    monkeypatch.setenv("CLASSIFIER_BACKEND", "none")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("MODEL_PATH", str(tmp_path / "model.pkl"))

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from aura.domains.migraine.domain_logic.models import (  # noqa: E402
    MigraineEvent,
    WeatherSnapshot,
)

# Wednesday afternoon; not a weekend
NOW = datetime(2026, 3, 11, 14, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------

@pytest.fixture
def make_event():
    """Factory for MigraineEvent with sensible defaults."""
    counter = {"n": 0}

    def _make(start_time: datetime, **kwargs: Any) -> MigraineEvent:
        counter["n"] += 1
        kwargs.setdefault("id", f"evt-{counter['n']:03d}")
        kwargs.setdefault("pain_level", 6)
        return MigraineEvent(start_time=start_time, **kwargs)

    return _make


@pytest.fixture
def make_weather():
    def _make(pressure_change_24h: float = 0.0, weather_code: int = 0, **kwargs: Any) -> WeatherSnapshot:
        kwargs.setdefault("timestamp", NOW)
        kwargs.setdefault("temperature", 65.0)
        kwargs.setdefault("pressure", 1013.0 + pressure_change_24h)
        return WeatherSnapshot(
            pressure_change_24h=pressure_change_24h,
            weather_code=weather_code,
            **kwargs,
        )

    return _make


@pytest.fixture
def quiet_history(make_event) -> list[MigraineEvent]:
    """Six migraines, 20+ days old, early-morning onsets: fires no history-driven rule."""
    return [
        make_event(NOW - timedelta(days=20, hours=11)),
        make_event(NOW - timedelta(days=24, hours=11)),
        make_event(NOW - timedelta(days=27, hours=10)),
        make_event(NOW - timedelta(days=29, hours=9)),
        make_event(NOW - timedelta(days=33, hours=8)),
        make_event(NOW - timedelta(days=38, hours=7)),
    ]


@pytest.fixture
def long_history(make_event) -> list[MigraineEvent]:
    """25 events over 30 days, 3 of them in the last 7 days."""
    events = [
        make_event(NOW - timedelta(days=day, hours=3))
        for day in (1, 3, 5)
    ]
    for i in range(22):
        events.append(make_event(NOW - timedelta(days=8 + i, hours=(i * 5) % 24)))
    return events


# ---------------------------------------------------------------------------
# Classifier backend fake
# ---------------------------------------------------------------------------

class FakeClassifierBackend:
    """Deterministic stand-in for a real classifier."""

    def __init__(
        self,
        probability: float = 0.8,
        fail_fit: bool = False,
        fail_predict: bool = False,
    ) -> None:
        self.probability = probability
        self.fail_fit = fail_fit
        self.fail_predict = fail_predict
        self.fit_calls: list[tuple[Any, list[int]]] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def available(self) -> bool:
        return True

    def fit(self, features: Any, labels) -> Any:
        if self.fail_fit:
            raise RuntimeError("fit exploded")
        self.fit_calls.append((features, list(labels)))
        return {"probability": self.probability}

    def predict_probability(self, model: Any, row) -> float:
        if self.fail_predict:
            raise RuntimeError("predict exploded")
        return model["probability"]


@pytest.fixture
def fake_backend() -> FakeClassifierBackend:
    return FakeClassifierBackend()


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def engine_db():
    """Create an in-memory EngineDatabase for testing."""
    from aura.core.storage.database import EngineDatabase

    db = EngineDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from aura.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def state_store(engine_db, field_encryptor):
    """Create an EngineStateStore backed by in-memory SQLite."""
    from aura.core.storage.state import EngineStateStore

    return EngineStateStore(engine_db, field_encryptor)


@pytest.fixture
def audit_logger(engine_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from aura.core.audit.logger import AuditLogger

    return AuditLogger(engine_db)

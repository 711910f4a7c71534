"""Engine state store: the small persisted record the engine owns.

Replaces ambient key/value storage with explicit, injectable state:

* last classifier retrain and training attempt times (weekly retrain gate)
* today's daily check-in (encrypted, only valid for its own calendar day)
* the current risk score and its history (summaries only)
* the pending companion-device payload
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any

from aura.core.storage.database import EngineDatabase
from aura.core.storage.encryption import EncryptionError, FieldEncryptor
from aura.domains.migraine.domain_logic.models import DailyCheckInData, MigraineRiskScore

logger = logging.getLogger(__name__)

_LAST_RETRAIN_KEY = "last_retrain"
_LAST_TRAINING_ATTEMPT_KEY = "last_training_attempt"
_CHECK_IN_KEY = "daily_check_in"
_CURRENT_RISK_KEY = "current_risk"
_PENDING_PAYLOAD_KEY = "pending_companion_payload"


class StateStoreError(Exception):
    """Raised when a stored state value cannot be decoded."""


class EngineStateStore:
    """Typed access to ``engine_state`` and ``risk_history``.

    Usage::

        db = EngineDatabase(":memory:")
        db.initialize()
        state = EngineStateStore(db, FieldEncryptor(key))
        state.set_last_retrain(datetime.now())
        state.save_check_in(DailyCheckInData(stress_level=4))
    """

    def __init__(self, database: EngineDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def database(self) -> EngineDatabase:
        return self._db

    # ------------------------------------------------------------------
    # Raw key/value access
    # ------------------------------------------------------------------

    def _get(self, key: str) -> str | None:
        with self._db.lock:
            row = self._db.connection.execute(
                "SELECT value FROM engine_state WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def _set(self, key: str, value: str) -> None:
        with self._db.lock:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO engine_state (key, value, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value),
            )
            conn.commit()

    def _delete(self, key: str) -> None:
        with self._db.lock:
            conn = self._db.connection
            conn.execute("DELETE FROM engine_state WHERE key = ?", (key,))
            conn.commit()

    def _get_json(self, key: str) -> Any:
        raw = self._get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StateStoreError(f"Stored value for {key!r} is not valid JSON") from exc

    # ------------------------------------------------------------------
    # Retrain gate
    # ------------------------------------------------------------------

    def _get_timestamp(self, key: str) -> datetime | None:
        raw = self._get(key)
        if raw is None:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError as exc:
            raise StateStoreError(f"Invalid timestamp for {key!r}: {raw!r}") from exc

    def get_last_retrain(self) -> datetime | None:
        return self._get_timestamp(_LAST_RETRAIN_KEY)

    def set_last_retrain(self, when: datetime) -> None:
        self._set(_LAST_RETRAIN_KEY, when.isoformat())

    def get_last_training_attempt(self) -> datetime | None:
        """When training last ran, whether or not it produced a model."""
        return self._get_timestamp(_LAST_TRAINING_ATTEMPT_KEY)

    def set_last_training_attempt(self, when: datetime) -> None:
        self._set(_LAST_TRAINING_ATTEMPT_KEY, when.isoformat())

    # ------------------------------------------------------------------
    # Daily check-in
    # ------------------------------------------------------------------

    def save_check_in(self, check_in: DailyCheckInData) -> None:
        """Persist the check-in encrypted, replacing any previous one."""
        self._set(_CHECK_IN_KEY, self._enc.encrypt(check_in.to_dict()))
        logger.info("Daily check-in saved for %s", check_in.date.isoformat())

    def load_check_in(self, today: date | None = None) -> DailyCheckInData | None:
        """Return the stored check-in only if it was made on ``today``."""
        token = self._get(_CHECK_IN_KEY)
        if not token:
            return None
        try:
            check_in = DailyCheckInData.from_dict(self._enc.decrypt(token))
        except (EncryptionError, KeyError, TypeError, ValueError) as exc:
            raise StateStoreError("Stored daily check-in could not be decoded") from exc

        if not check_in.is_valid_for(today or date.today()):
            return None
        return check_in

    def clear_check_in(self) -> None:
        self._delete(_CHECK_IN_KEY)

    # ------------------------------------------------------------------
    # Current risk + history
    # ------------------------------------------------------------------

    def save_current_risk(self, score: MigraineRiskScore) -> None:
        """Store the score as current and append a summary row to the history."""
        payload = score.to_dict()
        with self._db.lock:
            self._set(_CURRENT_RISK_KEY, json.dumps(payload, separators=(",", ":")))
            conn = self._db.connection
            conn.execute(
                """INSERT INTO risk_history
                   (timestamp, overall_risk, risk_level, confidence, source, factor_names)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    score.timestamp.isoformat(),
                    score.overall_risk,
                    score.risk_level.value,
                    score.confidence,
                    score.prediction_source.value,
                    json.dumps([f.name for f in score.top_factors]),
                ),
            )
            conn.commit()

    def get_current_risk_payload(self) -> dict[str, Any] | None:
        return self._get_json(_CURRENT_RISK_KEY)

    def get_risk_history(self, limit: int = 30) -> list[dict[str, Any]]:
        """Most recent risk summaries first."""
        with self._db.lock:
            rows = self._db.connection.execute(
                """SELECT timestamp, overall_risk, risk_level, confidence, source, factor_names
                   FROM risk_history
                   ORDER BY id DESC
                   LIMIT ?""",
                (limit,),
            ).fetchall()

        return [
            {
                "timestamp": row["timestamp"],
                "overall_risk": row["overall_risk"],
                "risk_level": row["risk_level"],
                "confidence": row["confidence"],
                "source": row["source"],
                "factor_names": json.loads(row["factor_names"] or "[]"),
            }
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Companion device
    # ------------------------------------------------------------------

    def set_pending_payload(self, payload: dict[str, Any]) -> None:
        self._set(_PENDING_PAYLOAD_KEY, json.dumps(payload, separators=(",", ":")))

    def get_pending_payload(self) -> dict[str, Any] | None:
        return self._get_json(_PENDING_PAYLOAD_KEY)

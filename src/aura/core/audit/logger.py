"""Audit logger: PHI-free record of every tool invocation.

Records which tool ran, when, how long it took and which scoring tier
produced the result. Tool inputs are stored only as a SHA-256 hash of their
canonical JSON, so check-in answers and risk details never reach the log.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from aura.core.storage.database import EngineDatabase

logger = logging.getLogger(__name__)


def _hash_input(data: Any) -> str:
    """SHA-256 of canonical JSON, or "" when the input is not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                              # 'tool_invocation' | 'state_change'
    tool_name: str = ""
    tool_input_hash: str = ""
    prediction_source: str | None = None     # 'rule_based' | 'machine_learning' | 'hybrid'
    duration_ms: float | None = None
    status: str = "success"                  # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Writes audit events to the ``audit_log`` table, committing each one.

    Usage::

        audit = AuditLogger(engine_db)
        audit.log_tool_call(
            tool_name="migraine_risk",
            tool_input={"include_forecast": False},
            prediction_source="rule_based",
        )
    """

    def __init__(self, database: EngineDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an event and return its id ("" if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":")) if event.metadata else None
        )

        try:
            with self._db.lock:
                conn = self._db.connection
                conn.execute(
                    """INSERT INTO audit_log
                       (id, timestamp, action, tool_name, tool_input_hash,
                        prediction_source, duration_ms, status, error_type, metadata_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        event_id,
                        now,
                        event.action,
                        event.tool_name or None,
                        event.tool_input_hash or None,
                        event.prediction_source,
                        event.duration_ms,
                        event.status,
                        event.error_type,
                        metadata_json,
                    ),
                )
                conn.commit()
        except Exception:
            logger.exception("Failed to write audit event; event lost")
            return ""

        return event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        prediction_source: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a tool invocation. ``tool_input`` is hashed, never stored raw."""
        return self.log_event(AuditEvent(
            action="tool_invocation",
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            prediction_source=prediction_source,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query events, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if tool_name:
            conditions.append("tool_name = ?")
            params.append(tool_name)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        with self._db.lock:
            rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, since: str | None = None, status: str | None = None) -> int:
        conditions: list[str] = []
        params: list[Any] = []
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)
        if status:
            conditions.append("status = ?")
            params.append(status)
        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""

        with self._db.lock:
            row = self._db.connection.execute(
                f"SELECT COUNT(*) FROM audit_log{where}", params
            ).fetchone()
        return row[0]

    def count_by_source(self, *, since: str | None = None) -> dict[str, int]:
        """How many scored tool calls each tier produced."""
        query = (
            "SELECT prediction_source, COUNT(*) AS n FROM audit_log "
            "WHERE prediction_source IS NOT NULL"
        )
        params: list[Any] = []
        if since:
            query += " AND timestamp >= ?"
            params.append(since)
        query += " GROUP BY prediction_source"

        with self._db.lock:
            rows = self._db.connection.execute(query, params).fetchall()
        return {row["prediction_source"]: row["n"] for row in rows}

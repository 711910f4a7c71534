"""MCP tool for reviewing the audit trail.

The trail holds no health data, only tool names, timings, outcome and which
scoring tier answered.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from aura.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
    ) -> str:
        """View recent tool usage and which scoring tier produced each answer.

        Args:
            days: Number of days to look back (default: 30).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        recent_events = audit_logger.get_events(since=since, limit=20)
        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "tool_name": event.get("tool_name"),
                "prediction_source": event.get("prediction_source"),
                "status": event.get("status"),
                "duration_ms": event.get("duration_ms"),
            }
            for event in recent_events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "failures": audit_logger.count_events(since=since, status="failure"),
            "by_prediction_source": audit_logger.count_by_source(since=since),
            "recent_events": display_events,
            "note": "This audit trail contains no health data.",
        }, indent=2)

"""Companion sync channel that parks the latest payload in the state store."""

from __future__ import annotations

import logging
from typing import Any

from aura.core.storage.state import EngineStateStore

logger = logging.getLogger(__name__)


class OutboxSyncChannel:
    """Keeps only the most recent risk payload; the transport picks it up later."""

    def __init__(self, state: EngineStateStore) -> None:
        self._state = state

    def send_risk_update(self, payload: dict[str, Any]) -> None:
        self._state.set_pending_payload(payload)
        logger.debug("Queued companion risk update (%s%%)", payload.get("riskPercentage"))

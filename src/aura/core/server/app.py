"""Aura migraine engine MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from aura.core.audit.logger import AuditLogger
from aura.core.config.settings import get_settings
from aura.core.storage.database import EngineDatabase
from aura.core.storage.encryption import EncryptionError, FieldEncryptor
from aura.core.storage.state import EngineStateStore
from aura.domains.migraine.connectors import (
    CompanionSyncChannel,
    HealthReadingsProvider,
    MigraineHistoryProvider,
    WeatherProvider,
)
from aura.domains.migraine.connectors.json_export import JsonExportHistoryProvider
from aura.domains.migraine.connectors.outbox import OutboxSyncChannel
from aura.domains.migraine.connectors.providers import (
    MockHealthReadingsProvider,
    MockMigraineHistoryProvider,
    MockWeatherProvider,
)
from aura.domains.migraine.ml.backend import ClassifierBackend, select_backend
from aura.domains.migraine.ml.predictor import ClassifierPredictor
from aura.domains.migraine.ml.trainer import ClassifierTrainer
from aura.domains.migraine.prompts.migraine_prompts import register_migraine_prompts
from aura.domains.migraine.service import MigrainePredictionService
from aura.domains.migraine.tools.audit_tools import register_audit_tools
from aura.domains.migraine.tools.risk_tools import register_risk_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Aura Migraine Risk"
SERVER_VERSION = "0.1.0"


def _build_state_store(db_path: str, encryption_key: str) -> EngineStateStore:
    """Persistent store when a key is configured, otherwise in-memory with an ephemeral key."""
    if encryption_key:
        try:
            encryptor = FieldEncryptor(encryption_key)
            database = EngineDatabase(db_path)
            database.initialize()
            logger.info(
                "Engine state store initialized: %s (schema v%d)",
                db_path,
                database.get_schema_version(),
            )
            return EngineStateStore(database, encryptor)
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing with in-memory state; nothing will persist")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured; engine state is kept in memory. "
            "Set ENCRYPTION_KEY to persist check-ins and risk history."
        )

    database = EngineDatabase(":memory:")
    database.initialize()
    return EngineStateStore(database, FieldEncryptor(FieldEncryptor.generate_key()))


def create_app(
    *,
    history_provider_override: MigraineHistoryProvider | None = None,
    weather_provider_override: WeatherProvider | None = None,
    health_provider_override: HealthReadingsProvider | None = None,
    state_override: EngineStateStore | None = None,
    backend_override: ClassifierBackend | None = None,
    sync_channel_override: CompanionSyncChannel | None = None,
    model_path_override: str | None = None,
) -> FastMCP:
    """Create and configure the Aura MCP server.

    1. Creates the FastMCP server instance
    2. Initializes the engine state store (persistent or in-memory)
    3. Selects the classifier backend once for the process
    4. Wires connectors, trainer, predictor and the prediction service
    5. Registers tools and prompts
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Migraine risk prediction engine. Scores today's migraine risk from "
            "personal history, weather, wearable readings and a daily check-in, "
            "explains the contributing factors, and forecasts risk hour by hour."
        ),
    )

    # --- State store ---
    if state_override is not None:
        state = state_override
    else:
        state = _build_state_store(settings.db_path, settings.encryption_key)

    # --- Connectors ---
    if history_provider_override is not None:
        history_provider = history_provider_override
    elif settings.history_export_path:
        history_provider = JsonExportHistoryProvider(settings.history_export_path)
        logger.info("Using migraine history export: %s", settings.history_export_path)
    else:
        history_provider = MockMigraineHistoryProvider()
        logger.info("Using mock migraine history provider")

    weather_provider = weather_provider_override or MockWeatherProvider()
    health_provider = health_provider_override or MockHealthReadingsProvider()
    sync_channel = sync_channel_override or OutboxSyncChannel(state)

    # --- Classifier ---
    backend = backend_override or select_backend(settings.classifier_backend)
    trainer = ClassifierTrainer(
        backend,
        state,
        model_path=model_path_override or settings.model_path,
        min_entries=settings.ml_min_entries,
        retrain_interval_days=settings.retrain_interval_days,
    )
    predictor = ClassifierPredictor(backend, trainer, confidence=settings.ml_confidence)

    service = MigrainePredictionService(
        trainer,
        predictor,
        state=state,
        sync=sync_channel,
        min_ml_entries=settings.ml_min_entries,
    )

    # --- Audit ---
    audit_logger = AuditLogger(state.database)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "history_source": history_provider.data_source,
            "classifier_backend": backend.name,
            "model_status": service.model_status.value,
            "storage_persistent": state.database.is_persistent,
        }

    register_risk_tools(
        server,
        service,
        history_provider,
        state,
        trainer,
        weather_provider=weather_provider,
        health_provider=health_provider,
        audit_logger=audit_logger,
        backend_name=backend.name,
        min_ml_entries=settings.ml_min_entries,
    )
    logger.info("Migraine risk tools registered")

    register_audit_tools(server, audit_logger)

    # --- Register prompts ---
    register_migraine_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

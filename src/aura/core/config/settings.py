"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Aura migraine engine configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default. Risk scores are derived from health data.
    aura_host: str = "127.0.0.1"
    aura_port: int = 8003
    aura_log_level: str = "info"
    # Binding to a non-loopback address also requires this flag (no auth layer).
    aura_allow_insecure_bind: bool = False

    # Engine state store + audit log
    db_path: str = "~/.aura/engine.db"

    # Encryption. Empty = in-memory state store with an ephemeral key.
    encryption_key: str = ""

    # Classifier (Tier 2)
    model_path: str = "~/.aura/migraine_classifier.pkl"
    classifier_backend: Literal["auto", "sklearn", "none"] = "auto"
    ml_min_entries: int = 20
    retrain_interval_days: int = 7
    ml_confidence: float = 0.75

    # Connectors
    history_export_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()

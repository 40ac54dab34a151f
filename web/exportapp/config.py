"""
Configuration objects for the Flask application.

Override via environment variables or a .env file (when using python-dotenv).
"""

from __future__ import annotations
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration (safe defaults)."""

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///trace_export.db")
    DB_FETCH_SIZE = int(os.getenv("DB_FETCH_SIZE", "1000"))
    SEED_SAMPLE_DATA = _env_bool("SEED_SAMPLE_DATA")

    # Export pipeline (see trace_export.ExportConfig.from_mapping)
    EXPORT_STRATEGY = os.getenv("EXPORT_STRATEGY", "streaming")
    EXPORT_SINK = os.getenv("EXPORT_SINK", "memory")
    EXPORT_TEMP_DIR = os.getenv("EXPORT_TEMP_DIR")
    EXPORT_ROW_GROUP_SIZE = int(os.getenv("EXPORT_ROW_GROUP_SIZE", "10000"))
    PARQUET_COMPRESSION = os.getenv("PARQUET_COMPRESSION", "snappy")
    PAYLOAD_CODEC = os.getenv("PAYLOAD_CODEC", "gzip")
    EXPORT_SCHEMA_PATH = os.getenv("EXPORT_SCHEMA_PATH")
    EXPORT_WORKERS = int(os.getenv("EXPORT_WORKERS", "4"))
    EXPORT_TIMEOUT_SECONDS = float(os.getenv("EXPORT_TIMEOUT_SECONDS", "300"))

    # Download
    EXPORT_FILENAME = os.getenv("EXPORT_FILENAME", "parameter_data.parquet")

    # Logging
    LOG_FILE = os.getenv("APP_LOG_FILE", "logs/app.log")
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")


class ProductionConfig(Config):
    """Production overrides."""
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development overrides."""
    LOG_LEVEL = os.getenv("APP_LOG_LEVEL", "DEBUG")
    SEED_SAMPLE_DATA = _env_bool("SEED_SAMPLE_DATA", "true")


class TestingConfig(Config):
    """In-memory database, no file logging side effects beyond a temp log."""
    TESTING = True
    DATABASE_URL = "sqlite://"
    SEED_SAMPLE_DATA = False
    EXPORT_WORKERS = 1
    LOG_LEVEL = "DEBUG"

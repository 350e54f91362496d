"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service starts with a local SQLite file and no further setup.  In a
production deployment override these via environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Trip Planner API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    # Level for the cost engine and recompute dispatcher loggers; empty
    # means they follow LOG_LEVEL.
    engine_log_level: str = os.getenv("COST_ENGINE_LOG_LEVEL", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path or connection string for the SQLite database.  A relative
    # path is resolved relative to the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "trip_planner.db")

    # Recompute every even/fixed event with a non-zero cost when the
    # application starts.  Repairs rows left stale by failed background
    # recomputations or manual database edits.
    recompute_on_startup: bool = os.getenv("RECOMPUTE_ON_STARTUP", "true").lower() in {"1", "true", "yes"}

    # Number of recompute outcomes kept in memory for the admin
    # ``/admin/recompute/outcomes`` endpoint.
    recompute_history_size: int = int(os.getenv("RECOMPUTE_HISTORY_SIZE", "200"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()

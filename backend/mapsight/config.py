"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mapsight_env: str = "development"
    mapsight_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Depth inference
    mapsight_depth_axis: str = "x"
    mapsight_level_tolerance: float = 5.0

    # Debug sessions kept in memory for root reselection
    mapsight_session_limit: int = 32

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

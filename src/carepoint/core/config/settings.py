"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """CarePoint risk server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; the server has no auth layer.
    carepoint_host: str = "127.0.0.1"
    carepoint_port: int = 8001
    carepoint_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    carepoint_allow_insecure_bind: bool = False

    # Storage (tracker data bank)
    db_path: str = "~/.carepoint/trackers.db"

    # Encryption; storage is disabled when empty
    encryption_key: str = ""

    # Scoring
    # Directory of recommendation profiles; empty means the packaged profiles
    profiles_dir: str = ""
    mood_window: int = 14
    sleep_window: int = 7
    adherence_lookback_days: int = 30
    missed_dose_grace_hours: int = 2


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()

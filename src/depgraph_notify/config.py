from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings for the notification scheduler.

    - Loads from env (and `.env` if present).
    - Unknown keys are ignored so the host can share its `.env`.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: Path = Field(default_factory=lambda: (Path.cwd() / "logs").resolve(), alias="DEPGRAPH_LOG_DIR")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    # notification scheduler
    notify_max_queue_size: int = Field(default=10, ge=1, alias="NOTIFY_MAX_QUEUE_SIZE")
    notify_cooldown_ms: int = Field(default=1000, ge=0, alias="NOTIFY_COOLDOWN_MS")
    notify_status_bar_ms: int = Field(default=3000, ge=0, alias="NOTIFY_STATUS_BAR_MS")

    @property
    def notify_cooldown_s(self) -> float:
        return float(self.notify_cooldown_ms) / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

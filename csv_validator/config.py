"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    # CORS, comma separated
    allowed_origins: str = "*"

    # Storage
    upload_dir: Path = Path("./uploads")
    download_dir: Path = Path("./downloads")
    max_file_size: int = Field(default=10 * 1024 * 1024, ge=1)

    # Job processing
    max_workers: int = Field(default=4, ge=1)
    job_max_age_hours: float = Field(default=24, gt=0)
    cleanup_interval_seconds: float = Field(default=3600, gt=0)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }

    @property
    def origins(self) -> list[str]:
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()] or ["*"]

    @property
    def job_max_age(self) -> timedelta:
        return timedelta(hours=self.job_max_age_hours)


def log_level_from_name(name: str) -> int:
    return _LOG_LEVELS.get((name or "").strip().lower(), logging.INFO)


def configure_logging(level: str = "info") -> None:
    root = logging.getLogger()
    root.setLevel(log_level_from_name(level))
    if not any(getattr(h, "_csv_validator", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._csv_validator = True  # type: ignore[attr-defined]
        root.addHandler(handler)

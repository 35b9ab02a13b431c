"""
Work Summary Service — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from worksummary/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

# The trigger window is a single hour-of-day, so a tick must run at least hourly.
MAX_INTERVAL_SECONDS = 3600


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # HTTP surface: shared secret with the authenticating gateway
    API_KEY: str
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # SQLite
    DATABASE_PATH: str = "data/worksummary.db"

    # SMTP transport
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_FROM_NAME: str = "Project Management System"

    # Links inside the emails
    APP_BASE_URL: str = "http://localhost:3000"

    # Scheduler
    SUMMARY_INTERVAL_SECONDS: int = MAX_INTERVAL_SECONDS
    SUMMARY_LOG_RETENTION_DAYS: int = 60

    @field_validator("SMTP_SECURE", mode="before")
    @classmethod
    def parse_bool(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in ("1", "true", "yes")

    @field_validator("SUMMARY_INTERVAL_SECONDS", mode="before")
    @classmethod
    def parse_interval(cls, v: str | int) -> int:
        seconds = int(v)
        if not 60 <= seconds <= MAX_INTERVAL_SECONDS:
            raise ValueError(
                f"SUMMARY_INTERVAL_SECONDS must be between 60 and {MAX_INTERVAL_SECONDS}"
            )
        return seconds

    @field_validator("SUMMARY_LOG_RETENTION_DAYS", mode="before")
    @classmethod
    def parse_retention(cls, v: str | int) -> int:
        days = int(v)
        if days < 1:
            raise ValueError("SUMMARY_LOG_RETENTION_DAYS must be at least 1")
        return days

    @field_validator("APP_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    api_key = os.getenv("API_KEY", "")

    if not api_key or api_key.startswith("your-"):
        print("ERROR: API_KEY is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        API_KEY=api_key,
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=os.getenv("API_PORT", "8000"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/worksummary.db"),
        SMTP_HOST=os.getenv("SMTP_HOST", ""),
        SMTP_PORT=os.getenv("SMTP_PORT", "587"),
        SMTP_SECURE=os.getenv("SMTP_SECURE", "false"),
        SMTP_USER=os.getenv("SMTP_USER", ""),
        SMTP_PASSWORD=os.getenv("SMTP_PASSWORD", ""),
        SMTP_FROM=os.getenv("SMTP_FROM", ""),
        SMTP_FROM_NAME=os.getenv("SMTP_FROM_NAME", "Project Management System"),
        APP_BASE_URL=os.getenv("APP_BASE_URL", "http://localhost:3000"),
        SUMMARY_INTERVAL_SECONDS=os.getenv("SUMMARY_INTERVAL_SECONDS", str(MAX_INTERVAL_SECONDS)),
        SUMMARY_LOG_RETENTION_DAYS=os.getenv("SUMMARY_LOG_RETENTION_DAYS", "60"),
    )


# Singleton, imported by all other modules as:
#   from worksummary.config import settings
settings = _load_settings()

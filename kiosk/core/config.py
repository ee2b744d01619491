"""
Centralised server settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Attendance Kiosk"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # ── Database (async SQLite via aiosqlite) ───────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./attendance.db"

    # ── Shift rules (defaults for the attendance_settings row) ───────
    SHIFT_START_HOUR: int = 8
    SHIFT_END_HOUR: int = 18
    GRACE_PERIOD_MINUTES: int = 15
    TIMEZONE_OFFSET: str = "+00:00"

    # ── Decision workflow ────────────────────────────────────────────
    # When True a failed holiday/schedule lookup is treated as a working day.
    SCAN_FAIL_OPEN: bool = False

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1",
        "http://127.0.0.1:3000",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str) and not v.lstrip().startswith("["):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    @field_validator("SHIFT_START_HOUR", "SHIFT_END_HOUR")
    @classmethod
    def _hour(cls, v: int) -> int:
        if not 0 <= v <= 24:
            raise ValueError("Shift hours must be between 0 and 24")
        return v

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

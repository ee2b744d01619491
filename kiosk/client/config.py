"""
Kiosk-side configuration.

The server address is explicit configuration threaded into the API
client; changing it produces a new config object. ``ClientConfigStore``
keeps the operator's choice across restarts in a small JSON file.
"""

from __future__ import annotations

import json
import logging
from datetime import timezone
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kiosk.core.timeutil import parse_tz_offset
from kiosk.engine.decision import AttendanceDecisionEngine, ShiftPolicy

logger = logging.getLogger(__name__)


class ClientConfig(BaseSettings):
    # ── Server ───────────────────────────────────────────────────────
    server_host: str = "127.0.0.1"
    api_port: int = 8000
    api_prefix: str = "/api"
    request_timeout: float = 5.0

    # ── Fingerprint reader service ───────────────────────────────────
    reader_port: int = 3006

    # ── Local rules ──────────────────────────────────────────────────
    timezone_offset: str = "+00:00"
    shift_start_hour: int = 8
    shift_end_hour: int = 18
    grace_minutes: int = 15
    fail_open: bool = False

    # Seconds an outcome stays on screen before the kiosk returns to ready.
    reset_delay: float = 5.0

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("server_host")
    @classmethod
    def _host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Server host must not be empty")
        return v

    @field_validator("timezone_offset")
    @classmethod
    def _offset(cls, v: str) -> str:
        parse_tz_offset(v)
        return v.strip()

    @property
    def api_url(self) -> str:
        return f"http://{self.server_host}:{self.api_port}{self.api_prefix}"

    @property
    def reader_url(self) -> str:
        return f"http://{self.server_host}:{self.reader_port}"

    @property
    def tz(self) -> timezone:
        return parse_tz_offset(self.timezone_offset)

    def with_server(self, host: str) -> "ClientConfig":
        """Same config pointed at another server."""
        return type(self).model_validate({**self.model_dump(), "server_host": host})

    def build_engine(self) -> AttendanceDecisionEngine:
        policy = ShiftPolicy(
            start_hour=self.shift_start_hour,
            end_hour=self.shift_end_hour,
            grace_minutes=self.grace_minutes,
        )
        return AttendanceDecisionEngine(policy, self.tz)


class ClientConfigStore:
    """Persists a :class:`ClientConfig` as JSON."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> ClientConfig:
        """Saved config, or the environment defaults when nothing usable is saved."""
        if not self.path.is_file():
            return ClientConfig()
        try:
            saved = json.loads(self.path.read_text(encoding="utf-8"))
            return ClientConfig(**saved)
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Ignoring unreadable kiosk config %s: %s", self.path, exc)
            return ClientConfig()

    def save(self, config: ClientConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(config.model_dump(mode="json"), indent=2),
            encoding="utf-8",
        )
        logger.info("Saved kiosk config (server %s)", config.server_host)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

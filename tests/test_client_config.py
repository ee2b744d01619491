"""Tests for kiosk client configuration and its JSON store."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from kiosk.client.config import ClientConfig, ClientConfigStore


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("KIOSK_SERVER_HOST", "10.0.0.7")
    monkeypatch.setenv("KIOSK_API_PORT", "9000")
    config = ClientConfig()
    assert config.api_url == "http://10.0.0.7:9000/api"
    assert config.reader_url == "http://10.0.0.7:3006"


def test_with_server_returns_a_new_config():
    config = ClientConfig(server_host="127.0.0.1", grace_minutes=5)
    moved = config.with_server("192.168.1.19")
    assert moved.server_host == "192.168.1.19"
    assert moved.grace_minutes == 5
    assert config.server_host == "127.0.0.1"
    with pytest.raises(ValidationError):
        config.with_server("   ")


def test_engine_uses_configured_rules():
    config = ClientConfig(timezone_offset="+08:00", shift_start_hour=9, grace_minutes=0)
    engine = config.build_engine()
    assert engine.policy.start_hour == 9
    assert engine.policy.grace_minutes == 0
    assert engine.tz.utcoffset(None) == timedelta(hours=8)


def test_bad_offset_rejected():
    with pytest.raises(ValidationError):
        ClientConfig(timezone_offset="UTC+8")


def test_store_round_trip_and_clear(tmp_path):
    store = ClientConfigStore(tmp_path / "kiosk" / "config.json")
    assert store.load().server_host == ClientConfig().server_host

    store.save(ClientConfig(server_host="192.168.1.19", reset_delay=3))
    loaded = store.load()
    assert loaded.server_host == "192.168.1.19"
    assert loaded.reset_delay == 3

    store.clear()
    assert not store.path.exists()
    store.clear()


def test_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert ClientConfigStore(path).load().server_host == ClientConfig().server_host

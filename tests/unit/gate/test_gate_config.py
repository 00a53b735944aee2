"""Tests for the gate engine configuration."""

from datetime import timedelta

from core.config import settings
from core.geofence import Coordinates
from gate.config import GateConfig


def test_defaults():
    config = GateConfig()

    assert config.target == Coordinates(22.3193, 114.2057)
    assert config.radius_km == 1.0
    assert config.session_validity == timedelta(days=3)
    assert config.poll_interval_seconds == 2.0
    assert config.message_rotation_seconds == 3.0
    assert config.interviewers == ("Alex Chan", "Priya Nair", "Marcus Lee", "Sofia Wong")


def test_matches_service_settings():
    config = GateConfig.from_settings(settings)

    assert config == GateConfig()
    assert config.geofence.radius_km == settings.access_radius_km


def test_settings_override(monkeypatch):
    monkeypatch.setattr(settings, "access_radius_km", 2.5)
    monkeypatch.setattr(settings, "session_validity_days", 7)

    config = GateConfig.from_settings(settings)

    assert config.radius_km == 2.5
    assert config.session_validity == timedelta(days=7)

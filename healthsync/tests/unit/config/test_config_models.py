"""
Tests for configuration models and environment loading.
"""

import pytest
from pydantic import ValidationError

from healthsync.config import get_config
from healthsync.config.models import (
    CORSConfig,
    EmergencyConfig,
    LoggingConfig,
    NotificationConfig,
    OfflineQueueConfig,
    RealtimeConfig,
    ReconnectionConfig,
    ServerConfig,
)


class TestDefaults:
    def test_client_defaults(self):
        assert ReconnectionConfig().max_attempts is None
        assert ReconnectionConfig().max_delay == 5.0
        assert NotificationConfig().emergency_duration >= 10
        assert OfflineQueueConfig().max_entries == 50
        assert EmergencyConfig().phone_number == "+2348060270792"

    def test_server_defaults(self):
        assert RealtimeConfig().websocket_path == "/api/ws"


class TestValidation:
    @pytest.mark.parametrize("port", [80, 70000])
    def test_port_range(self, port):
        with pytest.raises(ValidationError):
            ServerConfig(port=port)

    def test_emergency_alerts_must_last_ten_seconds(self):
        with pytest.raises(ValidationError):
            NotificationConfig(emergency_duration=5.0)

    def test_reconnect_delay_bounds(self):
        with pytest.raises(ValidationError):
            ReconnectionConfig(initial_delay=10.0, max_delay=5.0)

    @pytest.mark.parametrize("jitter", [-0.1, 1.5])
    def test_jitter_range(self, jitter):
        with pytest.raises(ValidationError):
            ReconnectionConfig(jitter=jitter)

    def test_client_url_scheme(self):
        with pytest.raises(ValidationError):
            RealtimeConfig(client_url="http://localhost/api/ws")

    def test_phone_number_digits(self):
        with pytest.raises(ValidationError):
            EmergencyConfig(phone_number="call-911")

    def test_log_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("REALTIME_RECONNECT_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("OFFLINE_QUEUE_MAX_ENTRIES", "12")
        monkeypatch.setenv("EMERGENCY_PHONE_NUMBER", "+15550100")

        config = get_config()

        assert config.reconnection.max_attempts == 7
        assert config.offline_queue.max_entries == 12
        assert config.emergency.phone_number == "+15550100"
        assert config.server.port == 54731

    def test_cors_origins_accept_csv(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test")

        assert CORSConfig().allow_origins == ["http://a.test", "http://b.test"]

    def test_cors_origins_accept_json(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", '["http://a.test"]')

        assert CORSConfig().allow_origins == ["http://a.test"]

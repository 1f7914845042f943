"""Tests for settings loading, substitution and environment overrides."""

import json

import pytest
import yaml

from customops.config import (
    EnvironmentOverrides,
    GatewaySettings,
    Settings,
    VariableSubstitution,
    load_settings,
)
from customops.exceptions import ConfigurationError
from customops.gateway import Gateway, HTTPTransport, InMemoryTransport, create_gateway


class TestVariableSubstitution:
    """Tests for ${VAR} substitution."""

    def test_substitutes_and_converts(self, monkeypatch):
        monkeypatch.setenv("CO_TIMEOUT", "45")
        monkeypatch.setenv("CO_HOST", "api.example.com")
        result = VariableSubstitution().substitute(
            {"timeout": "${CO_TIMEOUT}", "url": "https://${CO_HOST}/api", "list": ["${CO_HOST}"]}
        )
        assert result == {
            "timeout": 45,
            "url": "https://api.example.com/api",
            "list": ["api.example.com"],
        }

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CO_MISSING", raising=False)
        sub = VariableSubstitution()
        assert sub.substitute("${CO_MISSING:fallback}") == "fallback"
        assert sub.substitute("${CO_MISSING:-true}") is True
        assert sub.substitute("${CO_MISSING:}") == ""

    def test_missing_without_default_raises(self, monkeypatch):
        monkeypatch.delenv("CO_MISSING", raising=False)
        with pytest.raises(ConfigurationError) as excinfo:
            VariableSubstitution().substitute({"token": "${CO_MISSING}"})
        assert excinfo.value.context["variable"] == "CO_MISSING"


class TestEnvironmentOverrides:
    """Tests for CUSTOMOPS_<SECTION>__<KEY> overrides."""

    def test_collects_typed_overrides(self):
        environ = {
            "CUSTOMOPS_GATEWAY__TIMEOUT": "12.5",
            "CUSTOMOPS_GATEWAY__VERIFY_SSL": "false",
            "CUSTOMOPS_WIZARD__PASSING_SCORE": "80",
            "CUSTOMOPS_HOME": "/opt/customops",
            "PATH": "/usr/bin",
        }
        overrides = EnvironmentOverrides().get_overrides(environ)
        assert overrides == {
            "gateway": {"timeout": 12.5, "verify_ssl": False},
            "wizard": {"passing_score": 80},
        }

    def test_parse_env_var(self):
        overrides = EnvironmentOverrides()
        assert overrides.parse_env_var("CUSTOMOPS_METRICS__EXPIRING_WINDOW_DAYS") == (
            "metrics",
            "expiring_window_days",
        )
        with pytest.raises(ConfigurationError):
            overrides.parse_env_var("OTHER_GATEWAY__X")


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self):
        settings = load_settings(use_env=False)
        assert settings.gateway.transport == "memory"
        assert settings.gateway.timeout == 30.0
        assert settings.wizard.passing_score == 70
        assert settings.metrics.expiring_window_days == 90

    def test_yaml_file_with_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CO_APP", "app-42")
        path = tmp_path / "settings.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "gateway": {
                        "transport": "http",
                        "base_url": "https://example.com/api",
                        "app_id": "${CO_APP}",
                        "auth_token": "token",
                    },
                    "metrics": {"expiring_window_days": 60},
                }
            )
        )
        settings = load_settings(path, use_env=False)
        assert settings.gateway.app_id == "app-42"
        assert settings.metrics.expiring_window_days == 60
        assert settings.to_dict()["gateway"]["transport"] == "http"

    def test_json_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"wizard": {"passing_score": 85}}))
        assert load_settings(path, use_env=False).wizard.passing_score == 85

    def test_environment_overrides_win(self):
        settings = load_settings(
            {"wizard": {"passing_score": 60}},
            environ={"CUSTOMOPS_WIZARD__PASSING_SCORE": "90"},
        )
        assert settings.wizard.passing_score == 90

    @pytest.mark.parametrize(
        "data",
        [
            {"database": {}},
            {"gateway": {"colour": "blue"}},
            {"gateway": "http"},
            {"gateway": {"transport": "carrier-pigeon"}},
            {"gateway": {"transport": "http", "app_id": ""}},
            {"gateway": {"timeout": 0}},
            {"wizard": {"passing_score": 120}},
            {"metrics": {"expiring_window_days": 0}},
        ],
    )
    def test_invalid_settings(self, data):
        with pytest.raises(ConfigurationError):
            load_settings(data, use_env=False)

    def test_missing_and_unsupported_files(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.yaml", use_env=False)
        path = tmp_path / "settings.toml"
        path.write_text("x = 1")
        with pytest.raises(ConfigurationError):
            load_settings(path, use_env=False)

    @pytest.mark.parametrize(
        "name,text",
        [("settings.yaml", "gateway: {timeout: 5"), ("settings.json", "{\"gateway\": ")],
    )
    def test_malformed_file_raises_configuration_error(self, tmp_path, name, text):
        path = tmp_path / name
        path.write_text(text)
        with pytest.raises(ConfigurationError) as excinfo:
            load_settings(path, use_env=False)
        assert "Failed to parse configuration file" in str(excinfo.value)
        assert excinfo.value.context["path"] == str(path)

    def test_from_dict_roundtrip(self):
        settings = Settings.from_dict({"gateway": {"app_id": "a"}})
        assert Settings.from_dict(settings.to_dict()) == settings


class TestCreateGateway:
    """Tests for building a gateway from settings."""

    def test_memory_by_default(self):
        gateway = create_gateway()
        assert isinstance(gateway, Gateway)
        assert isinstance(gateway.transport, InMemoryTransport)

    def test_http_transport(self):
        settings = GatewaySettings(
            transport="http", base_url="https://example.com/api/", app_id="app", auth_token="t"
        )
        gateway = create_gateway(settings)
        assert isinstance(gateway.transport, HTTPTransport)
        assert gateway.transport.app_url == "https://example.com/api/apps/app"

    def test_http_requires_token(self):
        settings = GatewaySettings(transport="http", app_id="app")
        with pytest.raises(ConfigurationError):
            create_gateway(settings)

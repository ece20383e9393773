"""
tests.test_settings

Configuration resolution: file + environment precedence, fail-fast parsing, secrets.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from comply_gateway.errors import ConfigurationError
from comply_gateway.settings import CONFIG_FILE_ENV, load_secrets, resolve_settings

FILE_CONFIG = {
    "server": {
        "port": 4000,
        "host": "10.0.0.1",
        "tls_enabled": False,
        "key_path": "/file/key.pem",
        "cert_path": "/file/cert.pem",
    },
    "backend": {
        "base_url_template": "https://{workspace_uuid}.file.test",
        "platform_url": "https://platform.file.test",
        "timeout_ms": 1000,
        "retries": 1,
    },
    "logging": {"level": "warning", "format": "json"},
    "cors": {"enabled": True, "origin": "https://file.test"},
}


@pytest.fixture
def config_file(tmp_path, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "default.json"
    path.write_text(json.dumps(FILE_CONFIG))
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    return path


def test_defaults_when_no_file_and_no_env() -> None:
    s = resolve_settings()
    assert s.server.port == 3000
    assert s.server.host == "0.0.0.0"
    assert s.server.tls_enabled is False
    assert s.backend.timeout_ms == 30_000
    assert s.backend.retries == 3
    assert s.logging.format == "json"
    assert s.cors.enabled is True


def test_file_values_are_used(config_file) -> None:
    s = resolve_settings()
    assert s.server.port == 4000
    assert s.backend.base_url_template == "https://{workspace_uuid}.file.test"
    assert s.logging.level == "warning"
    assert s.cors.origin == "https://file.test"


@pytest.mark.parametrize(
    ("var", "raw", "section", "field", "expected"),
    [
        ("PORT", "8081", "server", "port", 8081),
        ("HOST", "127.0.0.1", "server", "host", "127.0.0.1"),
        ("TLS_ENABLED", "true", "server", "tls_enabled", True),
        ("TLS_KEY_PATH", "/env/key.pem", "server", "key_path", "/env/key.pem"),
        ("TLS_CERT_PATH", "/env/cert.pem", "server", "cert_path", "/env/cert.pem"),
        (
            "WECAN_WORKSPACE_URL_TEMPLATE",
            "https://{workspace_uuid}.env.test",
            "backend",
            "base_url_template",
            "https://{workspace_uuid}.env.test",
        ),
        ("WECAN_PLATFORM_URL", "https://platform.env.test", "backend", "platform_url", "https://platform.env.test"),
        ("WECAN_TIMEOUT_MS", "5000", "backend", "timeout_ms", 5000),
        ("WECAN_RETRIES", "7", "backend", "retries", 7),
        ("LOG_LEVEL", "debug", "logging", "level", "debug"),
        ("LOG_FORMAT", "console", "logging", "format", "console"),
        ("CORS_ENABLED", "false", "cors", "enabled", False),
        ("CORS_ORIGIN", "https://env.test", "cors", "origin", "https://env.test"),
    ],
)
def test_env_overrides_file_per_field(
    config_file, monkeypatch: pytest.MonkeyPatch, var, raw, section, field, expected
) -> None:
    monkeypatch.setenv(var, raw)
    s = resolve_settings()
    assert getattr(getattr(s, section), field) == expected
    assert getattr(getattr(s, section), field) != FILE_CONFIG[section].get(field)


def test_override_merges_field_by_field(config_file, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "9000")
    s = resolve_settings()
    assert s.server.port == 9000
    # Sibling fields in the same section still come from the file.
    assert s.server.host == "10.0.0.1"
    assert s.server.key_path == "/file/key.pem"


def test_empty_env_value_is_ignored(config_file, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOST", "")
    assert resolve_settings().server.host == "10.0.0.1"


@pytest.mark.parametrize(("var", "raw"), [("PORT", "eighty"), ("WECAN_TIMEOUT_MS", "1.5s"), ("WECAN_RETRIES", "-1")])
def test_unparseable_numbers_fail_fast(config_file, monkeypatch: pytest.MonkeyPatch, var, raw) -> None:
    monkeypatch.setenv(var, raw)
    with pytest.raises(ConfigurationError):
        resolve_settings()


@pytest.mark.parametrize(("raw", "expected"), [("DEBUG", "debug"), ("warn", "warn"), (" error ", "error")])
def test_log_level_is_normalized(monkeypatch: pytest.MonkeyPatch, raw, expected) -> None:
    monkeypatch.setenv("LOG_LEVEL", raw)
    assert resolve_settings().logging.level == expected


@pytest.mark.parametrize("raw", ["verbose", "loud"])
def test_unknown_log_level_is_fatal(config_file, monkeypatch: pytest.MonkeyPatch, raw) -> None:
    monkeypatch.setenv("LOG_LEVEL", raw)
    with pytest.raises(ConfigurationError, match="level"):
        resolve_settings()


def test_partial_tls_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TLS_ENABLED", "true")
    monkeypatch.setenv("TLS_KEY_PATH", "/env/key.pem")
    with pytest.raises(ConfigurationError, match="cert_path"):
        resolve_settings()


def test_full_tls_is_accepted(config_file, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TLS_ENABLED", "1")
    s = resolve_settings()
    assert s.server.tls_enabled is True
    assert s.server.cert_path == "/file/cert.pem"


def test_invalid_config_file_is_fatal(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    with pytest.raises(ConfigurationError):
        resolve_settings()


def test_settings_are_immutable() -> None:
    s = resolve_settings()
    with pytest.raises(PydanticValidationError):
        s.server.port = 1  # type: ignore[misc]


def test_secrets_never_come_from_the_config_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "with-secret.json"
    path.write_text(json.dumps({"access_token": "from-file", "WECAN_ACCESS_TOKEN": "from-file"}))
    monkeypatch.setenv(CONFIG_FILE_ENV, str(path))
    assert load_secrets().has_access_token is False


def test_secrets_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WECAN_ACCESS_TOKEN", "s3cr3t")
    monkeypatch.setenv(
        "WECAN_WORKSPACE_KEYS",
        json.dumps([{"workspaceUuid": "ws-1", "privateKey": "-----BEGIN KEY-----"}]),
    )
    secrets = load_secrets()
    assert secrets.has_access_token
    assert secrets.access_token.get_secret_value() == "s3cr3t"
    assert secrets.workspace_keys[0].workspace_uuid == "ws-1"
    assert "s3cr3t" not in repr(secrets)
    assert "BEGIN KEY" not in repr(secrets)


def test_missing_token_is_not_fatal_at_startup() -> None:
    assert load_secrets().has_access_token is False


def test_malformed_workspace_keys_are_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WECAN_WORKSPACE_KEYS", "not-json")
    with pytest.raises(ConfigurationError):
        load_secrets()


def test_workspace_keys_error_does_not_echo_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WECAN_WORKSPACE_KEYS", json.dumps([{"privateKey": "super-secret-key"}]))
    with pytest.raises(ConfigurationError) as exc_info:
        load_secrets()
    assert "super-secret-key" not in str(exc_info.value)

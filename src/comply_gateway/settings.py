"""
comply_gateway.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Resolve one immutable settings object from a JSON config file plus environment overrides.
- Keep secrets (backend access token, workspace keys) in a separate, env-only model.
- Fail fast on values that do not parse and on partial TLS configuration.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from comply_gateway.errors import ConfigurationError

CONFIG_FILE_ENV = "COMPLY_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "config/default.json"

LOG_LEVELS = ("critical", "error", "warning", "warn", "info", "debug")

# Flat environment variable -> (section, field) of the nested settings model.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PORT": ("server", "port"),
    "HOST": ("server", "host"),
    "TLS_ENABLED": ("server", "tls_enabled"),
    "TLS_KEY_PATH": ("server", "key_path"),
    "TLS_CERT_PATH": ("server", "cert_path"),
    "WECAN_WORKSPACE_URL_TEMPLATE": ("backend", "base_url_template"),
    "WECAN_PLATFORM_URL": ("backend", "platform_url"),
    "WECAN_TIMEOUT_MS": ("backend", "timeout_ms"),
    "WECAN_RETRIES": ("backend", "retries"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
    "CORS_ENABLED": ("cors", "enabled"),
    "CORS_ORIGIN": ("cors", "origin"),
}


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    port: int = Field(default=3000, ge=1, le=65535)
    host: str = "0.0.0.0"
    tls_enabled: bool = False
    key_path: str | None = None
    cert_path: str | None = None

    @model_validator(mode="after")
    def _tls_requires_key_and_cert(self) -> ServerSettings:
        # Partial TLS is a misconfiguration, never a silent fallback to plaintext.
        if self.tls_enabled and not (self.key_path and self.cert_path):
            raise ValueError("TLS is enabled but key_path and cert_path must both be set")
        return self


class BackendSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    base_url_template: str = "https://{workspace_uuid}.wecancomply.com"
    platform_url: str = "https://app.wecancomply.com"
    timeout_ms: int = Field(default=30_000, gt=0)
    retries: int = Field(default=3, ge=0)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    level: str = "info"
    format: Literal["json", "console"] = "json"

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of: {', '.join(LOG_LEVELS)}")
        return level


class CorsSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = True
    origin: str = "*"


class _EnvOverrideSource(PydanticBaseSettingsSource):
    """
    Maps the flat, historical env var names onto nested settings sections.

    Values are returned raw; type coercion (and failure) happens in model validation.
    """

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        # Unused: __call__ builds the whole nested mapping at once.
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        data: dict[str, dict[str, str]] = {}
        for var, (section, key) in ENV_OVERRIDES.items():
            raw = os.environ.get(var)
            if raw is None or raw == "":
                continue
            data.setdefault(section, {})[key] = raw
        return data


def config_file_path() -> str:
    return os.environ.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE


class Settings(BaseSettings):
    """
    Resolved, immutable configuration.

    Precedence per field: init kwargs > environment > JSON config file > defaults.
    Sections are deep-merged, so overriding `PORT` keeps the file's `host`.
    """

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    service_name: str = "comply-gateway"

    server: ServerSettings = Field(default_factory=ServerSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            _EnvOverrideSource(settings_cls),
            JsonConfigSettingsSource(settings_cls, json_file=config_file_path()),
        )


class WorkspaceKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    workspace_uuid: str = Field(validation_alias=AliasChoices("workspaceUuid", "workspace_uuid"))
    private_key: SecretStr = Field(
        validation_alias=AliasChoices("privateKey", "private_key"), repr=False
    )


class Secrets(BaseSettings):
    """
    Secret material, read from the environment only (never from the config file).
    """

    model_config = SettingsConfigDict(
        frozen=True, extra="ignore", case_sensitive=True, env_ignore_empty=True
    )

    access_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("WECAN_ACCESS_TOKEN", "access_token"),
        repr=False,
    )
    # JSON array in WECAN_WORKSPACE_KEYS, used by the backend client for decryption.
    workspace_keys: list[WorkspaceKey] | None = Field(
        default=None,
        validation_alias=AliasChoices("WECAN_WORKSPACE_KEYS", "workspace_keys"),
        repr=False,
    )

    @property
    def has_access_token(self) -> bool:
        return self.access_token is not None and bool(self.access_token.get_secret_value())


def resolve_settings(**overrides: Any) -> Settings:
    try:
        return Settings(**overrides)
    except ValueError as e:
        # pydantic ValidationError, SettingsError and JSON decode errors are all ValueErrors.
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_secrets(**overrides: Any) -> Secrets:
    try:
        return Secrets(**overrides)
    except PydanticValidationError as e:
        # Report field locations only; the rejected input may be secret material.
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"Invalid secret configuration: {fields}") from None
    except ValueError as e:
        raise ConfigurationError(f"Invalid secret configuration: {e}") from None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-reading the config file and env vars after startup.
    return resolve_settings()


# --- Module Notes -----------------------------------------------------------
# The access token is deliberately optional here: a missing token surfaces lazily as an
# InitializationError from `backend.lifecycle`, so /health can report it as unhealthy.

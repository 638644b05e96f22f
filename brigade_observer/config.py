"""Brigade Observer configuration management using Pydantic."""

__all__ = [
    "ObserverConfig",
    "APIConfig",
    "LoggingConfig",
]

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from brigade_observer.constants import (
    DEFAULT_API_REQUEST_TIMEOUT,
    DEFAULT_DELAY_BEFORE_CLEANUP,
    DEFAULT_HEALTHCHECK_INTERVAL,
    DEFAULT_MAX_JOB_LIFETIME,
    DEFAULT_MAX_WORKER_LIFETIME,
)
from brigade_observer.durations import parse_duration
from brigade_observer.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "n", "no", "off", ""}


class APIConfig(BaseModel):
    """Brigade API connection settings."""

    address: str = Field(min_length=1)
    token: str = Field(min_length=1)
    ignore_cert_warnings: bool = False
    request_timeout: float = Field(default=DEFAULT_API_REQUEST_TIMEOUT, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="info", pattern="^(debug|info|warn|warning|error)$")
    format: str = Field(default="console", pattern="^(console|json)$")


class ObserverConfig(BaseModel):
    """Complete Observer configuration.

    Durations are held in seconds.
    """

    brigade_id: str = Field(min_length=1)
    api: APIConfig
    delay_before_cleanup: float = Field(default=DEFAULT_DELAY_BEFORE_CLEANUP, ge=0)
    max_worker_lifetime: float = Field(default=DEFAULT_MAX_WORKER_LIFETIME, gt=0)
    max_job_lifetime: float = Field(default=DEFAULT_MAX_JOB_LIFETIME, gt=0)
    healthcheck_interval: float = Field(default=DEFAULT_HEALTHCHECK_INTERVAL, gt=0)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ObserverConfig":
        """Build configuration from environment variables alone."""
        return cls.load(config_path=None, environ=environ)

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "ObserverConfig":
        """Load configuration from an optional YAML file, then the environment.

        Environment variables override values from the file.

        Args:
            config_path: Optional path to a YAML file with the same structure
                as the model (durations may be given as strings like ``2m``).
            environ: Environment mapping. Defaults to ``os.environ``.

        Returns:
            Validated ObserverConfig

        Raises:
            ConfigurationError: If a value is missing, unparsable or invalid.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise ConfigurationError(f"config file {path} does not exist")
            with open(path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(f"config file {path} must contain a mapping")
            data = loaded
            logger.debug("Loaded observer config from %s", path)

        api = dict(data.get("api") or {})
        log_settings = dict(data.get("logging") or {})

        _set_str(data, "brigade_id", env, "BRIGADE_ID")
        _set_str(api, "address", env, "API_ADDRESS")
        _set_str(api, "token", env, "API_TOKEN")
        _set_bool(api, "ignore_cert_warnings", env, "API_IGNORE_CERT_WARNINGS")
        _set_duration(api, "request_timeout", env, "API_REQUEST_TIMEOUT")
        _set_duration(data, "delay_before_cleanup", env, "DELAY_BEFORE_CLEANUP")
        _set_duration(data, "max_worker_lifetime", env, "MAX_WORKER_LIFETIME")
        _set_duration(data, "max_job_lifetime", env, "MAX_JOB_LIFETIME")
        _set_duration(data, "healthcheck_interval", env, "HEALTHCHECK_INTERVAL")
        _set_str(log_settings, "level", env, "LOG_LEVEL")
        _set_str(log_settings, "format", env, "LOG_FORMAT")

        if not data.get("brigade_id"):
            raise ConfigurationError("value not found for required environment variable BRIGADE_ID", "BRIGADE_ID")
        for name, variable in (("address", "API_ADDRESS"), ("token", "API_TOKEN")):
            if not api.get(name):
                raise ConfigurationError(f"value not found for required environment variable {variable}", variable)

        # File values may still be duration strings
        for container, key in (
            (data, "delay_before_cleanup"),
            (data, "max_worker_lifetime"),
            (data, "max_job_lifetime"),
            (data, "healthcheck_interval"),
            (api, "request_timeout"),
        ):
            if isinstance(container.get(key), str):
                container[key] = _duration(container[key], key)

        data["api"] = api
        data["logging"] = log_settings
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid observer configuration: {e}") from e

    def to_dict(self, mask_secrets: bool = True) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Args:
            mask_secrets: Replace the API token with asterisks

        Returns:
            Configuration as dictionary
        """
        data = self.model_dump()
        if mask_secrets:
            data["api"]["token"] = "*" * 8
        return data


def _duration(value: str, variable: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise ConfigurationError(f"value {value!r} for {variable} was not parsable as a duration", variable) from e


def _set_str(target: dict[str, Any], key: str, env: Mapping[str, str], variable: str) -> None:
    value = env.get(variable)
    if value:
        target[key] = value


def _set_duration(target: dict[str, Any], key: str, env: Mapping[str, str], variable: str) -> None:
    value = env.get(variable)
    if value:
        target[key] = _duration(value, variable)


def _set_bool(target: dict[str, Any], key: str, env: Mapping[str, str], variable: str) -> None:
    value = env.get(variable)
    if value is None:
        return
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        target[key] = True
    elif lowered in _FALSE_VALUES:
        target[key] = False
    else:
        raise ConfigurationError(f"value {value!r} for {variable} was not parsable as a bool", variable)

"""Tests for Observer configuration loading."""

from pathlib import Path

import pytest
import yaml

from brigade_observer.config import ObserverConfig
from brigade_observer.exceptions import ConfigurationError

REQUIRED = {
    "BRIGADE_ID": "brigade-test",
    "API_ADDRESS": "https://brigade.example.com",
    "API_TOKEN": "observer-token",
}


def env(**overrides: str) -> dict[str, str]:
    return {**REQUIRED, **overrides}


class TestFromEnv:
    """Tests for configuration from environment variables."""

    def test_defaults(self):
        config = ObserverConfig.from_env(env())
        assert config.brigade_id == "brigade-test"
        assert config.api.address == "https://brigade.example.com"
        assert config.api.token == "observer-token"
        assert config.api.ignore_cert_warnings is False
        assert config.api.request_timeout == 30
        assert config.delay_before_cleanup == 60
        assert config.max_worker_lifetime == 24 * 3600
        assert config.max_job_lifetime == 24 * 3600
        assert config.healthcheck_interval == 30
        assert config.logging.level == "info"
        assert config.logging.format == "console"

    def test_durations(self):
        config = ObserverConfig.from_env(
            env(
                DELAY_BEFORE_CLEANUP="90s",
                MAX_WORKER_LIFETIME="2h",
                MAX_JOB_LIFETIME="1h30m",
                HEALTHCHECK_INTERVAL="10s",
                API_REQUEST_TIMEOUT="500ms",
            )
        )
        assert config.delay_before_cleanup == 90
        assert config.max_worker_lifetime == 7200
        assert config.max_job_lifetime == 5400
        assert config.healthcheck_interval == 10
        assert config.api.request_timeout == pytest.approx(0.5)

    def test_zero_cleanup_delay_allowed(self):
        assert ObserverConfig.from_env(env(DELAY_BEFORE_CLEANUP="0")).delay_before_cleanup == 0

    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("false", False), ("", False)])
    def test_ignore_cert_warnings(self, value, expected):
        config = ObserverConfig.from_env(env(API_IGNORE_CERT_WARNINGS=value))
        assert config.api.ignore_cert_warnings is expected

    def test_logging(self):
        config = ObserverConfig.from_env(env(LOG_LEVEL="debug", LOG_FORMAT="json"))
        assert config.logging.level == "debug"
        assert config.logging.format == "json"


class TestErrors:
    """Tests for configuration errors."""

    @pytest.mark.parametrize("variable", ["BRIGADE_ID", "API_ADDRESS", "API_TOKEN"])
    def test_missing_required(self, variable):
        environ = env()
        del environ[variable]

        with pytest.raises(ConfigurationError) as exc_info:
            ObserverConfig.from_env(environ)

        assert exc_info.value.variable == variable
        assert "value not found for required environment variable" in str(exc_info.value)

    def test_empty_required_counts_as_missing(self):
        with pytest.raises(ConfigurationError):
            ObserverConfig.from_env(env(API_TOKEN=""))

    @pytest.mark.parametrize("variable", ["DELAY_BEFORE_CLEANUP", "MAX_WORKER_LIFETIME", "MAX_JOB_LIFETIME"])
    def test_unparsable_duration(self, variable):
        with pytest.raises(ConfigurationError) as exc_info:
            ObserverConfig.from_env(env(**{variable: "forever"}))

        assert exc_info.value.variable == variable
        assert "was not parsable as a duration" in str(exc_info.value)

    def test_unitless_duration_rejected(self):
        with pytest.raises(ConfigurationError, match="MAX_JOB_LIFETIME"):
            ObserverConfig.from_env(env(MAX_JOB_LIFETIME="3600"))

    def test_zero_lifetime_rejected(self):
        with pytest.raises(ConfigurationError, match="invalid observer configuration"):
            ObserverConfig.from_env(env(MAX_WORKER_LIFETIME="0"))

    def test_unparsable_bool(self):
        with pytest.raises(ConfigurationError, match="API_IGNORE_CERT_WARNINGS"):
            ObserverConfig.from_env(env(API_IGNORE_CERT_WARNINGS="maybe"))

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError):
            ObserverConfig.from_env(env(LOG_LEVEL="loud"))


class TestLoadFile:
    """Tests for loading an optional YAML file."""

    @pytest.fixture
    def config_file(self, tmp_path: Path) -> Path:
        path = tmp_path / "observer.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "brigade_id": "from-file",
                    "api": {"address": "https://file.example.com", "token": "file-token", "request_timeout": "10s"},
                    "delay_before_cleanup": "5m",
                    "max_job_lifetime": 600,
                    "logging": {"format": "json"},
                }
            )
        )
        return path

    def test_file_values(self, config_file):
        config = ObserverConfig.load(config_file, environ={})
        assert config.brigade_id == "from-file"
        assert config.api.token == "file-token"
        assert config.api.request_timeout == 10
        assert config.delay_before_cleanup == 300
        assert config.max_job_lifetime == 600
        assert config.logging.format == "json"

    def test_environment_overrides_file(self, config_file):
        config = ObserverConfig.load(config_file, environ={"BRIGADE_ID": "from-env", "DELAY_BEFORE_CLEANUP": "1m"})
        assert config.brigade_id == "from-env"
        assert config.delay_before_cleanup == 60
        assert config.api.address == "https://file.example.com"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            ObserverConfig.load(tmp_path / "nope.yaml", environ=REQUIRED)

    def test_file_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            ObserverConfig.load(path, environ=REQUIRED)


class TestToDict:
    def test_token_masked(self):
        data = ObserverConfig.from_env(env()).to_dict()
        assert data["api"]["token"] == "********"
        assert data["brigade_id"] == "brigade-test"

    def test_unmasked(self):
        assert ObserverConfig.from_env(env()).to_dict(mask_secrets=False)["api"]["token"] == "observer-token"

import logging

import pytest
from pydantic import ValidationError

from src.utils.config_loader import load_broker_config, resolve_log_level

_ENV_VARS = (
    "BROKER_ENV",
    "BROKER_API_URL",
    "INTEGRATIONS_MODE",
    "PAYMENT_POLL_INTERVAL_SECONDS",
    "PAYMENT_MAX_POLL_ATTEMPTS",
    "BROKER_ENABLE_LOGGING",
    "BROKER_ENABLE_DEBUG",
    "SLACK_ERROR_CHANNEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_default_config_file(clean_env):
    config = load_broker_config()

    assert config.environment == "development"
    assert config.integrations_mode == "mock"
    assert config.api_base_url == "http://localhost:3000/api"
    assert config.payments.poll_interval_seconds == 5
    assert config.payments.max_poll_attempts is None
    assert config.payments.success_redirect == "/dashboard"
    assert config.uploads.max_file_size_bytes == 512000
    assert config.pagination.default_page_size == 10
    assert config.currencies == ["KES", "USD", "EUR", "GBP"]


def test_environment_selects_api_url(clean_env):
    clean_env.setenv("BROKER_ENV", "Production")

    config = load_broker_config()

    assert config.is_production
    assert config.api_base_url == "https://api.geminia.com"


def test_env_overrides(clean_env):
    clean_env.setenv("BROKER_API_URL", "https://broker.internal/api/")
    clean_env.setenv("INTEGRATIONS_MODE", "live")
    clean_env.setenv("PAYMENT_POLL_INTERVAL_SECONDS", "2.5")
    clean_env.setenv("PAYMENT_MAX_POLL_ATTEMPTS", "24")
    clean_env.setenv("SLACK_ERROR_CHANNEL", "C-ERR")

    config = load_broker_config()

    assert config.api_base_url == "https://broker.internal/api"
    assert config.use_real_integrations
    assert config.payments.poll_interval_seconds == 2.5
    assert config.payments.max_poll_attempts == 24
    assert config.error_tracking.slack_channel == "C-ERR"


def test_use_env_false_ignores_environment(clean_env):
    clean_env.setenv("INTEGRATIONS_MODE", "real")

    assert load_broker_config(use_env=False).integrations_mode == "mock"


@pytest.mark.parametrize(
    "environment,expected",
    [("development", logging.DEBUG), ("staging", logging.INFO), ("production", logging.WARNING)],
)
def test_log_level_per_environment(clean_env, environment, expected):
    clean_env.setenv("BROKER_ENV", environment)

    assert resolve_log_level(load_broker_config()) == expected


def test_debug_flag_override(clean_env):
    clean_env.setenv("BROKER_ENV", "staging")
    clean_env.setenv("BROKER_ENABLE_DEBUG", "yes")

    assert resolve_log_level(load_broker_config()) == logging.DEBUG


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_broker_config(tmp_path / "nope.yml")


def test_invalid_values_fail_validation(tmp_path, clean_env):
    path = tmp_path / "broker.yml"
    path.write_text(
        "environments:\n"
        "  development:\n"
        "    api_base_url: http://localhost:3000/api\n"
        "payments:\n"
        "  poll_interval_seconds: 0\n",
        encoding="utf-8",
    )

    with pytest.raises(ValidationError):
        load_broker_config(path)


def test_unknown_environment_has_no_settings(tmp_path, clean_env):
    path = tmp_path / "broker.yml"
    path.write_text("environment: staging\nenvironments:\n  development:\n    api_base_url: http://x\n", encoding="utf-8")

    config = load_broker_config(path)

    with pytest.raises(ValueError):
        config.api_base_url

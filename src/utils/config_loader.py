"""
Configuration loader for the broker API service
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

Environment = Literal["development", "staging", "production"]


class EnvironmentConfig(BaseModel):
    """Per-environment upstream endpoint and diagnostics switches"""

    api_base_url: str
    enable_logging: bool = True
    enable_debug: bool = False


class HttpConfig(BaseModel):
    timeout_seconds: float = Field(default=30.0, gt=0)
    get_retries: int = Field(default=1, ge=0, le=5)


class PaymentsConfig(BaseModel):
    """STK-push confirmation polling"""

    poll_interval_seconds: float = Field(default=5.0, gt=0)
    max_poll_attempts: Optional[int] = Field(default=None, ge=1)
    success_redirect: str = "/dashboard"
    redirect_delay_seconds: float = Field(default=1.0, ge=0)
    attempt_retention_seconds: float = Field(default=3600.0, gt=0)
    max_finished_attempts: int = Field(default=1000, ge=1)


class UploadsConfig(BaseModel):
    max_file_size_bytes: int = Field(default=500 * 1024, ge=1)
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["application/pdf", "image/jpeg", "image/jpg", "image/png"]
    )


class PaginationConfig(BaseModel):
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    page_size_options: List[int] = Field(default_factory=lambda: [5, 10, 25, 50, 100])


class QuoteLimitsConfig(BaseModel):
    min_sum_assured: float = 1000
    max_sum_assured: float = 10_000_000
    quote_expiry_days: int = 30


class ErrorTrackingConfig(BaseModel):
    enabled: bool = True
    slack_channel: str = ""
    slack_token_env: str = "SLACK_BOT_TOKEN"


class BrokerConfig(BaseModel):
    """Complete service configuration"""

    environment: Environment = "development"
    environments: Dict[str, EnvironmentConfig]
    integrations_mode: Literal["mock", "real"] = "mock"
    http: HttpConfig = Field(default_factory=HttpConfig)
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)
    uploads: UploadsConfig = Field(default_factory=UploadsConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    quote_limits: QuoteLimitsConfig = Field(default_factory=QuoteLimitsConfig)
    currencies: List[str] = Field(default_factory=lambda: ["KES", "USD", "EUR", "GBP"])
    error_tracking: ErrorTrackingConfig = Field(default_factory=ErrorTrackingConfig)
    api_base_url_override: Optional[str] = None

    @property
    def active(self) -> EnvironmentConfig:
        if self.environment not in self.environments:
            raise ValueError(f"No settings for environment '{self.environment}'")
        return self.environments[self.environment]

    @property
    def api_base_url(self) -> str:
        return (self.api_base_url_override or self.active.api_base_url).rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_real_integrations(self) -> bool:
        return self.integrations_mode == "real"


_ENV_FLAGS = ("1", "true", "yes", "on")


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in _ENV_FLAGS


def apply_env_overrides(data: dict) -> dict:
    """Overlay BROKER_* / INTEGRATIONS_MODE / PAYMENT_* environment variables on raw YAML data."""
    data = dict(data)
    if os.getenv("BROKER_ENV"):
        data["environment"] = os.environ["BROKER_ENV"].strip().lower()
    if os.getenv("BROKER_API_URL"):
        data["api_base_url_override"] = os.environ["BROKER_API_URL"].strip()

    mode = os.getenv("INTEGRATIONS_MODE", "").strip().lower()
    if mode in {"real", "live"}:
        data["integrations_mode"] = "real"
    elif mode in {"mock", "test"}:
        data["integrations_mode"] = "mock"

    payments = dict(data.get("payments") or {})
    if os.getenv("PAYMENT_POLL_INTERVAL_SECONDS"):
        payments["poll_interval_seconds"] = float(os.environ["PAYMENT_POLL_INTERVAL_SECONDS"])
    if os.getenv("PAYMENT_MAX_POLL_ATTEMPTS"):
        payments["max_poll_attempts"] = int(os.environ["PAYMENT_MAX_POLL_ATTEMPTS"])
    data["payments"] = payments

    environment = data.get("environment", "development")
    environments = {k: dict(v) for k, v in (data.get("environments") or {}).items()}
    if environment in environments:
        for key, env_name in (("enable_logging", "BROKER_ENABLE_LOGGING"), ("enable_debug", "BROKER_ENABLE_DEBUG")):
            flag = _env_bool(env_name)
            if flag is not None:
                environments[environment][key] = flag
    data["environments"] = environments

    if os.getenv("SLACK_ERROR_CHANNEL"):
        tracking = dict(data.get("error_tracking") or {})
        tracking["slack_channel"] = os.environ["SLACK_ERROR_CHANNEL"].strip()
        data["error_tracking"] = tracking
    return data


def load_broker_config(config_path: Optional[Path] = None, *, use_env: bool = True) -> BrokerConfig:
    """
    Load and validate service configuration from YAML file

    Args:
        config_path: Path to config file. Defaults to config/broker.yml
        use_env: Apply environment variable overrides on top of the file

    Returns:
        Validated BrokerConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent / "config" / "broker.yml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    if use_env:
        config_data = apply_env_overrides(config_data)

    try:
        config = BrokerConfig(**config_data)
        logger.info(f"Successfully loaded config from {config_path} (environment={config.environment})")
        return config
    except ValidationError as e:
        logger.error(f"Config validation failed: {e}")
        raise


def resolve_log_level(config: BrokerConfig) -> int:
    """Root log level for the active environment."""
    if config.active.enable_debug:
        return logging.DEBUG
    if not config.active.enable_logging:
        return logging.WARNING
    return logging.INFO

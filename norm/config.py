"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from norm.rules.engine import DEFAULT_RULES
from norm.rules.types import DEFAULT_NEGATIVE_KEYWORDS


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/norm.db"


@dataclass
class ScoringConfig:
    """Reputation score configuration."""

    period_days: int = 30


@dataclass
class AlertsConfig:
    """Alert detection configuration."""

    cooldown_hours: int = 24
    serp_lookback_days: int = 7
    critical_score_threshold: float = 30.0
    negative_news_threshold: int = 5
    social_engagement_threshold: int = 10
    negative_keywords: list[str] = field(
        default_factory=lambda: list(DEFAULT_NEGATIVE_KEYWORDS)
    )
    rules: list[str] = field(default_factory=lambda: list(DEFAULT_RULES))


@dataclass
class DiscordNotificationConfig:
    """Discord notification settings."""

    webhook_url: Optional[str] = None
    mention_on_critical: bool = True


@dataclass
class EmailNotificationConfig:
    """Email notification settings."""

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    from_address: Optional[str] = None
    to_addresses: list[str] = field(default_factory=list)


@dataclass
class NotificationsConfig:
    """Notifications configuration."""

    dashboard_url: str = ""
    discord: DiscordNotificationConfig = field(
        default_factory=DiscordNotificationConfig
    )
    email: EmailNotificationConfig = field(default_factory=EmailNotificationConfig)


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"
    pending_batch_size: int = 20


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_positive(section: dict[str, Any], key: str, label: str) -> None:
    value = section.get(key)
    if value is not None and value <= 0:
        raise ConfigValidationError(f"{label} must be positive, got {value}")


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    db_config = config_dict.get("database") or {}
    db_path = db_config.get("path")
    if not db_path:
        raise ConfigValidationError("Database path is required")

    if db_path != ":memory:":
        parent = Path(db_path).parent
        if parent.exists() and not os.access(parent, os.W_OK):
            raise ConfigValidationError(f"Database path not writable: {parent}")

    scoring = config_dict.get("scoring") or {}
    _validate_positive(scoring, "period_days", "Scoring period_days")

    alerts = config_dict.get("alerts") or {}
    _validate_positive(alerts, "cooldown_hours", "Alert cooldown_hours")
    _validate_positive(alerts, "serp_lookback_days", "Alert serp_lookback_days")

    unknown = [r for r in alerts.get("rules") or [] if r not in DEFAULT_RULES]
    if unknown:
        raise ConfigValidationError(f"Unknown alert rules: {', '.join(unknown)}")


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    config_dict = _substitute_env_vars(raw_config)
    _validate_config(config_dict)

    database = DatabaseConfig(**config_dict.get("database", {}))
    scoring = ScoringConfig(**(config_dict.get("scoring") or {}))
    alerts = AlertsConfig(**(config_dict.get("alerts") or {}))

    notif_dict = config_dict.get("notifications") or {}
    notifications = NotificationsConfig(
        dashboard_url=notif_dict.get("dashboard_url", ""),
        discord=DiscordNotificationConfig(**(notif_dict.get("discord") or {})),
        email=EmailNotificationConfig(**(notif_dict.get("email") or {})),
    )

    advanced = AdvancedConfig(**(config_dict.get("advanced") or {}))

    return AppConfig(
        database=database,
        scoring=scoring,
        alerts=alerts,
        notifications=notifications,
        advanced=advanced,
    )

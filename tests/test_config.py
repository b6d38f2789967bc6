"""
Configuration tests.
Tests for YAML loading, environment substitution and validation.
"""

import pytest
from pathlib import Path
from unittest.mock import patch

from norm.config import AppConfig, ConfigValidationError, load_config
from norm.main import build_notifiers, build_rule_engine
from norm.notifiers.discord import DiscordNotifier
from norm.notifiers.email import EmailNotifier
from norm.rules.types import CriticalEventRule, NegativeSerpContentRule


def _write(tmp_path: Path, content: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return str(path)


class TestLoadConfig:
    """Test configuration loading."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_full_config(self, tmp_path):
        path = _write(
            tmp_path,
            f"""
database:
  path: {tmp_path / "norm.db"}
scoring:
  period_days: 14
alerts:
  cooldown_hours: 12
  critical_score_threshold: 35
  negative_keywords: [fraud, recall]
  rules: [score_drop, critical_event]
notifications:
  dashboard_url: https://app.norm.example
  discord:
    webhook_url: https://discord.com/api/webhooks/1/x
    mention_on_critical: false
  email:
    smtp_user: alerts@norm.app
    to_addresses: [team@norm.app]
advanced:
  log_level: DEBUG
  pending_batch_size: 50
""",
        )

        config = load_config(path)

        assert config.scoring.period_days == 14
        assert config.alerts.cooldown_hours == 12
        assert config.alerts.critical_score_threshold == 35
        assert config.alerts.negative_keywords == ["fraud", "recall"]
        assert config.alerts.serp_lookback_days == 7
        assert config.notifications.dashboard_url == "https://app.norm.example"
        assert config.notifications.discord.mention_on_critical is False
        assert config.notifications.email.smtp_port == 587
        assert config.advanced.pending_batch_size == 50

    def test_defaults_for_missing_sections(self, tmp_path):
        path = _write(tmp_path, f"database:\n  path: {tmp_path / 'norm.db'}\n")

        config = load_config(path)

        assert config.scoring.period_days == 30
        assert config.alerts.cooldown_hours == 24
        assert config.notifications.discord.webhook_url is None
        assert config.advanced.log_level == "INFO"

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NORM_WEBHOOK", "https://discord.com/api/webhooks/9/y")
        monkeypatch.setenv("NORM_SMTP_PASSWORD", "s3cret")
        path = _write(
            tmp_path,
            f"""
database:
  path: {tmp_path / "norm.db"}
notifications:
  discord:
    webhook_url: ${{NORM_WEBHOOK}}
  email:
    smtp_password: ${{NORM_SMTP_PASSWORD}}
""",
        )

        config = load_config(path)

        assert config.notifications.discord.webhook_url == (
            "https://discord.com/api/webhooks/9/y"
        )
        assert config.notifications.email.smtp_password == "s3cret"

    def test_unset_env_var_becomes_empty(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NORM_UNSET_VAR", raising=False)
        path = _write(
            tmp_path,
            f"""
database:
  path: {tmp_path / "norm.db"}
notifications:
  discord:
    webhook_url: ${{NORM_UNSET_VAR}}
""",
        )

        assert load_config(path).notifications.discord.webhook_url == ""


class TestValidation:
    """Test configuration validation."""

    def test_database_path_required(self, tmp_path):
        path = _write(tmp_path, "scoring:\n  period_days: 30\n")

        with pytest.raises(ConfigValidationError, match="Database path"):
            load_config(path)

    @pytest.mark.parametrize(
        "section, key",
        [
            ("scoring", "period_days"),
            ("alerts", "cooldown_hours"),
            ("alerts", "serp_lookback_days"),
        ],
    )
    def test_non_positive_values_rejected(self, tmp_path, section, key):
        path = _write(
            tmp_path,
            f"database:\n  path: ':memory:'\n{section}:\n  {key}: 0\n",
        )

        with pytest.raises(ConfigValidationError, match="must be positive"):
            load_config(path)

    def test_unknown_rule_rejected(self, tmp_path):
        path = _write(
            tmp_path,
            "database:\n  path: ':memory:'\nalerts:\n  rules: [score_drop, price_spike]\n",
        )

        with pytest.raises(ConfigValidationError, match="price_spike"):
            load_config(path)


class TestWiring:
    """Test building runtime objects from configuration."""

    def test_rule_engine_uses_alert_settings(self):
        config = AppConfig()
        config.alerts.critical_score_threshold = 40.0
        config.alerts.negative_keywords = ["boycott"]

        engine = build_rule_engine(config.alerts)

        assert len(engine.rules) == 5
        critical = next(r for r in engine.rules if isinstance(r, CriticalEventRule))
        assert critical.score_threshold == 40.0
        content = next(r for r in engine.rules if isinstance(r, NegativeSerpContentRule))
        assert content.negative_keywords == ["boycott"]

    def test_rule_subset(self):
        config = AppConfig()
        config.alerts.rules = ["critical_event"]

        engine = build_rule_engine(config.alerts)
        assert [r.rule_type for r in engine.rules] == ["critical_event"]

    def test_no_notifiers_by_default(self):
        assert build_notifiers(AppConfig().notifications) == []

    def test_configured_notifiers(self):
        notifications = AppConfig().notifications
        notifications.discord.webhook_url = "https://discord.com/api/webhooks/1/x"
        notifications.email.smtp_user = "alerts@norm.app"
        notifications.email.to_addresses = ["team@norm.app"]

        notifiers = build_notifiers(notifications)

        assert isinstance(notifiers[0], DiscordNotifier)
        assert isinstance(notifiers[1], EmailNotifier)
        assert notifiers[1].from_address == "alerts@norm.app"

    def test_notifiers_built_by_factory(self):
        notifications = AppConfig().notifications
        notifications.dashboard_url = "https://app.norm.example"
        notifications.discord.webhook_url = "https://discord.com/api/webhooks/1/x"
        notifications.discord.mention_on_critical = False
        notifications.email.smtp_user = "alerts@norm.app"
        notifications.email.to_addresses = ["team@norm.app"]

        with patch("norm.main.NotifierFactory.create") as create:
            notifiers = build_notifiers(notifications)

        configs = [c.args[0] for c in create.call_args_list]
        assert [c["type"] for c in configs] == ["discord", "email"]
        assert configs[0]["mention_on_critical"] is False
        assert all(c["dashboard_url"] == "https://app.norm.example" for c in configs)
        assert len(notifiers) == 2

"""
Main application entry point.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from norm.alerts.generator import AlertGenerator
from norm.config import AlertsConfig, AppConfig, NotificationsConfig
from norm.database.connection import Database
from norm.database.models import Client, ReputationScore
from norm.database.repository import ClientRepository, SQLiteSignalStore
from norm.notifiers.base import Notifier, NotifierFactory
from norm.notifiers.dispatcher import AlertDispatcher
from norm.rules.engine import RuleEngine
from norm.scoring.calculator import ScoreCalculator

logger = logging.getLogger(__name__)


def build_rule_engine(alerts: AlertsConfig) -> RuleEngine:
    """Create the configured detectors."""
    engine = RuleEngine(rules=[])
    params = {
        "negative_content": {"negative_keywords": alerts.negative_keywords},
        "serp_change": {"lookback_days": alerts.serp_lookback_days},
        "social_negative": {"min_engagement": alerts.social_engagement_threshold},
        "critical_event": {
            "score_threshold": alerts.critical_score_threshold,
            "negative_news_threshold": alerts.negative_news_threshold,
        },
    }
    engine.rules = [
        engine.create_rule(rule_type, params.get(rule_type)) for rule_type in alerts.rules
    ]
    return engine


def build_notifiers(notifications: NotificationsConfig) -> list[Notifier]:
    """Create notifiers for every configured channel."""
    configs = []

    discord = notifications.discord
    if discord.webhook_url:
        configs.append({
            "type": "discord",
            "webhook_url": discord.webhook_url,
            "mention_on_critical": discord.mention_on_critical,
            "dashboard_url": notifications.dashboard_url,
        })

    email = notifications.email
    if email.smtp_user and email.to_addresses:
        configs.append({
            "type": "email",
            "smtp_host": email.smtp_host,
            "smtp_port": email.smtp_port,
            "smtp_user": email.smtp_user,
            "smtp_password": email.smtp_password or "",
            "from_address": email.from_address or email.smtp_user,
            "to_addresses": email.to_addresses,
            "dashboard_url": notifications.dashboard_url,
        })

    return [NotifierFactory.create(config) for config in configs]


class NormApp:
    """Main nORM application."""

    def __init__(
        self,
        db: Database,
        period_days: int = 30,
        alert_cooldown_hours: int = 24,
        rule_engine: Optional[RuleEngine] = None,
        notifiers: Optional[list[Notifier]] = None,
    ):
        """
        Initialize nORM app.

        Args:
            db: Database instance
            period_days: Length of the scoring window in days
            alert_cooldown_hours: Hours before same alert can be raised again
            rule_engine: Alert detectors, defaults to all built-in rules
            notifiers: Channels for critical alert delivery
        """
        self.db = db
        self.period_days = period_days

        self.client_repo = ClientRepository(db)
        self.store = SQLiteSignalStore(db)

        self.dispatcher = AlertDispatcher(notifiers or [])
        self.calculator = ScoreCalculator(self.store)
        self.alert_generator = AlertGenerator(
            self.store,
            rule_engine=rule_engine,
            dispatcher=self.dispatcher,
            cooldown_hours=alert_cooldown_hours,
        )

    @classmethod
    def from_config(cls, db: Database, config: AppConfig) -> "NormApp":
        """Create an app wired from configuration."""
        return cls(
            db,
            period_days=config.scoring.period_days,
            alert_cooldown_hours=config.alerts.cooldown_hours,
            rule_engine=build_rule_engine(config.alerts),
            notifiers=build_notifiers(config.notifications),
        )

    def run_check(
        self, period_end: Optional[datetime] = None, dry_run: bool = False
    ) -> dict:
        """
        Score every active client and generate their alerts.

        Args:
            period_end: End of the scoring window, defaults to now
            dry_run: Calculate scores without persisting anything

        Returns:
            Summary of the run
        """
        period_end = period_end or datetime.now()
        period_start = period_end - timedelta(days=self.period_days)

        clients = self.client_repo.list_active()
        summary = {
            "clients_processed": 0,
            "total_clients": len(clients),
            "alerts_generated": 0,
            "errors": [],
        }

        for client in clients:
            try:
                alerts = self._check_client(client, period_start, period_end, dry_run)
                summary["clients_processed"] += 1
                summary["alerts_generated"] += alerts
            except Exception as e:
                logger.error(f"Error checking client {client.id}: {e}")
                summary["errors"].append(f"Client {client.name}: {e}")

        logger.info(
            f"Processed {summary['clients_processed']}/{summary['total_clients']} "
            f"clients, {summary['alerts_generated']} alerts generated"
        )
        return summary

    def _check_client(
        self,
        client: Client,
        period_start: datetime,
        period_end: datetime,
        dry_run: bool,
    ) -> int:
        """Score one client and generate alerts; returns the alert count."""
        result = self.calculator.calculate_reputation_score(
            client.id, period_start, period_end
        )
        logger.info(f"Client {client.id} ({client.name}) scored {result.score}")

        if dry_run:
            return 0

        self.store.insert_reputation_score(
            ReputationScore(
                client_id=client.id,
                score=result.score,
                breakdown=result.breakdown,
                period_start=period_start,
                period_end=period_end,
            )
        )

        # Alert failures must not fail the client's score
        try:
            alerts = self.alert_generator.generate_alerts_for_client(
                client.id, period_start, period_end
            )
        except Exception as e:
            logger.error(f"Failed to generate alerts for client {client.id}: {e}")
            return 0

        return len(alerts)

    def send_pending_alerts(self, limit: int = 20) -> dict:
        """Deliver high/critical alerts that were never sent."""
        return self.dispatcher.send_pending_alerts(self.store.alert_repo, limit=limit)


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="nORM Reputation Engine")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Calculate scores without saving them or raising alerts",
    )

    args = parser.parse_args()

    from norm.config import load_config

    config = load_config(args.config)

    log_level = logging.DEBUG if args.debug else config.advanced.log_level
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db = Database(config.database.path)
    db.initialize()

    app = NormApp.from_config(db, config)

    if args.dry_run:
        logger.info("Dry run mode - scores will not be saved")

    summary = app.run_check(dry_run=args.dry_run)
    for error in summary["errors"]:
        logger.warning(error)

    db.close()


if __name__ == "__main__":
    main()

"""
CLI commands for nORM.
"""

import argparse
import logging
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from norm.database.connection import Database
from norm.database.models import Client, Keyword
from norm.database.repository import (
    AlertRepository,
    ClientRepository,
    KeywordRepository,
    ReputationScoreRepository,
)
from norm.rules.types import AlertStatus
from norm.scoring.trend import analyze_trend

STATUS_ACTIONS = {
    "ack": AlertStatus.ACKNOWLEDGED,
    "resolve": AlertStatus.RESOLVED,
    "dismiss": AlertStatus.DISMISSED,
}


def add_client(
    db: Database,
    name: str,
    industry: Optional[str] = None,
    website: Optional[str] = None,
) -> Client:
    """Add a new client."""
    repo = ClientRepository(db)
    return repo.create(Client(name=name, industry=industry, website=website))


def add_keywords(
    db: Database,
    client_id: int,
    keywords: list[str],
    alert_threshold: int = 3,
) -> dict:
    """Add tracked keywords to a client."""
    repo = KeywordRepository(db)
    existing = {k.keyword.lower() for k in repo.get_client_keywords(client_id)}

    added = []
    skipped = []
    for text in keywords:
        if not text or text.lower() in existing:
            skipped.append(text)
            continue
        repo.create(
            Keyword(client_id=client_id, keyword=text, alert_threshold=alert_threshold)
        )
        existing.add(text.lower())
        added.append(text)

    return {"added": added, "skipped": skipped}


def show_scores(db: Database, client_id: int, period_days: int = 30) -> dict:
    """Score history and trend for a client."""
    history = ReputationScoreRepository(db).get_client_history(client_id)
    analysis = analyze_trend(history, period_days=period_days)
    return {"history": history, "trend": analysis}


def set_alert_status(db: Database, alert_id: int, action: str) -> bool:
    """Apply an ack/resolve/dismiss action to an alert."""
    repo = AlertRepository(db)
    if repo.get_by_id(alert_id) is None:
        return False
    repo.update_status(alert_id, STATUS_ACTIONS[action].value)
    return True


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="nORM CLI")
    parser.add_argument("--db", default="data/norm.db", help="Database path")
    parser.add_argument("--config", help="Config file for alert delivery")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Client commands
    client_parser = subparsers.add_parser("client", help="Client management")
    client_subparsers = client_parser.add_subparsers(dest="action")

    add_client_parser = client_subparsers.add_parser("add", help="Add client")
    add_client_parser.add_argument("--name", required=True, help="Client name")
    add_client_parser.add_argument("--industry", help="Industry")
    add_client_parser.add_argument("--website", help="Website URL")

    client_subparsers.add_parser("list", help="List clients")

    # Keyword commands
    keyword_parser = subparsers.add_parser("keyword", help="Keyword management")
    keyword_subparsers = keyword_parser.add_subparsers(dest="action")

    add_keyword_parser = keyword_subparsers.add_parser("add", help="Add keywords")
    add_keyword_parser.add_argument("--client", type=int, required=True, help="Client ID")
    add_keyword_parser.add_argument(
        "--keywords", required=True, help="Comma-separated keywords"
    )
    add_keyword_parser.add_argument(
        "--threshold", type=int, default=3, help="Position change alert threshold"
    )

    list_keyword_parser = keyword_subparsers.add_parser("list", help="List keywords")
    list_keyword_parser.add_argument("--client", type=int, required=True, help="Client ID")

    # Score commands
    score_parser = subparsers.add_parser("score", help="Reputation scores")
    score_subparsers = score_parser.add_subparsers(dest="action")

    show_score_parser = score_subparsers.add_parser("show", help="Show score history")
    show_score_parser.add_argument("--client", type=int, required=True, help="Client ID")
    show_score_parser.add_argument("--days", type=int, default=30, help="Trend period")

    # Alert commands
    alerts_parser = subparsers.add_parser("alerts", help="Alert management")
    alerts_subparsers = alerts_parser.add_subparsers(dest="action")

    list_alerts_parser = alerts_subparsers.add_parser("list", help="List alerts")
    list_alerts_parser.add_argument("--client", type=int, required=True, help="Client ID")
    list_alerts_parser.add_argument(
        "--status", choices=[s.value for s in AlertStatus], help="Status filter"
    )

    for action in STATUS_ACTIONS:
        status_parser = alerts_subparsers.add_parser(action, help=f"{action.title()} alert")
        status_parser.add_argument("--id", type=int, required=True, help="Alert ID")

    alerts_subparsers.add_parser("send-pending", help="Send unsent high/critical alerts")

    # DB commands
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="action")
    db_subparsers.add_parser("migrate", help="Create missing tables")

    subparsers.add_parser("health", help="Send health check to Discord")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db = Database(args.db)
    db.initialize()

    if args.command == "client":
        if args.action == "add":
            client = add_client(
                db, args.name, industry=args.industry, website=args.website
            )
            print(f"Created client with ID: {client.id}")
        elif args.action == "list":
            for client in ClientRepository(db).list_all():
                state = "active" if client.is_active else "inactive"
                print(f"ID: {client.id}, Name: {client.name} ({state})")

    elif args.command == "keyword":
        if args.action == "add":
            keywords = [k.strip() for k in args.keywords.split(",")]
            result = add_keywords(db, args.client, keywords, args.threshold)
            print(f"Added: {result['added']}")
            if result["skipped"]:
                print(f"Skipped: {result['skipped']}")
        elif args.action == "list":
            for kw in KeywordRepository(db).get_client_keywords(args.client):
                state = "active" if kw.is_active else "inactive"
                print(f"{kw.id}: {kw.keyword} (threshold {kw.alert_threshold}, {state})")

    elif args.command == "score":
        if args.action == "show":
            result = show_scores(db, args.client, args.days)
            for score in result["history"][:20]:
                print(
                    f"{score.calculated_at:%Y-%m-%d %H:%M}  {score.score:6.2f}  "
                    f"{score.breakdown.to_dict()}"
                )
            trend = result["trend"]
            print(
                f"Trend ({trend.period}d, {trend.data_points} points): "
                f"{trend.direction.value} {trend.change:+.2f}"
            )

    elif args.command == "alerts":
        if args.action == "list":
            repo = AlertRepository(db)
            for alert in repo.get_client_alerts(args.client, status=args.status):
                print(
                    f"{alert.id}: [{alert.severity}] {alert.title} "
                    f"({alert.status}, emailed={alert.email_sent})"
                )
        elif args.action in STATUS_ACTIONS:
            if set_alert_status(db, args.id, args.action):
                print(f"Alert {args.id} {STATUS_ACTIONS[args.action].value}")
            else:
                print(f"Alert {args.id} not found")
        elif args.action == "send-pending":
            from norm.config import AppConfig, load_config
            from norm.main import NormApp

            config = load_config(args.config) if args.config else AppConfig()
            app = NormApp.from_config(db, config)
            result = app.send_pending_alerts(limit=config.advanced.pending_batch_size)
            print(f"Sent {result['processed']} alerts, {result['failed']} failed")

    elif args.command == "db":
        if args.action == "migrate":
            db.initialize()
            print("Migrations applied")

    elif args.command == "health":
        from norm.healthcheck import run_healthcheck

        sent = run_healthcheck(db)
        print("Health check sent" if sent else "Health check not sent")

    db.close()


if __name__ == "__main__":
    main()

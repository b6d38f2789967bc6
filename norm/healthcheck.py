"""
Daily health check - sends a status message to Discord.
"""

import logging
import os
from datetime import datetime, timezone

import requests

from norm.database.connection import Database
from norm.database.repository import ClientRepository, ReputationScoreRepository

logger = logging.getLogger(__name__)


def build_payload(db: Database) -> dict:
    """Status embed listing active clients and their latest scores."""
    clients = ClientRepository(db).list_active()
    score_repo = ReputationScoreRepository(db)

    lines = []
    for client in clients:
        history = score_repo.get_client_history(client.id, limit=1)
        latest = f"{history[0].score:.2f}" if history else "no score yet"
        lines.append(f"{client.name}: {latest}")
    score_list = "\n".join(lines) or "None"

    return {
        "embeds": [{
            "title": "nORM Health Check",
            "description": "System is running normally.",
            "color": 0x2ECC71,
            "fields": [
                {"name": "Active clients", "value": str(len(clients)), "inline": True},
                {"name": "Latest scores", "value": score_list, "inline": False},
            ],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }]
    }


def run_healthcheck(db: Database) -> bool:
    """Run health check and send status to Discord.

    Args:
        db: Database instance (already initialized)

    Returns:
        True if Discord accepted the message
    """
    webhook_url = os.getenv("DISCORD_WEBHOOK_URL")
    if not webhook_url:
        logger.warning("DISCORD_WEBHOOK_URL not set")
        return False

    response = requests.post(webhook_url, json=build_payload(db), timeout=10)
    logger.info(f"Health check sent (status: {response.status_code})")
    return response.ok

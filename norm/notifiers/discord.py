"""
Discord webhook notifier.
"""

import time
from typing import Any

import requests

from norm.database.models import Alert
from .base import Notifier, NotificationResult, alert_link


class DiscordNotifier(Notifier):
    """Sends notifications via Discord webhook."""

    # Discord embed colors
    COLOR_LOW = 0x0891B2  # Cyan
    COLOR_MEDIUM = 0xD97706  # Amber
    COLOR_HIGH = 0xEA580C  # Orange
    COLOR_CRITICAL = 0xDC2626  # Red

    SEVERITY_EMOJI = {
        "low": "ℹ️",
        "medium": "📢",
        "high": "⚠️",
        "critical": "🚨",
    }

    def __init__(
        self,
        webhook_url: str,
        mention_on_critical: bool = True,
        dashboard_url: str = "",
    ):
        """
        Initialize Discord notifier.

        Args:
            webhook_url: Discord webhook URL
            mention_on_critical: Whether to @here on critical alerts
            dashboard_url: Base URL of the dashboard, linked from each alert
        """
        self.webhook_url = webhook_url
        self.mention_on_critical = mention_on_critical
        self.dashboard_url = dashboard_url

    def send(self, alert: Alert) -> NotificationResult:
        """Send alert to Discord."""
        try:
            payload = self._create_payload(alert)
            response = self._send_webhook(payload)

            if response.ok:
                return NotificationResult(success=True, channel="discord")
            else:
                return NotificationResult(
                    success=False,
                    channel="discord",
                    error=f"HTTP {response.status_code}: {response.text}",
                )

        except requests.exceptions.ConnectionError as e:
            return NotificationResult(
                success=False,
                channel="discord",
                error=f"Connection error: {str(e)}",
            )
        except Exception as e:
            return NotificationResult(
                success=False,
                channel="discord",
                error=str(e),
            )

    def _send_webhook(self, payload: dict[str, Any]) -> requests.Response:
        """Send webhook with rate limit handling."""
        response = requests.post(
            self.webhook_url,
            json=payload,
            timeout=10,
        )

        # Handle rate limiting
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "1")
            time.sleep(float(retry_after))
            response = requests.post(
                self.webhook_url,
                json=payload,
                timeout=10,
            )

        return response

    def _create_payload(self, alert: Alert) -> dict[str, Any]:
        """Create Discord webhook payload."""
        payload: dict[str, Any] = {
            "embeds": [self._create_embed(alert)],
        }

        if self.mention_on_critical and alert.severity == "critical":
            payload["content"] = "@here"

        return payload

    def _create_embed(self, alert: Alert) -> dict[str, Any]:
        """Create Discord embed for alert."""
        emoji = self.SEVERITY_EMOJI.get(alert.severity, "📢")

        embed: dict[str, Any] = {
            "title": f"{emoji} {alert.title}",
            "description": alert.message,
            "color": self._get_color(alert.severity),
            "fields": [
                {
                    "name": "Severity",
                    "value": alert.severity.title(),
                    "inline": True,
                },
                {
                    "name": "Type",
                    "value": alert.alert_type.replace("_", " ").title(),
                    "inline": True,
                },
                {
                    "name": "Client",
                    "value": f"#{alert.client_id}",
                    "inline": True,
                },
            ],
        }

        if alert.created_at:
            embed["timestamp"] = alert.created_at.isoformat()

        if self.dashboard_url:
            embed["fields"].append({
                "name": "Dashboard",
                "value": f"[Open client]({alert_link(self.dashboard_url, alert)})",
                "inline": False,
            })

        return embed

    def _get_color(self, severity: str) -> int:
        """Get embed color based on severity."""
        if severity == "critical":
            return self.COLOR_CRITICAL
        elif severity == "high":
            return self.COLOR_HIGH
        elif severity == "medium":
            return self.COLOR_MEDIUM
        else:
            return self.COLOR_LOW

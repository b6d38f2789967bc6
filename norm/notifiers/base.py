"""
Base notifier classes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any

from norm.database.models import Alert


@dataclass
class NotificationResult:
    """Result of a notification attempt."""

    success: bool
    channel: str
    error: Optional[str] = None


def alert_link(dashboard_url: str, alert: Alert) -> str:
    """Dashboard URL of the client an alert belongs to."""
    return f"{dashboard_url.rstrip('/')}/clients/{alert.client_id}"


class Notifier(ABC):
    """Abstract base class for notifiers."""

    @abstractmethod
    def send(self, alert: Alert) -> NotificationResult:
        """
        Send a single alert notification.

        Args:
            alert: Alert to send

        Returns:
            NotificationResult indicating success or failure
        """
        pass


class NotifierFactory:
    """Factory for creating notifier instances."""

    @staticmethod
    def create(config: dict[str, Any]) -> Notifier:
        """
        Create a notifier from configuration.

        Args:
            config: Notifier configuration dict

        Returns:
            Appropriate Notifier instance

        Raises:
            ValueError: If notifier type is unknown
        """
        notifier_type = config.get("type")

        if notifier_type == "discord":
            from .discord import DiscordNotifier

            return DiscordNotifier(
                webhook_url=config.get("webhook_url", ""),
                mention_on_critical=config.get("mention_on_critical", True),
                dashboard_url=config.get("dashboard_url", ""),
            )

        elif notifier_type == "email":
            from .email import EmailNotifier

            return EmailNotifier(
                smtp_host=config.get("smtp_host", ""),
                smtp_port=config.get("smtp_port", 587),
                smtp_user=config.get("smtp_user", ""),
                smtp_password=config.get("smtp_password", ""),
                from_address=config.get("from_address", ""),
                to_addresses=config.get("to_addresses", []),
                dashboard_url=config.get("dashboard_url", ""),
            )

        else:
            raise ValueError(f"Unknown notifier type: {notifier_type}")

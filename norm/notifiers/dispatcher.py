"""
Alert delivery across notification channels.
"""

import logging

from norm.database.models import Alert
from norm.database.repository import AlertRepository
from .base import Notifier

logger = logging.getLogger(__name__)

PENDING_SEVERITIES = ["high", "critical"]


class AlertDispatcher:
    """Fans alerts out to every configured notifier."""

    def __init__(self, notifiers: list[Notifier]):
        self.notifiers = notifiers

    def send_immediate_alert(self, alert: Alert) -> bool:
        """
        Deliver one alert on every channel.

        Returns:
            True if at least one channel accepted the alert
        """
        if not self.notifiers:
            logger.warning(f"No notifiers configured, alert {alert.id} not delivered")
            return False

        delivered = False
        for notifier in self.notifiers:
            result = notifier.send(alert)
            if result.success:
                delivered = True
                logger.info(f"Alert {alert.id} sent via {result.channel}")
            else:
                logger.error(
                    f"Failed to send alert {alert.id} via {result.channel}: "
                    f"{result.error}"
                )
        return delivered

    def send_pending_alerts(self, alert_repo: AlertRepository, limit: int = 20) -> dict:
        """
        Deliver active high/critical alerts that were never sent.

        Args:
            alert_repo: Repository to read pending alerts from
            limit: Maximum number of alerts per batch

        Returns:
            Dict with processed and failed counts
        """
        pending = alert_repo.get_pending_notifications(PENDING_SEVERITIES, limit=limit)
        if not pending:
            logger.info("No pending alerts to send")
            return {"processed": 0, "failed": 0}

        processed = 0
        failed = 0
        for alert in pending:
            try:
                delivered = self.send_immediate_alert(alert)
            except Exception as e:
                logger.error(f"Failed to process alert {alert.id}: {e}")
                delivered = False

            if delivered:
                alert_repo.mark_email_sent(alert.id)
                processed += 1
            else:
                failed += 1

        return {"processed": processed, "failed": failed}

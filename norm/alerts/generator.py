"""
Alert generation, deduplication and persistence.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from norm.database.models import Alert
from norm.database.store import SignalStore
from norm.notifiers.dispatcher import AlertDispatcher
from norm.rules.engine import RuleEngine
from norm.rules.types import AlertCondition, AlertSeverity, AlertStatus, SignalWindow

logger = logging.getLogger(__name__)


def deduplicate(candidates: list[AlertCondition]) -> list[AlertCondition]:
    """Keep the first candidate per (alert_type, severity, title)."""
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.dedup_key in seen:
            continue
        seen.add(candidate.dedup_key)
        unique.append(candidate)
    return unique


class AlertGenerator:
    """Turns rule output into persisted, deduplicated alerts."""

    def __init__(
        self,
        store: SignalStore,
        rule_engine: Optional[RuleEngine] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        cooldown_hours: int = 24,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize alert generator.

        Args:
            store: Signal store to read signals from and persist alerts to
            rule_engine: Detectors to run, defaults to all built-in rules
            dispatcher: Immediate delivery for critical alerts, None to skip delivery
            cooldown_hours: Hours before an alert of the same kind can repeat
            clock: Source of the current time
        """
        self.store = store
        self.rule_engine = rule_engine or RuleEngine()
        self.dispatcher = dispatcher
        self.cooldown_hours = cooldown_hours
        self.clock = clock

    def generate_alerts_for_client(
        self,
        client_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> list[Alert]:
        """
        Detect, deduplicate and persist alerts for a client.

        Args:
            client_id: Client to evaluate
            period_start: Start of the window (inclusive)
            period_end: End of the window (exclusive)

        Returns:
            Alerts persisted by this run
        """
        window = SignalWindow(
            client_id=client_id,
            period_start=period_start,
            period_end=period_end,
        )
        candidates = deduplicate(self.rule_engine.evaluate_rules(self.store, window))

        now = self.clock()
        since = now - timedelta(hours=self.cooldown_hours)

        # Check every candidate against storage before inserting any, so
        # alerts from this same run never suppress each other.
        fresh = [
            c for c in candidates if not self._has_recent_alert(client_id, c, since)
        ]

        saved = []
        for candidate in fresh:
            alert = self.store.insert_alert(self._to_alert(client_id, candidate, now))
            saved.append(alert)
            # Sent as soon as it is stored, so a later insert failure
            # cannot hold it back.
            if alert.severity == AlertSeverity.CRITICAL.value:
                self._deliver(alert)

        if saved:
            logger.info(f"Generated {len(saved)} new alerts for client {client_id}")

        return saved

    def _has_recent_alert(
        self, client_id: int, candidate: AlertCondition, since: datetime
    ) -> bool:
        existing = self.store.recent_alerts(
            client_id,
            candidate.alert_type.value,
            candidate.severity.value,
            since,
        )
        if existing:
            logger.debug(
                f"Suppressed duplicate {candidate.alert_type.value}/"
                f"{candidate.severity.value} alert for client {client_id}"
            )
            return True
        return False

    def _to_alert(
        self, client_id: int, candidate: AlertCondition, now: datetime
    ) -> Alert:
        return Alert(
            client_id=client_id,
            alert_type=candidate.alert_type.value,
            severity=candidate.severity.value,
            title=candidate.title,
            message=candidate.message,
            related_serp_result_id=candidate.related_serp_result_id,
            related_mention_id=candidate.related_mention_id,
            related_social_post_id=candidate.related_social_post_id,
            status=AlertStatus.ACTIVE.value,
            email_sent=False,
            created_at=now,
        )

    def _deliver(self, alert: Alert) -> None:
        """Best-effort immediate delivery; never undoes the persisted alert."""
        if self.dispatcher is None:
            return

        try:
            delivered = self.dispatcher.send_immediate_alert(alert)
            if delivered:
                self.store.mark_alert_email_sent(alert.id)
                alert.email_sent = True
        except Exception as e:
            logger.error(f"Failed to deliver critical alert {alert.id}: {e}")

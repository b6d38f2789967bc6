"""
Rule evaluation engine.
"""

import logging
from typing import Any, Optional

from norm.database.store import SignalStore
from .types import (
    AlertCondition,
    AlertSeverity,
    AlertType,
    CriticalEventRule,
    NegativeSerpContentRule,
    NegativeSocialRule,
    Rule,
    ScoreDropRule,
    SerpPositionChangeRule,
    SignalWindow,
)

logger = logging.getLogger(__name__)

# Re-export for convenience
__all__ = ["RuleEngine", "AlertCondition", "AlertSeverity", "AlertType", "SignalWindow"]

DEFAULT_RULES = [
    "score_drop",
    "negative_content",
    "serp_change",
    "social_negative",
    "critical_event",
]


class RuleEngine:
    """Runs independent alert detectors over a signal window."""

    def __init__(self, rules: Optional[list[Rule]] = None):
        """
        Initialize rule engine.

        Args:
            rules: Detectors to run, in order. Defaults to all built-in rules.
        """
        if rules is None:
            rules = [self.create_rule(rule_type) for rule_type in DEFAULT_RULES]
        self.rules = rules

    def evaluate_rules(
        self, store: SignalStore, window: SignalWindow
    ) -> list[AlertCondition]:
        """
        Evaluate every rule against the same signal window.

        A rule that fails is logged and skipped so the others still run.

        Args:
            store: Signal store to read from
            window: Client and period under evaluation

        Returns:
            Candidate alerts from all rules, in rule order
        """
        alerts = []

        for rule in self.rules:
            try:
                rule_alerts = rule.evaluate(store, window)
            except Exception as e:
                logger.error(
                    f"Rule {rule.rule_type} failed for client {window.client_id}: {e}"
                )
                continue

            if rule_alerts:
                logger.debug(
                    f"Rule {rule.rule_type} raised {len(rule_alerts)} alert(s) "
                    f"for client {window.client_id}"
                )
            alerts.extend(rule_alerts)

        return alerts

    def create_rule(
        self, rule_type: str, params: Optional[dict[str, Any]] = None
    ) -> Rule:
        """
        Create a Rule instance by type name.

        Args:
            rule_type: Rule type name
            params: Rule parameters

        Returns:
            Appropriate Rule instance

        Raises:
            ValueError: If rule type is unknown
        """
        params = params or {}

        if rule_type == "score_drop":
            return ScoreDropRule(min_drop=params.get("min_drop", 3.0))

        elif rule_type == "negative_content":
            return NegativeSerpContentRule(
                negative_keywords=params.get("negative_keywords"),
                max_position=params.get("max_position", 10),
            )

        elif rule_type == "serp_change":
            return SerpPositionChangeRule(
                lookback_days=params.get("lookback_days", 7),
                min_drop=params.get("min_drop", 3),
            )

        elif rule_type == "social_negative":
            return NegativeSocialRule(
                min_engagement=params.get("min_engagement", 10),
            )

        elif rule_type == "critical_event":
            return CriticalEventRule(
                score_threshold=params.get("score_threshold", 30.0),
                negative_news_threshold=params.get("negative_news_threshold", 5),
            )

        else:
            raise ValueError(f"Unknown rule type: {rule_type}")

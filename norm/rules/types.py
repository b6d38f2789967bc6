"""
Alert rule types and detectors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from norm.database.models import Keyword, ReputationScore, SERPResult
from norm.database.store import SignalStore


class AlertType(str, Enum):
    """Kind of adverse event."""

    SCORE_DROP = "score_drop"
    NEGATIVE_CONTENT = "negative_content"
    SERP_CHANGE = "serp_change"
    SOCIAL_NEGATIVE = "social_negative"
    CRITICAL_EVENT = "critical_event"


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    """Lifecycle status of a persisted alert."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# Positions past this mean the page was not found
MAX_TRACKED_POSITION = 100

DEFAULT_NEGATIVE_KEYWORDS = [
    "fraud",
    "scam",
    "complaint",
    "lawsuit",
    "sued",
    "ripoff",
    "rip-off",
    "scandal",
    "bankruptcy",
    "investigation",
    "fraude",
    "golpe",
    "reclamação",
    "processo",
    "estelionato",
    "calote",
]


@dataclass
class SignalWindow:
    """Client and period a set of rules is evaluated over."""

    client_id: int
    period_start: datetime
    period_end: datetime


@dataclass
class AlertCondition:
    """Candidate alert emitted by a rule, before dedup and persistence."""

    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    related_serp_result_id: Optional[int] = None
    related_mention_id: Optional[int] = None
    related_social_post_id: Optional[int] = None

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.alert_type.value, self.severity.value, self.title)


class Rule(ABC):
    """Abstract base class for alert detectors."""

    rule_type: str = ""

    @abstractmethod
    def evaluate(
        self, store: SignalStore, window: SignalWindow
    ) -> list[AlertCondition]:
        """
        Scan the signal window for this rule's adverse pattern.

        Args:
            store: Signal store to read from
            window: Client and period under evaluation

        Returns:
            List of candidate alerts (empty when nothing matched or data is missing)
        """
        pass


def current_period_score(
    store: SignalStore, window: SignalWindow
) -> Optional[ReputationScore]:
    """Latest persisted score covering the window, if any."""
    current = store.previous_period_score(window.client_id, window.period_end)
    if current is None or current.period_end <= window.period_start:
        return None
    return current


def _latest_by_keyword(results: list[SERPResult]) -> dict[int, SERPResult]:
    # Results arrive most recent first, so the first seen per keyword wins.
    latest: dict[int, SERPResult] = {}
    for result in results:
        latest.setdefault(result.keyword_id, result)
    return latest


class ScoreDropRule(Rule):
    """Alert when the composite score fell versus the prior period."""

    rule_type = "score_drop"

    def __init__(self, min_drop: float = 3.0):
        self.min_drop = min_drop

    def evaluate(self, store, window):
        current = current_period_score(store, window)
        if current is None:
            return []

        previous = store.previous_period_score(window.client_id, window.period_start)
        if previous is None:
            return []

        drop = round(previous.score - current.score, 2)
        severity = self.severity_for_drop(drop)
        if severity is None:
            return []

        return [
            AlertCondition(
                alert_type=AlertType.SCORE_DROP,
                severity=severity,
                title=f"Reputation score dropped {drop:.1f} points",
                message=(
                    f"Reputation score fell from {previous.score:.2f} "
                    f"to {current.score:.2f}."
                ),
            )
        ]

    def severity_for_drop(self, drop: float) -> Optional[AlertSeverity]:
        """Map a score drop to a severity, or None below the floor."""
        if drop >= 10:
            return AlertSeverity.CRITICAL
        elif drop >= 5:
            return AlertSeverity.HIGH
        elif drop >= self.min_drop:
            return AlertSeverity.MEDIUM
        return None


class NegativeSerpContentRule(Rule):
    """Alert on negative-sounding pages ranking in the top 10."""

    rule_type = "negative_content"

    def __init__(
        self,
        negative_keywords: Optional[list[str]] = None,
        max_position: int = 10,
    ):
        terms = negative_keywords or DEFAULT_NEGATIVE_KEYWORDS
        self.negative_keywords = [t.lower() for t in terms if t]
        self.max_position = max_position

    def evaluate(self, store, window):
        keywords = store.list_active_keywords(window.client_id)
        if not keywords:
            return []

        by_id = {k.id: k for k in keywords}
        results = store.latest_serp_results_by_keyword(
            list(by_id), window.period_start, window.period_end
        )

        alerts = []
        for result in results:
            if result.position is None or not 1 <= result.position <= self.max_position:
                continue

            matched = self.match_terms(result)
            if not matched:
                continue

            keyword = by_id.get(result.keyword_id)
            keyword_text = keyword.keyword if keyword else "keyword"
            alerts.append(
                AlertCondition(
                    alert_type=AlertType.NEGATIVE_CONTENT,
                    severity=self.severity_for_position(result.position),
                    title=(
                        f'Negative content at position {result.position} '
                        f'for "{keyword_text}"'
                    ),
                    message=(
                        f"{result.url} ranks #{result.position} and mentions: "
                        f"{', '.join(matched)}."
                    ),
                    related_serp_result_id=result.id,
                )
            )
        return alerts

    def match_terms(self, result: SERPResult) -> list[str]:
        """Lexicon terms found in the result's title or snippet."""
        text = f"{result.title or ''} {result.snippet or ''}".lower()
        return [term for term in self.negative_keywords if term in text]

    @staticmethod
    def severity_for_position(position: int) -> AlertSeverity:
        if position <= 3:
            return AlertSeverity.CRITICAL
        elif position <= 5:
            return AlertSeverity.HIGH
        return AlertSeverity.MEDIUM


class SerpPositionChangeRule(Rule):
    """Alert when the client's own page lost ranking positions."""

    rule_type = "serp_change"

    def __init__(self, lookback_days: int = 7, min_drop: int = 3):
        self.lookback_days = lookback_days
        self.min_drop = min_drop

    def evaluate(self, store, window):
        keywords = store.list_active_keywords(window.client_id)
        if not keywords:
            return []

        keyword_ids = [k.id for k in keywords]
        current = self._client_positions(
            store.latest_serp_results_by_keyword(
                keyword_ids, window.period_start, window.period_end
            )
        )
        if not current:
            return []

        prior_start = window.period_start - timedelta(days=self.lookback_days)
        previous = self._client_positions(
            store.latest_serp_results_by_keyword(
                keyword_ids, prior_start, window.period_start
            )
        )

        alerts = []
        for keyword in keywords:
            latest = current.get(keyword.id)
            before = previous.get(keyword.id)
            if latest is None or before is None:
                continue
            if before.position > MAX_TRACKED_POSITION:
                continue

            if latest.position > MAX_TRACKED_POSITION:
                severity = AlertSeverity.CRITICAL
                message = (
                    f"Position dropped from {before.position} to outside "
                    f"the top {MAX_TRACKED_POSITION}."
                )
            else:
                drop = latest.position - before.position
                if drop < self._threshold(keyword):
                    continue
                severity = self.severity_for_drop(drop)
                message = (
                    f"Position dropped from {before.position} to "
                    f"{latest.position} ({drop} positions)."
                )

            alerts.append(
                AlertCondition(
                    alert_type=AlertType.SERP_CHANGE,
                    severity=severity,
                    title=f'SERP position drop for "{keyword.keyword}"',
                    message=message,
                    related_serp_result_id=latest.id,
                )
            )
        return alerts

    def _threshold(self, keyword: Keyword) -> int:
        return max(self.min_drop, keyword.alert_threshold or 0)

    @staticmethod
    def _client_positions(results: list[SERPResult]) -> dict[int, SERPResult]:
        owned = [
            r
            for r in results
            if r.is_client_content and r.position is not None and r.position > 0
        ]
        return _latest_by_keyword(owned)

    @staticmethod
    def severity_for_drop(drop: int) -> AlertSeverity:
        if drop >= 10:
            return AlertSeverity.CRITICAL
        elif drop >= 5:
            return AlertSeverity.HIGH
        return AlertSeverity.MEDIUM


class NegativeSocialRule(Rule):
    """Alert on negative social posts that drew engagement."""

    rule_type = "social_negative"

    def __init__(self, min_engagement: int = 10):
        self.min_engagement = min_engagement

    def evaluate(self, store, window):
        accounts = store.active_social_accounts(window.client_id)
        if not accounts:
            return []

        posts = store.social_posts(
            [a.id for a in accounts], window.period_start, window.period_end
        )

        alerts = []
        for post in posts:
            if post.sentiment != "negative":
                continue
            if post.total_engagement < self.min_engagement:
                continue

            author = f" by {post.author_name}" if post.author_name else ""
            alerts.append(
                AlertCondition(
                    alert_type=AlertType.SOCIAL_NEGATIVE,
                    severity=self.severity_for_score(post.sentiment_score),
                    title=f"Negative {post.platform} post{author}",
                    message=(
                        f"A negative {post.platform} post{author} reached "
                        f"{post.total_engagement} interactions."
                    ),
                    related_social_post_id=post.id,
                )
            )
        return alerts

    @staticmethod
    def severity_for_score(score: Optional[float]) -> AlertSeverity:
        if score is None:
            return AlertSeverity.LOW
        if score <= -0.7:
            return AlertSeverity.CRITICAL
        elif score <= -0.5:
            return AlertSeverity.HIGH
        elif score <= -0.3:
            return AlertSeverity.MEDIUM
        return AlertSeverity.LOW


class CriticalEventRule(Rule):
    """Alert on a critically low score or a burst of negative news."""

    rule_type = "critical_event"

    def __init__(self, score_threshold: float = 30.0, negative_news_threshold: int = 5):
        self.score_threshold = score_threshold
        self.negative_news_threshold = negative_news_threshold

    def evaluate(self, store, window):
        alerts = []

        current = current_period_score(store, window)
        if current is not None and current.score < self.score_threshold:
            alerts.append(
                AlertCondition(
                    alert_type=AlertType.CRITICAL_EVENT,
                    severity=AlertSeverity.CRITICAL,
                    title=f"Reputation score critically low: {current.score:.1f}",
                    message=(
                        f"Reputation score is {current.score:.2f}, below the "
                        f"critical threshold of {self.score_threshold:g}."
                    ),
                )
            )

        mentions = store.news_mentions(
            window.client_id, window.period_start, window.period_end
        )
        negative = [m for m in mentions if m.sentiment == "negative"]
        if len(negative) >= self.negative_news_threshold:
            alerts.append(
                AlertCondition(
                    alert_type=AlertType.CRITICAL_EVENT,
                    severity=AlertSeverity.CRITICAL,
                    title=f"Surge of negative news: {len(negative)} mentions",
                    message=(
                        f"{len(negative)} negative news mentions were detected "
                        f"between {window.period_start:%Y-%m-%d} and "
                        f"{window.period_end:%Y-%m-%d}."
                    ),
                )
            )

        return alerts

"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from norm.database.models import (
    Alert,
    Keyword,
    Mention,
    ReputationScore,
    SERPResult,
    SocialAccount,
    SocialPost,
)
from norm.database.store import SignalStore


class InMemorySignalStore(SignalStore):
    """SignalStore over plain lists, for unit tests."""

    def __init__(self):
        self.keywords: list[Keyword] = []
        self.serp_results: list[SERPResult] = []
        self.mentions: list[Mention] = []
        self.accounts: list[SocialAccount] = []
        self.posts: list[SocialPost] = []
        self.scores: list[ReputationScore] = []
        self.alerts: list[Alert] = []
        self._next_id = 1

    def _assign_id(self, item):
        if item.id is None:
            item.id = self._next_id
            self._next_id += 1
        return item

    # Helpers for arranging test data

    def add_keyword(self, keyword: Keyword) -> Keyword:
        self.keywords.append(self._assign_id(keyword))
        return keyword

    def add_serp_result(self, result: SERPResult) -> SERPResult:
        self.serp_results.append(self._assign_id(result))
        return result

    def add_mention(self, mention: Mention) -> Mention:
        self.mentions.append(self._assign_id(mention))
        return mention

    def add_account(self, account: SocialAccount) -> SocialAccount:
        self.accounts.append(self._assign_id(account))
        return account

    def add_post(self, post: SocialPost) -> SocialPost:
        self.posts.append(self._assign_id(post))
        return post

    # SignalStore

    def list_active_keywords(self, client_id):
        return [k for k in self.keywords if k.client_id == client_id and k.is_active]

    def latest_serp_results_by_keyword(self, keyword_ids, period_start, period_end):
        results = [
            r
            for r in self.serp_results
            if r.keyword_id in keyword_ids and period_start <= r.checked_at < period_end
        ]
        return sorted(results, key=lambda r: (r.checked_at, r.id), reverse=True)

    def news_mentions(self, client_id, period_start, period_end):
        return [
            m
            for m in self.mentions
            if m.client_id == client_id and period_start <= m.scraped_at < period_end
        ]

    def active_social_accounts(self, client_id):
        return [a for a in self.accounts if a.client_id == client_id and a.is_active]

    def social_posts(self, account_ids, period_start, period_end):
        return [
            p
            for p in self.posts
            if p.social_account_id in account_ids
            and period_start <= p.published_at < period_end
        ]

    def previous_period_score(self, client_id, period_start):
        candidates = [
            s
            for s in self.scores
            if s.client_id == client_id and s.period_end <= period_start
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: (s.period_end, s.calculated_at, s.id))

    def recent_alerts(self, client_id, alert_type, severity, since):
        return [
            a
            for a in self.alerts
            if a.client_id == client_id
            and a.alert_type == alert_type
            and a.severity == severity
            and a.created_at > since
        ]

    def insert_alert(self, alert):
        self.alerts.append(self._assign_id(alert))
        return alert

    def insert_reputation_score(self, score):
        score.calculated_at = score.calculated_at or datetime.now()
        self.scores.append(self._assign_id(score))
        return score

    def mark_alert_email_sent(self, alert_id):
        for alert in self.alerts:
            if alert.id == alert_id:
                alert.email_sent = True
                alert.email_sent_at = datetime.now()


def make_score(
    client_id: int,
    score: float,
    period_end: datetime,
    days: int = 30,
    calculated_at: Optional[datetime] = None,
) -> ReputationScore:
    """A persisted score for the period ending at period_end."""
    return ReputationScore(
        client_id=client_id,
        score=score,
        period_start=period_end - timedelta(days=days),
        period_end=period_end,
        calculated_at=calculated_at or period_end,
    )


@pytest.fixture
def store():
    """Empty in-memory signal store."""
    return InMemorySignalStore()


@pytest.fixture
def score_factory():
    """Factory for persisted scores."""
    return make_score


@pytest.fixture
def period():
    """A 30-day evaluation window."""
    period_end = datetime(2026, 3, 31, 12, 0, 0)
    return period_end - timedelta(days=30), period_end


@pytest.fixture
def sample_discord_webhook_url():
    """Sample Discord webhook URL for testing."""
    return "https://discord.com/api/webhooks/123456789/abcdefghijklmnop"


@pytest.fixture
def sample_smtp_config():
    """Sample SMTP configuration for testing."""
    return {
        "host": "smtp.gmail.com",
        "port": 587,
        "user": "test@gmail.com",
        "password": "test-app-password",
        "from_address": "alerts@norm.app",
        "to_addresses": ["recipient@example.com"],
    }

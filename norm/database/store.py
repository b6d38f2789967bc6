"""
Abstract signal store consumed by the scoring and alerting engine.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .models import (
    Alert,
    Keyword,
    Mention,
    ReputationScore,
    SERPResult,
    SocialAccount,
    SocialPost,
)


class SignalStore(ABC):
    """Read queries and writes the engine needs from storage."""

    @abstractmethod
    def list_active_keywords(self, client_id: int) -> list[Keyword]:
        pass

    @abstractmethod
    def latest_serp_results_by_keyword(
        self,
        keyword_ids: list[int],
        period_start: datetime,
        period_end: datetime,
    ) -> list[SERPResult]:
        """SERP results checked in [period_start, period_end), most recent first."""
        pass

    @abstractmethod
    def news_mentions(
        self, client_id: int, period_start: datetime, period_end: datetime
    ) -> list[Mention]:
        pass

    @abstractmethod
    def active_social_accounts(self, client_id: int) -> list[SocialAccount]:
        pass

    @abstractmethod
    def social_posts(
        self,
        account_ids: list[int],
        period_start: datetime,
        period_end: datetime,
    ) -> list[SocialPost]:
        pass

    @abstractmethod
    def previous_period_score(
        self, client_id: int, period_start: datetime
    ) -> Optional[ReputationScore]:
        """Most recent score whose period ended on or before period_start."""
        pass

    @abstractmethod
    def recent_alerts(
        self,
        client_id: int,
        alert_type: str,
        severity: str,
        since: datetime,
    ) -> list[Alert]:
        pass

    @abstractmethod
    def insert_alert(self, alert: Alert) -> Alert:
        pass

    @abstractmethod
    def insert_reputation_score(self, score: ReputationScore) -> ReputationScore:
        pass

    @abstractmethod
    def mark_alert_email_sent(self, alert_id: int) -> None:
        pass

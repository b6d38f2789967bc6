"""
Data models for the nORM reputation engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Client:
    """A monitored client."""

    name: str
    is_active: bool = True
    industry: Optional[str] = None
    website: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class Keyword:
    """Search keyword tracked for a client."""

    client_id: int
    keyword: str
    is_active: bool = True
    alert_threshold: int = 3  # position change that should raise an alert
    priority: str = "normal"  # "high", "normal", "low"
    id: Optional[int] = None


@dataclass
class SERPResult:
    """Snapshot of a keyword's search-engine position."""

    keyword_id: int
    url: str
    checked_at: datetime
    position: Optional[int] = None  # None or > 100 = not found
    title: Optional[str] = None
    snippet: Optional[str] = None
    domain: Optional[str] = None
    is_client_content: bool = False
    id: Optional[int] = None


@dataclass
class Mention:
    """News mention with computed sentiment."""

    client_id: int
    title: str
    url: str
    scraped_at: datetime
    source: Optional[str] = None
    excerpt: Optional[str] = None
    sentiment: Optional[str] = None  # "positive", "neutral", "negative"
    sentiment_score: Optional[float] = None  # -1.0 to 1.0
    sentiment_confidence: Optional[float] = None  # 0.0 to 1.0
    published_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class SocialAccount:
    """Client social media account."""

    client_id: int
    platform: str  # "instagram", "linkedin", "facebook"
    account_id: str
    account_name: Optional[str] = None
    is_active: bool = True
    id: Optional[int] = None


@dataclass
class SocialPost:
    """Social media post with engagement and sentiment."""

    social_account_id: int
    platform: str
    post_id: str
    published_at: datetime
    author_name: Optional[str] = None
    content: Optional[str] = None
    engagement_likes: int = 0
    engagement_comments: int = 0
    engagement_shares: int = 0
    sentiment: Optional[str] = None
    sentiment_score: Optional[float] = None
    sentiment_confidence: Optional[float] = None
    id: Optional[int] = None

    @property
    def total_engagement(self) -> int:
        """Likes + comments + shares, ignoring negative counts."""
        return (
            max(0, self.engagement_likes)
            + max(0, self.engagement_comments)
            + max(0, self.engagement_shares)
        )


@dataclass
class ScoreBreakdown:
    """The five 0-10 sub-scores behind a composite score."""

    serp: float = 5.0
    news: float = 5.0
    social: float = 5.0
    trend: float = 5.0
    volume: float = 5.0

    def to_dict(self) -> dict[str, float]:
        return {
            "serp": self.serp,
            "news": self.news,
            "social": self.social,
            "trend": self.trend,
            "volume": self.volume,
        }


@dataclass
class ReputationScore:
    """Composite score for one client and evaluation period."""

    client_id: int
    score: float
    period_start: datetime
    period_end: datetime
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    calculated_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class Alert:
    """Persisted adverse reputation event."""

    client_id: int
    alert_type: str  # see norm.rules.types.AlertType
    severity: str  # "low", "medium", "high", "critical"
    title: str
    message: str
    related_serp_result_id: Optional[int] = None
    related_mention_id: Optional[int] = None
    related_social_post_id: Optional[int] = None
    status: str = "active"  # "active", "acknowledged", "resolved", "dismissed"
    email_sent: bool = False
    email_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    id: Optional[int] = None

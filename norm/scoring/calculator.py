"""
Reputation score calculator.

Reduces the signals of one evaluation period to five 0-10 sub-scores and a
0-100 composite:

    score = (serp * 0.35 + news * 0.25 + social * 0.20
             + trend * 0.15 + volume * 0.05) * 10

Missing data never raises; each sub-score falls back to a neutral 5.0.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from norm.database.models import Mention, ScoreBreakdown, SERPResult, SocialPost
from norm.database.store import SignalStore

logger = logging.getLogger(__name__)

WEIGHTS = {
    "serp": 0.35,
    "news": 0.25,
    "social": 0.20,
    "trend": 0.15,
    "volume": 0.05,
}

NEUTRAL_SCORE = 5.0
CLIENT_CONTENT_BOOST = 1.2
NOT_FOUND_POSITION = 100


class ScoreCalculationError(Exception):
    """Raised when signals could not be read for a score calculation."""

    pass


@dataclass
class ScoreResult:
    """Composite score and the sub-scores behind it."""

    score: float
    breakdown: ScoreBreakdown


def round2(value: float) -> float:
    """Round half-up to 2 decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def position_to_score(position: Optional[int], is_client_content: bool = False) -> float:
    """
    Map a SERP position to a 0-10 score.

    Positions 1-3 score 10, 4-10 fall linearly from 9.5 to 8.0, 11-20 from
    7.5 to 5.0, and beyond 20 the score loses 0.1 per position from 4.5.
    Results that were not found score 0. The client's own pages get a 20%
    boost, capped at 10.
    """
    if position is None or position <= 0 or position > NOT_FOUND_POSITION:
        return 0.0

    if position <= 3:
        score = 10.0
    elif position <= 10:
        score = 9.5 - (position - 4) * (1.5 / 6)
    elif position <= 20:
        score = 7.5 - (position - 11) * (2.5 / 9)
    else:
        score = max(0.0, 4.5 - (position - 20) * 0.1)

    if is_client_content:
        score = min(10.0, score * CLIENT_CONTENT_BOOST)

    return round2(score)


def serp_score(results: Iterable[SERPResult]) -> float:
    """Average position score over each keyword's most recent result."""
    latest: dict[int, SERPResult] = {}
    for result in results:
        latest.setdefault(result.keyword_id, result)

    if not latest:
        return NEUTRAL_SCORE

    scores = [
        position_to_score(r.position, r.is_client_content) for r in latest.values()
    ]
    return round2(sum(scores) / len(scores))


def _sentiment(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return clamp(float(value), -1.0, 1.0)


def _confidence(value: Optional[float]) -> float:
    # Unscored confidence counts as full weight
    if value is None:
        return 1.0
    return clamp(float(value), 0.0, 1.0)


def _weighted_sentiment(pairs: Iterable[tuple[float, float]]) -> float:
    total_weight = 0.0
    weighted_sum = 0.0
    for sentiment, weight in pairs:
        total_weight += weight
        weighted_sum += sentiment * weight

    if total_weight <= 0:
        return NEUTRAL_SCORE

    average = clamp(weighted_sum / total_weight, -1.0, 1.0)
    return round2(clamp((average + 1) * 5, 0.0, 10.0))


def news_score(mentions: Iterable[Mention]) -> float:
    """Confidence-weighted news sentiment on a 0-10 scale."""
    pairs = []
    for mention in mentions:
        sentiment = _sentiment(mention.sentiment_score)
        if sentiment is None:
            continue
        pairs.append((sentiment, _confidence(mention.sentiment_confidence)))
    return _weighted_sentiment(pairs)


def engagement_weight(post: SocialPost) -> float:
    """Engagement weight: comments count double and shares triple."""
    raw = (
        max(0, post.engagement_likes)
        + 2 * max(0, post.engagement_comments)
        + 3 * max(0, post.engagement_shares)
    )
    return max(1, raw) * _confidence(post.sentiment_confidence)


def social_score(posts: Iterable[SocialPost]) -> float:
    """Engagement- and confidence-weighted social sentiment on a 0-10 scale."""
    pairs = []
    for post in posts:
        sentiment = _sentiment(post.sentiment_score)
        if sentiment is None:
            continue
        pairs.append((sentiment, engagement_weight(post)))
    return _weighted_sentiment(pairs)


def volume_score(labels: Iterable[Optional[str]]) -> float:
    """Score the mix of positive, neutral and negative labels."""
    counts = {"positive": 0, "neutral": 0, "negative": 0}
    for label in labels:
        if label in counts:
            counts[label] += 1

    total = sum(counts.values())
    if total == 0:
        return NEUTRAL_SCORE

    positive = counts["positive"] / total
    neutral = counts["neutral"] / total
    negative = counts["negative"] / total

    score = positive * 10 + neutral * 5 + max(0.0, 5 - negative * 10)
    return round2(clamp(score, 0.0, 10.0))


def trend_score(preliminary: float, previous: Optional[float]) -> float:
    """Score movement of the preliminary composite against the prior period."""
    if previous is None:
        return NEUTRAL_SCORE
    return round2(clamp(5 + (preliminary - previous) / 20 * 5, 0.0, 10.0))


def preliminary_composite(breakdown: ScoreBreakdown) -> float:
    """
    Composite without the trend term.

    The remaining weights are not renormalised, so this value tops out at 85.
    """
    value = (
        breakdown.serp * WEIGHTS["serp"]
        + breakdown.news * WEIGHTS["news"]
        + breakdown.social * WEIGHTS["social"]
        + breakdown.volume * WEIGHTS["volume"]
    ) * 10
    return round2(value)


def composite_score(breakdown: ScoreBreakdown) -> float:
    """Weighted 0-100 composite of all five sub-scores."""
    value = sum(
        getattr(breakdown, name) * weight for name, weight in WEIGHTS.items()
    ) * 10
    return round2(clamp(value, 0.0, 100.0))


class ScoreCalculator:
    """Calculates reputation scores from a signal store."""

    def __init__(self, store: SignalStore):
        self.store = store

    def calculate_reputation_score(
        self,
        client_id: int,
        period_start: datetime,
        period_end: datetime,
    ) -> ScoreResult:
        """
        Calculate the reputation score of a client for a period.

        Args:
            client_id: Client to score
            period_start: Start of the window (inclusive)
            period_end: End of the window (exclusive)

        Returns:
            ScoreResult with composite score and breakdown

        Raises:
            ScoreCalculationError: If the signal store fails
        """
        try:
            serp_results = self._serp_results(client_id, period_start, period_end)
            mentions = self.store.news_mentions(client_id, period_start, period_end)
            posts = self._social_posts(client_id, period_start, period_end)
            previous = self.store.previous_period_score(client_id, period_start)
        except Exception as e:
            logger.error(f"Failed to load signals for client {client_id}: {e}")
            raise ScoreCalculationError(
                f"Could not calculate reputation score for client {client_id}"
            ) from e

        breakdown = ScoreBreakdown(
            serp=serp_score(serp_results),
            news=news_score(mentions),
            social=social_score(posts),
            volume=volume_score(
                [m.sentiment for m in mentions] + [p.sentiment for p in posts]
            ),
        )

        preliminary = preliminary_composite(breakdown)
        breakdown.trend = trend_score(
            preliminary, previous.score if previous else None
        )
        score = composite_score(breakdown)

        logger.debug(
            f"Client {client_id} scored {score} "
            f"(preliminary {preliminary}, breakdown {breakdown.to_dict()})"
        )
        return ScoreResult(score=score, breakdown=breakdown)

    def _serp_results(self, client_id, period_start, period_end) -> list[SERPResult]:
        keywords = self.store.list_active_keywords(client_id)
        if not keywords:
            return []
        return self.store.latest_serp_results_by_keyword(
            [k.id for k in keywords], period_start, period_end
        )

    def _social_posts(self, client_id, period_start, period_end) -> list[SocialPost]:
        accounts = self.store.active_social_accounts(client_id)
        if not accounts:
            return []
        return self.store.social_posts(
            [a.id for a in accounts], period_start, period_end
        )

"""
Reputation trend evaluation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from norm.database.models import ReputationScore

TREND_THRESHOLD = 2.0
# Absorbs float noise such as 70.3 - 68.3 without moving the boundary
TREND_EPSILON = 1e-9


class TrendDirection(str, Enum):
    """Direction of a score movement."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass
class TrendAnalysis:
    """Trend over a history of scores."""

    direction: TrendDirection
    change: float
    period: int  # days
    data_points: int


def calculate_trend(current: float, previous: float) -> TrendDirection:
    """
    Compare two composite scores.

    A move of exactly 2 points either way is still stable.
    """
    difference = current - previous

    if difference > TREND_THRESHOLD + TREND_EPSILON:
        return TrendDirection.UP
    if difference < -(TREND_THRESHOLD + TREND_EPSILON):
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def analyze_trend(
    scores: list[ReputationScore],
    period_days: int = 30,
    now: Optional[datetime] = None,
) -> TrendAnalysis:
    """
    Analyze the trend of a score history.

    Args:
        scores: Historical scores in any order
        period_days: Number of days to look back
        now: Reference time, defaults to the current time

    Returns:
        TrendAnalysis comparing the oldest and newest score in the period
    """
    now = now or datetime.now()
    cutoff = now - timedelta(days=period_days)

    recent = sorted(
        (s for s in scores if s.calculated_at and s.calculated_at >= cutoff),
        key=lambda s: s.calculated_at,
    )

    if len(recent) < 2:
        return TrendAnalysis(
            direction=TrendDirection.STABLE,
            change=0.0,
            period=period_days,
            data_points=len(recent),
        )

    first, last = recent[0].score, recent[-1].score
    return TrendAnalysis(
        direction=calculate_trend(last, first),
        change=round(last - first, 2),
        period=period_days,
        data_points=len(recent),
    )

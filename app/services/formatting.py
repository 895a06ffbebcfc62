"""Display helpers shared by the API responses and the dashboard client."""
from __future__ import annotations

from app.models.enums import LeaderboardMetric


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent; 0 when there is no previous baseline."""
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


def trend(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "flat"


def format_change(change: float) -> str:
    sign = "+" if change >= 0 else ""
    return f"{sign}{change:.1f}%"


def format_leaderboard_value(metric: LeaderboardMetric, value: float) -> str:
    if metric == LeaderboardMetric.pulse_avg:
        return f"{value:.1f}"
    return str(int(round(value)))

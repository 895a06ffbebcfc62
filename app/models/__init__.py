from .team import Team
from .user import User
from .checkin import Checkin
from .shoutout import Shoutout
from .vacation import Vacation
from .aggregates import (
    PulseMetricsDaily,
    ShoutoutMetricsDaily,
    ComplianceMetricsDaily,
    AggregationWatermark,
)

__all__ = [
    "Team",
    "User",
    "Checkin",
    "Shoutout",
    "Vacation",
    "PulseMetricsDaily",
    "ShoutoutMetricsDaily",
    "ComplianceMetricsDaily",
    "AggregationWatermark",
]

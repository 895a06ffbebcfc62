import enum


class UserRole(str, enum.Enum):
    member = "member"
    manager = "manager"
    admin = "admin"


class AnalyticsScope(str, enum.Enum):
    organization = "organization"
    team = "team"
    user = "user"


class AnalyticsPeriod(str, enum.Enum):
    day = "day"
    week = "week"
    month = "month"
    quarter = "quarter"
    year = "year"


class ShoutoutDirection(str, enum.Enum):
    given = "given"
    received = "received"
    all = "all"


class ShoutoutVisibility(str, enum.Enum):
    public = "public"
    private = "private"
    all = "all"


class LeaderboardMetric(str, enum.Enum):
    shoutouts_received = "shoutouts_received"
    shoutouts_given = "shoutouts_given"
    pulse_avg = "pulse_avg"

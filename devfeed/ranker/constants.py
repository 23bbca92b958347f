"""Constants for the ranker module.

The weights below are product tuning values; they are kept as named
constants so that changes are deliberate.
"""

from devfeed.config.schemas.base import SourceTier


# Global cap on any source's lookback window
FEED_LOOKBACK_DAYS: float = 7.0

DEFAULT_UNREAD_TOTAL_LIMIT: int = 20
DEFAULT_READ_ARCHIVE_DAYS: float = 7.0
READ_STORAGE_RETENTION_DAYS: float = 45.0

# Hard total when read items are shown: max(limit * multiplier, floor)
INCLUDE_READ_TOTAL_MULTIPLIER: int = 3
INCLUDE_READ_TOTAL_FLOOR: int = 60

DEFAULT_UNREAD_PER_SOURCE_BY_TIER: dict[SourceTier, int] = {
    SourceTier.CORE: 3,
    SourceTier.NORMAL: 2,
    SourceTier.EXPLORE: 2,
}

DEFAULT_SOURCE_PRIORITY_BY_TIER: dict[SourceTier, int] = {
    SourceTier.CORE: 16,
    SourceTier.NORMAL: 10,
    SourceTier.EXPLORE: 7,
}

ENGINEERING_KEYWORDS: tuple[str, ...] = (
    "engineering",
    "developer",
    "infrastructure",
    "security",
    "reliability",
    "scalability",
    "performance",
    "database",
    "distributed",
    "architecture",
    "ai",
    "ml",
    "platform",
    "devops",
    "observability",
    "api",
    "cloud",
    "frontend",
    "backend",
    "testing",
    "release",
    "incident",
    "postmortem",
)

NOISE_KEYWORDS: tuple[str, ...] = (
    "launch",
    "pricing",
    "webinar",
    "customer story",
    "event recap",
    "press",
    "announcement",
    "sponsored",
    "ebook",
    "report",
    "case study",
    "q&a",
    "hiring",
)

# Score bounds
MIN_SCORE: float = 0.0
MAX_SCORE: float = 100.0

# Recency decays linearly from this value to zero across the lookback window
RECENCY_MAX_SCORE: float = 40.0

PRIORITY_MIN: int = 0
PRIORITY_MAX: int = 20

# Category match
INCLUDE_MATCH_SCORE: float = 15.0
INCLUDE_MISS_PENALTY: float = 8.0
EXCLUDE_MATCH_PENALTY: float = 10.0
ENGINEERING_HIT_SCORE: float = 2.0
ENGINEERING_HIT_CAP: float = 10.0
NOISE_HIT_PENALTY: float = 3.0
NOISE_HIT_CAP: float = 10.0
CATEGORY_SCORE_MIN: float = -10.0
CATEGORY_SCORE_MAX: float = 15.0

# Reading-time fit, in minutes
READ_TIME_MAX_MINUTES: int = 240
READ_TIME_SWEET_SPOT: tuple[int, int] = (4, 12)
READ_TIME_ACCEPTABLE: tuple[int, int] = (2, 20)
READ_TIME_LONG_MINUTES: int = 30
READ_TIME_SWEET_SPOT_SCORE: float = 8.0
READ_TIME_ACCEPTABLE_SCORE: float = 4.0
READ_TIME_SHORT_PENALTY: float = 4.0
READ_TIME_LONG_PENALTY: float = 6.0
READ_TIME_OTHER_PENALTY: float = 2.0

# Trend boost
TRENDING_MARKER: str = "trending"
TRENDING_BOOST: float = 15.0
GITHUB_MARKER: str = "github"
GITHUB_BOOST: float = 6.0

# Title noise
TITLE_NOISE_HIT_PENALTY: float = 5.0
TITLE_NOISE_CAP: float = 20.0

# Score reported for an article whose date cannot be parsed
UNPARSEABLE_DATE_SCORE: float = -999.0

"""RetroAchievements API access with explicit caching."""

from .cache import ApiCache, CacheSettings
from .client import (
    GameInfo,
    LeaderboardEntry,
    RetroAchievementsClient,
    RetroApiError,
    RetroApiNotFoundError,
    UserGameProgress,
    UserProfile,
)
from .scores import ScoreSource, TiebreakerStandings

__all__ = [
    "ApiCache",
    "CacheSettings",
    "GameInfo",
    "LeaderboardEntry",
    "RetroAchievementsClient",
    "RetroApiError",
    "RetroApiNotFoundError",
    "UserGameProgress",
    "UserProfile",
    "ScoreSource",
    "TiebreakerStandings",
]

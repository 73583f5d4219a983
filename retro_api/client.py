"""Thin synchronous client for the RetroAchievements Web API."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final

import requests

from .cache import ApiCache

log: Final = logging.getLogger(__name__)

BASE_URL: Final[str] = "https://retroachievements.org/API/"
USER_AGENT: Final[str] = "Select-Start-Bot/1.0"
DEFAULT_TIMEOUT: Final[float] = 30.0
DEFAULT_MIN_INTERVAL: Final[float] = 1.2
LEADERBOARD_BATCH_SIZE: Final[int] = 500
LEADERBOARD_MAX_ENTRIES: Final[int] = 1000

_RA_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RetroApiError(RuntimeError):
    """Raised when the RetroAchievements API cannot be reached or answers badly."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RetroApiNotFoundError(RetroApiError):
    """Raised for 404 responses."""


@dataclass(frozen=True, slots=True)
class GameInfo:
    game_id: int
    title: str
    icon_url: str | None
    console_name: str | None
    num_achievements: int


@dataclass(frozen=True, slots=True)
class UserProfile:
    username: str
    avatar_url: str | None
    member_since: str | None


@dataclass(frozen=True, slots=True)
class AchievementUnlock:
    achievement_id: str
    title: str
    earned_at: datetime | None
    earned_hardcore_at: datetime | None


@dataclass(frozen=True, slots=True)
class UserGameProgress:
    username: str
    game_id: int
    total_achievements: int
    awarded_count: int
    achievements: dict[str, AchievementUnlock] = field(default_factory=dict)

    def hardcore_unlocks(self) -> list[AchievementUnlock]:
        return [
            unlock
            for unlock in self.achievements.values()
            if unlock.earned_hardcore_at is not None
        ]


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    user: str
    rank: int
    score: str
    submitted_at: str | None = None


def parse_ra_datetime(value: object) -> datetime | None:
    if not value:
        return None
    text = str(value).strip()
    try:
        return datetime.strptime(text, _RA_DATE_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        log.debug("Unparseable RetroAchievements date: %s", text)
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _first_present(entry: dict[str, object], *names: str) -> object | None:
    for name in names:
        value = entry.get(name)
        if value is not None and value != "":
            return value
    return None


def normalize_leaderboard_entries(payload: object) -> list[LeaderboardEntry]:
    """Standardize the several shapes the leaderboard endpoint returns."""
    if isinstance(payload, dict):
        rows = payload.get("Results", [])
    else:
        rows = payload
    if not isinstance(rows, list):
        return []

    entries: list[LeaderboardEntry] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        user = str(_first_present(row, "User", "user") or "").strip()
        if not user:
            continue
        formatted = _first_present(
            row, "FormattedScore", "formattedScore", "ScoreFormatted", "scoreFormatted"
        )
        raw_score = _first_present(row, "Score", "score", "Value", "value")
        if formatted is not None:
            score = str(formatted).strip()
        elif raw_score is not None:
            score = str(raw_score).strip()
        else:
            score = "No Score"
        submitted = _first_present(row, "DateSubmitted", "dateSubmitted")
        entries.append(
            LeaderboardEntry(
                user=user,
                rank=_as_int(_first_present(row, "Rank", "rank")),
                score=score,
                submitted_at=str(submitted) if submitted is not None else None,
            )
        )
    return entries


class RetroAchievementsClient:
    def __init__(
        self,
        username: str,
        api_key: str,
        *,
        cache: ApiCache | None = None,
        session: requests.Session | None = None,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._username = username
        self._api_key = api_key
        self.cache = cache or ApiCache()
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._throttle_lock = threading.Lock()
        self._last_request_at: float | None = None

    def _throttle(self) -> None:
        with self._throttle_lock:
            now = self._clock()
            if self._last_request_at is not None:
                wait = self._min_interval - (now - self._last_request_at)
                if wait > 0:
                    self._sleep(wait)
                    now = self._clock()
            self._last_request_at = now

    def _request(self, endpoint: str, params: dict[str, object]) -> object:
        query = dict(params)
        query.update({"z": self._username, "y": self._api_key})
        self._throttle()
        try:
            resp = self._session.get(
                self._base_url + endpoint, params=query, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise RetroApiError(f"{endpoint} request failed: {exc}") from exc

        if resp.status_code == 404:
            raise RetroApiNotFoundError(f"{endpoint} returned 404", status=404)
        if resp.status_code >= 400:
            raise RetroApiError(
                f"{endpoint} returned HTTP {resp.status_code}", status=resp.status_code
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise RetroApiError(f"{endpoint} returned invalid JSON") from exc

    def get_game_info(self, game_id: int) -> GameInfo:
        cached = self.cache.get("game_info", game_id)
        if cached is not None:
            return cached  # type: ignore[return-value]

        data = self._request("API_GetGame.php", {"i": game_id})
        if not isinstance(data, dict) or not data:
            raise RetroApiNotFoundError(f"Game {game_id} not found", status=404)
        info = GameInfo(
            game_id=game_id,
            title=str(data.get("Title") or data.get("GameTitle") or f"Game {game_id}"),
            icon_url=data.get("ImageIcon") or data.get("GameIcon") or None,
            console_name=data.get("ConsoleName") or None,
            num_achievements=_as_int(data.get("NumAchievements")),
        )
        self.cache.set("game_info", game_id, info)
        return info

    def get_user_profile(self, username: str) -> UserProfile:
        cache_key = username.lower()
        cached = self.cache.get("user_info", cache_key)
        if cached is not None:
            return cached  # type: ignore[return-value]

        data = self._request("API_GetUserProfile.php", {"u": username})
        if not isinstance(data, dict) or not data.get("User"):
            raise RetroApiNotFoundError(f"User {username} not found", status=404)
        profile = UserProfile(
            username=str(data["User"]),
            avatar_url=data.get("UserPic") or None,
            member_since=data.get("MemberSince") or None,
        )
        self.cache.set("user_info", cache_key, profile)
        return profile

    def get_user_game_progress(self, username: str, game_id: int) -> UserGameProgress:
        cache_key = (username.lower(), game_id)
        cached = self.cache.get("user_progress", cache_key)
        if cached is not None:
            return cached  # type: ignore[return-value]

        data = self._request(
            "API_GetGameInfoAndUserProgress.php", {"g": game_id, "u": username}
        )
        if not isinstance(data, dict):
            raise RetroApiError(f"Unexpected progress payload for {username}")

        raw_achievements = data.get("Achievements") or {}
        if isinstance(raw_achievements, list):
            raw_achievements = {
                str(item.get("ID")): item for item in raw_achievements if isinstance(item, dict)
            }
        achievements: dict[str, AchievementUnlock] = {}
        for achievement_id, raw in raw_achievements.items():
            if not isinstance(raw, dict):
                continue
            key = str(raw.get("ID") or achievement_id)
            achievements[key] = AchievementUnlock(
                achievement_id=key,
                title=str(raw.get("Title", "")),
                earned_at=parse_ra_datetime(raw.get("DateEarned")),
                earned_hardcore_at=parse_ra_datetime(raw.get("DateEarnedHardcore")),
            )

        progress = UserGameProgress(
            username=username,
            game_id=game_id,
            total_achievements=_as_int(data.get("NumAchievements"), len(achievements)),
            awarded_count=_as_int(data.get("NumAwardedToUser")),
            achievements=achievements,
        )
        self.cache.set("user_progress", cache_key, progress)
        return progress

    def get_leaderboard_entries(
        self, leaderboard_id: int, max_entries: int = LEADERBOARD_MAX_ENTRIES
    ) -> list[LeaderboardEntry]:
        cache_key = (leaderboard_id, max_entries)
        cached = self.cache.get("leaderboard", cache_key)
        if cached is not None:
            return list(cached)  # type: ignore[call-overload]

        entries: list[LeaderboardEntry] = []
        offset = 0
        while offset < max_entries:
            count = min(LEADERBOARD_BATCH_SIZE, max_entries - offset)
            payload = self._request(
                "API_GetLeaderboardEntries.php",
                {"i": leaderboard_id, "o": offset, "c": count},
            )
            entries.extend(normalize_leaderboard_entries(payload))
            rows = payload.get("Results", []) if isinstance(payload, dict) else payload
            if not isinstance(rows, list) or len(rows) < count:
                break
            offset += count

        log.debug(
            "Fetched %d entries for leaderboard %s", len(entries), leaderboard_id
        )
        self.cache.set("leaderboard", cache_key, tuple(entries))
        return entries

    def close(self) -> None:
        self._session.close()


__all__ = [
    "AchievementUnlock",
    "BASE_URL",
    "GameInfo",
    "LeaderboardEntry",
    "RetroAchievementsClient",
    "RetroApiError",
    "RetroApiNotFoundError",
    "UserGameProgress",
    "UserProfile",
    "normalize_leaderboard_entries",
    "parse_ra_datetime",
]

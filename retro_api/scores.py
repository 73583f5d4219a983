"""Challenge scores and tiebreaker standings sourced from RetroAchievements."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from challenges import ChallengeStorage, MonthlyChallenge, RegisteredUser, TiebreakerBoard
from ranking import ParticipantScore, TiebreakerEntry, calculate_award

from .client import RetroAchievementsClient, RetroApiError, UserGameProgress

log: Final = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY: Final[int] = 4


@dataclass(slots=True)
class TiebreakerStandings:
    board: TiebreakerBoard | None = None
    tiebreaker: list[TiebreakerEntry] = field(default_factory=list)
    tiebreaker_breaker: list[TiebreakerEntry] = field(default_factory=list)


def qualifying_achievement_ids(
    progress: UserGameProgress, challenge: MonthlyChallenge
) -> list[str]:
    """Hardcore unlocks that fall inside the challenge month."""
    return [
        unlock.achievement_id
        for unlock in progress.hardcore_unlocks()
        if unlock.earned_hardcore_at is not None
        and challenge.counts_earned_at(unlock.earned_hardcore_at)
    ]


def score_progress(
    user: RegisteredUser, progress: UserGameProgress, challenge: MonthlyChallenge
) -> ParticipantScore | None:
    earned = qualifying_achievement_ids(progress, challenge)
    if not earned:
        return None
    total = challenge.total_achievements or progress.total_achievements
    award = calculate_award(
        earned,
        total,
        challenge.progression_achievement_ids,
        challenge.win_achievement_ids,
    )
    return ParticipantScore(
        username=user.ra_username,
        achieved_count=len(earned),
        award_points=int(award),
        total_achievements=total,
        discord_id=str(user.discord_id) if user.discord_id is not None else None,
    )


class ScoreSource:
    def __init__(
        self,
        client: RetroAchievementsClient,
        storage: ChallengeStorage,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._client = client
        self._storage = storage
        self._max_concurrency = max(1, max_concurrency)

    async def load_challenge(self, period_key: str) -> MonthlyChallenge | None:
        challenge = await asyncio.to_thread(self._storage.get_challenge, period_key)
        if challenge is None:
            log.info("No challenge configured for %s", period_key)
            return None
        if challenge.game_title and challenge.game_icon_url:
            return challenge
        try:
            info = await asyncio.to_thread(self._client.get_game_info, challenge.game_id)
        except RetroApiError as exc:
            log.warning("Unable to load game info for %s: %s", challenge.game_id, exc)
            return challenge
        challenge.apply_game_info(info.title, info.icon_url, info.console_name)
        await asyncio.to_thread(self._storage.save_challenge, challenge)
        return challenge

    async def _score_user(
        self,
        user: RegisteredUser,
        challenge: MonthlyChallenge,
        limiter: asyncio.Semaphore,
    ) -> ParticipantScore | None:
        try:
            async with limiter:
                progress = await asyncio.to_thread(
                    self._client.get_user_game_progress, user.ra_username, challenge.game_id
                )
        except RetroApiError as exc:
            log.warning(
                "Skipping %s: progress fetch for game %s failed: %s",
                user.ra_username,
                challenge.game_id,
                exc,
            )
            return None
        return score_progress(user, progress, challenge)

    async def fetch_scores(
        self, period_key: str, *, challenge: MonthlyChallenge | None = None
    ) -> list[ParticipantScore]:
        """Return one score per registered user with qualifying achievements."""
        if challenge is None:
            challenge = await self.load_challenge(period_key)
        if challenge is None:
            return []
        users = await asyncio.to_thread(self._storage.list_users)
        # Bounds worker threads; the client throttles requests on its own.
        limiter = asyncio.Semaphore(self._max_concurrency)
        results = await asyncio.gather(
            *(self._score_user(user, challenge, limiter) for user in users)
        )
        scores = [score for score in results if score is not None]
        log.info(
            "Scored %d of %d users for %s", len(scores), len(users), period_key
        )
        return scores

    async def fetch_leaderboard(self, leaderboard_id: int) -> list[TiebreakerEntry]:
        try:
            entries = await asyncio.to_thread(
                self._client.get_leaderboard_entries, leaderboard_id
            )
        except RetroApiError as exc:
            log.warning("Leaderboard %s unavailable: %s", leaderboard_id, exc)
            return []
        return [
            TiebreakerEntry(username=entry.user, rank=entry.rank, score=entry.score)
            for entry in entries
        ]

    async def fetch_tiebreakers(self, now: datetime) -> TiebreakerStandings:
        board = await asyncio.to_thread(self._storage.get_active_tiebreaker, now)
        if board is None:
            return TiebreakerStandings()
        tiebreaker = await self.fetch_leaderboard(board.leaderboard_id)
        breaker: Sequence[TiebreakerEntry] = []
        if board.breaker_leaderboard_id is not None:
            breaker = await self.fetch_leaderboard(board.breaker_leaderboard_id)
        return TiebreakerStandings(
            board=board, tiebreaker=tiebreaker, tiebreaker_breaker=list(breaker)
        )


__all__ = [
    "ScoreSource",
    "TiebreakerStandings",
    "qualifying_achievement_ids",
    "score_progress",
]

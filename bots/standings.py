"""Build monthly and yearly standings from persisted records and live scores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from challenges import (
    AnnualRecord,
    ChallengeStorage,
    MonthlyChallenge,
    TiebreakerBoard,
    month_key_for,
)
from ranking import RankedParticipant, competition_ranks, resolve_ranks
from retro_api import ScoreSource, TiebreakerStandings

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MonthlySnapshot:
    challenge: MonthlyChallenge
    ranked: list[RankedParticipant]
    generated_at: datetime
    tiebreaker_board: TiebreakerBoard | None = None

    @property
    def participant_count(self) -> int:
        return len(self.ranked)

    def top(self, limit: int = 5) -> list[RankedParticipant]:
        return [entry for entry in self.ranked if entry.display_rank <= limit]


@dataclass(slots=True)
class YearlyStanding:
    username: str
    rank: int
    record: AnnualRecord = field(repr=False)

    @property
    def total_points(self) -> int:
        return self.record.total_points


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StandingsService:
    def __init__(
        self,
        scores: ScoreSource,
        storage: ChallengeStorage,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._scores = scores
        self._storage = storage
        self._clock = clock

    def current_period(self) -> str:
        return month_key_for(self._clock())

    async def monthly(self, period_key: str | None = None) -> MonthlySnapshot | None:
        now = self._clock()
        period_key = period_key or month_key_for(now)
        challenge = await self._scores.load_challenge(period_key)
        if challenge is None:
            return None

        # Tiebreaker boards only apply to the month that is currently running.
        if period_key == month_key_for(now):
            scores, tiebreakers = await asyncio.gather(
                self._scores.fetch_scores(period_key, challenge=challenge),
                self._scores.fetch_tiebreakers(now),
            )
        else:
            scores = await self._scores.fetch_scores(period_key, challenge=challenge)
            tiebreakers = TiebreakerStandings()

        ranked = resolve_ranks(
            scores, tiebreakers.tiebreaker, tiebreakers.tiebreaker_breaker
        )
        log.info(
            "Resolved %d participants for %s (tiebreaker entries: %d)",
            len(ranked),
            period_key,
            len(tiebreakers.tiebreaker),
        )
        return MonthlySnapshot(
            challenge=challenge,
            ranked=ranked,
            generated_at=now,
            tiebreaker_board=tiebreakers.board,
        )

    async def yearly(self, year: int | None = None) -> list[YearlyStanding]:
        year = year or self._clock().year
        users = await asyncio.to_thread(self._storage.list_users)
        records: list[tuple[str, AnnualRecord]] = []
        for user in users:
            record = user.annual_record(year)
            if record is not None and record.total_points > 0:
                records.append((user.ra_username, record))
        records.sort(key=lambda pair: (-pair[1].total_points, pair[0].lower()))
        ranks = competition_ranks([record.total_points for _, record in records])
        return [
            YearlyStanding(username=username, rank=rank, record=record)
            for (username, record), rank in zip(records, ranks)
        ]


__all__ = ["MonthlySnapshot", "StandingsService", "YearlyStanding"]

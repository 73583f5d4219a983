from __future__ import annotations

from dataclasses import dataclass

from .points import Award


@dataclass(frozen=True, slots=True)
class ParticipantScore:
    username: str
    achieved_count: int
    award_points: int
    total_achievements: int
    discord_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.total_achievements > 0 and self.achieved_count >= self.total_achievements

    @property
    def completion_percentage(self) -> float:
        if self.is_complete:
            return 100.0
        if self.total_achievements <= 0:
            return 0.0
        return self.achieved_count / self.total_achievements * 100

    @property
    def award(self) -> Award:
        return Award.from_points(self.award_points)

    def ties_with(self, other: ParticipantScore) -> bool:
        if self.is_complete and other.is_complete:
            return True
        return (
            self.achieved_count == other.achieved_count
            and self.award_points == other.award_points
        )


@dataclass(frozen=True, slots=True)
class TiebreakerEntry:
    """A user's standing on an external RetroAchievements leaderboard."""

    username: str
    rank: int
    score: str


@dataclass(frozen=True, slots=True)
class RankedParticipant:
    score: ParticipantScore
    display_rank: int
    tiebreaker: TiebreakerEntry | None = None
    tiebreaker_breaker: TiebreakerEntry | None = None

    @property
    def username(self) -> str:
        return self.score.username

    @property
    def achieved_count(self) -> int:
        return self.score.achieved_count

    @property
    def award_points(self) -> int:
        return self.score.award_points

    @property
    def completion_percentage(self) -> float:
        return self.score.completion_percentage


__all__ = ["ParticipantScore", "RankedParticipant", "TiebreakerEntry"]

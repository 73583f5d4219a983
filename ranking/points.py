"""Challenge award tiers and the points they are worth."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import IntEnum


class Award(IntEnum):
    NONE = 0
    PARTICIPATION = 1
    BEATEN = 4
    MASTERY = 7

    @property
    def emoji(self) -> str:
        return _AWARD_EMOJIS[self]

    @property
    def label(self) -> str:
        return self.name.title()

    @classmethod
    def from_points(cls, points: int) -> Award:
        try:
            return cls(points)
        except ValueError:
            return cls.NONE


_AWARD_EMOJIS = {
    Award.NONE: "",
    Award.PARTICIPATION: "🏁",
    Award.BEATEN: "⭐",
    Award.MASTERY: "✨",
}


def calculate_award(
    earned_ids: Iterable[str | int],
    total_achievements: int,
    progression_ids: Iterable[str | int] = (),
    win_ids: Iterable[str | int] = (),
) -> Award:
    """Return the award for the achievements earned inside the challenge window.

    Mastery needs every achievement. Beaten needs every progression achievement
    plus one win achievement when the game defines any.
    """
    earned = {str(value) for value in earned_ids}
    if not earned:
        return Award.NONE
    if total_achievements > 0 and len(earned) >= total_achievements:
        return Award.MASTERY

    progression = {str(value) for value in progression_ids}
    wins = {str(value) for value in win_ids}
    earned_progression = progression & earned
    earned_wins = wins & earned

    has_all_progression = earned_progression == progression
    has_required_win = not wins or bool(earned_wins)
    # An empty progression list alone never earns beaten.
    touched = bool(earned_progression or earned_wins)
    if has_all_progression and has_required_win and touched:
        return Award.BEATEN
    return Award.PARTICIPATION


def competition_ranks(totals: Sequence[int]) -> list[int]:
    """Assign 1, 1, 3 style ranks to totals already sorted in descending order."""
    ranks: list[int] = []
    current_rank = 1
    previous: int | None = None
    for index, total in enumerate(totals):
        if previous is not None and total < previous:
            current_rank = index + 1
        ranks.append(current_rank)
        previous = total
    return ranks


__all__ = ["Award", "calculate_award", "competition_ranks"]

"""Monthly challenge rank resolution.

Participants are ordered by challenge performance. Ties inside the top five
positions are broken by the active tiebreaker leaderboard, and ties on the
tiebreaker leaderboard by the tiebreaker-breaker leaderboard. Everything else
uses competition ranking (1, 1, 3).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import ParticipantScore, RankedParticipant, TiebreakerEntry

TIEBREAKER_WINDOW = 5


def _primary_key(score: ParticipantScore) -> tuple[int, int]:
    # Completed entries compare equal to each other regardless of points.
    points = 0 if score.is_complete else -score.award_points
    return (-score.achieved_count, points)


def _index_entries(entries: Iterable[TiebreakerEntry]) -> dict[str, TiebreakerEntry]:
    indexed: dict[str, TiebreakerEntry] = {}
    for entry in entries:
        indexed.setdefault(entry.username.lower(), entry)
    return indexed


def _tie_groups(ordered: Sequence[ParticipantScore]) -> list[tuple[int, list[int]]]:
    groups: list[tuple[int, list[int]]] = []
    for index, score in enumerate(ordered):
        if groups and ordered[groups[-1][1][-1]].ties_with(score):
            groups[-1][1].append(index)
        else:
            groups.append((index, [index]))
    return groups


def _resolve_breaker_group(
    members: list[int],
    start_rank: int,
    breakers: dict[int, TiebreakerEntry],
    ranks: dict[int, int],
) -> None:
    with_breaker = [idx for idx in members if idx in breakers]
    without_breaker = [idx for idx in members if idx not in breakers]
    if not with_breaker:
        for idx in members:
            ranks[idx] = start_rank
        return

    with_breaker.sort(key=lambda idx: breakers[idx].rank)
    for offset, idx in enumerate(with_breaker):
        ranks[idx] = start_rank + offset
    next_rank = start_rank + len(with_breaker)
    for idx in without_breaker:
        ranks[idx] = next_rank


def _resolve_top_group(
    members: list[int],
    group_start: int,
    tiebreakers: dict[int, TiebreakerEntry],
    breakers: dict[int, TiebreakerEntry],
    ranks: dict[int, int],
) -> None:
    with_tiebreaker = [idx for idx in members if idx in tiebreakers]
    without_tiebreaker = [idx for idx in members if idx not in tiebreakers]
    if not with_tiebreaker:
        for idx in members:
            ranks[idx] = group_start + 1
        return

    with_tiebreaker.sort(key=lambda idx: tiebreakers[idx].rank)
    next_rank = group_start + 1
    cursor = 0
    while cursor < len(with_tiebreaker):
        tier_rank = tiebreakers[with_tiebreaker[cursor]].rank
        end = cursor
        while end < len(with_tiebreaker) and tiebreakers[with_tiebreaker[end]].rank == tier_rank:
            end += 1
        sub_group = with_tiebreaker[cursor:end]
        if len(sub_group) > 1:
            _resolve_breaker_group(sub_group, next_rank, breakers, ranks)
        else:
            ranks[sub_group[0]] = next_rank
        next_rank += len(sub_group)
        cursor = end

    for idx in without_tiebreaker:
        ranks[idx] = next_rank


def resolve_ranks(
    scores: Iterable[ParticipantScore],
    tiebreaker: Iterable[TiebreakerEntry] = (),
    tiebreaker_breaker: Iterable[TiebreakerEntry] = (),
) -> list[RankedParticipant]:
    """Return participants with their display rank, best rank first."""
    ordered = sorted(scores, key=_primary_key)
    if not ordered:
        return []

    tiebreaker_by_name = _index_entries(tiebreaker)
    breaker_by_name = _index_entries(tiebreaker_breaker)

    tiebreakers: dict[int, TiebreakerEntry] = {}
    breakers: dict[int, TiebreakerEntry] = {}
    for index, score in enumerate(ordered):
        key = score.username.lower()
        entry = tiebreaker_by_name.get(key)
        if entry is None:
            continue
        tiebreakers[index] = entry
        breaker = breaker_by_name.get(key)
        if breaker is not None:
            breakers[index] = breaker

    ranks: dict[int, int] = {}
    for group_start, members in _tie_groups(ordered):
        if len(members) == 1:
            ranks[members[0]] = group_start + 1
            continue
        if group_start < TIEBREAKER_WINDOW:
            _resolve_top_group(members, group_start, tiebreakers, breakers, ranks)
        else:
            for idx in members:
                ranks[idx] = group_start + 1

    order = sorted(range(len(ordered)), key=lambda idx: (ranks[idx], idx))
    return [
        RankedParticipant(
            score=ordered[idx],
            display_rank=ranks[idx],
            tiebreaker=tiebreakers.get(idx),
            tiebreaker_breaker=breakers.get(idx),
        )
        for idx in order
    ]


__all__ = ["TIEBREAKER_WINDOW", "resolve_ranks"]

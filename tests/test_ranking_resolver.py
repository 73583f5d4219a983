import random

import pytest

from ranking import ParticipantScore, TiebreakerEntry, resolve_ranks
from ranking.resolver import TIEBREAKER_WINDOW

TOTAL = 20


def score(username: str, achieved: int, points: int = 1, total: int = TOTAL) -> ParticipantScore:
    return ParticipantScore(
        username=username,
        achieved_count=achieved,
        award_points=points,
        total_achievements=total,
    )


def tb(username: str, rank: int, value: str = "") -> TiebreakerEntry:
    return TiebreakerEntry(username=username, rank=rank, score=value or f"{rank}:00.00")


def ranks_by_user(ranked) -> dict[str, int]:
    return {entry.username: entry.display_rank for entry in ranked}


def test_empty_input_returns_empty_list():
    assert resolve_ranks([]) == []


def test_single_participant_is_rank_one():
    ranked = resolve_ranks([score("solo", 3)])
    assert [(entry.username, entry.display_rank) for entry in ranked] == [("solo", 1)]


def test_tie_without_tiebreaker_shares_rank_and_leaves_gap():
    ranked = resolve_ranks([score("a", 10), score("b", 10), score("c", 8)])

    assert [entry.display_rank for entry in ranked] == [1, 1, 3]
    assert [entry.username for entry in ranked] == ["a", "b", "c"]


def test_tiebreaker_orders_two_tied_users():
    ranked = resolve_ranks(
        [score("alice", 10), score("bob", 10)],
        tiebreaker=[tb("alice", 2), tb("bob", 1)],
    )

    assert ranks_by_user(ranked) == {"alice": 2, "bob": 1}
    assert [entry.username for entry in ranked] == ["bob", "alice"]


def test_equal_tiebreaker_ranks_share_without_breaker():
    ranked = resolve_ranks(
        [score("a", 10), score("b", 10), score("c", 10)],
        tiebreaker=[tb("a", 3), tb("b", 3), tb("c", 1)],
    )

    assert ranks_by_user(ranked) == {"c": 1, "a": 2, "b": 2}


def test_breaker_resolves_tiebreaker_tie():
    ranked = resolve_ranks(
        [score("a", 10), score("b", 10), score("c", 10)],
        tiebreaker=[tb("a", 3), tb("b", 3), tb("c", 1)],
        tiebreaker_breaker=[tb("a", 5), tb("b", 2)],
    )

    assert ranks_by_user(ranked) == {"c": 1, "b": 2, "a": 3}
    assert [entry.username for entry in ranked] == ["c", "b", "a"]


def test_breaker_users_rank_ahead_of_tied_users_without_breaker():
    ranked = resolve_ranks(
        [score("a", 10), score("b", 10), score("c", 10)],
        tiebreaker=[tb("a", 4), tb("b", 4), tb("c", 4)],
        tiebreaker_breaker=[tb("c", 1)],
    )

    assert ranks_by_user(ranked) == {"c": 1, "a": 2, "b": 2}


def test_users_without_tiebreaker_share_next_rank():
    ranked = resolve_ranks(
        [score("a", 10), score("b", 10), score("c", 10), score("d", 10)],
        tiebreaker=[tb("c", 7), tb("d", 2)],
    )

    assert ranks_by_user(ranked) == {"d": 1, "c": 2, "a": 3, "b": 3}


def test_tie_group_below_top_five_ignores_tiebreaker():
    scores = [score(f"u{i}", 20 - i) for i in range(7)]
    scores += [score("x", 12), score("y", 12), score("z", 1)]

    ranked = resolve_ranks(scores, tiebreaker=[tb("x", 9), tb("y", 1)])
    ranks = ranks_by_user(ranked)

    assert ranks["x"] == 8
    assert ranks["y"] == 8
    assert ranks["z"] == 10
    assert [entry.username for entry in ranked][7:9] == ["x", "y"]


def test_group_starting_inside_window_is_fully_resolved_past_it():
    scores = [score("lead1", 15), score("lead2", 14), score("lead3", 13), score("lead4", 12)]
    scores += [score(name, 10) for name in ("p", "q", "r", "s")]

    ranked = resolve_ranks(
        scores,
        tiebreaker=[tb("p", 4), tb("q", 3), tb("r", 2), tb("s", 1)],
    )
    ranks = ranks_by_user(ranked)

    assert (ranks["s"], ranks["r"], ranks["q"], ranks["p"]) == (5, 6, 7, 8)


def test_group_starting_at_index_five_is_not_tiebroken():
    scores = [score(f"top{i}", 20 - i) for i in range(TIEBREAKER_WINDOW)]
    scores += [score("m", 5), score("n", 5)]

    ranked = resolve_ranks(scores, tiebreaker=[tb("m", 2), tb("n", 1)])

    assert ranks_by_user(ranked)["m"] == ranks_by_user(ranked)["n"] == 6


def test_achieved_count_dominates_award_points():
    ranked = resolve_ranks([score("beaten", 9, points=4), score("grinder", 12, points=1)])

    assert ranks_by_user(ranked) == {"grinder": 1, "beaten": 2}


def test_points_split_equal_achievement_counts():
    ranked = resolve_ranks([score("part", 10, points=1), score("beat", 10, points=4)])

    assert ranks_by_user(ranked) == {"beat": 1, "part": 2}


def test_tiebreaker_splits_full_completion_group_in_top_five():
    ranked = resolve_ranks(
        [score("m1", TOTAL, points=7), score("m2", TOTAL, points=7), score("next", 19)],
        tiebreaker=[tb("m1", 2), tb("m2", 1)],
    )

    assert ranks_by_user(ranked) == {"m2": 1, "m1": 2, "next": 3}
    assert [entry.username for entry in ranked] == ["m2", "m1", "next"]


def test_full_completion_group_with_mixed_points_is_tiebroken():
    ranked = resolve_ranks(
        [score("m1", TOTAL, points=7), score("m2", TOTAL, points=4)],
        tiebreaker=[tb("m2", 1)],
    )

    assert ranks_by_user(ranked) == {"m2": 1, "m1": 2}


def test_full_completion_ties_regardless_of_points():
    ranked = resolve_ranks(
        [score("m1", TOTAL, points=7), score("m2", TOTAL, points=4)]
    )

    assert ranks_by_user(ranked) == {"m1": 1, "m2": 1}


def test_breaker_entry_without_tiebreaker_entry_is_ignored():
    ranked = resolve_ranks(
        [score("a", 10), score("b", 10)],
        tiebreaker=[tb("a", 1)],
        tiebreaker_breaker=[tb("b", 1)],
    )
    by_name = {entry.username: entry for entry in ranked}

    assert by_name["a"].display_rank == 1
    assert by_name["b"].display_rank == 2
    assert by_name["b"].tiebreaker_breaker is None


def test_tiebreaker_lookup_is_case_insensitive():
    ranked = resolve_ranks(
        [score("Alice", 10), score("Bob", 10)],
        tiebreaker=[tb("alice", 2), tb("BOB", 1)],
    )

    assert ranks_by_user(ranked) == {"Bob": 1, "Alice": 2}
    assert ranked[0].tiebreaker == tb("BOB", 1)


def test_equal_ranks_keep_input_order():
    ranked = resolve_ranks([score("first", 5), score("second", 5), score("third", 5)])

    assert [entry.username for entry in ranked] == ["first", "second", "third"]


def test_output_is_sorted_by_display_rank():
    scores = [score(f"user{i}", i % 6, points=1 + (i % 2) * 3) for i in range(1, 25)]
    ranked = resolve_ranks(scores, tiebreaker=[tb("user5", 1), tb("user11", 2)])

    display = [entry.display_rank for entry in ranked]
    assert display == sorted(display)
    assert all(rank >= 1 for rank in display)


def test_resolution_is_deterministic():
    rng = random.Random(1234)
    scores = [score(f"p{i}", rng.randint(1, 8), points=rng.choice([1, 4])) for i in range(30)]
    tiebreaker = [tb(f"p{i}", rng.randint(1, 10)) for i in range(0, 30, 2)]
    breaker = [tb(f"p{i}", rng.randint(1, 10)) for i in range(0, 30, 3)]

    first = resolve_ranks(scores, tiebreaker, breaker)
    second = resolve_ranks(list(scores), list(tiebreaker), list(breaker))

    assert first == second


@pytest.mark.parametrize("seed", [3, 17, 99])
def test_more_achievements_always_rank_strictly_better(seed):
    rng = random.Random(seed)
    scores = [score(f"p{i}", rng.randint(0, 12), points=rng.choice([1, 4])) for i in range(25)]
    tiebreaker = [tb(f"p{i}", rng.randint(1, 5)) for i in range(25) if rng.random() < 0.6]
    breaker = [tb(f"p{i}", rng.randint(1, 5)) for i in range(25) if rng.random() < 0.5]

    ranked = resolve_ranks(scores, tiebreaker, breaker)

    for left in ranked:
        for right in ranked:
            if left.achieved_count > right.achieved_count:
                assert left.display_rank < right.display_rank


@pytest.mark.parametrize("seed", [5, 8])
def test_shared_rank_is_followed_by_gap(seed):
    rng = random.Random(seed)
    scores = [score(f"p{i}", rng.randint(1, 4)) for i in range(15)]

    ranked = resolve_ranks(scores)
    display = [entry.display_rank for entry in ranked]

    for index, rank in enumerate(display):
        if index == 0 or rank != display[index - 1]:
            assert rank == index + 1

from datetime import UTC, datetime, timedelta

from bots.alerts import RankChangeTracker, RankState, change_reason
from ranking import ParticipantScore, RankedParticipant

START = datetime(2025, 2, 10, 12, 0, tzinfo=UTC)


def standings(*rows: tuple[str, int, int]) -> list[RankedParticipant]:
    """Rows of (username, display_rank, achieved)."""
    return [
        RankedParticipant(score=ParticipantScore(name, achieved, 1, 30), display_rank=rank)
        for name, rank, achieved in rows
    ]


BASELINE = standings(
    ("ann", 1, 20), ("bob", 2, 18), ("cat", 3, 15), ("dan", 4, 12), ("eve", 5, 10), ("fay", 6, 8)
)


def test_first_refresh_only_records_state():
    tracker = RankChangeTracker()

    assert tracker.detect(BASELINE, START) == []
    assert set(tracker.previous_states) == {"ann", "bob", "cat", "dan", "eve", "fay"}


def test_overtake_and_fall_out_are_reported():
    tracker = RankChangeTracker()
    tracker.detect(BASELINE, START)

    current = standings(
        ("ann", 1, 20),
        ("bob", 2, 18),
        ("cat", 3, 15),
        ("fay", 4, 13),
        ("dan", 5, 12),
        ("eve", 6, 10),
    )
    alerts = tracker.detect(current, START + timedelta(minutes=15))

    by_kind = {(alert.kind, alert.username): alert for alert in alerts}
    overtake = by_kind[("overtake", "fay")]
    assert (overtake.previous_rank, overtake.new_rank) == (6, 4)
    assert overtake.reason == "Earned 5 new achievement(s)"
    fall_out = by_kind[("fall_out", "eve")]
    assert (fall_out.previous_rank, fall_out.new_rank) == (5, 6)
    assert len(alerts) == 2


def test_new_entry_into_podium():
    tracker = RankChangeTracker()
    tracker.detect(BASELINE, START)

    current = standings(
        ("zed", 1, 25), ("ann", 2, 20), ("bob", 3, 18), ("cat", 4, 15), ("dan", 5, 12)
    )
    alerts = tracker.detect(current, START + timedelta(minutes=15))

    kinds = {(alert.kind, alert.username) for alert in alerts}
    assert ("new_entry", "zed") in kinds
    assert ("fall_out", "eve") in kinds
    zed = next(alert for alert in alerts if alert.username == "zed")
    assert zed.reason == "Entered top rankings with 25 achievements"
    eve = next(alert for alert in alerts if alert.username == "eve")
    assert eve.new_rank is None


def test_global_cooldown_suppresses_followup_alerts():
    tracker = RankChangeTracker()
    tracker.detect(BASELINE, START)
    swapped = standings(
        ("bob", 1, 21), ("ann", 2, 20), ("cat", 3, 15), ("dan", 4, 12), ("eve", 5, 10)
    )
    assert tracker.detect(swapped, START + timedelta(minutes=15))

    swapped_back = standings(
        ("ann", 1, 22), ("bob", 2, 21), ("cat", 3, 15), ("dan", 4, 12), ("eve", 5, 10)
    )
    assert tracker.detect(swapped_back, START + timedelta(minutes=30)) == []

    # state kept moving during the cooldown, so only fresh changes alert afterwards
    later = standings(
        ("cat", 1, 30), ("ann", 2, 22), ("bob", 3, 21), ("dan", 4, 12), ("eve", 5, 10)
    )
    alerts = tracker.detect(later, START + timedelta(hours=2))
    assert [(alert.kind, alert.username) for alert in alerts] == [("overtake", "cat")]


def test_user_cooldown_skips_recently_alerted_user():
    tracker = RankChangeTracker(global_cooldown=timedelta(0), user_cooldown=timedelta(minutes=5))
    tracker.detect(BASELINE, START)
    first = standings(
        ("bob", 1, 21), ("ann", 2, 20), ("cat", 3, 15), ("dan", 4, 12), ("eve", 5, 10)
    )
    assert {a.username for a in tracker.detect(first, START + timedelta(minutes=1))} == {"bob"}

    second = standings(
        ("ann", 1, 25), ("bob", 2, 21), ("cat", 3, 15), ("dan", 4, 12), ("eve", 5, 10)
    )
    alerts = tracker.detect(second, START + timedelta(minutes=2))
    assert [(a.kind, a.username) for a in alerts] == [("overtake", "ann")]


def test_reset_forgets_everything():
    tracker = RankChangeTracker()
    tracker.detect(BASELINE, START)

    tracker.reset()

    assert tracker.previous_states == {}
    assert tracker.detect(BASELINE, START) == []


def test_change_reason_variants():
    before = RankState("a", 3, 10, 1)

    assert change_reason(before, RankState("a", 2, 12, 1)) == "Earned 2 new achievement(s)"
    assert change_reason(before, RankState("a", 2, 10, 4)) == "Achievement status improved"
    assert change_reason(before, RankState("a", 2, 10, 1)) == "Ranking position updated"

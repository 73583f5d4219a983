from datetime import UTC, datetime

import discord
import pytest

from bots.alerts import RankAlert
from bots.presentation import (
    FIELD_LIMIT,
    EmbedModel,
    FieldModel,
    USERS_PER_PAGE,
    build_feed_messages,
    build_leaderboard_embeds,
    build_monthly_header,
    build_monthly_pages,
    build_rank_alert,
    build_yearly_header,
    build_yearly_pages,
    ensure_field_length,
    format_participant,
    paginate,
    rank_label,
)
from bots.standings import MonthlySnapshot, YearlyStanding
from challenges import AnnualRecord, MonthlyChallenge, TiebreakerBoard
from ranking import ParticipantScore, TiebreakerEntry, resolve_ranks

NOW = datetime(2025, 2, 10, 12, 0, tzinfo=UTC)


def make_challenge() -> MonthlyChallenge:
    return MonthlyChallenge(
        month="2025-02",
        game_id=321,
        total_achievements=20,
        game_title="Castle Quest",
        game_icon_url="/Images/000321.png",
    )


def make_board(breaker: bool = True) -> TiebreakerBoard:
    return TiebreakerBoard(
        board_id="2025-02",
        leaderboard_id=9,
        game_title="Castle Quest Any%",
        starts_at="2025-02-01T00:00:00.000000Z",
        ends_at="2025-02-28T23:59:59.000000Z",
        breaker_leaderboard_id=10 if breaker else None,
        breaker_game_title="Boss Rush" if breaker else None,
    )


def make_snapshot(count: int = 7, *, board: TiebreakerBoard | None = None) -> MonthlySnapshot:
    scores = [
        ParticipantScore(f"player{i}", 20 - i, 7 if i == 0 else 1, 20) for i in range(count)
    ]
    ranked = resolve_ranks(scores)
    return MonthlySnapshot(
        challenge=make_challenge(), ranked=ranked, generated_at=NOW, tiebreaker_board=board
    )


def make_yearly(count: int) -> list[YearlyStanding]:
    return [
        YearlyStanding(f"fan{i}", i + 1, AnnualRecord(year=2025, total_points=50 - i))
        for i in range(count)
    ]


def test_ensure_field_length_keeps_short_text():
    assert ensure_field_length("short") == "short"


def test_ensure_field_length_cuts_at_entry_boundary():
    entry = "x" * 100 + "\n\n"
    text = entry * 15

    result = ensure_field_length(text)

    assert len(result) <= FIELD_LIMIT
    assert result.endswith("*[Use /leaderboard for full view]*")
    assert "x" * 100 + "\n\n*[Use" in result


def test_ensure_field_length_without_boundary_marks_truncation():
    result = ensure_field_length("y" * 2000)

    assert len(result) <= FIELD_LIMIT
    assert result.endswith("*[Truncated]*")


def test_paginate_splits_into_pages_of_five():
    assert paginate(list(range(12))) == [[0, 1, 2, 3, 4], [5, 6, 7, 8, 9], [10, 11]]
    assert paginate([]) == []
    with pytest.raises(ValueError):
        paginate([1], per_page=0)


def test_rank_label_uses_medals_for_podium():
    assert [rank_label(rank) for rank in (1, 2, 3, 4)] == ["🥇", "🥈", "🥉", "#4"]


def test_format_participant_shows_tiebreaker_lines_in_top_five():
    score = ParticipantScore("speedy", 10, 1, 20)
    entry = resolve_ranks(
        [score],
        tiebreaker=[TiebreakerEntry("speedy", 1, "1:02.33")],
        tiebreaker_breaker=[TiebreakerEntry("speedy", 3, "45,000")],
    )[0]

    text = format_participant(entry, 20, make_board())

    assert text.startswith("🥇 **[speedy](https://retroachievements.org/user/speedy)** 🏁\n")
    assert "10/20 (50.00%)" in text
    assert "⚔️ 1:02.33 in Castle Quest Any%" in text
    assert "⚡ 45,000 in Boss Rush" in text
    assert text.endswith("\n\n")


def test_format_participant_hides_tiebreaker_outside_top_five():
    entry = resolve_ranks([ParticipantScore("late", 3, 0, 20)])[0]
    entry = type(entry)(
        score=entry.score,
        display_rank=8,
        tiebreaker=TiebreakerEntry("late", 4, "2:00.00"),
    )

    text = format_participant(entry, 20, make_board())

    assert text.startswith("#8 **[late]")
    assert "⚔️" not in text


def test_monthly_header_includes_tiebreaker_and_rules():
    header = build_monthly_header(make_snapshot(board=make_board()))

    assert header.title == "February Challenge Leaderboard"
    assert header.thumbnail_url == "https://retroachievements.org/Images/000321.png"
    names = [field.name for field in header.fields]
    assert names == ["Active Tiebreaker", "Rules"]
    assert "Boss Rush" in header.fields[0].value
    assert "[Castle Quest](https://retroachievements.org/game/321)" in header.description


def test_monthly_header_without_participants():
    header = build_monthly_header(make_snapshot(0))

    assert header.fields[-1].name == "No Participants"


def test_monthly_pages_hold_five_participants_each():
    pages = build_monthly_pages(make_snapshot(12), interval_minutes=30)

    assert len(pages) == 3
    assert pages[0].title == "February Challenge - Participants (1-5)"
    assert pages[2].fields[0].name == "Rankings 11-12 (12 total participants)"
    assert pages[1].footer.startswith("Group 2/3 • Updates every 30 minutes")
    assert pages[0].fields[0].value.count("/user/") == USERS_PER_PAGE
    assert all(len(page.fields[0].value) <= FIELD_LIMIT for page in pages)


def test_leaderboard_embeds_are_header_then_pages():
    embeds = build_leaderboard_embeds(make_snapshot(6))

    assert len(embeds) == 3
    assert embeds[0].title == "February Challenge Leaderboard"


def test_yearly_header_and_pages():
    standings = make_yearly(7)

    header = build_yearly_header(2025, standings)
    pages = build_yearly_pages(2025, standings)

    assert header.title == "2025 Yearly Challenge Leaderboard"
    assert header.fields == ()
    assert len(pages) == 2
    assert pages[0].fields[0].name == "🥇 fan0 - 50 pts"
    assert pages[1].fields[-1].name == "Point System"
    assert build_yearly_header(2025, []).fields[0].name == "No Participants"


def test_feed_messages_have_stable_keys():
    messages = build_feed_messages(
        make_snapshot(7), "2025-02", 2025, make_yearly(3), now=NOW, interval_minutes=15
    )

    assert [message.key for message in messages] == [
        "monthly_header",
        "monthly_participants_0",
        "monthly_participants_1",
        "yearly_header",
        "yearly_participants_0",
        "points_overview",
    ]
    assert messages[0].content.startswith("**Monthly Challenge Leaderboard**")
    assert "Updates every 15 minutes" in messages[0].content


def test_feed_messages_without_challenge():
    messages = build_feed_messages(None, "2025-03", 2025, [], now=NOW)

    assert [message.key for message in messages] == [
        "monthly_header",
        "yearly_header",
        "points_overview",
    ]
    assert "No monthly challenge" in messages[0].embeds[0].description


def test_rank_alert_embed():
    snapshot = make_snapshot(6)
    alerts = [
        RankAlert("overtake", "player1", 2, 4, "Earned 2 new achievement(s)"),
        RankAlert("fall_out", "gone", None, 5, "Dropped out of the top 5"),
        RankAlert("new_entry", "rookie", 3, None, "Entered top rankings with 9 achievements"),
    ]

    embed = build_rank_alert(alerts, snapshot)

    assert embed.title == "February Challenge Rank Update"
    changes = embed.fields[0].value
    assert "climbed from #4 to 🥈" in changes
    assert "fell from #5 to outside the top 5" in changes
    assert "**rookie** entered the top 5 at #3: Entered top rankings" in changes
    assert embed.fields[1].value.count("\n") == 4


def test_embed_model_to_discord():
    model = EmbedModel(title="Title", description="Body").with_fields(
        FieldModel("A", "1", inline=True)
    ).with_footer("Footer")

    embed = model.to_discord()

    assert isinstance(embed, discord.Embed)
    assert embed.title == "Title"
    assert embed.fields[0].name == "A"
    assert embed.fields[0].inline is True
    assert embed.footer.text == "Footer"

"""Immutable render model for leaderboard embeds.

Builders here never touch Discord state; ``EmbedModel.to_discord`` is the only
place a ``discord.Embed`` is created.
"""

from __future__ import annotations

import calendar
import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Final, TypeVar

import discord

from challenges import MonthlyChallenge, TiebreakerBoard
from ranking import Award, RankedParticipant, TIEBREAKER_WINDOW

from .alerts import WATCHED_RANKS, RankAlert
from .standings import MonthlySnapshot, YearlyStanding

USERS_PER_PAGE: Final[int] = 5
FIELD_LIMIT: Final[int] = 1024
TRUNCATION_HEADROOM: Final[int] = 60
FULL_VIEW_MARKER: Final[str] = "\n\n*[Use /leaderboard for full view]*"
TRUNCATED_MARKER: Final[str] = "\n*[Truncated]*"

COLOR_GOLD: Final[int] = 0xFFD700
COLOR_INFO: Final[int] = 0x3498DB
COLOR_ALERT: Final[int] = 0xE67E22

RA_SITE: Final[str] = "https://retroachievements.org"
RANK_MEDALS: Final[dict[int, str]] = {1: "🥇", 2: "🥈", 3: "🥉"}
TIEBREAKER_EMOJI: Final[str] = "⚔️"
TIEBREAKER_BREAKER_EMOJI: Final[str] = "⚡"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class FieldModel:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True, slots=True)
class EmbedModel:
    title: str
    description: str = ""
    color: int = COLOR_INFO
    fields: tuple[FieldModel, ...] = ()
    footer: str | None = None
    footer_icon_url: str | None = None
    thumbnail_url: str | None = None
    url: str | None = None
    timestamp: datetime | None = None

    def with_footer(self, text: str, icon_url: str | None = None) -> EmbedModel:
        return dataclasses.replace(self, footer=text, footer_icon_url=icon_url)

    def with_fields(self, *fields: FieldModel) -> EmbedModel:
        return dataclasses.replace(self, fields=self.fields + fields)

    def to_discord(self) -> discord.Embed:
        embed = discord.Embed(
            title=self.title,
            description=self.description or None,
            color=self.color,
            url=self.url,
            timestamp=self.timestamp,
        )
        for field in self.fields:
            embed.add_field(name=field.name, value=field.value, inline=field.inline)
        if self.footer:
            embed.set_footer(text=self.footer, icon_url=self.footer_icon_url)
        if self.thumbnail_url:
            embed.set_thumbnail(url=self.thumbnail_url)
        return embed


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    key: str
    content: str = ""
    embeds: tuple[EmbedModel, ...] = ()

    def discord_embeds(self) -> list[discord.Embed]:
        return [embed.to_discord() for embed in self.embeds]


def ensure_field_length(text: str, max_length: int = FIELD_LIMIT) -> str:
    """Cut ``text`` at the last complete entry that fits in a field."""
    if len(text) <= max_length:
        return text
    truncated = text[: max_length - TRUNCATION_HEADROOM]
    last_entry_end = truncated.rfind("\n\n")
    if last_entry_end > 0:
        return truncated[:last_entry_end] + FULL_VIEW_MARKER
    return truncated + TRUNCATED_MARKER


def paginate(items: Sequence[T], per_page: int = USERS_PER_PAGE) -> list[list[T]]:
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    return [list(items[start : start + per_page]) for start in range(0, len(items), per_page)]


def rank_label(rank: int) -> str:
    return RANK_MEDALS.get(rank, f"#{rank}")


def month_name(month_key: str) -> str:
    return calendar.month_name[int(month_key.split("-", 1)[1])]


def game_thumbnail(challenge: MonthlyChallenge) -> str | None:
    if not challenge.game_icon_url:
        return None
    if challenge.game_icon_url.startswith("http"):
        return challenge.game_icon_url
    return RA_SITE + challenge.game_icon_url


def _timestamp(moment: datetime, style: str = "f") -> str:
    return discord.utils.format_dt(moment, style=style)  # type: ignore[arg-type]


def _update_footer(interval_minutes: int) -> str:
    return f"Updates every {interval_minutes} minutes • Use /leaderboard for the full view"


def format_participant(
    entry: RankedParticipant,
    total_achievements: int,
    board: TiebreakerBoard | None = None,
) -> str:
    name_line = (
        f"{rank_label(entry.display_rank)} "
        f"**[{entry.username}]({RA_SITE}/user/{entry.username})** "
        f"{entry.score.award.emoji}"
    )
    lines = [
        name_line.rstrip(),
        f"{entry.achieved_count}/{total_achievements} ({entry.completion_percentage:.2f}%)",
    ]
    if entry.display_rank <= TIEBREAKER_WINDOW:
        tiebreaker_game = board.game_title if board else "tiebreaker"
        breaker_game = (board.breaker_game_title if board else None) or "tiebreaker-breaker"
        if entry.tiebreaker is not None and entry.tiebreaker.score:
            lines.append(f"{TIEBREAKER_EMOJI} {entry.tiebreaker.score} in {tiebreaker_game}")
        if entry.tiebreaker_breaker is not None and entry.tiebreaker_breaker.score:
            lines.append(
                f"{TIEBREAKER_BREAKER_EMOJI} {entry.tiebreaker_breaker.score} in {breaker_game}"
            )
    return "\n".join(lines) + "\n\n"


def build_monthly_header(snapshot: MonthlySnapshot) -> EmbedModel:
    challenge = snapshot.challenge
    name = month_name(challenge.month)
    title = challenge.game_title or f"Game {challenge.game_id}"
    ends_at = challenge.ends_at()
    description = (
        f"**Game:** [{title}]({RA_SITE}/game/{challenge.game_id})\n"
        f"**Total Achievements:** {challenge.total_achievements}\n"
        f"**Challenge Ends:** {_timestamp(ends_at, 'F')}\n"
        f"**Time Remaining:** {_timestamp(ends_at, 'R')}\n"
        f"**Last Updated:** {_timestamp(snapshot.generated_at)}\n\n"
        f"{Award.MASTERY.emoji} Mastery (7pts) | {Award.BEATEN.emoji} Beaten (4pts) | "
        f"{Award.PARTICIPATION.emoji} Part. (1pt)"
    )
    fields: list[FieldModel] = []
    board = snapshot.tiebreaker_board
    if board is not None:
        value = (
            f"{TIEBREAKER_EMOJI} **{board.game_title}**\n"
            "*Tiebreaker results are used to determine final ranking for tied users "
            "in top positions.*"
        )
        if board.has_breaker:
            value += (
                f"\n{TIEBREAKER_BREAKER_EMOJI} **Tiebreaker-Breaker:** "
                f"{board.breaker_game_title or 'TBA'}\n"
                "*Used to resolve ties within the tiebreaker itself.*"
            )
        fields.append(FieldModel(name="Active Tiebreaker", value=value))
    fields.append(
        FieldModel(
            name="Rules",
            value=(
                f"*Note: Only achievements earned during {name} **in Hardcore Mode** "
                "count toward challenge status.*\n"
                "⚠️ *Save states and rewind features are not allowed. "
                "Fast forward is permitted.*"
            ),
        )
    )
    if not snapshot.ranked:
        fields.append(
            FieldModel(
                name="No Participants",
                value="No one has earned achievements in this challenge this month yet!",
            )
        )
    return EmbedModel(
        title=f"{name} Challenge Leaderboard",
        description=description,
        color=COLOR_GOLD,
        fields=tuple(fields),
        thumbnail_url=game_thumbnail(challenge),
    )


def build_monthly_pages(
    snapshot: MonthlySnapshot, *, interval_minutes: int = 15
) -> list[EmbedModel]:
    challenge = snapshot.challenge
    name = month_name(challenge.month)
    total = len(snapshot.ranked)
    pages = paginate(snapshot.ranked)
    thumbnail = game_thumbnail(challenge)
    embeds: list[EmbedModel] = []
    for page_number, entries in enumerate(pages, start=1):
        first = (page_number - 1) * USERS_PER_PAGE + 1
        last = first + len(entries) - 1
        text = "".join(
            format_participant(entry, challenge.total_achievements, snapshot.tiebreaker_board)
            for entry in entries
        )
        embeds.append(
            EmbedModel(
                title=f"{name} Challenge - Participants ({first}-{last})",
                description=(
                    f"This page shows participants ranked {first} to {last} "
                    f"out of {total} total."
                ),
                color=COLOR_GOLD,
                fields=(
                    FieldModel(
                        name=f"Rankings {first}-{last} ({total} total participants)",
                        value=ensure_field_length(text.rstrip("\n")) or "No rankings available.",
                    ),
                ),
                thumbnail_url=thumbnail,
                footer=f"Group {page_number}/{len(pages)} • {_update_footer(interval_minutes)}",
                footer_icon_url=thumbnail,
            )
        )
    return embeds


def build_no_challenge_header(period_key: str) -> EmbedModel:
    return EmbedModel(
        title=f"{month_name(period_key)} Challenge Leaderboard",
        description="No monthly challenge has been configured for this month yet.",
        color=COLOR_GOLD,
    )


def build_yearly_header(
    year: int, standings: Sequence[YearlyStanding], *, interval_minutes: int = 15
) -> EmbedModel:
    fields: tuple[FieldModel, ...] = ()
    if not standings:
        fields = (
            FieldModel(
                name="No Participants",
                value=f"No users have earned points for {year} yet.",
            ),
        )
    return EmbedModel(
        title=f"{year} Yearly Challenge Leaderboard",
        description=(
            f"Top players based on all monthly challenges in {year}. "
            "Players earn points for each challenge completion: "
            f"{Award.MASTERY.emoji} Mastery (7pts), {Award.BEATEN.emoji} Beaten (4pts), "
            f"{Award.PARTICIPATION.emoji} Part. (1pt)"
        ),
        color=COLOR_INFO,
        fields=fields,
        footer=_update_footer(interval_minutes),
    )


def format_yearly_standing(standing: YearlyStanding) -> FieldModel:
    record = standing.record
    return FieldModel(
        name=f"{rank_label(standing.rank)} {standing.username} - {record.total_points} pts",
        value=(
            f"Challenges: {record.challenge_points} pts | "
            f"Community: {record.community_points} pts\n"
            f"Reg: {record.mastery}{Award.MASTERY.emoji} {record.beaten}{Award.BEATEN.emoji} "
            f"{record.participation}{Award.PARTICIPATION.emoji} | "
            f"Shadow: {record.shadow_beaten}{Award.BEATEN.emoji} "
            f"{record.shadow_participation}{Award.PARTICIPATION.emoji}"
        ),
    )


def build_yearly_pages(
    year: int, standings: Sequence[YearlyStanding], *, interval_minutes: int = 15
) -> list[EmbedModel]:
    pages = paginate(standings)
    total = len(standings)
    embeds: list[EmbedModel] = []
    for page_number, entries in enumerate(pages, start=1):
        first = (page_number - 1) * USERS_PER_PAGE + 1
        last = first + len(entries) - 1
        fields = tuple(format_yearly_standing(standing) for standing in entries) + (
            FieldModel(
                name="Point System",
                value=(
                    "✨ Mastery: 7pts | ⭐ Beaten: 4pts | 🏁 Participation: 1pt | "
                    "Shadow max: 4pts"
                ),
            ),
        )
        embeds.append(
            EmbedModel(
                title=f"{year} Yearly Challenge - Leaderboard",
                description=f"Top players ranked {first} to {last} out of {total} total.",
                color=COLOR_INFO,
                fields=fields,
                footer=f"Group {page_number}/{len(pages)} • {_update_footer(interval_minutes)}",
            )
        )
    return embeds


def build_points_overview(*, interval_minutes: int = 15) -> EmbedModel:
    return EmbedModel(
        title="How to Earn Points in Select Start Community",
        description="Breakdown of the challenge points you can earn throughout the year:",
        color=COLOR_INFO,
        fields=(
            FieldModel(
                name="🎮 Monthly Challenge (Additive)",
                value=(
                    f"{Award.PARTICIPATION.emoji} **Participation:** 1 point "
                    "(earn any achievement)\n"
                    f"{Award.BEATEN.emoji} **Beaten:** +3 points "
                    "(4 total - includes participation)\n"
                    f"{Award.MASTERY.emoji} **Mastery:** +3 points "
                    "(7 total - includes participation + beaten)\n\n"
                    "**⚠️ IMPORTANT:** Must be completed within the challenge month "
                    "in **Hardcore Mode**!"
                ),
            ),
            FieldModel(
                name="👥 Shadow Challenge (Additive)",
                value=(
                    f"{Award.PARTICIPATION.emoji} **Participation:** 1 point "
                    "(earn any achievement)\n"
                    f"{Award.BEATEN.emoji} **Beaten:** +3 points "
                    "(4 total - includes participation)\n\n"
                    'Shadow games are capped at "Beaten" status (4 points maximum)'
                ),
            ),
            FieldModel(
                name=f"{TIEBREAKER_EMOJI} Tiebreakers",
                value=(
                    "Ties in the top 5 are settled by the monthly tiebreaker leaderboard, "
                    "and ties on the tiebreaker by the tiebreaker-breaker."
                ),
            ),
            FieldModel(
                name="📊 Track Your Progress",
                value=(
                    "`/leaderboard` - Monthly challenge standings\n"
                    "`/yearlyboard` - Annual points leaderboard"
                ),
            ),
        ),
        footer=f"Updates every {interval_minutes} minutes",
    )


def build_leaderboard_embeds(
    snapshot: MonthlySnapshot, *, interval_minutes: int = 15
) -> list[EmbedModel]:
    return [build_monthly_header(snapshot)] + build_monthly_pages(
        snapshot, interval_minutes=interval_minutes
    )


def build_feed_messages(
    snapshot: MonthlySnapshot | None,
    period_key: str,
    year: int,
    standings: Sequence[YearlyStanding],
    *,
    now: datetime,
    interval_minutes: int = 15,
) -> list[RenderedMessage]:
    """Every message the feed channel should show, in posting order."""
    header_content = (
        f"**Monthly Challenge Leaderboard** • {_timestamp(now)} • "
        f"Updates every {interval_minutes} minutes"
    )
    if snapshot is None:
        messages = [
            RenderedMessage(
                key="monthly_header",
                content=header_content,
                embeds=(build_no_challenge_header(period_key),),
            )
        ]
    else:
        messages = [
            RenderedMessage(
                key="monthly_header",
                content=header_content,
                embeds=(build_monthly_header(snapshot),),
            )
        ]
        messages.extend(
            RenderedMessage(key=f"monthly_participants_{index}", embeds=(embed,))
            for index, embed in enumerate(
                build_monthly_pages(snapshot, interval_minutes=interval_minutes)
            )
        )
    messages.append(
        RenderedMessage(
            key="yearly_header",
            content="**Yearly Leaderboard**",
            embeds=(build_yearly_header(year, standings, interval_minutes=interval_minutes),),
        )
    )
    messages.extend(
        RenderedMessage(key=f"yearly_participants_{index}", embeds=(embed,))
        for index, embed in enumerate(
            build_yearly_pages(year, standings, interval_minutes=interval_minutes)
        )
    )
    messages.append(
        RenderedMessage(
            key="points_overview",
            embeds=(build_points_overview(interval_minutes=interval_minutes),),
        )
    )
    return messages


def _alert_line(alert: RankAlert) -> str:
    if alert.kind == "new_entry":
        return (
            f"🆕 **{alert.username}** entered the top {WATCHED_RANKS} "
            f"at #{alert.new_rank}: {alert.reason}"
        )
    if alert.kind == "overtake":
        return (
            f"📈 **{alert.username}** climbed from #{alert.previous_rank} "
            f"to {rank_label(alert.new_rank or 0)}: {alert.reason}"
        )
    new_rank = (
        f"#{alert.new_rank}"
        if alert.new_rank is not None
        else f"outside the top {WATCHED_RANKS}"
    )
    return f"📉 **{alert.username}** fell from #{alert.previous_rank} to {new_rank}"


def build_rank_alert(alerts: Sequence[RankAlert], snapshot: MonthlySnapshot) -> EmbedModel:
    challenge = snapshot.challenge
    standings = "\n".join(
        f"{rank_label(entry.display_rank)} **{entry.username}** - "
        f"{entry.achieved_count}/{challenge.total_achievements} achievements "
        f"({entry.completion_percentage:.2f}%)"
        for entry in snapshot.ranked[:TIEBREAKER_WINDOW]
    )
    return EmbedModel(
        title=f"{month_name(challenge.month)} Challenge Rank Update",
        description=(
            f"**[{challenge.game_title or f'Game {challenge.game_id}'}]"
            f"({RA_SITE}/game/{challenge.game_id})**"
        ),
        color=COLOR_ALERT,
        fields=(
            FieldModel(
                name="Changes",
                value=ensure_field_length("\n\n".join(_alert_line(alert) for alert in alerts)),
            ),
            FieldModel(
                name="Current Top 5",
                value=ensure_field_length(standings) or "No participants yet.",
            ),
        ),
        thumbnail_url=game_thumbnail(challenge),
        footer="Alerts sent at most hourly • Data from RetroAchievements",
        timestamp=snapshot.generated_at,
    )


__all__ = [
    "EmbedModel",
    "FIELD_LIMIT",
    "FieldModel",
    "RenderedMessage",
    "USERS_PER_PAGE",
    "build_feed_messages",
    "build_leaderboard_embeds",
    "build_monthly_header",
    "build_monthly_pages",
    "build_points_overview",
    "build_rank_alert",
    "build_yearly_header",
    "build_yearly_pages",
    "ensure_field_length",
    "format_participant",
    "paginate",
    "rank_label",
]

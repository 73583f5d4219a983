"""Slash commands for viewing and refreshing the leaderboards."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import discord
from discord import app_commands
from discord.app_commands import errors as app_errors

from challenges import InvalidValueError, parse_month_key, validate_year

from .feed import LeaderboardFeed
from .presentation import (
    EmbedModel,
    build_leaderboard_embeds,
    build_yearly_header,
    build_yearly_pages,
    month_name,
)
from .shadow import MAX_EMBEDS_PER_MESSAGE
from .standings import StandingsService

log = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Could not load the leaderboard right now. Please try again later."


async def _send_embeds(
    interaction: discord.Interaction, embeds: Sequence[EmbedModel]
) -> None:
    for start in range(0, len(embeds), MAX_EMBEDS_PER_MESSAGE):
        batch = [embed.to_discord() for embed in embeds[start : start + MAX_EMBEDS_PER_MESSAGE]]
        await interaction.followup.send(embeds=batch, ephemeral=True)


async def handle_leaderboard(
    interaction: discord.Interaction,
    standings: StandingsService,
    month: str | None = None,
    *,
    interval_minutes: int = 15,
) -> None:
    try:
        period_key = parse_month_key(month) if month else standings.current_period()
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        snapshot = await standings.monthly(period_key)
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to build leaderboard for %s: %s", period_key, exc)
        await interaction.followup.send(LOAD_FAILED_MESSAGE, ephemeral=True)
        return
    if snapshot is None:
        year = period_key.split("-", 1)[0]
        await interaction.followup.send(
            f"No monthly challenge is configured for {month_name(period_key)} {year}.",
            ephemeral=True,
        )
        return
    await _send_embeds(
        interaction, build_leaderboard_embeds(snapshot, interval_minutes=interval_minutes)
    )


async def handle_yearlyboard(
    interaction: discord.Interaction,
    standings: StandingsService,
    year: int | None = None,
    *,
    interval_minutes: int = 15,
) -> None:
    try:
        if year is not None:
            validate_year(year)
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        results = await standings.yearly(year)
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to build yearly leaderboard for %s: %s", year, exc)
        await interaction.followup.send(LOAD_FAILED_MESSAGE, ephemeral=True)
        return
    resolved_year = year or int(standings.current_period().split("-", 1)[0])
    embeds = [
        build_yearly_header(resolved_year, results, interval_minutes=interval_minutes)
    ] + build_yearly_pages(resolved_year, results, interval_minutes=interval_minutes)
    await _send_embeds(interaction, embeds)


async def handle_refresh(interaction: discord.Interaction, feed: LeaderboardFeed) -> None:
    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        await feed.refresh()
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Manual leaderboard refresh failed: %s", exc)
        await interaction.followup.send(
            "Leaderboard refresh failed. Check the bot logs for details.", ephemeral=True
        )
        return
    suffix = " (shadow mode, nothing was posted)" if feed.shadow_enabled else ""
    await interaction.followup.send(f"Leaderboard feed refreshed{suffix}.", ephemeral=True)


def register_commands(
    tree: app_commands.CommandTree,
    *,
    standings: StandingsService,
    feed: LeaderboardFeed,
    guild: discord.abc.Snowflake | None = None,
) -> None:
    command_kwargs = {"guild": guild} if guild is not None else {}
    interval = feed.interval_minutes

    @app_commands.describe(month="Month to show, e.g. 2024-03 or March (defaults to now)")
    @tree.command(
        name="leaderboard",
        description="Show the monthly challenge leaderboard",
        **command_kwargs,
    )
    async def leaderboard_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, month: str | None = None
    ) -> None:
        await handle_leaderboard(interaction, standings, month, interval_minutes=interval)

    @app_commands.describe(year="Year to show (defaults to the current year)")
    @tree.command(
        name="yearlyboard",
        description="Show the yearly challenge points leaderboard",
        **command_kwargs,
    )
    async def yearlyboard_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, year: int | None = None
    ) -> None:
        await handle_yearlyboard(interaction, standings, year, interval_minutes=interval)

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @tree.command(
        name="refresh-leaderboard",
        description="Rebuild the leaderboard feed now",
        **command_kwargs,
    )
    async def refresh_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction,
    ) -> None:
        await handle_refresh(interaction, feed)

    @refresh_command.error
    async def refresh_error_handler(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_errors.MissingPermissions):
            await interaction.response.send_message(
                "You need the Manage Server permission to refresh the leaderboard.",
                ephemeral=True,
            )
            return
        log.exception("Unhandled refresh command error: %s", error)


__all__ = [
    "LOAD_FAILED_MESSAGE",
    "handle_leaderboard",
    "handle_refresh",
    "handle_yearlyboard",
    "register_commands",
]

"""Admin slash commands that maintain challenges, registrations and tiebreakers."""

from __future__ import annotations

import asyncio
import logging
import re

import discord
from botocore.exceptions import BotoCoreError, ClientError
from discord import app_commands
from discord.app_commands import errors as app_errors

from challenges import (
    ChallengeStorage,
    InvalidValueError,
    MonthlyChallenge,
    RegisteredUser,
    TiebreakerBoard,
    normalize_username,
    parse_month_key,
    utc_now_iso,
    validate_year,
)
from challenges.models import ISO_FORMAT
from retro_api import RetroAchievementsClient, RetroApiError, RetroApiNotFoundError

from .presentation import month_name
from .standings import StandingsService

log = logging.getLogger(__name__)

PERMISSION_MESSAGE = "You need the Manage Server permission to use this command."
STORAGE_FAILED_MESSAGE = "Could not reach the challenge table. Check the bot logs for details."

_ID_SEPARATORS = re.compile(r"[\s,]+")


def parse_id_list(raw: str | None) -> list[str]:
    """Split a comma or space separated list of achievement ids."""
    if not raw:
        return []
    ids: list[str] = []
    for part in _ID_SEPARATORS.split(raw.strip()):
        if not part:
            continue
        if not part.isdigit():
            raise InvalidValueError(f"Achievement ids must be numeric: {part}")
        if part not in ids:
            ids.append(part)
    return ids


def _month_label(period_key: str) -> str:
    return f"{month_name(period_key)} {period_key.split('-', 1)[0]}"


async def _reply(interaction: discord.Interaction, message: str) -> None:
    await interaction.followup.send(message, ephemeral=True)


async def handle_register_user(
    interaction: discord.Interaction,
    storage: ChallengeStorage,
    client: RetroAchievementsClient,
    member: discord.abc.User,
    ra_username: str,
) -> None:
    try:
        username = normalize_username(ra_username)
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        users = await asyncio.to_thread(storage.list_users)
    except (BotoCoreError, ClientError) as exc:
        log.exception("Failed to list users while registering %s: %s", username, exc)
        await _reply(interaction, STORAGE_FAILED_MESSAGE)
        return

    for user in users:
        if user.ra_username.lower() == username.lower():
            await _reply(interaction, f"**{user.ra_username}** is already registered.")
            return
        if user.discord_id == member.id:
            await _reply(
                interaction,
                f"{member.mention} is already registered as **{user.ra_username}**.",
            )
            return

    try:
        profile = await asyncio.to_thread(client.get_user_profile, username)
    except RetroApiNotFoundError:
        await _reply(interaction, f"RetroAchievements user **{username}** does not exist.")
        return
    except RetroApiError as exc:
        log.warning("Profile lookup for %s failed: %s", username, exc)
        await _reply(interaction, "RetroAchievements is not responding. Try again later.")
        return

    user = RegisteredUser(
        ra_username=profile.username, discord_id=member.id, registered_at=utc_now_iso()
    )
    try:
        await asyncio.to_thread(storage.save_user, user)
    except (BotoCoreError, ClientError) as exc:
        log.exception("Failed to save user %s: %s", user.ra_username, exc)
        await _reply(interaction, STORAGE_FAILED_MESSAGE)
        return
    log.info("Registered %s for Discord user %s", user.ra_username, member.id)
    await _reply(interaction, f"Registered **{user.ra_username}** for {member.mention}.")


async def handle_unregister_user(
    interaction: discord.Interaction, storage: ChallengeStorage, ra_username: str
) -> None:
    await interaction.response.defer(ephemeral=True, thinking=True)
    username = ra_username.strip()
    removed = await asyncio.to_thread(storage.delete_user, username)
    if not removed:
        await _reply(interaction, f"**{username}** is not registered.")
        return
    log.info("Unregistered %s", username)
    await _reply(interaction, f"Removed **{username}** from the challenge.")


async def handle_create_challenge(
    interaction: discord.Interaction,
    storage: ChallengeStorage,
    client: RetroAchievementsClient,
    month: str,
    game_id: int,
    progression_ids: str,
    win_ids: str | None = None,
    total_achievements: int | None = None,
) -> None:
    try:
        period_key = parse_month_key(month)
        progression = parse_id_list(progression_ids)
        wins = parse_id_list(win_ids)
        if not progression:
            raise InvalidValueError("At least one progression achievement id is required")
        if game_id <= 0:
            raise InvalidValueError(f"Invalid game id: {game_id}")
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    challenge = MonthlyChallenge(
        month=period_key,
        game_id=game_id,
        total_achievements=total_achievements or 0,
        progression_achievement_ids=progression,
        win_achievement_ids=wins,
        updated_at=utc_now_iso(),
    )
    try:
        info = await asyncio.to_thread(client.get_game_info, game_id)
    except RetroApiError as exc:
        if not total_achievements:
            log.warning("Game info lookup for %s failed: %s", game_id, exc)
            await _reply(
                interaction,
                f"Could not load game {game_id} from RetroAchievements. "
                "Pass total_achievements to create the challenge anyway.",
            )
            return
        log.info("Creating %s challenge without game info: %s", period_key, exc)
    else:
        challenge.apply_game_info(info.title, info.icon_url, info.console_name)
        challenge.total_achievements = total_achievements or info.num_achievements

    existing = await asyncio.to_thread(storage.get_challenge, period_key)
    if existing is not None:
        challenge.shadow_game_id = existing.shadow_game_id
        challenge.shadow_revealed = existing.shadow_revealed
    await asyncio.to_thread(storage.save_challenge, challenge)

    verb = "Replaced" if existing is not None else "Created"
    title = challenge.game_title or f"game {game_id}"
    log.info("%s challenge %s for game %s", verb, period_key, game_id)
    await _reply(
        interaction,
        f"{verb} the {_month_label(period_key)} challenge: **{title}** "
        f"({challenge.total_achievements} achievements, "
        f"{len(progression)} progression, {len(wins)} win).",
    )


async def handle_list_challenges(
    interaction: discord.Interaction,
    storage: ChallengeStorage,
    standings: StandingsService,
    year: int | None = None,
) -> None:
    try:
        if year is not None:
            validate_year(year)
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    resolved_year = year or int(standings.current_period().split("-", 1)[0])
    challenges = await asyncio.to_thread(storage.list_challenges, resolved_year)
    if not challenges:
        await _reply(interaction, f"No challenges are configured for {resolved_year}.")
        return
    lines = [
        f"`{challenge.month}` {challenge.game_title or 'Unknown game'} "
        f"(game {challenge.game_id}, {challenge.total_achievements} achievements)"
        for challenge in challenges
    ]
    await _reply(interaction, f"**{resolved_year} challenges**\n" + "\n".join(lines))


async def handle_set_tiebreaker(
    interaction: discord.Interaction,
    storage: ChallengeStorage,
    month: str,
    leaderboard_id: int,
    game_title: str,
    breaker_leaderboard_id: int | None = None,
    breaker_game_title: str | None = None,
) -> None:
    try:
        period_key = parse_month_key(month)
        if leaderboard_id <= 0:
            raise InvalidValueError(f"Invalid leaderboard id: {leaderboard_id}")
        if breaker_leaderboard_id is not None and breaker_leaderboard_id == leaderboard_id:
            raise InvalidValueError("The tiebreaker-breaker must use a different leaderboard")
        if not game_title.strip():
            raise InvalidValueError("A tiebreaker game title is required")
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    # The board runs for the whole challenge month.
    window = MonthlyChallenge(month=period_key, game_id=0, total_achievements=0)
    starts_at, _ = window.window()
    board = TiebreakerBoard(
        board_id=period_key,
        leaderboard_id=leaderboard_id,
        game_title=game_title.strip(),
        starts_at=starts_at.strftime(ISO_FORMAT),
        ends_at=window.ends_at().strftime(ISO_FORMAT),
        breaker_leaderboard_id=breaker_leaderboard_id,
        breaker_game_title=(breaker_game_title or "").strip() or None,
    )
    await asyncio.to_thread(storage.save_tiebreaker, board)
    log.info("Saved tiebreaker %s on leaderboard %s", period_key, leaderboard_id)
    suffix = (
        f" with tiebreaker-breaker leaderboard {breaker_leaderboard_id}"
        if board.has_breaker
        else ""
    )
    await _reply(
        interaction,
        f"Tiebreaker for {_month_label(period_key)} set to **{board.game_title}** "
        f"(leaderboard {leaderboard_id}){suffix}.",
    )


async def handle_remove_tiebreaker(
    interaction: discord.Interaction, storage: ChallengeStorage, month: str
) -> None:
    try:
        period_key = parse_month_key(month)
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    if not await asyncio.to_thread(storage.delete_tiebreaker, period_key):
        await _reply(interaction, f"No tiebreaker is set for {_month_label(period_key)}.")
        return
    log.info("Removed tiebreaker %s", period_key)
    await _reply(interaction, f"Removed the {_month_label(period_key)} tiebreaker.")


async def handle_finalize_month(
    interaction: discord.Interaction,
    storage: ChallengeStorage,
    standings: StandingsService,
    month: str,
) -> None:
    """Copy each participant's award for ``month`` into their yearly record."""
    try:
        period_key = parse_month_key(month)
    except InvalidValueError as exc:
        await interaction.response.send_message(str(exc), ephemeral=True)
        return
    if period_key >= standings.current_period():
        await interaction.response.send_message(
            f"{_month_label(period_key)} has not finished yet.", ephemeral=True
        )
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        snapshot = await standings.monthly(period_key)
        if snapshot is None:
            await _reply(
                interaction,
                f"No monthly challenge is configured for {_month_label(period_key)}.",
            )
            return
        awards = {
            entry.username.lower(): entry.score.award_points for entry in snapshot.ranked
        }
        users = await asyncio.to_thread(storage.list_users)
        updated = 0
        for user in users:
            points = awards.get(user.ra_username.lower(), 0)
            if user.record_monthly_award(period_key, points):
                await asyncio.to_thread(storage.save_user, user)
                updated += 1
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to finalize %s: %s", period_key, exc)
        await _reply(interaction, f"Finalizing {_month_label(period_key)} failed.")
        return

    log.info(
        "Finalized %s: %d participants, %d records updated", period_key, len(awards), updated
    )
    await _reply(
        interaction,
        f"Recorded {_month_label(period_key)} awards for {len(awards)} participants "
        f"({updated} yearly records updated).",
    )


async def _permission_error_handler(  # pragma: no cover - Discord slash command wiring
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    if isinstance(error, app_errors.MissingPermissions):
        await interaction.response.send_message(PERMISSION_MESSAGE, ephemeral=True)
        return
    log.exception("Unhandled admin command error: %s", error)


def register_admin_commands(
    tree: app_commands.CommandTree,
    *,
    storage: ChallengeStorage,
    client: RetroAchievementsClient,
    standings: StandingsService,
    guild: discord.abc.Snowflake | None = None,
) -> None:
    command_kwargs = {"guild": guild} if guild is not None else {}

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(
        member="Discord member to register",
        ra_username="Their RetroAchievements username",
    )
    @tree.command(
        name="register-user",
        description="Register a member for the monthly challenge",
        **command_kwargs,
    )
    async def register_user_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, member: discord.Member, ra_username: str
    ) -> None:
        await handle_register_user(interaction, storage, client, member, ra_username)

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(ra_username="RetroAchievements username to remove")
    @tree.command(
        name="unregister-user",
        description="Remove a member from the monthly challenge",
        **command_kwargs,
    )
    async def unregister_user_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, ra_username: str
    ) -> None:
        await handle_unregister_user(interaction, storage, ra_username)

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(
        month="Challenge month, e.g. 2024-03 or March",
        game_id="RetroAchievements game id",
        progression_ids="Comma separated progression achievement ids",
        win_ids="Comma separated win achievement ids",
        total_achievements="Override the achievement count from RetroAchievements",
    )
    @tree.command(
        name="create-challenge",
        description="Create or replace a monthly challenge",
        **command_kwargs,
    )
    async def create_challenge_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction,
        month: str,
        game_id: int,
        progression_ids: str,
        win_ids: str | None = None,
        total_achievements: int | None = None,
    ) -> None:
        await handle_create_challenge(
            interaction,
            storage,
            client,
            month,
            game_id,
            progression_ids,
            win_ids,
            total_achievements,
        )

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(year="Year to list (defaults to the current year)")
    @tree.command(
        name="list-challenges",
        description="List the configured monthly challenges",
        **command_kwargs,
    )
    async def list_challenges_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, year: int | None = None
    ) -> None:
        await handle_list_challenges(interaction, storage, standings, year)

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(
        month="Challenge month the tiebreaker applies to",
        leaderboard_id="RetroAchievements leaderboard id",
        game_title="Tiebreaker game title",
        breaker_leaderboard_id="Leaderboard that settles ties on the tiebreaker",
        breaker_game_title="Tiebreaker-breaker game title",
    )
    @tree.command(
        name="set-tiebreaker",
        description="Set the tiebreaker leaderboard for a month",
        **command_kwargs,
    )
    async def set_tiebreaker_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction,
        month: str,
        leaderboard_id: int,
        game_title: str,
        breaker_leaderboard_id: int | None = None,
        breaker_game_title: str | None = None,
    ) -> None:
        await handle_set_tiebreaker(
            interaction,
            storage,
            month,
            leaderboard_id,
            game_title,
            breaker_leaderboard_id,
            breaker_game_title,
        )

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(month="Challenge month whose tiebreaker to remove")
    @tree.command(
        name="remove-tiebreaker",
        description="Remove the tiebreaker for a month",
        **command_kwargs,
    )
    async def remove_tiebreaker_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, month: str
    ) -> None:
        await handle_remove_tiebreaker(interaction, storage, month)

    @app_commands.default_permissions(manage_guild=True)
    @app_commands.checks.has_permissions(manage_guild=True)
    @app_commands.describe(month="Finished challenge month to record, e.g. 2024-03")
    @tree.command(
        name="finalize-month",
        description="Record a finished month's awards in the yearly standings",
        **command_kwargs,
    )
    async def finalize_month_command(  # pragma: no cover - Discord slash command wiring
        interaction: discord.Interaction, month: str
    ) -> None:
        await handle_finalize_month(interaction, storage, standings, month)

    for command in (
        register_user_command,
        unregister_user_command,
        create_challenge_command,
        list_challenges_command,
        set_tiebreaker_command,
        remove_tiebreaker_command,
        finalize_month_command,
    ):
        command.error(_permission_error_handler)


__all__ = [
    "PERMISSION_MESSAGE",
    "STORAGE_FAILED_MESSAGE",
    "handle_create_challenge",
    "handle_finalize_month",
    "handle_list_challenges",
    "handle_register_user",
    "handle_remove_tiebreaker",
    "handle_set_tiebreaker",
    "handle_unregister_user",
    "parse_id_list",
    "register_admin_commands",
]

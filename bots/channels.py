from __future__ import annotations

import logging
from typing import Final

import discord

log: Final = logging.getLogger(__name__)


def _in_guild(channel: discord.TextChannel, guild_id: int | None) -> bool:
    if guild_id is None or channel.guild.id == guild_id:
        return True
    log.warning(
        "Channel %s belongs to different guild (%s) than expected (%s)",
        channel.id,
        channel.guild.id,
        guild_id,
    )
    return False


async def resolve_text_channel(
    bot: discord.Client,
    channel_id: int | None,
    *,
    guild_id: int | None = None,
) -> discord.TextChannel | None:
    """Return a TextChannel object or None if unavailable.

    Looks in the client cache first, then tries REST fetch as fallback. When
    ``guild_id`` is given the channel must belong to that guild.
    """
    if not channel_id:
        return None

    channel = bot.get_channel(channel_id)
    if isinstance(channel, discord.TextChannel):
        return channel if _in_guild(channel, guild_id) else None

    try:
        channel = await bot.fetch_channel(channel_id)
    except discord.NotFound:
        log.warning("Channel %s not found", channel_id)
        return None
    except discord.Forbidden:
        log.warning("No access to channel %s, check bot permissions", channel_id)
        return None
    except discord.HTTPException as exc:
        log.warning("Cannot fetch channel %s, HTTP error: %s", channel_id, exc)
        return None

    if not isinstance(channel, discord.TextChannel):
        log.warning("Channel ID %s is not a text channel", channel_id)
        return None
    return channel if _in_guild(channel, guild_id) else None


__all__ = ["resolve_text_channel"]

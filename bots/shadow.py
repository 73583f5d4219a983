"""Shadow-mode reporting: describe feed updates instead of performing them."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import discord

from .config import ShadowConfig

log = logging.getLogger(__name__)

MAX_EMBEDS_PER_MESSAGE = 10


class ShadowReporter:
    def __init__(self, bot: discord.Client, config: ShadowConfig) -> None:
        self._bot = bot
        self._config = config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def channel_id(self) -> int | None:
        return self._config.channel_id

    async def _resolve_channel(self) -> discord.abc.Messageable | None:
        if self.channel_id is None:
            return None
        channel = self._bot.get_channel(self.channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(self.channel_id)
            except discord.DiscordException as exc:
                log.warning("Unable to fetch shadow channel %s: %s", self.channel_id, exc)
                return None
        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel

    async def report(
        self,
        message: str,
        *,
        embeds: Iterable[discord.Embed] | None = None,
    ) -> None:
        if not self.enabled:
            return

        channel = await self._resolve_channel()
        if channel is None:
            log.info("[SHADOW] %s", message)
            return

        embed_list = list(embeds or [])
        batches = [
            embed_list[start : start + MAX_EMBEDS_PER_MESSAGE]
            for start in range(0, len(embed_list), MAX_EMBEDS_PER_MESSAGE)
        ] or [[]]
        try:
            for index, batch in enumerate(batches):
                kwargs: dict[str, object] = {}
                if index == 0:
                    kwargs["content"] = message
                if batch:
                    kwargs["embeds"] = batch
                await channel.send(**kwargs)
        except discord.DiscordException as exc:
            log.warning(
                "Failed to send shadow report to channel %s: %s", self.channel_id, exc
            )


__all__ = ["MAX_EMBEDS_PER_MESSAGE", "ShadowReporter"]

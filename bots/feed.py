"""Keep the leaderboard feed channel in sync with the latest standings."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import discord

from challenges import month_key_for

from .alerts import RankAlert, RankChangeTracker
from .channels import resolve_text_channel
from .presentation import RenderedMessage, build_feed_messages, build_rank_alert
from .shadow import ShadowReporter
from .standings import MonthlySnapshot, StandingsService

log = logging.getLogger(__name__)

HISTORY_SCAN_LIMIT = 100


def _utc_now() -> datetime:
    return datetime.now(UTC)


class LeaderboardFeed:
    def __init__(
        self,
        bot: discord.Client,
        standings: StandingsService,
        *,
        channel_id: int,
        alerts_channel_id: int | None = None,
        shadow: ShadowReporter | None = None,
        tracker: RankChangeTracker | None = None,
        interval_minutes: int = 15,
        guild_id: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._bot = bot
        self._standings = standings
        self.channel_id = channel_id
        self.alerts_channel_id = alerts_channel_id
        self._shadow = shadow
        self._tracker = tracker or RankChangeTracker()
        self.interval_minutes = interval_minutes
        self.guild_id = guild_id
        self._clock = clock
        self._message_ids: dict[str, int] = {}
        self._refresh_lock = asyncio.Lock()

    @property
    def message_ids(self) -> dict[str, int]:
        return dict(self._message_ids)

    @property
    def shadow_enabled(self) -> bool:
        return self._shadow is not None and self._shadow.enabled

    async def render(self, now: datetime) -> tuple[MonthlySnapshot | None, list[RenderedMessage]]:
        period_key = month_key_for(now)
        snapshot = await self._standings.monthly(period_key)
        yearly = await self._standings.yearly(now.year)
        messages = build_feed_messages(
            snapshot,
            period_key,
            now.year,
            yearly,
            now=now,
            interval_minutes=self.interval_minutes,
        )
        return snapshot, messages

    async def refresh(self) -> None:
        async with self._refresh_lock:
            now = self._clock()
            snapshot, messages = await self.render(now)

            if snapshot is not None and snapshot.ranked:
                alerts = self._tracker.detect(snapshot.ranked, now)
                if alerts:
                    await self._post_alerts(alerts, snapshot)

            shadow = self._shadow
            if shadow is not None and shadow.enabled:
                embeds = [embed for message in messages for embed in message.discord_embeds()]
                await shadow.report(
                    f"Leaderboard feed would update {len(messages)} message(s) "
                    f"in channel {self.channel_id}",
                    embeds=embeds,
                )
                return

            channel = await resolve_text_channel(
                self._bot, self.channel_id, guild_id=self.guild_id
            )
            if channel is None:
                log.error("Leaderboard feed channel %s is unavailable", self.channel_id)
                return
            await self.sync_messages(channel, messages)

    async def sync_messages(
        self, channel: discord.TextChannel, messages: Sequence[RenderedMessage]
    ) -> None:
        """Edit messages in place when the layout is unchanged, otherwise repost."""
        expected_keys = [message.key for message in messages]
        if list(self._message_ids) == expected_keys:
            if await self._edit_existing(channel, messages):
                return
        await self._recreate(channel, messages)

    async def _edit_existing(
        self, channel: discord.TextChannel, messages: Sequence[RenderedMessage]
    ) -> bool:
        for message in messages:
            partial = channel.get_partial_message(self._message_ids[message.key])
            try:
                await partial.edit(content=message.content or None, embeds=message.discord_embeds())
            except discord.NotFound:
                log.warning("Feed message %s disappeared, reposting feed", message.key)
                return False
            except discord.HTTPException as exc:
                log.warning("Failed to edit feed message %s: %s", message.key, exc)
                return False
        log.info("Updated %d leaderboard feed messages", len(messages))
        return True

    async def _recreate(
        self, channel: discord.TextChannel, messages: Sequence[RenderedMessage]
    ) -> None:
        await self.clear_channel(channel)
        self._message_ids.clear()
        for message in messages:
            try:
                sent = await channel.send(
                    content=message.content or None, embeds=message.discord_embeds()
                )
            except discord.HTTPException as exc:
                log.error("Failed to post feed message %s: %s", message.key, exc)
                # A partial layout is rebuilt from scratch on the next refresh.
                self._message_ids.clear()
                return
            self._message_ids[message.key] = sent.id
        log.info("Posted %d leaderboard feed messages", len(messages))

    async def clear_channel(self, channel: discord.TextChannel) -> int:
        bot_user = self._bot.user
        if bot_user is None:
            return 0
        deleted = 0
        async for message in channel.history(limit=HISTORY_SCAN_LIMIT):
            if message.author.id != bot_user.id:
                continue
            try:
                await message.delete()
            except discord.NotFound:
                continue
            except discord.HTTPException as exc:
                log.warning("Could not delete feed message %s: %s", message.id, exc)
                continue
            deleted += 1
        return deleted

    async def _post_alerts(self, alerts: Sequence[RankAlert], snapshot: MonthlySnapshot) -> None:
        embed = build_rank_alert(alerts, snapshot).to_discord()
        shadow = self._shadow
        if shadow is not None and shadow.enabled:
            await shadow.report(f"Rank alert with {len(alerts)} change(s)", embeds=[embed])
            return
        if self.alerts_channel_id is None:
            log.info("Rank alerts channel not configured, dropping %d alert(s)", len(alerts))
            return
        channel = await resolve_text_channel(
            self._bot, self.alerts_channel_id, guild_id=self.guild_id
        )
        if channel is None:
            return
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            log.warning("Failed to send rank alert: %s", exc)


__all__ = ["LeaderboardFeed"]

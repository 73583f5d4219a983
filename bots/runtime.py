"""Leaderboard bot runtime: environment config and Discord wiring."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

import boto3
import discord
from discord import app_commands

from challenges import ChallengeStorage
from retro_api import ApiCache, RetroAchievementsClient, ScoreSource

from .admin import register_admin_commands
from .alerts import RankChangeTracker
from .commands import register_commands
from .config import env_int, read_cache_settings, read_shadow_config
from .feed import LeaderboardFeed
from .scheduler import PeriodicRefresher
from .shadow import ShadowReporter
from .standings import StandingsService

log = logging.getLogger("select-start")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass(slots=True)
class EnvironmentConfig:
    discord_token: str
    ra_username: str
    ra_api_key: str
    challenge_table_name: str
    feed_channel_id: int
    alerts_channel_id: int | None
    guild_id: int | None
    aws_region: str
    feed_interval_minutes: int
    ra_min_request_interval: float

    @classmethod
    def load(cls) -> "EnvironmentConfig":
        missing: list[str] = []

        def need(name: str) -> str:
            value = os.getenv(name)
            if not value:
                missing.append(name)
                return ""
            return value

        discord_token = need("DISCORD_TOKEN")
        ra_username = need("RA_USERNAME")
        ra_api_key = need("RA_API_KEY")
        challenge_table_name = need("CHALLENGE_TABLE_NAME")
        feed_channel_raw = need("LEADERBOARD_FEED_CHANNEL_ID")

        if missing:
            raise RuntimeError("Missing env vars: " + ", ".join(sorted(set(missing))))

        try:
            feed_channel_id = int(feed_channel_raw)
        except ValueError as exc:
            raise RuntimeError(
                f"LEADERBOARD_FEED_CHANNEL_ID must be numeric, got {feed_channel_raw!r}"
            ) from exc

        interval = env_int("FEED_INTERVAL_MINUTES", default=15) or 15
        min_interval_ms = env_int("RA_MIN_REQUEST_INTERVAL_MS", default=1200)

        return cls(
            discord_token=discord_token,
            ra_username=ra_username,
            ra_api_key=ra_api_key,
            challenge_table_name=challenge_table_name,
            feed_channel_id=feed_channel_id,
            alerts_channel_id=env_int("RANK_ALERTS_CHANNEL_ID"),
            guild_id=env_int("DISCORD_GUILD_ID"),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            feed_interval_minutes=max(1, interval),
            ra_min_request_interval=max(0, min_interval_ms or 0) / 1000,
        )


class LeaderboardRuntime:
    def __init__(self, config: EnvironmentConfig, *, dynamodb_resource=None) -> None:
        intents = discord.Intents.default()
        intents.guilds = True

        self.config = config
        self.bot = discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.bot)
        self.shadow_config = read_shadow_config(default_enabled=False)
        self.shadow_reporter = ShadowReporter(self.bot, self.shadow_config)
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=config.aws_region
        )
        self.storage = ChallengeStorage(self.dynamodb.Table(config.challenge_table_name))
        self.ra_client = RetroAchievementsClient(
            config.ra_username,
            config.ra_api_key,
            cache=ApiCache(read_cache_settings()),
            min_interval=config.ra_min_request_interval,
        )
        self.scores = ScoreSource(self.ra_client, self.storage)
        self.standings = StandingsService(self.scores, self.storage)
        self.feed = LeaderboardFeed(
            self.bot,
            self.standings,
            channel_id=config.feed_channel_id,
            alerts_channel_id=config.alerts_channel_id,
            shadow=self.shadow_reporter,
            tracker=RankChangeTracker(),
            interval_minutes=config.feed_interval_minutes,
            guild_id=config.guild_id,
        )
        self.refresher = PeriodicRefresher(
            "leaderboard-feed",
            self.feed.refresh,
            minutes=config.feed_interval_minutes,
            before_start=self.bot.wait_until_ready,
        )
        self.guild = (
            discord.Object(id=config.guild_id) if config.guild_id is not None else None
        )
        register_commands(
            self.tree, standings=self.standings, feed=self.feed, guild=self.guild
        )
        register_admin_commands(
            self.tree,
            storage=self.storage,
            client=self.ra_client,
            standings=self.standings,
            guild=self.guild,
        )
        self.bot.event(self.on_ready)

    async def on_ready(self) -> None:
        log.info("Logged in as %s", self.bot.user)
        try:
            synced = await self.tree.sync(guild=self.guild)
        except discord.HTTPException as exc:
            log.warning("Command sync failed: %s", exc)
        else:
            log.info("Synced %d application commands", len(synced))
        if self.shadow_reporter.enabled:
            log.info("Leaderboard bot running in SHADOW mode")
        self.refresher.start()

    async def run(self) -> None:
        try:
            async with self.bot:
                await self.bot.start(self.config.discord_token)
        finally:
            self.refresher.stop()
            self.ra_client.close()

    @classmethod
    def create(cls) -> "LeaderboardRuntime":
        config = EnvironmentConfig.load()
        return cls(config)


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


async def main() -> None:
    configure_logging()
    runtime = LeaderboardRuntime.create()
    await runtime.run()


def cli() -> None:
    asyncio.run(main())


__all__ = ["EnvironmentConfig", "LeaderboardRuntime", "cli", "configure_logging", "main"]

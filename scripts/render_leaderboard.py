#!/usr/bin/env python3
"""Print the resolved monthly challenge leaderboard to stdout.

Reads the challenge and registered users from DynamoDB and live progress from
RetroAchievements. Pass ``--scores-file`` to rank an offline JSON snapshot
instead; no AWS or API credentials are needed in that mode.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import pathlib
import sys
from collections.abc import Iterable, Sequence
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:  # pragma: no cover - simple environment setup
    sys.path.insert(0, str(ROOT_DIR))

from bots.standings import StandingsService
from challenges import ChallengeStorage, InvalidValueError, parse_month_key
from ranking import ParticipantScore, RankedParticipant, TiebreakerEntry, resolve_ranks
from retro_api import RetroAchievementsClient, ScoreSource

log = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--month", help="Challenge month (YYYY-MM or month name)")
    parser.add_argument(
        "--table",
        default=os.getenv("CHALLENGE_TABLE_NAME"),
        help="DynamoDB table that stores challenge data",
    )
    parser.add_argument("--region", default=os.getenv("AWS_REGION"))
    parser.add_argument("--profile", help="AWS profile to use")
    parser.add_argument(
        "--scores-file",
        type=pathlib.Path,
        help="JSON file with participants and tiebreaker entries to rank offline",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO), format="%(message)s"
    )


def _entries(raw: Iterable[dict[str, Any]]) -> list[TiebreakerEntry]:
    return [
        TiebreakerEntry(
            username=str(item["username"]),
            rank=int(item["rank"]),
            score=str(item.get("score", "")),
        )
        for item in raw
    ]


def load_scores_file(
    path: pathlib.Path,
) -> tuple[list[ParticipantScore], list[TiebreakerEntry], list[TiebreakerEntry]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    total = int(data.get("total_achievements", 0))
    scores = [
        ParticipantScore(
            username=str(item["username"]),
            achieved_count=int(item["achieved"]),
            award_points=int(item.get("points", 1)),
            total_achievements=int(item.get("total_achievements", total)),
        )
        for item in data.get("participants", [])
    ]
    return (
        scores,
        _entries(data.get("tiebreaker", [])),
        _entries(data.get("tiebreaker_breaker", [])),
    )


def format_row(entry: RankedParticipant) -> str:
    score = entry.score
    row = (
        f"{entry.display_rank:>3}. {entry.username:<24} "
        f"{score.achieved_count}/{score.total_achievements} "
        f"({score.completion_percentage:.2f}%) {score.award.label}"
    )
    if entry.tiebreaker is not None:
        row += f" | tiebreaker #{entry.tiebreaker.rank} ({entry.tiebreaker.score})"
    if entry.tiebreaker_breaker is not None:
        row += f" | breaker #{entry.tiebreaker_breaker.rank} ({entry.tiebreaker_breaker.score})"
    return row


def to_json(ranked: Sequence[RankedParticipant]) -> str:
    return json.dumps(
        [
            {
                "rank": entry.display_rank,
                "username": entry.username,
                "achieved": entry.achieved_count,
                "points": entry.award_points,
                "percentage": round(entry.completion_percentage, 2),
                "tiebreaker_rank": entry.tiebreaker.rank if entry.tiebreaker else None,
                "breaker_rank": (
                    entry.tiebreaker_breaker.rank if entry.tiebreaker_breaker else None
                ),
            }
            for entry in ranked
        ],
        indent=2,
    )


async def fetch_live(
    args: argparse.Namespace, month: str | None, username: str, api_key: str
) -> list[RankedParticipant] | None:
    session_kwargs: dict[str, Any] = {}
    if args.profile:
        session_kwargs["profile_name"] = args.profile
    if args.region:
        session_kwargs["region_name"] = args.region
    table = boto3.Session(**session_kwargs).resource("dynamodb").Table(args.table)

    storage = ChallengeStorage(table)
    client = RetroAchievementsClient(username, api_key)
    try:
        standings = StandingsService(ScoreSource(client, storage), storage)
        snapshot = await standings.monthly(month)
    finally:
        client.close()
    return snapshot.ranked if snapshot is not None else None


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    month = None
    if args.month:
        try:
            month = parse_month_key(args.month)
        except InvalidValueError as exc:
            raise SystemExit(str(exc)) from exc

    if args.scores_file is not None:
        scores, tiebreaker, breaker = load_scores_file(args.scores_file)
        ranked = resolve_ranks(scores, tiebreaker, breaker)
    else:
        username = os.getenv("RA_USERNAME")
        api_key = os.getenv("RA_API_KEY")
        if not username or not api_key:
            raise SystemExit("RA_USERNAME and RA_API_KEY must be set for live rendering")
        if not args.table:
            raise SystemExit("No DynamoDB table specified (use --table or CHALLENGE_TABLE_NAME)")
        try:
            ranked = asyncio.run(fetch_live(args, month, username, api_key))
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network failure
            log.error("AWS request failed: %s", exc)
            raise SystemExit(2) from exc
        if ranked is None:
            raise SystemExit(f"No challenge configured for {month or 'the current month'}")

    if args.json:
        print(to_json(ranked))
        return
    if not ranked:
        print("No participants yet.")
        return
    for entry in ranked:
        print(format_row(entry))


if __name__ == "__main__":
    main()

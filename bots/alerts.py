"""Detect top-five rank changes between leaderboard refreshes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final, Literal

from ranking import RankedParticipant

log = logging.getLogger(__name__)

AlertKind = Literal["new_entry", "overtake", "fall_out"]

WATCHED_RANKS: Final[int] = 5
NEW_ENTRY_RANKS: Final[int] = 3
REMEMBERED_RANKS: Final[int] = 7
USER_COOLDOWN: Final[timedelta] = timedelta(minutes=5)
GLOBAL_COOLDOWN: Final[timedelta] = timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class RankState:
    username: str
    display_rank: int
    achieved_count: int
    award_points: int

    @classmethod
    def from_ranked(cls, entry: RankedParticipant) -> RankState:
        return cls(
            username=entry.username,
            display_rank=entry.display_rank,
            achieved_count=entry.achieved_count,
            award_points=entry.award_points,
        )


@dataclass(frozen=True, slots=True)
class RankAlert:
    kind: AlertKind
    username: str
    new_rank: int | None
    previous_rank: int | None
    reason: str


def change_reason(previous: RankState, current: RankState) -> str:
    if current.achieved_count > previous.achieved_count:
        gained = current.achieved_count - previous.achieved_count
        return f"Earned {gained} new achievement(s)"
    if current.award_points != previous.award_points:
        return "Achievement status improved"
    return "Ranking position updated"


class RankChangeTracker:
    def __init__(
        self,
        *,
        user_cooldown: timedelta = USER_COOLDOWN,
        global_cooldown: timedelta = GLOBAL_COOLDOWN,
    ) -> None:
        self._user_cooldown = user_cooldown
        self._global_cooldown = global_cooldown
        self._previous: dict[str, RankState] = {}
        self._last_alert_at: dict[str, datetime] = {}
        self._last_global_alert_at: datetime | None = None

    @property
    def previous_states(self) -> dict[str, RankState]:
        return dict(self._previous)

    def reset(self) -> None:
        self._previous.clear()
        self._last_alert_at.clear()
        self._last_global_alert_at = None

    def _cooling_down(self, username: str, now: datetime) -> bool:
        last = self._last_alert_at.get(username.lower())
        return last is not None and now - last < self._user_cooldown

    def _remember(self, ranked: Iterable[RankedParticipant], now: datetime) -> None:
        self._previous = {
            entry.username.lower(): RankState.from_ranked(entry)
            for entry in ranked
            if entry.display_rank <= REMEMBERED_RANKS
        }
        cutoff = now - max(self._user_cooldown, self._global_cooldown)
        self._last_alert_at = {
            name: moment for name, moment in self._last_alert_at.items() if moment >= cutoff
        }

    def _diff(self, ranked: list[RankedParticipant], now: datetime) -> list[RankAlert]:
        alerts: list[RankAlert] = []
        current_by_name = {entry.username.lower(): entry for entry in ranked}

        for entry in ranked:
            if entry.display_rank > WATCHED_RANKS:
                continue
            if self._cooling_down(entry.username, now):
                continue
            current = RankState.from_ranked(entry)
            previous = self._previous.get(entry.username.lower())
            if previous is None:
                if entry.display_rank <= NEW_ENTRY_RANKS:
                    alerts.append(
                        RankAlert(
                            kind="new_entry",
                            username=entry.username,
                            new_rank=entry.display_rank,
                            previous_rank=None,
                            reason=(
                                "Entered top rankings with "
                                f"{entry.achieved_count} achievements"
                            ),
                        )
                    )
            elif current.display_rank < previous.display_rank:
                alerts.append(
                    RankAlert(
                        kind="overtake",
                        username=entry.username,
                        new_rank=current.display_rank,
                        previous_rank=previous.display_rank,
                        reason=change_reason(previous, current),
                    )
                )

        for key, previous in self._previous.items():
            if previous.display_rank > WATCHED_RANKS:
                continue
            current_entry = current_by_name.get(key)
            if current_entry is not None and current_entry.display_rank <= WATCHED_RANKS:
                continue
            if self._cooling_down(previous.username, now):
                continue
            alerts.append(
                RankAlert(
                    kind="fall_out",
                    username=previous.username,
                    new_rank=current_entry.display_rank if current_entry else None,
                    previous_rank=previous.display_rank,
                    reason=f"Dropped out of the top {WATCHED_RANKS}",
                )
            )
        return alerts

    def detect(self, ranked: Iterable[RankedParticipant], now: datetime) -> list[RankAlert]:
        """Return alerts for this refresh and remember the new standings.

        The first refresh only records state. Alerts are suppressed entirely
        while the global cooldown runs.
        """
        ranked = list(ranked)
        if not self._previous:
            self._remember(ranked, now)
            return []
        if (
            self._last_global_alert_at is not None
            and now - self._last_global_alert_at < self._global_cooldown
        ):
            self._remember(ranked, now)
            return []

        alerts = self._diff(ranked, now)
        if alerts:
            self._last_global_alert_at = now
            for alert in alerts:
                self._last_alert_at[alert.username.lower()] = now
            log.info("Detected %d rank change(s)", len(alerts))
        self._remember(ranked, now)
        return alerts


__all__ = [
    "AlertKind",
    "GLOBAL_COOLDOWN",
    "RankAlert",
    "RankChangeTracker",
    "RankState",
    "USER_COOLDOWN",
    "change_reason",
]

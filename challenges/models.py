from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import ClassVar

from ranking import Award

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format (ms precision)."""
    return datetime.now(UTC).strftime(ISO_FORMAT)


def parse_iso(value: str) -> datetime:
    return datetime.strptime(value, ISO_FORMAT).replace(tzinfo=UTC)


def _int_or_none(value: object) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _str_list(value: object) -> list[str]:
    if not value:
        return []
    return [str(entry) for entry in value]  # type: ignore[union-attr]


@dataclass(slots=True)
class MonthlyChallenge:
    month: str
    game_id: int
    total_achievements: int
    progression_achievement_ids: list[str] = field(default_factory=list)
    win_achievement_ids: list[str] = field(default_factory=list)
    game_title: str | None = None
    game_icon_url: str | None = None
    console_name: str | None = None
    shadow_game_id: int | None = None
    shadow_revealed: bool = False
    updated_at: str = ""

    PK_VALUE: ClassVar[str] = "CHALLENGE"
    SK_TEMPLATE: ClassVar[str] = "MONTH#%s"

    @classmethod
    def key(cls, month: str) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": cls.SK_TEMPLATE % month}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = self.key(self.month)
        item.update(
            {
                "month": self.month,
                "game_id": self.game_id,
                "total_achievements": self.total_achievements,
                "progression_achievement_ids": list(self.progression_achievement_ids),
                "win_achievement_ids": list(self.win_achievement_ids),
                "shadow_revealed": self.shadow_revealed,
                "updated_at": self.updated_at,
            }
        )
        if self.game_title is not None:
            item["game_title"] = self.game_title
        if self.game_icon_url is not None:
            item["game_icon_url"] = self.game_icon_url
        if self.console_name is not None:
            item["console_name"] = self.console_name
        if self.shadow_game_id is not None:
            item["shadow_game_id"] = self.shadow_game_id
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> MonthlyChallenge:
        month = item.get("month") or str(item["sk"]).split("#", 1)[1]
        title = item.get("game_title")
        icon = item.get("game_icon_url")
        console = item.get("console_name")
        return cls(
            month=str(month),
            game_id=int(item.get("game_id", 0)),
            total_achievements=int(item.get("total_achievements", 0)),
            progression_achievement_ids=_str_list(item.get("progression_achievement_ids")),
            win_achievement_ids=_str_list(item.get("win_achievement_ids")),
            game_title=str(title) if title else None,
            game_icon_url=str(icon) if icon else None,
            console_name=str(console) if console else None,
            shadow_game_id=_int_or_none(item.get("shadow_game_id")),
            shadow_revealed=bool(item.get("shadow_revealed", False)),
            updated_at=str(item.get("updated_at", "")),
        )

    @property
    def year(self) -> int:
        return int(self.month.split("-", 1)[0])

    def window(self) -> tuple[datetime, datetime]:
        """Return the UTC start of the month and the start of the next month."""
        year, month = (int(part) for part in self.month.split("-", 1))
        starts_at = datetime(year, month, 1, tzinfo=UTC)
        if month == 12:
            ends_at = datetime(year + 1, 1, 1, tzinfo=UTC)
        else:
            ends_at = datetime(year, month + 1, 1, tzinfo=UTC)
        return starts_at, ends_at

    def ends_at(self) -> datetime:
        return self.window()[1] - timedelta(seconds=1)

    def counts_earned_at(self, earned_at: datetime) -> bool:
        # The last day of the previous month is accepted to absorb time zone slack.
        starts_at, ends_at = self.window()
        if earned_at.tzinfo is None:
            earned_at = earned_at.replace(tzinfo=UTC)
        return starts_at - timedelta(days=1) <= earned_at < ends_at

    def apply_game_info(
        self, title: str | None, icon_url: str | None, console_name: str | None
    ) -> None:
        self.game_title = title or self.game_title
        self.game_icon_url = icon_url or self.game_icon_url
        self.console_name = console_name or self.console_name
        self.updated_at = utc_now_iso()


@dataclass(slots=True)
class AnnualRecord:
    year: int
    total_points: int = 0
    challenge_points: int = 0
    community_points: int = 0
    mastery: int = 0
    beaten: int = 0
    participation: int = 0
    shadow_beaten: int = 0
    shadow_participation: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "year": self.year,
            "total_points": self.total_points,
            "challenge_points": self.challenge_points,
            "community_points": self.community_points,
            "mastery": self.mastery,
            "beaten": self.beaten,
            "participation": self.participation,
            "shadow_beaten": self.shadow_beaten,
            "shadow_participation": self.shadow_participation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> AnnualRecord:
        def number(name: str) -> int:
            return _int_or_none(data.get(name)) or 0

        return cls(
            year=number("year"),
            total_points=number("total_points"),
            challenge_points=number("challenge_points"),
            community_points=number("community_points"),
            mastery=number("mastery"),
            beaten=number("beaten"),
            participation=number("participation"),
            shadow_beaten=number("shadow_beaten"),
            shadow_participation=number("shadow_participation"),
        )


@dataclass(slots=True)
class RegisteredUser:
    ra_username: str
    discord_id: int | None
    registered_at: str
    annual_records: dict[int, AnnualRecord] = field(default_factory=dict)
    monthly_awards: dict[str, int] = field(default_factory=dict)

    PK_VALUE: ClassVar[str] = "USER"
    SK_TEMPLATE: ClassVar[str] = "USER#%s"

    @classmethod
    def key(cls, ra_username: str) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": cls.SK_TEMPLATE % ra_username.lower()}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = self.key(self.ra_username)
        item.update(
            {
                "ra_username": self.ra_username,
                "registered_at": self.registered_at,
                "annual_records": {
                    str(year): record.to_dict()
                    for year, record in sorted(self.annual_records.items())
                },
                "monthly_awards": dict(sorted(self.monthly_awards.items())),
            }
        )
        if self.discord_id is not None:
            item["discord_id"] = str(self.discord_id)
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> RegisteredUser:
        raw_records = item.get("annual_records") or {}
        records: dict[int, AnnualRecord] = {}
        for year, data in raw_records.items():  # type: ignore[union-attr]
            record = AnnualRecord.from_dict(data)
            record.year = int(year)
            records[record.year] = record
        raw_awards = item.get("monthly_awards") or {}
        awards = {
            str(month): _int_or_none(points) or 0
            for month, points in raw_awards.items()  # type: ignore[union-attr]
        }
        return cls(
            ra_username=str(item.get("ra_username") or str(item["sk"]).split("#", 1)[1]),
            discord_id=_int_or_none(item.get("discord_id")),
            registered_at=str(item.get("registered_at", "")),
            annual_records=records,
            monthly_awards={month: points for month, points in awards.items() if points > 0},
        )

    def annual_record(self, year: int) -> AnnualRecord | None:
        return self.annual_records.get(year)

    def record_monthly_award(self, month: str, points: int) -> bool:
        """Store the award points earned in ``month`` and rebuild that year's totals.

        Recording the same month twice replaces the earlier value, so finalizing a
        month again never double counts. Returns ``True`` when anything changed.
        """
        previous = self.monthly_awards.get(month, 0)
        if points > 0:
            self.monthly_awards[month] = points
        else:
            self.monthly_awards.pop(month, None)
        if previous == max(points, 0):
            return False
        self._rebuild_challenge_totals(int(month.split("-", 1)[0]))
        return True

    def _rebuild_challenge_totals(self, year: int) -> None:
        record = self.annual_records.setdefault(year, AnnualRecord(year))
        prefix = f"{year:04d}-"
        earned = [
            points for month, points in self.monthly_awards.items() if month.startswith(prefix)
        ]
        record.challenge_points = sum(earned)
        record.mastery = earned.count(Award.MASTERY)
        record.beaten = earned.count(Award.BEATEN)
        record.participation = earned.count(Award.PARTICIPATION)
        record.total_points = record.challenge_points + record.community_points


@dataclass(slots=True)
class TiebreakerBoard:
    board_id: str
    leaderboard_id: int
    game_title: str
    starts_at: str
    ends_at: str
    breaker_leaderboard_id: int | None = None
    breaker_game_title: str | None = None

    PK_VALUE: ClassVar[str] = "TIEBREAKER"
    SK_TEMPLATE: ClassVar[str] = "BOARD#%s"

    @classmethod
    def key(cls, board_id: str) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": cls.SK_TEMPLATE % board_id}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = self.key(self.board_id)
        item.update(
            {
                "board_id": self.board_id,
                "leaderboard_id": self.leaderboard_id,
                "game_title": self.game_title,
                "starts_at": self.starts_at,
                "ends_at": self.ends_at,
            }
        )
        if self.breaker_leaderboard_id is not None:
            item["breaker_leaderboard_id"] = self.breaker_leaderboard_id
            item["breaker_game_title"] = self.breaker_game_title or ""
        return item

    @classmethod
    def from_item(cls, item: dict[str, object]) -> TiebreakerBoard:
        breaker_title = item.get("breaker_game_title")
        return cls(
            board_id=str(item.get("board_id") or str(item["sk"]).split("#", 1)[1]),
            leaderboard_id=int(item.get("leaderboard_id", 0)),
            game_title=str(item.get("game_title", "")),
            starts_at=str(item.get("starts_at", "")),
            ends_at=str(item.get("ends_at", "")),
            breaker_leaderboard_id=_int_or_none(item.get("breaker_leaderboard_id")),
            breaker_game_title=str(breaker_title) if breaker_title else None,
        )

    @property
    def has_breaker(self) -> bool:
        return self.breaker_leaderboard_id is not None

    def is_active(self, now: datetime) -> bool:
        try:
            starts_at = parse_iso(self.starts_at)
            ends_at = parse_iso(self.ends_at)
        except ValueError:
            return False
        return starts_at <= now <= ends_at


__all__ = [
    "AnnualRecord",
    "ISO_FORMAT",
    "MonthlyChallenge",
    "RegisteredUser",
    "TiebreakerBoard",
    "parse_iso",
    "utc_now_iso",
]

from __future__ import annotations

import calendar
import re
from datetime import UTC, datetime


class InvalidValueError(ValueError):
    """Base exception for validation failures."""


class InvalidMonthError(InvalidValueError):
    """Raised when a challenge month cannot be understood."""


_MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\- ]{2,32}$")
_MONTH_NAMES = {
    name.lower(): index for index, name in enumerate(calendar.month_name) if name
}
_MONTH_NAMES.update(
    {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}
)

MIN_YEAR = 2000
MAX_YEAR = 2100


def month_key_for(moment: datetime) -> str:
    moment = moment.astimezone(UTC) if moment.tzinfo else moment
    return f"{moment.year:04d}-{moment.month:02d}"


def parse_month_key(raw: str, *, now: datetime | None = None) -> str:
    """Accept ``YYYY-MM`` or a month name (``march``, ``Mar 2024``)."""
    value = raw.strip()
    if not value:
        raise InvalidMonthError("A month is required")

    match = _MONTH_KEY_PATTERN.match(value)
    if match:
        year = validate_year(int(match.group(1)))
        month = int(match.group(2))
        if month < 1 or month > 12:
            raise InvalidMonthError(f"Month must be between 1 and 12: {value}")
        return f"{year:04d}-{month:02d}"

    reference = now or datetime.now(UTC)
    parts = value.replace(",", " ").split()
    month_number = _MONTH_NAMES.get(parts[0].lower())
    if month_number is None:
        raise InvalidMonthError(
            f"Unrecognised month: {value}. Use YYYY-MM or a month name"
        )
    year = reference.year
    if len(parts) > 1:
        try:
            year = int(parts[1])
        except ValueError as exc:
            raise InvalidMonthError(f"Invalid year: {parts[1]}") from exc
    if len(parts) > 2:
        raise InvalidMonthError(f"Unrecognised month: {value}")
    year = validate_year(year)
    return f"{year:04d}-{month_number:02d}"


def validate_year(year: int) -> int:
    if year < MIN_YEAR or year > MAX_YEAR:
        raise InvalidValueError(f"Year {year} is outside supported range ({MIN_YEAR}-{MAX_YEAR})")
    return year


def normalize_username(raw: str) -> str:
    username = raw.strip()
    if not username:
        raise InvalidValueError("RetroAchievements username cannot be empty")
    if not _USERNAME_PATTERN.match(username):
        raise InvalidValueError(f"Invalid RetroAchievements username: {username}")
    return username


__all__ = [
    "InvalidMonthError",
    "InvalidValueError",
    "month_key_for",
    "normalize_username",
    "parse_month_key",
    "validate_year",
]

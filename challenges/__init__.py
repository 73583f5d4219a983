"""Persisted monthly challenge records."""

from .models import (
    AnnualRecord,
    MonthlyChallenge,
    RegisteredUser,
    TiebreakerBoard,
    utc_now_iso,
)
from .storage import ChallengeStorage
from .validation import (
    InvalidMonthError,
    InvalidValueError,
    month_key_for,
    normalize_username,
    parse_month_key,
    validate_year,
)

__all__ = [
    "AnnualRecord",
    "MonthlyChallenge",
    "RegisteredUser",
    "TiebreakerBoard",
    "utc_now_iso",
    "ChallengeStorage",
    "InvalidMonthError",
    "InvalidValueError",
    "month_key_for",
    "normalize_username",
    "parse_month_key",
    "validate_year",
]

from datetime import UTC, datetime

import pytest

from challenges import (
    InvalidMonthError,
    InvalidValueError,
    month_key_for,
    normalize_username,
    parse_month_key,
    validate_year,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-03", "2025-03"),
        ("2024-1", "2024-01"),
        (" 2024-12 ", "2024-12"),
        ("march", "2025-03"),
        ("Mar", "2025-03"),
        ("December 2024", "2024-12"),
        ("feb, 2023", "2023-02"),
    ],
)
def test_parse_month_key_accepts_supported_forms(raw, expected):
    assert parse_month_key(raw, now=NOW) == expected


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("", "A month is required"),
        ("2025-13", "Month must be between 1 and 12"),
        ("2025-00", "Month must be between 1 and 12"),
        ("smarch", "Unrecognised month"),
        ("march twenty", "Invalid year"),
        ("march 2024 extra", "Unrecognised month"),
    ],
)
def test_parse_month_key_rejects_bad_values(raw, message):
    with pytest.raises(InvalidMonthError, match=message):
        parse_month_key(raw, now=NOW)


def test_parse_month_key_rejects_out_of_range_year():
    with pytest.raises(InvalidValueError, match="outside supported range"):
        parse_month_key("1999-05")


def test_month_key_for_converts_to_utc():
    moment = datetime.fromisoformat("2025-01-31T23:30:00-05:00")
    assert month_key_for(moment) == "2025-02"
    assert month_key_for(datetime(2024, 7, 4)) == "2024-07"


def test_validate_year_bounds():
    assert validate_year(2000) == 2000
    assert validate_year(2100) == 2100
    with pytest.raises(InvalidValueError):
        validate_year(2101)


def test_normalize_username():
    assert normalize_username("  Scott_Pilgrim.99 ") == "Scott_Pilgrim.99"
    with pytest.raises(InvalidValueError, match="cannot be empty"):
        normalize_username("   ")
    with pytest.raises(InvalidValueError, match="Invalid RetroAchievements username"):
        normalize_username("bad<name>")
    with pytest.raises(InvalidValueError):
        normalize_username("x")

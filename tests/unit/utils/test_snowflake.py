"""Tests for identifier parsing."""

import pytest

from src.core.utils.snowflake import MAX_SNOWFLAKE, parse_match_id, to_snowflake


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, 0), ("140000000000000000", 140000000000000000), (" 42 ", 42), (MAX_SNOWFLAKE, MAX_SNOWFLAKE)],
)
def test_to_snowflake_accepts_ints_and_decimal_strings(value, expected) -> None:
    assert to_snowflake(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "1.5", "-1", -1, MAX_SNOWFLAKE + 1, True])
def test_to_snowflake_rejects_malformed_ids(value) -> None:
    with pytest.raises(ValueError):
        to_snowflake(value)


def test_parse_match_id_accepts_combined_form() -> None:
    assert parse_match_id("ABCDEFGH:1234") == 1234
    assert parse_match_id("1234") == 1234
    assert parse_match_id(1234) == 1234

    with pytest.raises(ValueError):
        parse_match_id("ABCDEFGH:")

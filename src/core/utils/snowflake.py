"""Helpers for Discord snowflake identifiers.

Guild, user and match ids reach the store either as ints or as their
canonical decimal string form.
"""

from __future__ import annotations

from typing import Final

MAX_SNOWFLAKE: Final[int] = 2**63 - 1


def to_snowflake(value: int | str) -> int:
    """Normalise an identifier to the int stored in BIGINT columns.

    Raises:
        ValueError: If the value is not a non-negative 64-bit integer
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid identifier: {value!r}")
    number = int(value.strip()) if isinstance(value, str) else int(value)
    if not 0 <= number <= MAX_SNOWFLAKE:
        raise ValueError(f"Identifier out of range: {value!r}")
    return number


def parse_match_id(value: int | str) -> int:
    """Accept a plain match id or the combined ``CONNECTCODE:GAMEID`` form."""
    if isinstance(value, str) and ":" in value:
        value = value.rsplit(":", 1)[1]
    return to_snowflake(value)

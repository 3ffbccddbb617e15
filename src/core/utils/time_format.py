"""Formatting helpers for match timeline offsets."""

from __future__ import annotations

from datetime import timedelta


def format_offset(offset: timedelta | int) -> str:
    """Render an offset as ``MM:SS``; minutes keep counting past 59."""
    seconds = int(offset.total_seconds()) if isinstance(offset, timedelta) else int(offset)
    minutes, seconds = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{seconds:02d}"

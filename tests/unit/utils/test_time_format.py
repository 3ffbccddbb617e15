from datetime import timedelta

from src.core.utils.time_format import format_offset


def test_format_offset() -> None:
    assert format_offset(0) == "00:00"
    assert format_offset(75) == "01:15"
    assert format_offset(timedelta(minutes=61, seconds=5)) == "61:05"
    assert format_offset(-3) == "00:00"

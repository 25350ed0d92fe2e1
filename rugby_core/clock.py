"""Match clock formatting."""
from __future__ import annotations

from .types import ClockDisplay


def format_clock(seconds: int) -> str:
    """
    Format seconds as M:SS.

    Example:
        >>> format_clock(90)
        '1:30'
        >>> format_clock(2700)
        '45:00'
    """
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def clock_display(elapsed_seconds: int, half_duration: int) -> ClockDisplay:
    """Main clock plus the '+M:SS' overage once the half's time is up.

    The elapsed counter itself is never capped; only the display splits.
    """
    is_overtime = elapsed_seconds > half_duration
    return {
        "main": format_clock(elapsed_seconds),
        "overtime": f"+{format_clock(elapsed_seconds - half_duration)}" if is_overtime else None,
        "isOvertime": is_overtime,
    }

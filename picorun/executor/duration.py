import math


def format_duration(ms: float) -> str:
    """Render a duration in milliseconds as ``"12s"`` or ``"3m 4.50s"``."""
    seconds = ms / 1000
    if seconds < 60:
        # Half-up, not banker's rounding
        return f"{math.floor(seconds + 0.5)}s"

    minutes = math.floor(seconds / 60)
    remaining = seconds % 60
    return f"{minutes}m {remaining:.2f}s"

"""Human-readable formatting helpers."""

from datetime import timedelta


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def format_duration(duration: timedelta) -> str:
    """Render a duration using its largest whole unit.

    Examples: "24 hours" → "1 day", 90 minutes → "1 hour",
    45 seconds → "45 seconds".

    Args:
        duration: Non-negative duration.

    Returns:
        Rounded-down duration such as "2 days" or "30 minutes".
    """
    seconds = int(duration.total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    if minutes > 0:
        return _plural(minutes, "minute")
    return _plural(seconds, "second")

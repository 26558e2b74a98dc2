"""
Helper functions for formatting data into human-readable strings.
"""

from datetime import datetime


def format_timestamp(value: datetime | None) -> str:
    """Formats a record timestamp as 'YYYY-MM-DD HH:MM', or '-' when unset."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


def truncate(text: str | None, width: int = 48) -> str:
    """Shortens text to the given width, ending with an ellipsis if cut."""
    if not text:
        return ""
    text = " ".join(text.split())
    if len(text) <= width:
        return text
    return text[: max(0, width - 1)].rstrip() + "…"


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Hides all but the first few characters of a secret."""
    if not value:
        return "[dim]not set[/dim]"
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "…"


def format_level_bar(level: int, width: int = 10) -> str:
    """Renders a 0-100 proficiency level as a small bar, e.g. '███████░░░ 70'."""
    level = max(0, min(100, level))
    filled = round(level / 100 * width)
    return "█" * filled + "░" * (width - filled) + f" {level}"

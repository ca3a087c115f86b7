"""Utility functions for taskpad."""

import logging
import re
import webbrowser
from datetime import date, datetime
from urllib.parse import urlsplit

from taskpad.config import DEFAULT_DATE_FORMAT

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#\w+", re.ASCII)


def has_tags(content: str) -> bool:
    """Return True if content contains at least one #tag."""
    return HASHTAG_PATTERN.search(content) is not None


def ensure_default_tag(content: str, default_tag: str) -> str:
    """Append #default_tag to content that has no tags of its own.

    Examples:
        >>> ensure_default_tag("buy milk", "work")
        "buy milk #work"
        >>> ensure_default_tag("buy milk #home", "work")
        "buy milk #home"
    """
    if has_tags(content):
        return content
    return f"{content} #{default_tag}"


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string (or a full ISO timestamp) into a date.

    Raises:
        ValueError: If the value is not a recognised date.
    """
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValueError(
            f"Invalid date format: {value}. Use YYYY-MM-DD format."
        ) from None


def format_date(value: date | datetime | str | None, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    """Format a date for display, or "Invalid date" if it can't be read."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = parse_date(value)
        except ValueError:
            return "Invalid date"
    return value.strftime(fmt)


def relative_date(day: date, today: date | None = None, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    """Describe a scheduled day relative to today.

    Returns "Today", "Overdue", "Tomorrow", "In N days" for the coming week,
    and the formatted date beyond that.
    """
    today = today or date.today()
    if day == today:
        return "Today"
    if day < today:
        return "Overdue"

    diff_days = (day - today).days
    if diff_days == 1:
        return "Tomorrow"
    if diff_days <= 7:
        return f"In {diff_days} days"
    return format_date(day, fmt)


def get_domain(url: str) -> str | None:
    """Return the host name of a URL, or None if it has none."""
    return urlsplit(url).hostname or None


def shorten_url(url: str, max_length: int = 50) -> str:
    """Shorten a URL for display, keeping its domain visible."""
    if len(url) <= max_length:
        return url

    parts = urlsplit(url)
    domain = parts.hostname or ""
    path = parts.path + (f"?{parts.query}" if parts.query else "")

    if len(domain) >= max_length - 3:
        return domain[: max_length - 3] + "..."

    available = max_length - len(domain) - 3
    if len(path) > available:
        return domain + path[:available] + "..."
    return url


def open_url(url: str) -> bool:
    """Open a URL in the default browser; returns whether a browser was found."""
    opened = webbrowser.open(url)
    if not opened:
        logger.warning("No browser available to open %s", url)
    return opened

"""
Utility functions for phasekit.
"""

from datetime import date, datetime
from typing import Optional

import click

from phasekit.constants import DATE_FORMAT_ERROR, get_date_formats


def parse_date(date_string: str) -> Optional[date]:
    """
    Parse a date string using multiple supported formats.

    Args:
        date_string: The date string to parse.

    Returns:
        A date if parsing succeeds, None otherwise.

    Examples:
        >>> parse_date("2025-01-31")  # ISO 8601
        >>> parse_date("31/01/2025")  # DD/MM/YYYY
        >>> parse_date("31 January 2025")  # DD Month YYYY
        >>> parse_date("January 31, 2025")  # Month DD, YYYY
    """
    for fmt in get_date_formats():
        try:
            return datetime.strptime(date_string.strip(), fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: date) -> str:
    """
    Format a date to the standard ISO 8601 format.

    Args:
        value: The date to format.

    Returns:
        A string in YYYY-MM-DD format.
    """
    return value.strftime("%Y-%m-%d")


def format_hours(hours: float) -> str:
    """Format an hours value for display, e.g. ``12.5h`` or ``8h``."""
    if float(hours).is_integer():
        return f"{int(hours)}h"
    return f"{hours:.1f}h"


def parse_date_option(ctx, param, value: Optional[str]) -> Optional[date]:
    """Click callback converting a date option with ``parse_date``.

    Raises:
        click.BadParameter: If the value matches none of the supported formats.
    """
    if value is None:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise click.BadParameter(DATE_FORMAT_ERROR)
    return parsed

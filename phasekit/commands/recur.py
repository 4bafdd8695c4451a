"""
Recurrence command group for phasekit.

Preview and validate recurrence rules without touching any project.
"""
from typing import Optional

import click

from phasekit.constants import DAY_NAMES
from phasekit.exceptions import ValidationError
from phasekit.models.phase import RecurrenceConfig
from phasekit.rules.dates import day_of_week
from phasekit.rules.recurrence import (
    describe_recurrence,
    generate_occurrences,
    validate_recurrence_config,
)
from phasekit.utils import format_date, parse_date_option


def recurrence_options(func):
    """Shared options describing a recurrence rule."""
    options = [
        click.option("-t", "--type", "recurrence_type", required=True,
                     type=click.Choice(["daily", "weekly", "monthly"]),
                     help="Recurrence frequency."),
        click.option("-i", "--interval", type=int, default=1, show_default=True,
                     help="Every N days/weeks/months."),
        click.option("--weekday", type=int, help="Weekly: day of week, 0 = Sunday."),
        click.option("--pattern", type=click.Choice(["date", "dayOfWeek"]),
                     help="Monthly: pick by date or by weekday."),
        click.option("--month-date", type=int, help="Monthly date pattern: day of month."),
        click.option("--week-of-month", type=int,
                     help="Monthly weekday pattern: 1-4, 5 = second-last, 6 = last."),
        click.option("--month-weekday", type=int,
                     help="Monthly weekday pattern: day of week, 0 = Sunday."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(recurrence_type: str, interval: int, weekday: Optional[int],
                 pattern: Optional[str], month_date: Optional[int],
                 week_of_month: Optional[int], month_weekday: Optional[int]) -> RecurrenceConfig:
    """Build a RecurrenceConfig from the shared recurrence options."""
    return RecurrenceConfig(
        type=recurrence_type,
        interval=interval,
        weekly_day_of_week=weekday,
        monthly_pattern=pattern,
        monthly_date=month_date,
        monthly_week_of_month=week_of_month,
        monthly_day_of_week=month_weekday,
    )


@click.group()
def recur():
    """Preview and validate recurrence rules."""
    pass


@recur.command(name="preview")
@recurrence_options
@click.option("-s", "--start", required=True, callback=parse_date_option, help="Series start date.")
@click.option("-e", "--end", callback=parse_date_option, help="Last date (inclusive).")
@click.option("-m", "--max", "max_occurrences", type=int, help="Maximum occurrences to list.")
def preview(recurrence_type, interval, weekday, pattern, month_date, week_of_month,
            month_weekday, start, end, max_occurrences):
    """List the occurrences a rule produces."""
    config = build_config(recurrence_type, interval, weekday, pattern, month_date,
                          week_of_month, month_weekday)
    try:
        occurrences = generate_occurrences(config, start, end, max_occurrences=max_occurrences)
    except ValidationError as e:
        raise click.ClickException(f"Validation Error: {e}")

    click.echo(describe_recurrence(config))
    if not occurrences:
        click.echo("No occurrences in range.")
        return
    for occurrence in occurrences:
        weekday_name = DAY_NAMES[day_of_week(occurrence.date)]
        click.echo(f"  #{occurrence.number:<4} {format_date(occurrence.date)}  {weekday_name}")


@recur.command(name="validate")
@recurrence_options
def validate(recurrence_type, interval, weekday, pattern, month_date, week_of_month, month_weekday):
    """Check a rule and print any problems."""
    config = build_config(recurrence_type, interval, weekday, pattern, month_date,
                          week_of_month, month_weekday)
    errors = validate_recurrence_config(config)
    if errors:
        for error in errors:
            click.echo(f"  ✗ {error}", err=True)
        raise click.ClickException(f"{len(errors)} problem(s) found.")
    click.echo(f"Valid: {describe_recurrence(config)}")

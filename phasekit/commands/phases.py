"""
Phases command group for phasekit.

Timeline calculations on ad-hoc dates.
"""
import click

from phasekit.rules.dates import day_difference
from phasekit.rules.hierarchy import calculate_phase_split
from phasekit.utils import format_date, format_hours, parse_date_option


@click.group()
def phases():
    """Calculate phase splits."""
    pass


@phases.command(name="split")
@click.option("-s", "--start", required=True, callback=parse_date_option, help="Project start date.")
@click.option("-e", "--end", required=True, callback=parse_date_option, help="Project end date.")
@click.option("-b", "--budget", "budget_hours", type=float, default=0, help="Total budget in hours.")
def split(start, end, budget_hours):
    """Show how a project splits into two phases at its midpoint."""
    if end < start:
        raise click.ClickException("Project end date cannot be before its start date.")

    for draft in calculate_phase_split(start, end, budget_hours):
        days = day_difference(draft.start_date, draft.end_date) + 1
        click.echo(
            f"{draft.name}: {format_date(draft.start_date)} -> {format_date(draft.end_date)} "
            f"({days} days, {format_hours(draft.time_allocation_hours)})"
        )

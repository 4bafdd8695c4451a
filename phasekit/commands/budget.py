"""
Budget command group for phasekit.

Runs the budget gate on ad-hoc numbers.
"""
from datetime import date

import click

from phasekit.models.phase import Phase
from phasekit.rules.budget import analyze_budget, would_exceed_budget
from phasekit.utils import format_hours


@click.group()
def budget():
    """Check allocations against a budget."""
    pass


@budget.command(name="check")
@click.option("-b", "--budget", "budget_hours", type=float, required=True, help="Project budget in hours.")
@click.option("-x", "--existing", type=float, multiple=True, help="Hours of an existing phase (repeatable).")
@click.option("-c", "--candidate", type=float, required=True, help="Hours of the phase being added.")
def check(budget_hours, existing, candidate):
    """Check whether adding a phase would exceed the budget."""
    phases = [
        Phase(project_id="adhoc", name=f"Existing {index}", end_date=date.today(),
              time_allocation_hours=hours)
        for index, hours in enumerate(existing, start=1)
    ]
    result = would_exceed_budget(phases, candidate, budget_hours)
    analysis = analyze_budget(phases, budget_hours)

    click.echo(f"Budget:             {format_hours(budget_hours)}")
    click.echo(f"Current allocation: {format_hours(result.current_allocation)} "
               f"({analysis.utilization:.0f}%)")
    click.echo(f"New allocation:     {format_hours(result.new_allocation)}")
    if result.would_exceed:
        raise click.ClickException(result.error)
    click.echo(f"✓ Fits. {format_hours(budget_hours - result.new_allocation)} remaining.")

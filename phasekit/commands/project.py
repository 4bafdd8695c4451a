"""
Project command group for phasekit.

Manages projects and their phases in the .phasekit/ JSON store through the
lifecycle manager.
"""
import asyncio
from pathlib import Path

import click

from phasekit.commands.recur import build_config, recurrence_options
from phasekit.constants import ConfigManager
from phasekit.exceptions import ConfigurationError, NotFoundError, PhasekitError
from phasekit.managers.lifecycle_manager import LifecycleManager, OperationResult
from phasekit.managers.notifications import ClickNotifier
from phasekit.managers.storage_manager import JsonPhaseStorage
from phasekit.managers.workflow import LoadUpdateMode, MilestoneWorkflow
from phasekit.models.project import Project, validate_project_dates
from phasekit.rules.budget import analyze_budget
from phasekit.rules.detection import LegacyNumberedDetection, TemplateDetection
from phasekit.rules.recurrence import describe_recurrence
from phasekit.utils import format_date, format_hours, parse_date_option


def _storage(ctx: click.Context) -> JsonPhaseStorage:
    try:
        return JsonPhaseStorage(data_dir=Path(ctx.obj["data_dir"]))
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration Error: {e}")


def _manager(storage: JsonPhaseStorage) -> LifecycleManager:
    return LifecycleManager(
        storage,
        notifier=ClickNotifier(),
        config=ConfigManager(data_dir=storage.data_dir),
    )


def _get_project(storage: JsonPhaseStorage, project_ref: str) -> Project:
    try:
        return storage.get_project(project_ref)
    except NotFoundError as e:
        raise click.ClickException(str(e))
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")


def _finish(result: OperationResult) -> None:
    """Turn a failed operation into a non-zero exit."""
    if result.requires_confirmation:
        raise click.ClickException(f"{result.error} (use --yes)")
    if not result.success:
        raise click.ClickException(result.error or "Operation failed.")


@click.group()
def project():
    """Manage projects, milestones and recurring series."""
    pass


@project.command(name="create")
@click.option("-n", "--name", required=True, help="Project name.")
@click.option("-s", "--start", required=True, callback=parse_date_option, help="Start date.")
@click.option("-e", "--end", callback=parse_date_option, help="End date (omit for continuous).")
@click.option("-b", "--budget", "budget_hours", type=float, default=0, help="Estimated hours.")
@click.option("--continuous", is_flag=True, help="Project has no fixed end.")
@click.pass_context
def create(ctx, name, start, end, budget_hours, continuous):
    """Create a project."""
    storage = _storage(ctx)
    new_project = Project(
        name=name, start_date=start, end_date=end, estimated_hours=budget_hours, continuous=continuous
    )
    errors = validate_project_dates(new_project)
    if errors:
        raise click.ClickException(f"Validation Error: {'; '.join(errors)}")
    try:
        storage.save_project(new_project)
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")
    click.echo(f"Project '{name}' created successfully.")


@project.command(name="show")
@click.argument("project_ref")
@click.pass_context
def show(ctx, project_ref):
    """Show a project's phases, budget and recurring series."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    state = asyncio.run(_manager(storage).load(current))

    end = "continuous" if current.continuous else format_date(current.end_date)
    click.echo(f"{current.name}  {format_date(current.start_date)} -> {end}")

    if isinstance(state.detection, TemplateDetection):
        template = state.detection.template
        click.echo(f"Recurring: {template.name}, {describe_recurrence(template.recurring_config)}, "
                   f"{format_hours(template.time_allocation_hours)} each")
    elif isinstance(state.detection, LegacyNumberedDetection):
        click.echo(f"Recurring (detected): {state.detection.base_name}, "
                   f"{state.detection.type} every {state.detection.interval}")

    for phase in sorted(state.budgeted_phases, key=lambda p: p.end_date):
        span = (f"{format_date(phase.start_date)} -> " if phase.start_date else "") + format_date(phase.end_date)
        click.echo(f"  {phase.name:<24} {span:<26} {format_hours(phase.time_allocation_hours)}")

    if not current.continuous:
        analysis = analyze_budget(state.budgeted_phases, current.estimated_hours)
        click.echo(
            f"Budget: {format_hours(analysis.total_allocated)} of {format_hours(current.estimated_hours)} "
            f"({analysis.utilization:.0f}%)"
        )
        if analysis.is_over_budget:
            click.echo(f"  ⚠ Over budget by {format_hours(analysis.overage)}", err=True)


@project.command(name="add-milestone")
@click.argument("project_ref")
@click.option("-n", "--name", required=True, help="Milestone name.")
@click.option("-d", "--due", required=True, callback=parse_date_option, help="Due date.")
@click.option("-h", "--hours", type=float, default=0, help="Estimated hours.")
@click.pass_context
def add_milestone(ctx, project_ref, name, due, hours):
    """Add a milestone, checked against the project budget."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    _finish(asyncio.run(_manager(storage).add_milestone(current, name, due, hours)))


@project.command(name="recur")
@click.argument("project_ref")
@click.option("-n", "--name", required=True, help="Series name.")
@click.option("-h", "--hours", type=float, required=True, help="Hours per occurrence.")
@recurrence_options
@click.option("-y", "--yes", is_flag=True, help="Delete existing phases without asking.")
@click.pass_context
def recur_series(ctx, project_ref, name, hours, recurrence_type, interval, weekday, pattern,
                 month_date, week_of_month, month_weekday, yes):
    """Turn the project into a recurring milestone series."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    config = build_config(recurrence_type, interval, weekday, pattern, month_date,
                          week_of_month, month_weekday)
    manager = _manager(storage)
    workflow = MilestoneWorkflow()
    workflow.begin_recurrence()
    _finish(asyncio.run(workflow.run(
        lambda confirm: manager.create_recurring_template(current, name, hours, config, confirm=confirm),
        confirm=yes,
    )))


@project.command(name="set-load")
@click.argument("project_ref")
@click.option("-h", "--hours", type=float, required=True, help="New hours per occurrence.")
@click.option("--mode", type=click.Choice([m.value for m in LoadUpdateMode]),
              default=LoadUpdateMode.FORWARD.value, show_default=True,
              help="forward: future occurrences only; both: regenerate every occurrence.")
@click.pass_context
def set_load(ctx, project_ref, hours, mode):
    """Change the hours of a recurring series."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    manager = _manager(storage)
    workflow = MilestoneWorkflow()
    load_mode = LoadUpdateMode(mode)
    workflow.begin_load_edit(load_mode)
    _finish(asyncio.run(workflow.run(
        lambda confirm: manager.update_recurring_load(current, hours, load_mode)
    )))


@project.command(name="ensure")
@click.argument("project_ref")
@click.option("-u", "--until", callback=parse_date_option, help="Make sure occurrences reach this date.")
@click.pass_context
def ensure(ctx, project_ref, until):
    """Materialize the next batch of recurring occurrences."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    try:
        result = asyncio.run(_manager(storage).ensure_occurrences_available(current, until))
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")
    click.echo(f"{result.created} occurrence(s) generated.")


@project.command(name="delete-recurring")
@click.argument("project_ref")
@click.confirmation_option(prompt="Delete the recurring series and all its milestones?")
@click.pass_context
def delete_recurring(ctx, project_ref):
    """Delete the recurring series and all its occurrences."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    _finish(asyncio.run(_manager(storage).delete_recurring_series(current)))


@project.command(name="split")
@click.argument("project_ref")
@click.option("-y", "--yes", is_flag=True, help="Delete existing milestones without asking.")
@click.pass_context
def split_project(ctx, project_ref, yes):
    """Split the project estimate into two phases."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    manager = _manager(storage)
    workflow = MilestoneWorkflow()
    workflow.begin_split()
    _finish(asyncio.run(workflow.run(
        lambda confirm: manager.split_estimate(current, confirm=confirm), confirm=yes
    )))


@project.command(name="add-phase")
@click.argument("project_ref")
@click.pass_context
def add_phase(ctx, project_ref):
    """Append a phase by shrinking the last one."""
    storage = _storage(ctx)
    current = _get_project(storage, project_ref)
    _finish(asyncio.run(_manager(storage).add_phase(current)))

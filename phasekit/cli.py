"""
CLI for phasekit.

Storage lives in the .phasekit/ directory unless --dir points elsewhere.
"""
import logging

import click

from phasekit.commands.budget import budget
from phasekit.commands.phases import phases
from phasekit.commands.project import project
from phasekit.commands.recur import recur


@click.group()
@click.option("--dir", "data_dir", default=".phasekit", show_default=True,
              type=click.Path(file_okay=False), help="Data directory.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx, data_dir, verbose):
    """Plan project phases, recurring milestones and budgets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


cli.add_command(recur)
cli.add_command(budget)
cli.add_command(phases)
cli.add_command(project)


if __name__ == '__main__':
    cli()

"""CLI entrypoint for yakuza."""

import logging
from pathlib import Path

import rich_click as click

from yakuza import __version__
from yakuza.config import Settings
from yakuza.controllers import PlanCliController, PlanCommand
from yakuza.jobs.errors import YakuzaError

click.rich_click.USE_MARKDOWN = True
PLAN_CONTROLLER = PlanCliController()


@click.group()
@click.version_option(version=__version__, prog_name="yakuza")
def yakuza() -> None:
    """Yakuza job runtime CLI."""

    try:
        settings = Settings.from_env()
        settings.validate()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(level=settings.log_level)


@yakuza.command("plan")
@click.argument("plan_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--task",
    "task_ids",
    multiple=True,
    help="Task id to enqueue. Can be repeated; order matters.",
)
@click.option(
    "--param",
    "params",
    multiple=True,
    help="Job parameter as key=value. Can be repeated.",
)
@click.option("--job-uid", default="cli", show_default=True, help="Job uid.")
def plan(plan_path: Path, task_ids: tuple[str, ...], params: tuple[str, ...], job_uid: str) -> None:
    """Dry-run a job over a JSON plan file and print its execution blocks."""

    try:
        lines = PLAN_CONTROLLER.dry_run(
            PlanCommand(
                plan_path=plan_path,
                task_ids=task_ids,
                params=params,
                job_uid=job_uid,
            ),
        )
    except (YakuzaError, ValueError, TypeError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    yakuza()

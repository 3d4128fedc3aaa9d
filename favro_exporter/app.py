"""Typer CLI entrypoint for favro-exporter."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Callable, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigError, ConfigRepository, ExportConfig
from .infra import DestinationError, prepare_destination
from .logging_conf import (
    ERROR_LOG_NAME,
    EXPORT_LOG_NAME,
    available_logs,
    configure_logging,
    default_log_dir,
    tail_log,
)
from .orchestrator import ExportSummary, ExportTraversal
from .ui import ExportActivity

app = typer.Typer(
    help="Export a Favro account to local JSON files and attachments.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Configuration file helpers.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect export log files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

TraversalFactory = Callable[[ExportConfig, Path, ExportActivity], ExportTraversal]


def _default_traversal_factory(
    config: ExportConfig, destination: Path, activity: ExportActivity
) -> ExportTraversal:
    return ExportTraversal.from_config(config, destination, activity=activity)


@dataclass
class AppState:
    repository: ConfigRepository
    traversal_factory: TraversalFactory
    log_dir: Path


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    log_dir = default_log_dir()
    configure_logging(verbose=verbose, log_dir=log_dir)
    return AppState(
        repository=repository,
        traversal_factory=_default_traversal_factory,
        log_dir=log_dir,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stderr, "isatty", lambda: False)())


def _render_summary(summary: ExportSummary, destination: Path) -> Table:
    table = Table(title=f"Export summary · {destination}", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    rows = (
        ("API requests", summary.requests),
        ("Collections fetched", summary.fetches),
        ("Truncated fetches", summary.truncated_fetches),
        ("Entities", summary.entities),
        ("Files written", summary.files_written),
        ("Write failures", summary.write_failures),
        ("Attachments downloaded", summary.attachments_downloaded),
        ("Attachment failures", summary.attachments_failed),
        ("Rate-limit waits", summary.rate_limit_waits),
    )
    for label, value in rows:
        table.add_row(label, str(value))
    return table


app.add_typer(config_app, name="config", help="Create configuration templates.")
app.add_typer(log_app, name="log", help="List or tail log files.")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("export", help="Run a full export into the destination directory.")
def export(
    ctx: typer.Context,
    configuration: Annotated[
        Path,
        typer.Option("--configuration", "-c", help="YAML, JSON or .properties configuration file."),
    ],
    destination: Annotated[
        Path,
        typer.Option("--destination", "-d", help="Directory receiving the exported files."),
    ],
    organization: Annotated[
        Optional[str],
        typer.Option("--organization", help="Only export this organization id."),
    ] = None,
    no_clean: Annotated[
        bool,
        typer.Option("--no-clean", help="Keep existing files in the destination directory."),
    ] = False,
    no_attachments: Annotated[
        bool,
        typer.Option("--no-attachments", help="Skip downloading card attachments."),
    ] = False,
    quiet: Annotated[bool, typer.Option("--quiet", help="Only print a one-line result.")] = False,
) -> None:
    state = _get_state(ctx)
    try:
        config = state.repository.load(configuration)
    except ConfigError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)

    overrides: dict[str, object] = {}
    if organization:
        overrides["organization_id"] = organization
    if no_clean:
        overrides["clean_destination"] = False
    if no_attachments:
        overrides["download_attachments"] = False
    if overrides:
        config = config.model_copy(update=overrides)

    try:
        dest_dir = prepare_destination(destination, clean=config.clean_destination)
    except DestinationError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)

    activity = ExportActivity(enabled=_progress_default_enabled() and not quiet)
    traversal = state.traversal_factory(config, dest_dir, activity)
    try:
        summary = traversal.run()
    finally:
        traversal.close()

    degraded = summary.truncated_fetches or summary.write_failures or summary.attachments_failed
    if quiet:
        console.print(
            f"Export finished: {summary.files_written} files, "
            f"{summary.attachments_downloaded} attachments"
            + (" (partial, see logs)" if degraded else "")
        )
        return
    console.print(_render_summary(summary, dest_dir))
    if degraded:
        console.print(
            f"Some steps failed; details are in {state.log_dir / ERROR_LOG_NAME}.",
            style="yellow",
        )


@config_app.command("init", help="Write a configuration template.")
def config_init(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Target file (.yaml, .yml or .json)."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    state = _get_state(ctx)
    if path.exists() and not force:
        console.print(f"{path} already exists; pass --force to overwrite.", style="yellow")
        raise typer.Exit(code=1)
    template = ExportConfig(user="you@example.com", api_token="<api token>")
    try:
        written = state.repository.save(template, path)
    except ConfigError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    console.print(f"Configuration template written to {written}.", style="green")


@log_app.command("list", help="List available log files.")
def log_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    logs = list(available_logs(state.log_dir))
    if not logs:
        console.print("No log files yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    table.add_column("Size", justify="right")
    for path in logs:
        table.add_row(path.name, str(path.stat().st_size))
    console.print(table)


@log_app.command("show", help="Show the last lines of the export log.")
def log_show(
    ctx: typer.Context,
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
) -> None:
    state = _get_state(ctx)
    path = state.log_dir / (ERROR_LOG_NAME if errors else EXPORT_LOG_NAME)
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

"""CLI entry point for pipeline orchestration.

Usage:
    pipesync list
    pipesync run tap-gitlab-to-target-postgres --wait
    pipesync watch
    pipesync delete tap-gitlab-to-target-postgres
    pipesync log tap-gitlab-to-target-postgres
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

from pipesync.api.client import OrchestrationsClient
from pipesync.api.remote import ThreadedExecutionApi
from pipesync.errors import RemoteCallFailure
from pipesync.models.pipeline import Pipeline
from pipesync.orchestration import Orchestrator
from pipesync.timestamps import format_iso8601

app = typer.Typer(help="Pipeline orchestration CLI", no_args_is_help=True)
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _build_orchestrator() -> Orchestrator:
    return Orchestrator(ThreadedExecutionApi(OrchestrationsClient()))


def _state(p: Pipeline) -> str:
    if p.is_deleting:
        return "[dim]deleting[/dim]"
    if p.is_saving:
        return "[dim]saving[/dim]"
    if p.is_running:
        return "[cyan]running[/cyan]"
    if p.has_error:
        return "[red]failed[/red]"
    if p.has_ever_succeeded:
        return "[green]succeeded[/green]"
    return "never run"


def _pipeline_table(pipelines: list[Pipeline], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Name")
    table.add_column("Extractor")
    table.add_column("Loader")
    table.add_column("State")
    table.add_column("Started")
    table.add_column("Ended")
    for p in pipelines:
        table.add_row(
            p.name,
            p.extractor or "",
            p.loader or "",
            _state(p),
            format_iso8601(p.started_at) or "",
            format_iso8601(p.ended_at) or "",
        )
    return table


def _find_or_exit(orch: Orchestrator, name: str) -> Pipeline:
    pipeline = orch.store.find_by_name(name)
    if pipeline is None:
        console.print(f"[red]Unknown pipeline: {name}[/red]")
        raise typer.Exit(1)
    return pipeline


@app.command("list")
def list_pipelines(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """List pipeline schedules and their last known status."""
    _setup_logging(log_level)

    async def _main() -> list[Pipeline]:
        orch = _build_orchestrator()
        try:
            await orch.load_schedules()
            return orch.store.sorted_by_extractor()
        finally:
            orch.shutdown()

    try:
        pipelines = asyncio.run(_main())
    except RemoteCallFailure as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not pipelines:
        console.print("[dim]No pipeline schedules found.[/dim]")
        return
    console.print(_pipeline_table(pipelines, "Pipeline Schedules"))


@app.command()
def run(
    name: str = typer.Argument(..., help="Pipeline schedule name"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Poll until the job completes"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Start a pipeline job."""
    _setup_logging(log_level)

    async def _main() -> Pipeline:
        orch = _build_orchestrator()
        try:
            await orch.load_schedules()
            pipeline = _find_or_exit(orch, name)
            if pipeline.poll_job_id in orch.registry:
                console.print(f"[yellow]{name} is already running; waiting for it[/yellow]")
            else:
                poller = await orch.run(pipeline)
                console.print(f"[cyan]▶ Started job {poller.job_id}[/cyan]")
            if wait:
                await orch.wait_until_idle()
            return pipeline
        finally:
            orch.shutdown()

    try:
        pipeline = asyncio.run(_main())
    except RemoteCallFailure as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not wait:
        return
    if pipeline.has_error:
        console.print(f"[red]✗ {name} failed[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ {name} finished at {format_iso8601(pipeline.ended_at)}[/green]")


@app.command()
def watch(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Resume polling every running pipeline and wait until all complete."""
    _setup_logging(log_level)

    async def _main() -> list[Pipeline]:
        orch = _build_orchestrator()
        try:
            await orch.load_schedules()
            watched = orch.store.running()
            if watched:
                console.print(f"[cyan]▶ Watching {len(watched)} running pipeline(s)...[/cyan]")
                await orch.wait_until_idle()
            return watched
        finally:
            orch.shutdown()

    try:
        watched = asyncio.run(_main())
    except RemoteCallFailure as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not watched:
        console.print("[dim]No running pipelines.[/dim]")
        return
    console.print(_pipeline_table(watched, "Completed Pipelines"))


@app.command()
def delete(
    name: str = typer.Argument(..., help="Pipeline schedule name"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Delete a pipeline schedule."""
    _setup_logging(log_level)

    async def _main() -> None:
        orch = _build_orchestrator()
        try:
            await orch.load_schedules()
            await orch.delete(_find_or_exit(orch, name))
        finally:
            orch.shutdown()

    try:
        asyncio.run(_main())
    except RemoteCallFailure as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Deleted {name}[/green]")


@app.command()
def log(
    job_id: str = typer.Argument(..., help="Job identifier (the pipeline name)"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Print a job's log."""
    _setup_logging(log_level)

    try:
        text = asyncio.run(_build_orchestrator().get_job_log(job_id))
    except RemoteCallFailure as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(text, markup=False, highlight=False)


@app.callback()
def _callback() -> None:
    """Track pipeline jobs on the execution service."""


if __name__ == "__main__":
    app()

import asyncio
import logging
import os
from typing import Optional
import typer
from rich.logging import RichHandler
from rich.markup import escape
from .config import Settings
from .errors import JobError
from .jobs import JOBS
from .terminal import console


app = typer.Typer(help="Browser automation jobs: staged pipelines and interactive capture sessions")


@app.command()
def run(
    job: Optional[str] = typer.Argument(None, help="Name of the job to run (asks when omitted)"),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Remote-debugging port of a running Chrome (launches Chrome when omitted)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging")
):
    """Run a job."""

    if job is None:
        job = _pick_job()

    if job not in JOBS:
        console.print(f"[red]Invalid job name: {escape(job)}[/red]")
        _print_jobs()
        raise typer.Exit(1)

    settings = Settings.from_env(job_name=job, chrome_port=port, log_level="DEBUG" if debug else None)
    _configure_logging(settings.log_level)
    os.environ["JOB_NAME"] = job

    try:
        asyncio.run(JOBS[job](settings))
    except JobError as e:
        console.print(f"[red]Job \"{job}\" failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_jobs():
    """List available jobs."""
    _print_jobs()


def _print_jobs() -> None:
    console.print("[cyan]Available jobs:[/cyan]")
    for name in JOBS:
        console.print(f"  - {name}")


def _pick_job() -> str:
    names = list(JOBS)
    console.print("Please choose a job to run:\n")
    for i, name in enumerate(names, 1):
        console.print(f"  {i}. {name}")
    choice = typer.prompt("\nEnter number", type=int)
    if not 1 <= choice <= len(names):
        console.print("[red]Invalid choice[/red]")
        raise typer.Exit(1)
    return names[choice - 1]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


if __name__ == "__main__":
    app()

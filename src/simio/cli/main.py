"""
SimIO CLI

Command-line interface for the ingestion pipeline and its simulator.

Usage:
    simio run                 Run against Kafka, Redis and output.txt
    simio run --simulate      Run against the seeded simulator
    simio dashboard           Watch a simulated run live
    simio replay --seed 42    Run a seed twice and compare the traces
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from simio import __version__
from simio.core.config import Settings, get_settings
from simio.core.models import PipelineReport
from simio.dst import SimConfig, SimIO, default_fault_table, replay as replay_seed
from simio.errors import PipelineFatalError
from simio.facade import IOFacade, RealIO
from simio.pipeline import Pipeline

logger = logging.getLogger(__name__)

# Create the main app
app = typer.Typer(
    name="simio",
    help="SimIO - Deterministic fault injection for an ingestion pipeline",
    add_completion=False,
)

# Console for rich output
console = Console()


def configure_logging(settings: Settings, log_file: Optional[str] = None) -> None:
    """Send logs to the console, or to `log_file` when the screen is taken."""
    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(console=console, show_path=False)
    logging.basicConfig(level=settings.log_level.upper(), handlers=[handler], force=True)


def build_sim_config(settings: Settings, seed: Optional[int] = None) -> SimConfig:
    """Simulator config from settings; the seed comes from SEED or is random."""
    overrides = {
        "faults": default_fault_table(settings.fault_probability),
        "max_file_size_bytes": settings.max_file_size_bytes,
        "fsync_faults": settings.fsync_faults,
    }
    seed = seed if seed is not None else settings.seed
    if seed is None:
        return SimConfig.from_env_or_random(**overrides)
    logger.info(f"Running simulator with seed {seed}")
    return SimConfig.with_seed(seed, **overrides)


async def _run_pipeline(io: IOFacade, settings: Settings, iterations: Optional[int]) -> PipelineReport:
    pipeline = Pipeline(io, settings)
    try:
        await pipeline.run(iterations)
    except PipelineFatalError:
        pass  # Already logged, and recorded as the death reason
    finally:
        await io.close()
    return pipeline.report()


def _print_report(report: PipelineReport) -> None:
    table = Table(title="Run Summary")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Mode", report.mode.value)
    if report.seed is not None:
        table.add_row("Seed", str(report.seed))
    table.add_row("Iterations", str(report.iterations))
    table.add_row("Records written", str(report.records_written))
    table.add_row("Write failures", str(report.write_failures))
    table.add_row("Verifications", str(report.verifications))
    if report.elapsed_ms is not None:
        table.add_row("Virtual time", f"{report.elapsed_ms}ms")
    for kind, count in sorted(report.fault_counts.items()):
        table.add_row(f"Faults: {kind}", str(count))

    console.print(table)
    if report.death_reason is not None:
        console.print(Panel(report.death_reason, title="[bold red]Fatal[/bold red]", border_style="red"))


# =============================================================================
# Commands
# =============================================================================


@app.command()
def run(
    simulate: bool = typer.Option(False, "--simulate", "-s", help="Use the simulator instead of real I/O"),
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-n", min=0, help="Stop after this many iterations"
    ),
) -> None:
    """Run the pipeline until it dies, is interrupted, or finishes its iterations."""
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"Starting pipeline (simulate={simulate}, iterations={iterations})")

    if simulate:
        io: IOFacade = SimIO(build_sim_config(settings))
    else:
        io = RealIO(poll_timeout_secs=settings.poll_timeout_secs)

    try:
        report = asyncio.run(_run_pipeline(io, settings, iterations))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit()

    _print_report(report)
    if not report.succeeded:
        raise typer.Exit(code=1)


@app.command()
def dashboard(
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-n", min=0, help="Stop after this many iterations"
    ),
) -> None:
    """Watch a simulated run live. Logs go to the configured log file."""
    from simio.cli.dashboard import run_dashboard

    settings = get_settings()
    configure_logging(settings, log_file=settings.log_file)

    io = SimIO(build_sim_config(settings))
    pipeline = Pipeline(io, settings)

    async def do_dashboard():
        try:
            return await run_dashboard(io, pipeline, iterations)
        finally:
            await io.close()

    try:
        state = asyncio.run(do_dashboard())
    except KeyboardInterrupt:
        raise typer.Exit()

    _print_report(pipeline.report())
    if state.death_reason is not None:
        raise typer.Exit(code=1)


@app.command()
def replay(
    seed: int = typer.Option(..., "--seed", min=0, help="Seed to replay"),
    iterations: int = typer.Option(20, "--iterations", "-n", min=0, help="Iterations per run"),
) -> None:
    """Run a seed twice from scratch and check both runs match."""
    settings = get_settings()
    configure_logging(settings)

    config = build_sim_config(settings, seed=seed)
    first, second = asyncio.run(replay_seed(config, iterations, settings))

    _print_report(first.report)
    if first.same_run_as(second):
        console.print(f"[green]✓[/green] Seed {seed} replayed identically ({len(first.trace)} faults)")
        return

    console.print(f"[red]✗[/red] Seed {seed} diverged between runs")
    raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
) -> None:
    """SimIO - Deterministic fault injection for an ingestion pipeline."""
    if version:
        console.print(f"SimIO version {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


if __name__ == "__main__":
    app()

"""
Simulation Dashboard

Live terminal view of a simulated run: recent faults, a scrolling status
log, and the reason the pipeline died if it did.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field

from rich.console import Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from simio.dst.io import SimIO
from simio.errors import PipelineFatalError
from simio.faults import FaultKind
from simio.pipeline import Pipeline

logger = logging.getLogger(__name__)

FAULT_SYMBOLS: dict[FaultKind, str] = {
    FaultKind.BROKER_CONNECT: "⚔️",
    FaultKind.KV_CONNECT: "🛡️",
    FaultKind.BROKER_READ: "🔥",
    FaultKind.KV_READ: "❄️",
    FaultKind.FILE_OPEN: "💥",
}
FILE_FAULT_SYMBOL = "⚡"

FAULT_LOG_LEN_MAX = 20
STATUS_LOG_LEN_MAX = 50
ACTIVE_FAULT_TICKS_MAX = 10  # Ticks a fault stays in the "active" strip
WRITE_FAULT_KINDS = frozenset({FaultKind.FILE_WRITE, FaultKind.FILE_SIZE_EXCEEDED})


def fault_symbol(kind: FaultKind) -> str:
    return FAULT_SYMBOLS.get(kind, FILE_FAULT_SYMBOL)


@dataclass
class DashboardState:
    """What the dashboard shows, independent of how it is drawn."""

    active_faults: deque[list] = field(default_factory=deque)  # [kind, age in ticks]
    fault_log: deque[str] = field(default_factory=lambda: deque(maxlen=FAULT_LOG_LEN_MAX))
    status_log: deque[str] = field(default_factory=lambda: deque(maxlen=STATUS_LOG_LEN_MAX))
    status_counter: int = 0
    tick_count: int = 0
    death_reason: str | None = None

    def add_fault(self, kind: FaultKind) -> None:
        self.active_faults.append([kind, 0])
        self.fault_log.append(kind.describe())

    def add_status(self, *messages: str) -> None:
        for message in messages:
            self.status_log.append(f"[{self.status_counter}] {message}")
            self.status_counter += 1

    def tick(self) -> None:
        """Age active faults and drop the ones that have expired."""
        self.tick_count += 1
        for entry in self.active_faults:
            entry[1] += 1
        while self.active_faults and self.active_faults[0][1] >= ACTIVE_FAULT_TICKS_MAX:
            self.active_faults.popleft()


def render(state: DashboardState, io: SimIO, pipeline: Pipeline) -> Layout:
    """Build the full screen from the current state."""
    header = Table.grid(expand=True)
    header.add_column()
    header.add_column(justify="right")
    header.add_row(
        Text(f"SimIO  seed {io.config.seed}", style="bold blue"),
        Text(
            f"iteration {pipeline.iteration}  records {len(pipeline.records)}  "
            f"virtual time {io.sim_clock.now_ms()}ms",
            style="dim",
        ),
    )

    active = Text(" ".join(fault_symbol(kind) for kind, _ in state.active_faults) or "-")
    faults = Group(
        active,
        Text(""),
        *(Text(line, style="red") for line in state.fault_log),
    )
    status = Group(*(Text(line) for line in state.status_log))

    body = Layout(name="body")
    body.split_row(
        Layout(Panel(status, title="Status", border_style="green"), name="status"),
        Layout(Panel(faults, title="Faults", border_style="red"), name="faults"),
    )
    rows = [Layout(Panel(header, border_style="blue"), name="header", size=3), body]
    if state.death_reason is not None:
        rows.append(Layout(
            Panel(Text(state.death_reason, style="bold red"), title="Game Over", border_style="red"),
            name="death",
            size=5,
        ))

    layout = Layout()
    layout.split_column(*rows)
    return layout


async def run_dashboard(
    io: SimIO,
    pipeline: Pipeline,
    iterations: int | None = None,
    step_interval_secs: float = 0.05,
    tick_secs: float = 1.0,
) -> DashboardState:
    """Drive the pipeline one step at a time while redrawing the screen.

    Stops after `iterations` steps, when the pipeline dies, or on Ctrl-C.
    """
    state = DashboardState()
    loop = asyncio.get_running_loop()
    last_tick = loop.time()

    with Live(render(state, io, pipeline), refresh_per_second=10, screen=True) as live:
        try:
            for kind in await pipeline.bootstrap():
                state.add_fault(kind)
            state.add_status("Connected to Kafka", "Connected to Redis", "Opened file descriptor")

            while iterations is None or pipeline.iteration < iterations:
                faults = await pipeline.step()
                for kind in faults:
                    state.add_fault(kind)
                if WRITE_FAULT_KINDS.intersection(faults):
                    write_status = "Failed to write output to file"
                else:
                    write_status = "Wrote output to file"
                state.add_status("Read messages from Kafka", "Read messages from Redis", write_status)
                if loop.time() - last_tick >= tick_secs:
                    state.tick()
                    last_tick = loop.time()
                live.update(render(state, io, pipeline))
                await asyncio.sleep(step_interval_secs)
        except PipelineFatalError as e:
            for kind in pipeline.step_faults:
                state.add_fault(kind)
            state.death_reason = str(e)
            live.update(render(state, io, pipeline))
            # Leave the final screen up long enough to read
            await asyncio.sleep(tick_secs * 3)

    return state

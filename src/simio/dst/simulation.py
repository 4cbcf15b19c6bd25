"""
Simulation - DST Harness

TigerStyle: Simulation harness that provides a deterministic environment
for the pipeline, plus helpers to run and replay seeds.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

from .clock import SimClock
from .config import SimConfig
from .fault import FaultConfig, FaultEvent, FaultInjector
from .io import FileOpener, SimIO
from .rng import DeterministicRng
from ..core.config import Settings
from ..core.models import PipelineReport
from ..errors import PipelineFatalError
from ..pipeline import Pipeline

logger = logging.getLogger(__name__)


@dataclass
class SimEnvironment:
    """Environment provided to simulation runs.

    TigerStyle: All simulation resources in one place.
    """

    config: SimConfig
    io: SimIO
    pipeline: Pipeline

    @property
    def clock(self) -> SimClock:
        return self.io.sim_clock

    @property
    def rng(self) -> DeterministicRng:
        return self.io.rng

    @property
    def faults(self) -> FaultInjector:
        return self.io.faults

    def trace(self) -> list[FaultEvent]:
        """Every fault fired so far, in order."""
        return list(self.io.faults.events)

    def file_contents(self) -> bytes:
        sim_file = self.io.sim_file
        return sim_file.contents if sim_file is not None else b""


@dataclass(frozen=True)
class SimulationResult:
    """Everything a replay must reproduce."""

    report: PipelineReport
    records: list[str]
    file_contents: bytes
    trace: list[FaultEvent]
    elapsed_ms: int

    def same_run_as(self, other: SimulationResult) -> bool:
        """True when both runs made the same observable choices."""
        return (
            self.records == other.records
            and self.file_contents == other.file_contents
            and self.trace == other.trace
            and self.elapsed_ms == other.elapsed_ms
            and self.report.death_reason == other.report.death_reason
        )


@dataclass
class Simulation:
    """DST simulation harness.

    TigerStyle:
    - Single seed controls all randomness
    - Faults are registered explicitly
    - The file stays in memory unless a file opener is given

    Usage:
        sim = Simulation(SimConfig.from_env_or_random())
        sim.with_fault(FaultConfig(FaultKind.BROKER_READ, probability=1.0))

        async with sim.run() as env:
            await env.pipeline.bootstrap()
            await env.pipeline.step()
    """

    config: SimConfig
    settings: Settings = field(default_factory=Settings)
    file_opener: Optional[FileOpener] = None

    def with_fault(self, fault_config: FaultConfig) -> Simulation:
        """Replace the injection rule for one fault kind.

        TigerStyle: Fluent API for fault registration.
        """
        self.config = self.config.with_fault(fault_config)
        return self

    def with_fault_probability(self, probability: float) -> Simulation:
        """Use the same probability for every fault kind."""
        self.config = self.config.with_fault_probability(probability)
        return self

    @asynccontextmanager
    async def run(self) -> AsyncGenerator[SimEnvironment, None]:
        """Build the simulated facade and pipeline, and provide them.

        TigerStyle: Context manager ensures proper cleanup.
        """
        io = SimIO(self.config, file_opener=self.file_opener)
        pipeline = Pipeline(io, self.settings)
        env = SimEnvironment(config=self.config, io=io, pipeline=pipeline)

        try:
            yield env
        finally:
            await io.close()
            if io.faults.events:
                logger.info(f"Seed={self.config.seed}")
                logger.info(f"Simulator stats: {io.stats()}")
                logger.info(f"Fault stats: {io.faults.injection_stats()}")

    async def run_iterations(self, iterations: int) -> SimulationResult:
        """Run the pipeline for `iterations` steps, or until it dies.

        A fatal error does not escape; it ends up in report.death_reason.
        """
        assert iterations >= 0, "iterations must be non-negative"
        async with self.run() as env:
            try:
                await env.pipeline.run(iterations)
            except PipelineFatalError:
                pass
            return SimulationResult(
                report=env.pipeline.report(),
                records=list(env.pipeline.records),
                file_contents=env.file_contents(),
                trace=env.trace(),
                elapsed_ms=env.clock.now_ms(),
            )


async def replay(
    config: SimConfig,
    iterations: int,
    settings: Settings | None = None,
) -> tuple[SimulationResult, SimulationResult]:
    """Run the same seed twice from scratch.

    Compare the pair with SimulationResult.same_run_as().
    """
    settings = settings or Settings()
    first = await Simulation(config, settings).run_iterations(iterations)
    second = await Simulation(config, settings).run_iterations(iterations)
    return first, second


def create_simulation(seed: int | None = None, settings: Settings | None = None) -> Simulation:
    """Create a new simulation with optional explicit seed.

    Usage:
        sim = create_simulation()  # SEED from environment, or random
        sim = create_simulation(12345)  # Explicit seed
    """
    if seed is not None:
        config = SimConfig.with_seed(seed)
    else:
        config = SimConfig.from_env_or_random()
    return Simulation(config, settings or Settings())

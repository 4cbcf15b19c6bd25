"""
SimIO DST - Deterministic Simulation Testing

Seeded stand-ins for the pipeline's environment: one RNG drives every fault
decision and canned answer, and a virtual clock absorbs every sleep.

Usage:
    from simio.dst import Simulation, SimConfig, FaultConfig
    from simio.faults import FaultKind

    sim = Simulation(SimConfig.with_seed(42))
    sim.with_fault(FaultConfig(FaultKind.FILE_WRITE, probability=0.5))
    result = await sim.run_iterations(20)

Run with seed:
    SEED=12345 simio run --simulate
"""

from .config import SimConfig
from .rng import DeterministicRng
from .clock import SimClock
from .fault import FaultConfig, FaultEvent, FaultInjector, default_fault_table
from .file import SimFile
from .io import SimIO
from .simulation import (
    Simulation,
    SimEnvironment,
    SimulationResult,
    create_simulation,
    replay,
)

__all__ = [
    # Config
    "SimConfig",
    # Primitives
    "DeterministicRng",
    "SimClock",
    # Faults
    "FaultConfig",
    "FaultEvent",
    "FaultInjector",
    "default_fault_table",
    # I/O
    "SimFile",
    "SimIO",
    # Simulation
    "Simulation",
    "SimEnvironment",
    "SimulationResult",
    "create_simulation",
    "replay",
]

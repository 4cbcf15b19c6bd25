"""
SimConfig - Simulation Configuration

TigerStyle: Explicit configuration, seed from environment for reproducibility.
"""

from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from .fault import FaultConfig, FaultKind, default_fault_table
from ..constants import (
    FILE_SIZE_BYTES_MAX,
    SIM_BROKER_FAILURES_MAX,
    SIM_BROKER_FAILURES_MIN,
    SIM_BROKER_MESSAGES,
    SIM_KV_DATA,
    SIM_SEED_MAX,
)

logger = logging.getLogger(__name__)

SEED_ENV_VAR = "SEED"


@dataclass(frozen=True)
class SimConfig:
    """Configuration for a deterministic simulation run.

    TigerStyle: All configuration is explicit. Seeds are always logged.
    """

    # Seed for deterministic randomness (unsigned 64-bit)
    seed: int

    # Injection rules, one per fault kind
    faults: Mapping[FaultKind, FaultConfig] = field(default_factory=default_fault_table)

    # Canned broker payloads and key-value contents
    broker_messages: tuple[str, ...] = SIM_BROKER_MESSAGES
    kv_data: tuple[tuple[str, str], ...] = SIM_KV_DATA

    # Pins the broker connect threshold instead of using the drawn value
    broker_failures: Optional[int] = None

    # Simulated file cap and fsync policy
    max_file_size_bytes: int = FILE_SIZE_BYTES_MAX
    fsync_faults: bool = False

    @classmethod
    def from_env_or_random(cls, **overrides) -> SimConfig:
        """Create config from the SEED env var or generate a random seed.

        TigerStyle: Always log the seed for reproducibility.
        Replay any run by setting SEED=<seed>.
        """
        seed_str = os.environ.get(SEED_ENV_VAR)

        if seed_str is not None:
            seed = int(seed_str)
            logger.info(f"Using seed from environment: {seed}")
        else:
            seed = random.SystemRandom().randint(0, SIM_SEED_MAX)
            logger.info(f"Generated random seed (replay with {SEED_ENV_VAR}={seed})")

        return cls(seed=seed, **overrides)

    @classmethod
    def with_seed(cls, seed: int, **overrides) -> SimConfig:
        """Create config with explicit seed."""
        return cls(seed=seed, **overrides)

    def with_fault(self, config: FaultConfig) -> SimConfig:
        """Copy of this config with one injection rule replaced."""
        faults = dict(self.faults)
        faults[config.kind] = config
        return replace(self, faults=faults)

    def with_fault_probability(self, probability: float) -> SimConfig:
        """Copy of this config with every kind at the same probability."""
        return replace(self, faults=default_fault_table(probability))

    def __post_init__(self) -> None:
        """Validate configuration.

        TigerStyle: Assert preconditions.
        """
        assert 0 <= self.seed <= SIM_SEED_MAX, "seed must be an unsigned 64-bit integer"
        assert len(self.broker_messages) > 0, "broker_messages must be non-empty"
        assert self.max_file_size_bytes >= 0, "max_file_size_bytes must be non-negative"
        assert self.broker_failures is None or \
            SIM_BROKER_FAILURES_MIN <= self.broker_failures < SIM_BROKER_FAILURES_MAX, \
            f"broker_failures must be in [{SIM_BROKER_FAILURES_MIN}, {SIM_BROKER_FAILURES_MAX})"
        for kind, config in self.faults.items():
            assert config.kind == kind, f"fault table entry {kind.value} holds {config.kind.value}"

"""
Pytest configuration and fixtures for SimIO tests.

Everything here runs against the simulator or the local filesystem; the
RealIO tests mock the Kafka and Redis clients.
"""

import logging
from pathlib import Path

import pytest

from simio.core.config import Settings, get_settings
from simio.dst import DeterministicRng, FaultInjector, SimConfig, SimFile, SimIO, default_fault_table
from simio.constants import FILE_SIZE_BYTES_MAX


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    """Output file location inside the test's temp directory."""
    return tmp_path / "output.txt"


@pytest.fixture
def settings(output_path: Path) -> Settings:
    """Settings with defaults only, ignoring any .env file."""
    return Settings(_env_file=None, output_path=str(output_path))


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """get_settings() is cached; never leak one test's environment into another."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def restore_logging():
    """The CLI reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# =============================================================================
# Simulator Factories
# =============================================================================

@pytest.fixture
def quiet_config() -> SimConfig:
    """Seeded config that never injects a fault."""
    return SimConfig.with_seed(1).with_fault_probability(0.0)


@pytest.fixture
def make_sim_io():
    """Factory for in-memory simulated facades."""

    def _make_sim_io(config: SimConfig) -> SimIO:
        return SimIO(config, file_opener=None)

    return _make_sim_io


@pytest.fixture
def make_sim_file():
    """Factory for standalone simulated files."""

    def _make_sim_file(
        probability: float = 0.0,
        seed: int = 42,
        max_file_size: int = FILE_SIZE_BYTES_MAX,
        fsync_faults: bool = False,
        inner=None,
    ) -> SimFile:
        injector = FaultInjector(_rng=DeterministicRng(_seed=seed), _table=default_fault_table(probability))
        return SimFile(
            _faults=injector,
            _max_file_size=max_file_size,
            _inner=inner,
            _fsync_faults=fsync_faults,
        )

    return _make_sim_file

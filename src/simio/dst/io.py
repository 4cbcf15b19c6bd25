"""
SimIO - Simulated I/O Facade

TigerStyle: In-memory stand-ins for the broker and key-value store, driven
by one seeded RNG. Every fallible operation consults the FaultInjector first
and advances the virtual clock instead of blocking.

PRNG draws per call (the determinism contract):
- connect_broker, connect_kv, get_config, open_file: 1
- read_message: 1 on failure, 2 on success (fault check, payload choice)
- jitter: 1 (0 when base_delay_ms <= 0)
- file read/write: 1 each, on the file's own clone of the stream
- fsync: 0 (1 with fsync_faults), tail_entries: 0
A rule gated by after_calls or max_injections skips its draw.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from .clock import SimClock
from .config import SimConfig
from .fault import FaultInjector
from .file import SimFile
from .rng import DeterministicRng
from ..core.models import RunMode
from ..constants import (
    SIM_BROKER_CONNECT_DELAY_MS,
    SIM_BROKER_FAILURES_MAX,
    SIM_BROKER_FAILURES_MIN,
    SIM_BROKER_READ_DELAY_MS,
    SIM_KV_CONNECT_DELAY_MS,
    SIM_KV_READ_DELAY_MS,
)
from ..errors import (
    BrokerConnectError,
    BrokerReadError,
    FileOpenError,
    KvConnectError,
    KvReadError,
)
from ..facade import IOFacade
from ..faults import FaultKind
from ..files import AppendFile, RealFile

logger = logging.getLogger(__name__)

# Opens the real file a SimFile mirrors to. Returning None keeps it in memory.
FileOpener = Callable[[str | os.PathLike], Optional[AppendFile]]


class SimIO(IOFacade):
    """Simulated facade with deterministic fault injection.

    TigerStyle:
    - Single seed controls all randomness
    - The file gets a clone of the RNG at open time so its draws never
      perturb the broker and key-value sequence
    - Broker connect failures stop once attempts exceed the drawn threshold
    """

    mode = RunMode.SIMULATED

    def __init__(
        self,
        config: SimConfig,
        clock: SimClock | None = None,
        file_opener: FileOpener | None = RealFile.open,
    ) -> None:
        self._sim_clock = clock or SimClock()
        super().__init__(self._sim_clock)

        self._config = config
        self._rng = DeterministicRng(_seed=config.seed)
        self._faults = FaultInjector(_rng=self._rng, _table=config.faults)
        self._file_opener = file_opener

        self._broker_messages = list(config.broker_messages)
        self._kv_data = dict(config.kv_data)
        self._broker_attempts = 0

        # Always drawn so pinning the threshold does not shift the stream
        drawn = self._rng.next_int(SIM_BROKER_FAILURES_MIN, SIM_BROKER_FAILURES_MAX - 1)
        self._broker_failures = config.broker_failures if config.broker_failures is not None else drawn

        self._sim_file: SimFile | None = None

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def config(self) -> SimConfig:
        return self._config

    @property
    def sim_clock(self) -> SimClock:
        return self._sim_clock

    @property
    def rng(self) -> DeterministicRng:
        return self._rng

    @property
    def faults(self) -> FaultInjector:
        return self._faults

    @property
    def sim_file(self) -> SimFile | None:
        return self._sim_file

    @property
    def broker_failures(self) -> int:
        """Connect attempts that may still fail."""
        return self._broker_failures

    @property
    def broker_attempts(self) -> int:
        return self._broker_attempts

    # =========================================================================
    # Broker
    # =========================================================================

    async def connect_broker(self, group_id: str, broker: str, topic: str, partition: int) -> None:
        self._broker_attempts += 1

        injected = self._faults.should_inject(FaultKind.BROKER_CONNECT, "connect_broker")
        if injected and self._broker_attempts <= self._broker_failures:
            self._faults.record(FaultKind.BROKER_CONNECT, "connect_broker")
            raise BrokerConnectError("simulated Kafka connection failure")

        logger.debug(f"Simulated Kafka consumer for {topic}[{partition}] at {broker}")
        await self._sim_clock.sleep(SIM_BROKER_CONNECT_DELAY_MS)

    async def read_message(self) -> Optional[str]:
        if self._faults.check(FaultKind.BROKER_READ, "read_message"):
            raise BrokerReadError("simulated Kafka read failure")

        await self._sim_clock.sleep(SIM_BROKER_READ_DELAY_MS)
        assert len(self._broker_messages) > 0, "broker must hold at least one message"
        return self._rng.choice(self._broker_messages)

    # =========================================================================
    # Key-value store
    # =========================================================================

    async def connect_kv(self, url: str) -> None:
        if self._faults.check(FaultKind.KV_CONNECT, "connect_kv"):
            raise KvConnectError("simulated Redis connection failure")

        logger.debug(f"Simulated Redis connection to {url}")
        await self._sim_clock.sleep(SIM_KV_CONNECT_DELAY_MS)

    async def get_config(self, key: str) -> str:
        if self._faults.check(FaultKind.KV_READ, "get_config"):
            raise KvReadError("simulated Redis read failure")

        await self._sim_clock.sleep(SIM_KV_READ_DELAY_MS)
        value = self._kv_data.get(key)
        if value is None:
            raise KvReadError(f"Key not found: {key}")
        return value

    # =========================================================================
    # File
    # =========================================================================

    async def open_file(self, path: str | os.PathLike) -> None:
        """Open (or reopen) the simulated file.

        Reopening keeps the contents and resets the cursors.
        """
        if self._faults.check(FaultKind.FILE_OPEN, "open_file"):
            raise FileOpenError("simulated file open failure")

        if self._sim_file is not None and self._file is self._sim_file:
            self._sim_file.open()
            return

        inner = self._file_opener(path) if self._file_opener is not None else None
        self._sim_file = SimFile(
            _faults=self._faults.fork(self._rng.clone()),
            _max_file_size=self._config.max_file_size_bytes,
            _inner=inner,
            _fsync_faults=self._config.fsync_faults,
        )
        self._file = self._sim_file

    # =========================================================================
    # Time
    # =========================================================================

    def jitter(self, base_delay_ms: int) -> int:
        if base_delay_ms <= 0:
            return base_delay_ms
        return base_delay_ms + self._rng.next_int(0, base_delay_ms - 1)

    def run_metadata(self) -> dict[str, int | None]:
        return {"seed": self._config.seed, "elapsed_ms": self._sim_clock.now_ms()}

    def stats(self) -> dict[str, int]:
        """Get simulator statistics for debugging."""
        stats = {
            "elapsed_ms": self._sim_clock.now_ms(),
            "rng_draws_count": self._rng.draws_count(),
            "broker_attempts": self._broker_attempts,
            "broker_failures": self._broker_failures,
            "faults_injected_count": len(self._faults.events),
        }
        if self._sim_file is not None:
            stats.update({f"file_{k}": v for k, v in self._sim_file.stats().items()})
        return stats

"""
Ingestion Pipeline

Reads a broker message and a config value, appends
"Config: {config}, Message: {message}" to the output file, and every few
iterations reads the tail of the file back to check nothing was lost.

The pipeline only talks to an IOFacade, so the same code runs against real
Kafka/Redis or against the simulator.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Awaitable, Callable, Optional, TypeVar

from simio.constants import PIPELINE_RECORD_FORMAT, RETRY_COUNT_MAX, RETRY_DELAY_MS_BASE
from simio.core.config import Settings
from simio.core.models import PipelineReport
from simio.errors import (
    FileSyncError,
    FileWriteError,
    IOFault,
    PipelineFatalError,
    ProtocolViolationError,
    RetryExhaustedError,
    StartupError,
    VerificationError,
)
from simio.facade import IOFacade
from simio.faults import FaultKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Exponential backoff with jitter.

    After a failure with budget left: count the retry, sleep for
    jitter(delay), then double delay. At most max_retries + 1 attempts.
    """

    def __init__(
        self,
        max_retries: int = RETRY_COUNT_MAX,
        base_delay_ms: int = RETRY_DELAY_MS_BASE,
    ) -> None:
        assert max_retries >= 0, "max_retries must be non-negative"
        assert base_delay_ms >= 0, "base_delay_ms must be non-negative"
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms

    async def call(
        self,
        io: IOFacade,
        operation: str,
        attempt: Callable[[], Awaitable[T]],
        on_fault: Optional[Callable[[IOFault], None]] = None,
    ) -> T:
        """Run `attempt` until it succeeds or the budget is spent.

        Raises:
            RetryExhaustedError: Every attempt failed. Chained to the last error.
        """
        retries = 0
        delay_ms = self.base_delay_ms
        while True:
            try:
                return await attempt()
            except IOFault as e:
                if on_fault is not None:
                    on_fault(e)
                if retries >= self.max_retries:
                    raise RetryExhaustedError(operation, retries + 1, e) from e

                retries += 1
                wait_ms = io.jitter(delay_ms)
                logger.warning(
                    f"{operation} failed ({e}), retry {retries}/{self.max_retries} in {wait_ms}ms"
                )
                await io.sleep(wait_ms)
                delay_ms *= 2


class Pipeline:
    """
    The system under test.

    Usage:
        pipeline = Pipeline(io, settings)
        await pipeline.bootstrap()
        while True:
            faults = await pipeline.step()

    Or run() to do both, optionally stopping after a number of iterations.
    """

    def __init__(
        self,
        io: IOFacade,
        settings: Settings | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._io = io
        self._settings = settings or Settings()
        self._retry = retry or RetryPolicy(self._settings.max_retries, self._settings.base_delay_ms)

        self.iteration = 0
        self.records: list[str] = []
        self.write_failures = 0
        self.verifications = 0
        self.death_reason: str | None = None
        self._bootstrapped = False
        self._fault_counts: Counter[FaultKind] = Counter()
        self._step_faults: list[FaultKind] = []

    @property
    def io(self) -> IOFacade:
        return self._io

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    @property
    def step_faults(self) -> list[FaultKind]:
        """Faults seen by the latest bootstrap or step, fatal or not."""
        return list(self._step_faults)

    def _note_fault(self, error: IOFault) -> None:
        self._step_faults.append(error.kind)
        self._fault_counts[error.kind] += 1

    def _die(self, error: PipelineFatalError) -> None:
        self.death_reason = str(error)
        logger.error(f"Pipeline stopped at iteration {self.iteration}: {error}")

    # =========================================================================
    # Bootstrap
    # =========================================================================

    async def bootstrap(self) -> list[FaultKind]:
        """Connect to the broker and the key-value store, then open the file.

        Returns:
            The faults observed while connecting.

        Raises:
            RetryExhaustedError: A connection never succeeded.
            StartupError: The output file could not be opened.
        """
        assert not self._bootstrapped, "bootstrap must run once"
        self._step_faults = []
        s = self._settings

        try:
            await self._retry.call(
                self._io,
                "connect_broker",
                lambda: self._io.connect_broker(s.group_id, s.broker, s.topic, s.partition),
                self._note_fault,
            )
            logger.info("Connected to Kafka")

            await self._retry.call(
                self._io, "connect_kv", lambda: self._io.connect_kv(s.kv_url), self._note_fault
            )
            logger.info("Connected to Redis")

            try:
                await self._io.open_file(s.output_path)
            except IOFault as e:
                self._note_fault(e)
                raise StartupError(f"failed to open {s.output_path}: {e}") from e
            logger.info(f"Opened {s.output_path}")
        except PipelineFatalError as e:
            self._die(e)
            raise

        self._bootstrapped = True
        return list(self._step_faults)

    # =========================================================================
    # Work loop
    # =========================================================================

    async def step(self) -> list[FaultKind]:
        """Run one iteration.

        Returns:
            The faults observed during the iteration, in order.

        Raises:
            PipelineFatalError: Retries exhausted, empty broker read, or the
                records read back differ from the records written.
        """
        assert self._bootstrapped, "bootstrap must run before step"
        self.iteration += 1
        self._step_faults = []
        logger.debug(f"Iteration {self.iteration}")

        try:
            message = await self._retry.call(
                self._io, "read_message", self._io.read_message, self._note_fault
            )
            if message is None:
                raise ProtocolViolationError("broker read returned no message")

            config = await self._retry.call(
                self._io,
                "get_config",
                lambda: self._io.get_config(self._settings.config_key),
                self._note_fault,
            )

            record = PIPELINE_RECORD_FORMAT.format(config=config, message=message)
            try:
                await self._io.write_file(record)
            except FileWriteError as e:
                self._note_fault(e)
                self.write_failures += 1
                logger.warning(f"failed to write to file: {e}")
                return list(self._step_faults)

            self.records.append(record)
            if self.iteration % self._settings.verify_every == 0:
                await self._verify()
        except PipelineFatalError as e:
            self._die(e)
            raise

        return list(self._step_faults)

    async def _verify(self) -> None:
        """Sync the file, then compare its tail with the records written."""
        try:
            await self._io.fsync_file()
        except FileSyncError as e:
            self._note_fault(e)
            logger.warning(f"failed to sync file: {e}")

        count = min(self._settings.verify_entries, len(self.records))
        try:
            actual = await self._io.tail_entries(count)
        except IOFault as e:
            self._note_fault(e)
            raise PipelineFatalError(f"failed to read back last {count} records: {e}") from e

        expected = [r.removesuffix("\n") for r in self.records[len(self.records) - count:]]
        if actual != expected:
            raise VerificationError(expected, actual)
        self.verifications += 1
        logger.debug(f"Verified last {count} records")

    async def run(self, iterations: int | None = None) -> PipelineReport:
        """Bootstrap, then step until `iterations` steps or forever.

        Raises:
            PipelineFatalError: See bootstrap() and step().
        """
        if not self._bootstrapped:
            await self.bootstrap()
        while iterations is None or self.iteration < iterations:
            await self.step()
        return self.report()

    def report(self) -> PipelineReport:
        """Summary of the run so far."""
        return PipelineReport(
            mode=self._io.mode,
            iterations=self.iteration,
            records_written=len(self.records),
            write_failures=self.write_failures,
            verifications=self.verifications,
            fault_counts={kind.value: count for kind, count in self._fault_counts.items()},
            death_reason=self.death_reason,
            **self._io.run_metadata(),
        )

"""
I/O Facade

The single capability set the pipeline talks to: broker consumer, key-value
store, output file, clock and jitter. RealIO forwards to Kafka, Redis and a
file on disk; SimIO (simio.dst.io) answers from a seeded simulator.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as redis
from confluent_kafka import OFFSET_BEGINNING, Consumer, KafkaError, KafkaException, TopicPartition
from redis.exceptions import RedisError

from simio.constants import BROKER_POLL_TIMEOUT_SECS
from simio.core.models import RunMode
from simio.clock import Clock, RealClock
from simio.errors import (
    BrokerConnectError,
    BrokerReadError,
    KvConnectError,
    KvReadError,
)
from simio.files import AppendFile, RealFile

logger = logging.getLogger(__name__)


class IOFacade(ABC):
    """
    Abstract capability set for the pipeline.

    Every operation except jitter() is a coroutine, and every fallible one
    raises an IOFault subclass on failure.

    Implementations:
    - RealIO: Kafka, Redis and a local file
    - SimIO: Seeded in-memory simulator with fault injection
    """

    mode: RunMode

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._file: Optional[AppendFile] = None

    @property
    def clock(self) -> Clock:
        return self._clock

    @abstractmethod
    async def connect_broker(self, group_id: str, broker: str, topic: str, partition: int) -> None:
        """Create a consumer and assign it (topic, partition) from the earliest offset."""
        pass

    @abstractmethod
    async def connect_kv(self, url: str) -> None:
        """Connect to the key-value store at `url`."""
        pass

    @abstractmethod
    async def open_file(self, path: str | os.PathLike) -> None:
        """Open the output file for appending, creating it if missing."""
        pass

    @abstractmethod
    async def read_message(self) -> Optional[str]:
        """Next broker payload, or None at end of stream."""
        pass

    @abstractmethod
    async def get_config(self, key: str) -> str:
        """Value stored under `key`."""
        pass

    @abstractmethod
    def jitter(self, base_delay_ms: int) -> int:
        """base_delay_ms plus a uniform draw from [0, base_delay_ms)."""
        pass

    async def sleep(self, duration_ms: int) -> None:
        await self._clock.sleep(duration_ms)

    def run_metadata(self) -> dict[str, int | None]:
        """Extra fields for the run report (seed, virtual elapsed time)."""
        return {}

    # =========================================================================
    # File operations
    # =========================================================================

    @property
    def file(self) -> AppendFile:
        if self._file is None:
            raise RuntimeError("Output file is not open")
        return self._file

    async def read_file(self, size: int) -> bytes:
        return await self.file.read(size)

    async def write_file(self, data: str) -> int:
        return await self.file.write(data)

    async def fsync_file(self) -> None:
        await self.file.fsync()

    async def tail_entries(self, n: int) -> list[str]:
        return await self.file.tail_entries(n)

    async def close(self) -> None:
        """Release the file and any client connections."""
        if self._file is not None:
            await self._file.close()
            self._file = None


class RealIO(IOFacade):
    """Facade over real external systems."""

    mode = RunMode.REAL

    def __init__(
        self,
        clock: Clock | None = None,
        poll_timeout_secs: float = BROKER_POLL_TIMEOUT_SECS,
    ) -> None:
        super().__init__(clock or RealClock())
        self._poll_timeout_secs = poll_timeout_secs
        self._consumer: Consumer | None = None
        self._kv: redis.Redis | None = None

    async def connect_broker(self, group_id: str, broker: str, topic: str, partition: int) -> None:
        try:
            consumer = Consumer({
                "group.id": group_id,
                "bootstrap.servers": broker,
            })
        except (KafkaException, ValueError) as e:
            raise BrokerConnectError(f"Failed to create Kafka consumer: {e}") from e

        try:
            consumer.assign([TopicPartition(topic, partition, OFFSET_BEGINNING)])
        except KafkaException as e:
            consumer.close()
            raise BrokerConnectError(f"Failed to assign Kafka consumer to {topic}[{partition}]: {e}") from e

        self._consumer = consumer
        logger.info(f"Assigned Kafka consumer to {topic}[{partition}] at {broker}")

    async def connect_kv(self, url: str) -> None:
        try:
            client = redis.from_url(url, decode_responses=True)
        except ValueError as e:
            raise KvConnectError(f"Invalid Redis URL {url}: {e}") from e

        try:
            await client.ping()
        except RedisError as e:
            await client.aclose()
            raise KvConnectError(f"Failed to connect to Redis at {url}: {e}") from e

        self._kv = client
        logger.info(f"Connected to Redis at {url}")

    async def open_file(self, path: str | os.PathLike) -> None:
        self._file = RealFile.open(path)

    async def read_message(self) -> Optional[str]:
        """Poll the assigned partition until a message arrives.

        The blocking poll runs in a worker thread so the event loop stays
        responsive.
        """
        if self._consumer is None:
            raise BrokerReadError("Kafka consumer is not connected")

        while True:
            try:
                message = await asyncio.to_thread(self._consumer.poll, self._poll_timeout_secs)
            except (KafkaException, RuntimeError) as e:
                raise BrokerReadError(f"Failed to poll Kafka: {e}") from e

            if message is None:
                continue

            error = message.error()
            if error is not None:
                if error.code() == KafkaError._PARTITION_EOF:
                    return None
                raise BrokerReadError(f"Kafka message error: {error}")

            payload = message.value()
            return payload.decode("utf-8", errors="replace") if payload is not None else ""

    async def get_config(self, key: str) -> str:
        if self._kv is None:
            raise KvConnectError("Redis is not connected")

        try:
            value = await self._kv.get(key)
        except RedisError as e:
            raise KvReadError(f"Failed to get {key}: {e}") from e

        if value is None:
            raise KvReadError(f"Key not found: {key}")
        return value

    def jitter(self, base_delay_ms: int) -> int:
        if base_delay_ms <= 0:
            return base_delay_ms
        return base_delay_ms + random.randrange(base_delay_ms)

    async def close(self) -> None:
        await super().close()
        if self._consumer is not None:
            self._consumer.close()
            self._consumer = None
        if self._kv is not None:
            await self._kv.aclose()
            self._kv = None

"""
SimFile - Simulated Append-Only File with Fault Injection

TigerStyle: In-memory file for deterministic simulation testing.
All operations check the FaultInjector before proceeding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .fault import FaultInjector
from ..errors import FileReadError, FileSyncError, FileWriteError
from ..faults import FaultKind
from ..files import AppendFile, last_records

logger = logging.getLogger(__name__)


@dataclass
class SimFile:
    """Simulated append-only file.

    Tracks what has been written (unsynced) separately from what an fsync
    has made durable. When wrapping a real file, successful writes and
    syncs are mirrored to it, but every read is served from memory.

    TigerStyle:
    - current_file_size always equals len(unsynced)
    - durable is always a prefix of unsynced
    - Fault injection happens before the actual operation
    """

    _faults: FaultInjector
    _max_file_size: int
    _inner: Optional[AppendFile] = None
    _fsync_faults: bool = False

    _unsynced: bytearray = field(default_factory=bytearray, init=False)
    _durable: bytes = field(default=b"", init=False)
    _read_position: int = field(default=0, init=False)
    _write_position: int = field(default=0, init=False)

    # Statistics
    _writes_count: int = field(default=0, init=False)
    _reads_count: int = field(default=0, init=False)
    _syncs_count: int = field(default=0, init=False)
    _faults_injected_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        assert self._max_file_size >= 0, "max_file_size must be non-negative"

    @property
    def current_file_size(self) -> int:
        return len(self._unsynced)

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    @property
    def contents(self) -> bytes:
        """Everything written so far, synced or not."""
        return bytes(self._unsynced)

    @property
    def durable_contents(self) -> bytes:
        """What the last fsync captured."""
        return self._durable

    def open(self) -> None:
        """Reset cursors, as reopening the same path would."""
        self._read_position = 0
        self._write_position = len(self._unsynced)

    async def read(self, size: int) -> bytes:
        """Read `size` bytes at the read cursor.

        Reading up to or past the end of the buffer is a precondition
        violation and fails like an injected read fault.
        """
        assert size >= 0, "size must be non-negative"
        self._reads_count += 1

        if self._faults.check(FaultKind.FILE_READ, "file_read"):
            self._faults_injected_count += 1
            raise FileReadError("simulated read failure")

        if size >= len(self._unsynced):
            raise FileReadError(f"read of {size} bytes exceeds buffer of {len(self._unsynced)} bytes")
        if self._read_position + size > len(self._unsynced):
            raise FileReadError(
                f"read of {size} bytes at offset {self._read_position} runs past "
                f"end of buffer ({len(self._unsynced)} bytes)"
            )

        data = bytes(self._unsynced[self._read_position:self._read_position + size])
        self._read_position += len(data)
        return data

    async def write(self, data: str) -> int:
        """Append `data` unless a fault fires or the size cap would be exceeded."""
        self._writes_count += 1

        if self._faults.check(FaultKind.FILE_WRITE, "file_write"):
            self._faults_injected_count += 1
            raise FileWriteError("simulated write failure")

        payload = data.encode("utf-8")
        if self.current_file_size + len(payload) > self._max_file_size:
            self._faults.record(FaultKind.FILE_SIZE_EXCEEDED, "file_write")
            self._faults_injected_count += 1
            raise FileWriteError(
                f"write of {len(payload)} bytes exceeds max file size {self._max_file_size}",
                kind=FaultKind.FILE_SIZE_EXCEEDED,
            )

        if self._inner is not None:
            await self._inner.write(data)

        assert self._write_position == len(self._unsynced), "writes must append"
        self._unsynced.extend(payload)
        self._write_position += len(payload)

        # Postcondition
        assert self.current_file_size == self._write_position, "size must track the write cursor"
        return len(payload)

    async def fsync(self) -> None:
        """Capture the unsynced contents as durable.

        Never fails unless fsync faults were enabled for the simulation.
        """
        self._syncs_count += 1

        if self._fsync_faults and self._faults.check(FaultKind.FILE_METADATA_SYNC, "file_fsync"):
            self._faults_injected_count += 1
            raise FileSyncError("simulated metadata sync failure")

        if self._inner is not None:
            await self._inner.fsync()
        self._durable = bytes(self._unsynced)

    async def tail_entries(self, n: int) -> list[str]:
        """Last `n` records of the unsynced contents, oldest first."""
        assert n >= 0, "n must be non-negative"
        return last_records(bytes(self._unsynced), n)

    async def close(self) -> None:
        if self._inner is not None:
            await self._inner.close()

    # Statistics methods

    def stats(self) -> dict[str, int]:
        """Get file statistics."""
        return {
            "writes_count": self._writes_count,
            "reads_count": self._reads_count,
            "syncs_count": self._syncs_count,
            "faults_injected_count": self._faults_injected_count,
            "current_file_size": self.current_file_size,
            "durable_size": len(self._durable),
        }

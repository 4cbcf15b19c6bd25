"""
Append-Only Files

The file capability used by the pipeline: append records, read them back,
fsync, and fetch the last N records without loading the whole file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from simio.constants import FILE_TAIL_CHUNK_BYTES
from simio.errors import FileOpenError, FileReadError, FileSyncError, FileWriteError

logger = logging.getLogger(__name__)


@runtime_checkable
class AppendFile(Protocol):
    """Protocol for append-only record files.

    TigerStyle: Abstract interface allows swapping sim/real implementations.
    """

    async def read(self, size: int) -> bytes:
        """Read `size` bytes from the read cursor."""
        ...

    async def write(self, data: str) -> int:
        """Append the UTF-8 bytes of `data`. Returns bytes written."""
        ...

    async def fsync(self) -> None:
        """Make everything written so far durable."""
        ...

    async def tail_entries(self, n: int) -> list[str]:
        """Last `n` newline-delimited records, oldest first, newline stripped."""
        ...

    async def close(self) -> None:
        ...


def last_records(data: bytes, n: int) -> list[str]:
    """Split `data` into records and keep the last `n`.

    A trailing newline terminates the final record rather than starting an
    empty one. Invalid UTF-8 is replaced rather than rejected.
    """
    if n <= 0:
        return []
    records = data.decode("utf-8", errors="replace").split("\n")
    if records and records[-1] == "":
        records.pop()
    return records[-n:]


class RealFile:
    """A file on disk opened for appending and reading.

    Writes always land at the end; reads use their own cursor starting at 0.
    """

    def __init__(self, handle: BinaryIO, path: Path) -> None:
        self._handle = handle
        self._path = path
        self._read_position = 0

    @classmethod
    def open(cls, path: str | os.PathLike) -> RealFile:
        """Open `path` for appending, creating it if missing."""
        path = Path(path)
        try:
            handle = open(path, "a+b")
        except OSError as e:
            raise FileOpenError(f"Failed to open {path}: {e}") from e
        logger.debug(f"Opened {path} for appending")
        return cls(handle, path)

    @property
    def path(self) -> Path:
        return self._path

    async def read(self, size: int) -> bytes:
        try:
            self._handle.seek(self._read_position)
            data = self._handle.read(size)
        except OSError as e:
            raise FileReadError(f"Failed to read {self._path}: {e}") from e
        self._read_position += len(data)
        return data

    async def write(self, data: str) -> int:
        payload = data.encode("utf-8")
        try:
            written = self._handle.write(payload)
            self._handle.flush()
        except OSError as e:
            raise FileWriteError(f"Failed to write {self._path}: {e}") from e
        return written

    async def fsync(self) -> None:
        try:
            self._handle.flush()
            os.fsync(self._handle.fileno())
        except OSError as e:
            raise FileSyncError(f"Failed to sync {self._path}: {e}") from e

    async def tail_entries(self, n: int) -> list[str]:
        """Read fixed-size chunks backwards until n + 1 newlines are seen.

        The extra newline marks the start of the oldest record wanted; if the
        start of the file is reached first, everything read is used.
        """
        assert n >= 0, "n must be non-negative"
        try:
            position = os.fstat(self._handle.fileno()).st_size
            buffer = b""
            while position > 0 and buffer.count(b"\n") <= n:
                chunk_size = min(position, FILE_TAIL_CHUNK_BYTES)
                position -= chunk_size
                self._handle.seek(position)
                chunk = self._handle.read(chunk_size)
                if len(chunk) != chunk_size:
                    raise FileReadError(f"Short read from {self._path} at offset {position}")
                buffer = chunk + buffer
        except OSError as e:
            raise FileReadError(f"Failed to read tail of {self._path}: {e}") from e
        return last_records(buffer, n)

    async def close(self) -> None:
        self._handle.close()

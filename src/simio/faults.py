"""
Fault Taxonomy

The closed set of failures the pipeline can observe. In simulation these are
the faults the injector may fire; in real mode they classify client errors.
"""

from __future__ import annotations

from enum import Enum


class FaultKind(str, Enum):
    """Faults the simulator is permitted to inject.

    TigerStyle: Explicit enumeration of all fault types.
    """

    # Broker faults
    BROKER_CONNECT = "broker_connect"
    BROKER_READ = "broker_read"

    # Key-value store faults
    KV_CONNECT = "kv_connect"
    KV_READ = "kv_read"

    # File faults
    FILE_OPEN = "file_open"
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    FILE_SIZE_EXCEEDED = "file_size_exceeded"
    FILE_METADATA_SYNC = "file_metadata_sync"

    @property
    def is_file_fault(self) -> bool:
        return self in FILE_FAULT_KINDS

    def describe(self) -> str:
        """Human readable description for logs and the dashboard."""
        return _DESCRIPTIONS[self]


# Faults raised by an open file, as opposed to the facade itself
FILE_FAULT_KINDS: frozenset[FaultKind] = frozenset({
    FaultKind.FILE_READ,
    FaultKind.FILE_WRITE,
    FaultKind.FILE_SIZE_EXCEEDED,
    FaultKind.FILE_METADATA_SYNC,
})

_DESCRIPTIONS: dict[FaultKind, str] = {
    FaultKind.BROKER_CONNECT: "Kafka connection failed",
    FaultKind.BROKER_READ: "Kafka read failed",
    FaultKind.KV_CONNECT: "Redis connection failed",
    FaultKind.KV_READ: "Redis read failed",
    FaultKind.FILE_OPEN: "File open failed",
    FaultKind.FILE_READ: "File read failed",
    FaultKind.FILE_WRITE: "File write failed",
    FaultKind.FILE_SIZE_EXCEEDED: "File size exceeded",
    FaultKind.FILE_METADATA_SYNC: "File metadata sync failed",
}

"""
SimIO Errors

Exceptions raised at the I/O facade boundary and by the pipeline driver.
Every I/O error carries the FaultKind it corresponds to, so the same type
serves as an injected fault and as an observable event.
"""

from __future__ import annotations

from simio.faults import FaultKind


class IOFault(Exception):
    """Base error for facade operations.

    TigerStyle: Explicit error types.
    """

    kind: FaultKind

    def __init__(self, message: str = "", kind: FaultKind | None = None) -> None:
        super().__init__(message or self.default_message)
        if kind is not None:
            self.kind = kind
        elif not hasattr(self, "kind"):
            raise TypeError(f"{type(self).__name__} requires a fault kind")

    default_message = "I/O failure"


class BrokerConnectError(IOFault):
    """Could not create or assign the broker consumer."""

    kind = FaultKind.BROKER_CONNECT
    default_message = "Kafka connection error"


class BrokerReadError(IOFault):
    """No message could be read from the broker."""

    kind = FaultKind.BROKER_READ
    default_message = "No Kafka message"


class KvConnectError(IOFault):
    """Could not connect to the key-value store."""

    kind = FaultKind.KV_CONNECT
    default_message = "Redis connection error"


class KvReadError(IOFault):
    """Key missing or lookup failed."""

    kind = FaultKind.KV_READ
    default_message = "Error retrieving redis key"


class FileOpenError(IOFault):
    kind = FaultKind.FILE_OPEN
    default_message = "Failed to open file"


class FileReadError(IOFault):
    kind = FaultKind.FILE_READ
    default_message = "Failed to read from file"


class FileWriteError(IOFault):
    kind = FaultKind.FILE_WRITE
    default_message = "Failed to write to file"


class FileSyncError(IOFault):
    kind = FaultKind.FILE_METADATA_SYNC
    default_message = "Failed to sync file"


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineFatalError(Exception):
    """The pipeline cannot continue. The message is the death reason."""

    pass


class RetryExhaustedError(PipelineFatalError):
    """An operation failed on every attempt of its retry budget."""

    def __init__(self, operation: str, attempts: int, last_error: IOFault) -> None:
        super().__init__(f"{operation} failed after {attempts} attempts: {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class StartupError(PipelineFatalError):
    """A bootstrap step without a retry budget failed."""

    pass


class ProtocolViolationError(PipelineFatalError):
    """The broker read succeeded without returning a message."""

    pass


class VerificationError(PipelineFatalError):
    """Records read back from the file differ from the records written."""

    def __init__(self, expected: list[str], actual: list[str]) -> None:
        super().__init__(f"Data verification failed! Expected {expected!r}, got {actual!r}")
        self.expected = expected
        self.actual = actual

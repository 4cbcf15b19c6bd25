"""
SimIO - Deterministic Fault Injection for an Ingestion Pipeline

A small pipeline that:
- Consumes messages from a partitioned log broker (Kafka)
- Reads configuration from a key-value store (Redis)
- Appends formatted records to a local file and reads them back to verify

The same pipeline runs against real systems or against a seeded simulator
that injects faults deterministically and advances a virtual clock.

Components:
- dst - Simulator: seeded RNG, virtual clock, fault injector, simulated I/O
- facade - The I/O capability set and its real implementation
- pipeline - Retry loops, record formatting, read-back verification
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

"""
SimIO Core Data Models

Summaries produced by a pipeline run, shared by the CLI and the dashboard.
"""

from datetime import datetime, UTC
from enum import Enum

from pydantic import BaseModel, Field


class RunMode(str, Enum):
    """Which I/O facade a run used."""

    REAL = "real"
    SIMULATED = "simulated"


class PipelineReport(BaseModel):
    """Outcome of a pipeline run, fatal or not."""

    mode: RunMode
    seed: int | None = None  # Simulated runs only
    iterations: int = 0
    records_written: int = 0
    write_failures: int = 0
    verifications: int = 0
    fault_counts: dict[str, int] = Field(default_factory=dict)
    elapsed_ms: int | None = None  # Virtual time, simulated runs only
    death_reason: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.death_reason is None

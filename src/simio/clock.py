"""
Clocks

The pipeline only ever sleeps through a Clock. RealClock blocks for wall
time; SimClock (simio.dst.clock) advances a virtual counter instead.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything the pipeline can sleep on."""

    async def sleep(self, duration_ms: int) -> None:
        """Suspend for duration_ms milliseconds."""
        ...


class RealClock:
    """Wall clock. Sleeping suspends the caller for real."""

    async def sleep(self, duration_ms: int) -> None:
        assert duration_ms >= 0, f"cannot sleep for negative time ({duration_ms}ms)"
        await asyncio.sleep(duration_ms / 1000.0)

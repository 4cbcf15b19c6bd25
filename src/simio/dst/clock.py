"""
SimClock - Simulated Deterministic Clock

TigerStyle: Time is explicit and controllable.
No real wall-clock time in simulations, sleeping advances a virtual counter.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..constants import TIME_EPOCH_MS, TIME_ADVANCE_MS_MAX


@dataclass
class SimClock:
    """Simulated clock for deterministic testing.

    TigerStyle:
    - Time never advances automatically
    - Sleeping is an explicit advance, no wall time elapses
    - Time is represented as milliseconds since epoch
    - Single owner, not safe for concurrent mutation
    """

    _now_ms: int = field(default=TIME_EPOCH_MS)
    _advances_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        assert self._now_ms >= 0, "time cannot be negative"

    def now_ms(self) -> int:
        """Get current time in milliseconds since epoch."""
        return self._now_ms

    def advance_ms(self, delta_ms: int) -> int:
        """Advance time by the given milliseconds.

        Args:
            delta_ms: Milliseconds to advance. Must be non-negative.

        Returns:
            The new current time in milliseconds.
        """
        assert delta_ms >= 0, f"cannot advance by negative time ({delta_ms}ms)"
        assert delta_ms <= TIME_ADVANCE_MS_MAX, \
            f"advance ({delta_ms}ms) exceeds TIME_ADVANCE_MS_MAX ({TIME_ADVANCE_MS_MAX}ms)"

        self._now_ms += delta_ms
        self._advances_count += 1

        return self._now_ms

    async def sleep(self, duration_ms: int) -> None:
        self.advance_ms(duration_ms)

    def advances_count(self) -> int:
        """Get the number of times time has been advanced."""
        return self._advances_count

    def elapsed_since(self, start_ms: int) -> int:
        """Get milliseconds elapsed since the given time (never negative)."""
        assert start_ms >= 0, "start_ms must be non-negative"
        elapsed = self._now_ms - start_ms
        assert elapsed >= 0, "start_ms is in the future"
        return elapsed

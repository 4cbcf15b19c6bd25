"""
DeterministicRng - Deterministic Random Number Generator

TigerStyle: All randomness is seeded and reproducible.
Based on Python's random.Random (Mersenne Twister).
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Sequence, TypeVar

from ..constants import SIM_SEED_MAX

T = TypeVar("T")


@dataclass
class DeterministicRng:
    """Deterministic random number generator.

    TigerStyle:
    - All operations are deterministic given the same seed
    - Every primitive consumes exactly one draw
    - Can be cloned so a component gets its own copy of the stream
    - Never use global random state
    """

    _seed: int
    _rng: random.Random = field(init=False, repr=False)
    _draws_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        """Initialize the RNG with the seed.

        TigerStyle: Assert preconditions.
        """
        assert 0 <= self._seed <= SIM_SEED_MAX, f"seed ({self._seed}) must be an unsigned 64-bit integer"
        self._rng = random.Random(self._seed)

    @property
    def seed(self) -> int:
        """Get the original seed."""
        return self._seed

    def next_int(self, min_val: int, max_val: int) -> int:
        """Generate a random integer in [min_val, max_val].

        TigerStyle: Explicit bounds, inclusive range.
        """
        assert min_val <= max_val, f"min_val ({min_val}) must be <= max_val ({max_val})"
        self._draws_count += 1
        return self._rng.randint(min_val, max_val)

    def next_float(self) -> float:
        """Generate a random float in [0.0, 1.0)."""
        self._draws_count += 1
        return self._rng.random()

    def next_bool(self, probability: float = 0.5) -> bool:
        """Generate a random boolean with given probability of True.

        Always consumes one draw, including at probability 0.0 and 1.0.
        """
        assert 0.0 <= probability <= 1.0, f"probability ({probability}) must be in [0, 1]"
        return self.next_float() < probability

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        assert len(seq) > 0, "sequence must be non-empty"
        return seq[self.next_int(0, len(seq) - 1)]

    def clone(self) -> DeterministicRng:
        """Copy this RNG, state included.

        The clone replays the same stream from the current position, and
        advancing it does not affect this one.
        """
        twin = DeterministicRng(_seed=self._seed)
        twin._rng.setstate(self._rng.getstate())
        twin._draws_count = self._draws_count
        return twin

    def draws_count(self) -> int:
        """Get the number of draws taken from this stream."""
        return self._draws_count

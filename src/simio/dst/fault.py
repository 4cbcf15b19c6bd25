"""
FaultInjector - Probabilistic Fault Injection

TigerStyle: Explicit fault types, deterministic injection based on RNG.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .rng import DeterministicRng
from ..faults import FaultKind
from ..constants import (
    SIM_FAULT_PROBABILITY_DEFAULT,
    SIM_FAULT_PROBABILITY_MAX,
    SIM_FAULT_PROBABILITY_MIN,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaultConfig:
    """Injection rule for one fault kind.

    TigerStyle: Explicit configuration, no magic defaults.
    """

    kind: FaultKind
    probability: float

    # Optional: skip the first N consultations of this kind
    after_calls: int = 0

    # Optional: maximum number of times to inject
    max_injections: Optional[int] = None

    def __post_init__(self) -> None:
        assert SIM_FAULT_PROBABILITY_MIN <= self.probability <= SIM_FAULT_PROBABILITY_MAX, \
            f"probability ({self.probability}) must be in [{SIM_FAULT_PROBABILITY_MIN}, {SIM_FAULT_PROBABILITY_MAX}]"
        assert self.after_calls >= 0, "after_calls must be non-negative"
        assert self.max_injections is None or self.max_injections > 0, \
            "max_injections must be positive if set"


FaultTable = Mapping[FaultKind, FaultConfig]


def default_fault_table(probability: float = SIM_FAULT_PROBABILITY_DEFAULT) -> dict[FaultKind, FaultConfig]:
    """Same probability for every fault kind."""
    return {kind: FaultConfig(kind, probability) for kind in FaultKind}


@dataclass(frozen=True)
class FaultEvent:
    """A fault that fired. The ordered list of these is the fault trace."""

    sequence: int
    kind: FaultKind
    operation: str


@dataclass
class FaultInjector:
    """Fault injector for deterministic simulation testing.

    TigerStyle:
    - All injection decisions are deterministic given the RNG
    - One draw per consultation unless the rule is gated by count
    - Every injection is recorded in the shared event trace
    """

    _rng: DeterministicRng
    _table: FaultTable
    _events: list[FaultEvent] = field(default_factory=list)
    _calls: dict[FaultKind, int] = field(default_factory=dict, init=False)
    _injections: dict[FaultKind, int] = field(default_factory=dict, init=False)

    def should_inject(self, kind: FaultKind, operation: str) -> bool:
        """Decide whether `kind` fires for this call of `operation`.

        Args:
            kind: The fault to consult.
            operation: Name of the calling operation (e.g., "read_message").

        Returns:
            True if the caller must fail with the corresponding error.
        """
        assert operation, "operation must not be empty"

        calls = self._calls.get(kind, 0) + 1
        self._calls[kind] = calls

        config = self._table.get(kind)
        if config is None:
            return False
        if calls <= config.after_calls:
            return False
        injected = self._injections.get(kind, 0)
        if config.max_injections is not None and injected >= config.max_injections:
            return False

        return self._rng.next_bool(config.probability)

    def record(self, kind: FaultKind, operation: str) -> FaultEvent:
        """Append an event to the trace.

        Used directly for faults that fire without a draw (file size cap).
        """
        event = FaultEvent(sequence=len(self._events), kind=kind, operation=operation)
        self._events.append(event)
        self._injections[kind] = self._injections.get(kind, 0) + 1
        logger.warning(f"Injecting fault {kind.value} during {operation}")
        return event

    def check(self, kind: FaultKind, operation: str) -> bool:
        """should_inject() plus recording when it fires."""
        if self.should_inject(kind, operation):
            self.record(kind, operation)
            return True
        logger.debug(f"Not injecting fault {kind.value} during {operation}")
        return False

    def fork(self, rng: DeterministicRng) -> FaultInjector:
        """Injector on another RNG stream sharing this table and trace."""
        return FaultInjector(_rng=rng, _table=self._table, _events=self._events)

    @property
    def events(self) -> list[FaultEvent]:
        return self._events

    def injection_stats(self) -> dict[str, int]:
        """Injection counts keyed by fault kind value."""
        return {kind.value: count for kind, count in self._injections.items()}

    def calls_count(self, kind: FaultKind) -> int:
        """How many times `kind` has been consulted."""
        return self._calls.get(kind, 0)

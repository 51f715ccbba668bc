"""Coordination of concurrent evaluations of the same design point."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import TYPE_CHECKING

from attrs import define, field

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey
    from simeval.evaluation.solution import Solution


@define
class SingleFlight:
    """Ensures that at most one oracle run per design point is in progress.

    The first caller claiming a key becomes its leader and must eventually resolve
    it. Callers claiming a key that is already in flight receive the leader's future
    and wait for its result. A result of ``None`` signals that the leader gave up
    without producing a solution.
    """

    _flights: dict[InputsKey, Future[Solution | None]] = field(factory=dict, init=False)
    """The futures of the design points currently in flight."""

    _lock: threading.Lock = field(factory=threading.Lock, init=False, repr=False)
    """Guards the flights."""

    def claim(self, key: InputsKey, /) -> tuple[Future[Solution | None], bool]:
        """Claim a design point.

        Returns:
            The future of the flight and a flag indicating if the caller is its leader.
        """
        with self._lock:
            if (future := self._flights.get(key)) is not None:
                return future, False
            future = Future()
            self._flights[key] = future
            return future, True

    def resolve(self, key: InputsKey, solution: Solution | None, /) -> None:
        """Complete the flight of a design point and release all waiting callers."""
        with self._lock:
            future = self._flights.pop(key)
        future.set_result(solution)

    def in_flight(self, key: InputsKey, /) -> bool:
        """Check if a design point is currently in flight."""
        with self._lock:
            return key in self._flights

    def __len__(self) -> int:
        with self._lock:
            return len(self._flights)

"""Detection of stalled solution sequences."""

from __future__ import annotations

import gc
from collections import deque
from typing import TYPE_CHECKING

from attrs import define, field
from attrs.validators import gt, instance_of

if TYPE_CHECKING:
    from simeval.evaluation.comparators import SolutionComparator
    from simeval.evaluation.solution import Solution


def _default_threshold() -> int:
    from simeval.settings import active_settings

    return active_settings.no_improve_threshold


@define
class SolutionChecker:
    """Tracks the most recent solutions of a solver to detect a lack of improvement.

    The checker retains up to :attr:`no_improve_threshold` solutions, discarding the
    oldest one when a new solution is captured.
    """

    no_improve_threshold: int = field(
        factory=_default_threshold, validator=[instance_of(int), gt(0)]
    )
    """The number of consecutive equal solutions signalling that no improvement is
    being made."""

    _last_solutions: deque[Solution] = field(init=False)
    """The captured solutions, oldest first."""

    @_last_solutions.default
    def _default_last_solutions(self) -> deque[Solution]:
        return deque(maxlen=self.no_improve_threshold)

    @property
    def last_solutions(self) -> list[Solution]:
        """The captured solutions, oldest first."""
        return list(self._last_solutions)

    def capture_solution(self, solution: Solution, /) -> None:
        """Capture a solution, discarding the oldest one if the checker is full."""
        self._last_solutions.append(solution)

    def clear(self) -> None:
        """Discard all captured solutions."""
        self._last_solutions.clear()

    def check_solutions(self, comparator: SolutionComparator, /) -> bool:
        """Check if the captured solutions indicate that no improvement is made.

        Args:
            comparator: The strategy used to compare the captured solutions.

        Returns:
            ``True`` if the checker is full and every captured solution compares equal
            to the most recent one.
        """
        if len(self._last_solutions) < self.no_improve_threshold:
            return False
        last = self._last_solutions[-1]
        return all(comparator.compare(last, s) == 0 for s in self._last_solutions)


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

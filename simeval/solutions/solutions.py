"""Bounded, ranked retention of solutions."""

from __future__ import annotations

import gc
import logging
import math
import warnings
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

import pandas as pd
from attrs import define, field
from attrs.validators import ge, instance_of
from typing_extensions import override

from simeval.evaluation.comparators import (
    ConfidenceIntervalComparator,
    SolutionComparator,
)
from simeval.evaluation.solution import Solution
from simeval.exceptions import UnusedObjectWarning

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey

_logger = logging.getLogger(__name__)


def _default_capacity() -> int:
    from simeval.settings import active_settings

    return active_settings.solutions_capacity


def _by_penalized_objective(solutions: Iterable[Solution]) -> list[Solution]:
    return sorted(solutions, key=lambda s: s.penalized_objective)


@define
class Solutions:
    """A bounded collection of solutions ranked by their penalized objective.

    Entries are unique per design point. Once the capacity is reached, adding a new
    design point evicts the oldest entry, regardless of its quality.
    """

    capacity: int = field(
        factory=_default_capacity, validator=[instance_of(int), ge(1)]
    )
    """The maximum number of retained solutions."""

    allow_infeasible_solutions: bool = field(
        default=False, validator=instance_of(bool), kw_only=True
    )
    """Boolean flag indicating if input-infeasible solutions are retained."""

    _solutions: dict[InputsKey, Solution] = field(factory=dict, init=False)
    """The retained solutions, in insertion order."""

    def __len__(self) -> int:
        return len(self._solutions)

    def __iter__(self) -> Iterator[Solution]:
        return iter(list(self._solutions.values()))

    def __contains__(self, solution: object, /) -> bool:
        if isinstance(solution, Solution):
            return solution.key in self._solutions
        return solution in self._solutions

    @property
    def is_empty(self) -> bool:
        """Boolean indicating if the collection holds no solution."""
        return not self._solutions

    @property
    def is_full(self) -> bool:
        """Boolean indicating if the capacity is reached."""
        return len(self._solutions) >= self.capacity

    def add(self, solution: Solution, /) -> Solution | None:
        """Add a solution.

        Input-infeasible solutions are dropped unless
        :attr:`allow_infeasible_solutions` is set. A solution for a design point that
        is already present replaces the existing entry only if it is based on strictly
        more replications. Otherwise, the oldest entry is evicted when the capacity is
        reached.

        Args:
            solution: The solution to be added.

        Returns:
            The solution removed from the collection to make room, if any.
        """
        if not self.allow_infeasible_solutions and not solution.is_input_feasible:
            _logger.debug("Dropping input-infeasible solution: %s", solution)
            return None

        key = solution.key
        if (existing := self._solutions.get(key)) is not None:
            if solution.count <= existing.count:
                return None
            del self._solutions[key]
            self._solutions[key] = solution
            return existing

        evicted = None
        if self.is_full:
            oldest = next(iter(self._solutions))
            evicted = self._solutions.pop(oldest)
        self._solutions[key] = solution
        return evicted

    def add_all(self, solutions: Iterable[Solution], /) -> list[Solution]:
        """Add several solutions, returning all solutions evicted along the way."""
        evicted = (self.add(s) for s in solutions)
        return [s for s in evicted if s is not None]

    def remove(self, solution: Solution, /) -> bool:
        """Remove the entry for the design point of a solution, if present."""
        return self._solutions.pop(solution.key, None) is not None

    def clear(self) -> None:
        """Remove all entries."""
        self._solutions.clear()

    def increase_capacity(self, increase: int | None = None) -> None:
        """Increase the capacity of the collection.

        Args:
            increase: The additional capacity. Defaults to the configured default
                capacity.

        Raises:
            ValueError: If the increase is negative.
        """
        if increase is None:
            increase = _default_capacity()
        if increase < 0:
            raise ValueError(f"The capacity increase must be >= 0. Given: {increase}.")
        if increase == 0:
            warnings.warn(
                "Increasing the capacity by zero has no effect.", UnusedObjectWarning
            )
        self.capacity += increase

    @property
    def solutions(self) -> list[Solution]:
        """The solutions in insertion order."""
        return list(self._solutions.values())

    @property
    def ordered_solutions(self) -> list[Solution]:
        """The solutions ordered by ascending penalized objective."""
        return _by_penalized_objective(self._solutions.values())

    @property
    def ordered_input_feasible_solutions(self) -> list[Solution]:
        """The input-feasible solutions ordered by ascending penalized objective."""
        return _by_penalized_objective(
            s for s in self._solutions.values() if s.is_input_feasible
        )

    def ordered_response_feasible_solutions(
        self, level: float | None = None
    ) -> list[Solution]:
        """The input- and response-feasible solutions ordered by penalized objective.

        Args:
            level: The overall confidence level of the response constraint tests.
                Defaults to the active settings.

        Returns:
            The feasible solutions ordered by ascending penalized objective.
        """
        return [
            s
            for s in self.ordered_input_feasible_solutions
            if s.is_response_constraint_feasible(level)
        ]

    def peek_best(self) -> Solution | None:
        """The solution with the smallest penalized objective, if any."""
        if not self._solutions:
            return None
        return min(self._solutions.values(), key=lambda s: s.penalized_objective)

    def possibly_best(self, comparator: SolutionComparator) -> Solutions:
        """Collect all solutions that compare as tied with or better than the best.

        Args:
            comparator: The strategy used to compare each solution with the best one.

        Returns:
            A new collection holding the possibly best solutions.
        """
        ordered = self.ordered_solutions
        result = Solutions(
            max(1, len(ordered)),
            allow_infeasible_solutions=self.allow_infeasible_solutions,
        )
        if not ordered:
            return result
        best = ordered[0]
        for solution in ordered:
            if comparator.compare(solution, best) <= 0:
                result.add(solution)
        return result

    def possibly_best_by_confidence(
        self, level: float | None = None, indifference_zone: float = 0.0
    ) -> Solutions:
        """Collect the possibly best solutions via confidence intervals.

        See :meth:`possibly_best` and :class:`ConfidenceIntervalComparator`.
        """
        if level is None:
            comparator = ConfidenceIntervalComparator(
                indifference_zone=indifference_zone
            )
        else:
            comparator = ConfidenceIntervalComparator(level, indifference_zone)
        return self.possibly_best(comparator)

    def to_data_map(self) -> dict[str, list[float]]:
        """Collect the data of all solutions column-wise, in insertion order.

        Values missing for a solution, such as the response estimates of a bad
        solution, are filled with ``nan`` so that all columns have equal length.
        """
        rows = [s.as_mapped_data() for s in self._solutions.values()]
        columns = dict.fromkeys(name for row in rows for name in row)
        return {name: [row.get(name, math.nan) for row in rows] for name in columns}

    def to_dataframe(self) -> pd.DataFrame:
        """Create a dataframe with one row per solution, in insertion order."""
        return pd.DataFrame(self.to_data_map())

    @override
    def __str__(self) -> str:
        lines = [f"Solutions ({len(self)}/{self.capacity}):"]
        lines.extend(f"  {s}" for s in self.ordered_solutions)
        return "\n".join(lines)


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

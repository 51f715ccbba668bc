"""In-memory solution cache."""

from __future__ import annotations

import gc
import logging
import math
import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING

from attrs import define, field
from attrs.validators import ge, instance_of
from typing_extensions import override

from simeval.cache.base import EvictionRule

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey
    from simeval.evaluation.solution import Solution

_logger = logging.getLogger(__name__)


def _default_capacity() -> int:
    from simeval.settings import active_settings

    return active_settings.cache_capacity


def _is_unattractive(solution: Solution) -> bool:
    """Check if a solution is bad, infeasible or has no finite penalized objective."""
    return (
        solution.is_bad
        or not solution.is_input_feasible
        or not math.isfinite(solution.penalized_objective)
    )


@define(frozen=True)
class WorstSolutionEvictionRule:
    """Evict unattractive entries first, then the entry ranked worst.

    Unattractive entries are bad or input-infeasible solutions and solutions without
    a finite penalized objective. Otherwise, the entry with the largest penalized
    objective is evicted. Ties are resolved in favor of the oldest entry.
    """

    def find_eviction_candidate(
        self, solutions: dict[InputsKey, Solution], /
    ) -> InputsKey:
        """See :meth:`simeval.cache.base.EvictionRule.find_eviction_candidate`."""
        worst_key = None
        worst_value = -math.inf
        for key, solution in solutions.items():
            if _is_unattractive(solution):
                return key
            if worst_key is None or solution.penalized_objective > worst_value:
                worst_key, worst_value = key, solution.penalized_objective
        if worst_key is None:
            raise ValueError("An empty cache has no eviction candidate.")
        return worst_key


@define
class MemorySolutionCache:
    """A bounded, thread-safe solution cache held in memory.

    When the cache is full, storing a new design point evicts the entry selected by
    the eviction rule. All operations are serialized through a re-entrant lock, so
    readers never observe partially applied updates.
    """

    capacity: int = field(
        factory=_default_capacity, validator=[instance_of(int), ge(2)]
    )
    """The maximum number of cached solutions."""

    allow_infeasible_solutions: bool = field(
        default=False, validator=instance_of(bool), kw_only=True
    )
    """Boolean flag indicating if input-infeasible solutions are cached."""

    eviction_rule: EvictionRule = field(
        factory=WorstSolutionEvictionRule,
        validator=instance_of(EvictionRule),
        kw_only=True,
    )
    """The strategy selecting the entry to evict from a full cache."""

    _solutions: dict[InputsKey, Solution] = field(factory=dict, init=False)
    """The cached solutions, in insertion order."""

    _lock: threading.RLock = field(factory=threading.RLock, init=False, repr=False)
    """Serializes all cache operations."""

    def __len__(self) -> int:
        with self._lock:
            return len(self._solutions)

    def __contains__(self, key: object, /) -> bool:
        with self._lock:
            return key in self._solutions

    def __iter__(self) -> Iterator[InputsKey]:
        return iter(self.keys())

    def keys(self) -> list[InputsKey]:
        """A snapshot of the cached keys, in insertion order."""
        with self._lock:
            return list(self._solutions)

    def solutions(self) -> dict[InputsKey, Solution]:
        """A snapshot of the cached solutions, in insertion order."""
        with self._lock:
            return dict(self._solutions)

    def get(self, key: InputsKey, /) -> Solution | None:
        """Return the cached solution for a design point, if any."""
        with self._lock:
            return self._solutions.get(key)

    def put(self, key: InputsKey, solution: Solution, /) -> Solution | None:
        """Store a solution.

        Input-infeasible solutions are silently ignored unless
        :attr:`allow_infeasible_solutions` is set. Bad solutions are never cached.

        Args:
            key: The identity of the design point.
            solution: The solution to be stored.

        Raises:
            ValueError: If the key does not match the design point of the solution.

        Returns:
            The solution previously cached for the design point, if any.
        """
        if key != solution.key:
            raise ValueError(
                f"The key '{key}' does not match the design point of the solution "
                f"'{solution.key}'."
            )
        if solution.is_bad:
            _logger.debug("Bad solution for '%s' is not cached.", key)
            return None
        if not self.allow_infeasible_solutions and not solution.is_input_feasible:
            _logger.debug("Input-infeasible solution for '%s' is not cached.", key)
            return None

        with self._lock:
            if key not in self._solutions and len(self._solutions) >= self.capacity:
                self._evict()
            previous = self._solutions.pop(key, None)
            self._solutions[key] = solution
        _logger.debug("Cached solution for '%s' (n=%d).", key, solution.count)
        return previous

    def put_all(self, solutions: Mapping[InputsKey, Solution], /) -> None:
        """Store several solutions."""
        with self._lock:
            for key, solution in solutions.items():
                self.put(key, solution)

    def _evict(self) -> None:
        candidate = self.eviction_rule.find_eviction_candidate(dict(self._solutions))
        evicted = self._solutions.pop(candidate)
        _logger.debug("Evicted '%s' from the cache.", evicted.key)

    def retrieve(self, keys: Iterable[InputsKey], /) -> dict[InputsKey, Solution]:
        """Return the cached solutions for all design points found in the cache."""
        with self._lock:
            return {k: s for k in keys if (s := self._solutions.get(k)) is not None}

    def remove(self, key: InputsKey, /) -> Solution | None:
        """Remove and return the cached solution for a design point, if any."""
        with self._lock:
            return self._solutions.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._solutions.clear()

    @override
    def __str__(self) -> str:
        return f"MemorySolutionCache({len(self)}/{self.capacity} entries)"


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

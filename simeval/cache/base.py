"""Base protocols for solution caches."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey
    from simeval.evaluation.solution import Solution


@runtime_checkable
class SolutionCacheProtocol(Protocol):
    """Type protocol specifying the interface solution caches need to implement.

    Caches map the identity of a design point to the most recent solution for it.
    Entries are replaced on update, never mutated in place.
    """

    # Use slots so that derived classes also remain slotted
    # See also: https://www.attrs.org/en/stable/glossary.html#term-slotted-classes
    __slots__ = ()

    def get(self, key: InputsKey, /) -> Solution | None:
        """Return the cached solution for a design point, if any."""
        ...

    def put(self, key: InputsKey, solution: Solution, /) -> Solution | None:
        """Store a solution, returning the solution it replaces, if any."""
        ...

    def retrieve(self, keys: Iterable[InputsKey], /) -> dict[InputsKey, Solution]:
        """Return the cached solutions for all design points found in the cache."""
        ...

    def remove(self, key: InputsKey, /) -> Solution | None:
        """Remove and return the cached solution for a design point, if any."""
        ...

    def clear(self) -> None:
        """Remove all entries."""
        ...

    def __len__(self) -> int: ...

    def __contains__(self, key: object, /) -> bool: ...


@runtime_checkable
class EvictionRule(Protocol):
    """Type protocol for strategies selecting the entry to evict from a full cache."""

    __slots__ = ()

    def find_eviction_candidate(
        self, solutions: dict[InputsKey, Solution], /
    ) -> InputsKey:
        """Select the key of the entry to be evicted.

        Args:
            solutions: The cached solutions, in insertion order.

        Returns:
            The key of the entry to be evicted.
        """
        ...

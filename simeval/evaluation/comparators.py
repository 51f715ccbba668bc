"""Strategies for comparing solutions."""

from __future__ import annotations

import gc
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from attrs import define, field
from attrs.validators import ge, gt
from typing_extensions import override

from simeval.estimates import difference_confidence_interval
from simeval.serialization import SerialMixin
from simeval.utils.validation import confidence_level_validator

if TYPE_CHECKING:
    from simeval.evaluation.solution import Solution


def _default_level() -> float:
    from simeval.settings import active_settings

    return active_settings.confidence_level


def _default_precision() -> float:
    from simeval.settings import active_settings

    return active_settings.numerical_precision


def _compare_values(first: float, second: float, tolerance: float = 0.0) -> int:
    """Three-way comparison of two numbers with an absolute tolerance."""
    if first == second:
        return 0
    d = first - second
    if d < -tolerance:
        return -1
    if d > tolerance:
        return 1
    return 0


@runtime_checkable
class SolutionComparator(Protocol):
    """Type protocol specifying the interface of solution comparison strategies.

    A comparison returns a negative number if the first solution is better, a positive
    number if it is worse, and zero if both are considered equal.
    """

    # Use slots so that derived classes also remain slotted
    # See also: https://www.attrs.org/en/stable/glossary.html#term-slotted-classes
    __slots__ = ()

    def compare(self, first: Solution, second: Solution, /) -> int:
        """Compare two solutions.

        Args:
            first: The first solution.
            second: The second solution.

        Returns:
            ``-1``, ``0`` or ``1`` depending on the ordering of the solutions.
        """
        ...


@define(frozen=True)
class SolutionComparatorBase(SerialMixin, ABC):
    """Abstract base class for the solution comparators shipped with the package.

    Comparators are callable, which allows using them with :func:`functools.cmp_to_key`.
    Their serialized form carries the name of the concrete class, so they can be
    restored via the base class.
    """

    @abstractmethod
    def compare(self, first: Solution, second: Solution, /) -> int:
        """See :meth:`SolutionComparator.compare`."""

    def __call__(self, first: Solution, second: Solution, /) -> int:
        return self.compare(first, second)


@define(frozen=True)
class InputEqualityComparator(SolutionComparatorBase):
    """Solutions of the same design point are equal regardless of their estimates.

    Solutions of different design points are ordered by their penalized objective,
    with ties broken by their inputs.
    """

    @override
    def compare(self, first: Solution, second: Solution, /) -> int:
        # See base class.

        if first.key == second.key:
            return 0
        if result := _compare_values(
            first.penalized_objective, second.penalized_objective
        ):
            return result
        return -1 if first.key.inputs < second.key.inputs else 1


@define(frozen=True)
class PenalizedObjectiveComparator(SolutionComparatorBase):
    """Solutions are equal if their penalized objectives agree up to a precision."""

    precision: float = field(
        factory=_default_precision, converter=float, validator=gt(0.0)
    )
    """The absolute difference below which penalized objectives are equal."""

    @override
    def compare(self, first: Solution, second: Solution, /) -> int:
        # See base class.

        return _compare_values(
            first.penalized_objective, second.penalized_objective, self.precision
        )


@define(frozen=True)
class ObjectiveComparator(SolutionComparatorBase):
    """Solutions are ordered by their estimated objective, ignoring any penalty."""

    @override
    def compare(self, first: Solution, second: Solution, /) -> int:
        # See base class.

        return _compare_values(
            first.estimated_objective_value, second.estimated_objective_value
        )


@define(frozen=True)
class ConfidenceIntervalComparator(SolutionComparatorBase):
    """Solutions are equal if their difference is statistically insignificant.

    A confidence interval on the difference of the objective averages is shifted by
    the difference of the constraint penalties. The solutions are considered equal if
    the interval, widened by the indifference zone, contains zero.
    """

    level: float = field(
        factory=_default_level, converter=float, validator=confidence_level_validator
    )
    """The confidence level of the interval."""

    indifference_zone: float = field(default=0.0, converter=float, validator=ge(0.0))
    """Differences within this tolerance are considered equal."""

    def _half_width(self, first: Solution, second: Solution) -> float:
        a = first.estimated_objective
        b = second.estimated_objective
        if a.count == 1 and b.count == 1:
            return 0.0
        if a.count == 1 or b.count == 1:
            return (b if a.count == 1 else a).half_width(self.level)
        return difference_confidence_interval(a, b, self.level).width / 2.0

    @override
    def compare(self, first: Solution, second: Solution, /) -> int:
        # See base class.

        if first.is_bad or second.is_bad:
            return _compare_values(float(first.is_bad), float(second.is_bad))

        d = first.penalized_objective - second.penalized_objective
        hw = self._half_width(first, second)
        if d + hw + self.indifference_zone < 0.0:
            return -1
        if d - hw - self.indifference_zone > 0.0:
            return 1
        return 0


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

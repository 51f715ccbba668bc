"""Closed intervals used for input bounds and confidence intervals."""

from __future__ import annotations

import gc
import math
from collections.abc import Iterable
from functools import singledispatchmethod
from typing import Any, Union

from attrs import define, evolve, field

from simeval.serialization import SerialMixin, converter
from simeval.utils.validation import non_nan_float

ConvertibleToInterval = Union["Interval", Iterable[float], None]
"""Types that :meth:`Interval.create` accepts."""


def _to_lower(value: float | None) -> float:
    return -math.inf if value is None else float(value)


def _to_upper(value: float | None) -> float:
    return math.inf if value is None else float(value)


@define(frozen=True)
class Interval(SerialMixin):
    """A closed interval on the extended real line.

    Missing ends are represented by infinite values, e.g. the confidence interval of an
    estimate based on a single observation is ``Interval()``.
    """

    lower: float = field(
        default=-math.inf, converter=_to_lower, validator=non_nan_float
    )
    """The lower end."""

    upper: float = field(
        default=math.inf, converter=_to_upper, validator=non_nan_float
    )
    """The upper end."""

    @upper.validator
    def _validate_order(self, _: Any, upper: float) -> None:  # noqa: DOC101, DOC103
        """Validate that the ends are ordered.

        Raises:
            ValueError: If the upper end is smaller than the lower end.
        """
        if upper < self.lower:
            raise ValueError(
                f"The upper end of an interval cannot be smaller than its lower end. "
                f"Given: lower={self.lower}, upper={upper}."
            )

    @property
    def is_degenerate(self) -> bool:
        """Boolean indicating if the interval consists of a single number."""
        return self.lower == self.upper

    @property
    def is_left_bounded(self) -> bool:
        """Boolean indicating if the lower end is finite."""
        return math.isfinite(self.lower)

    @property
    def is_right_bounded(self) -> bool:
        """Boolean indicating if the upper end is finite."""
        return math.isfinite(self.upper)

    @property
    def is_bounded(self) -> bool:
        """Boolean indicating if both ends are finite."""
        return self.is_left_bounded and self.is_right_bounded

    @property
    def center(self) -> float:
        """The midpoint (``nan`` unless the interval is bounded)."""
        if not self.is_bounded:
            return math.nan
        return (self.lower + self.upper) / 2

    @property
    def width(self) -> float:
        """The distance between both ends."""
        return self.upper - self.lower

    @singledispatchmethod
    @classmethod
    def create(cls, value: ConvertibleToInterval) -> Interval:
        """Create an interval from an interval, a pair of ends, or ``None``."""
        # Forward references cannot be dispatched on, hence the explicit check
        if isinstance(value, Interval):
            return evolve(value)
        raise NotImplementedError(f"Unsupported argument type: {type(value)}")

    @create.register
    @classmethod
    def _(cls, _: None):
        """Create the entire real line."""
        return Interval()

    @create.register
    @classmethod
    def _(cls, bounds: Iterable):
        """Create an interval from its two ends."""
        return Interval(*bounds)

    def to_tuple(self) -> tuple[float, float]:
        """Return the ends as a pair."""
        return self.lower, self.upper

    def contains(self, number: float) -> bool:
        """Check if a number lies in the interval, with a tolerance at both ends.

        Example:
            >>> Interval(0, 1).contains(1.0 + 1e-12)
            True
        """
        return (
            self.lower < number < self.upper
            or math.isclose(number, self.lower, abs_tol=1e-8)
            or math.isclose(number, self.upper, abs_tol=1e-8)
        )


def _structure_interval(value: Any, cls: type[Interval]) -> Interval:
    """Structure an interval from a dictionary or from what :meth:`create` accepts."""
    if isinstance(value, dict):
        return converter.structure_attrs_fromdict(value, cls)
    return Interval.create(value)


converter.register_structure_hook(Interval, _structure_interval)

# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

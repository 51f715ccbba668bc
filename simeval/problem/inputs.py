"""Definitions of the decision variables of a problem."""

from __future__ import annotations

import gc
from typing import Any

from attrs import define, field
from attrs.validators import ge, instance_of
from typing_extensions import override

from simeval.serialization import SerialMixin
from simeval.utils.interval import Interval
from simeval.utils.validation import finite_float, validate_not_blank


@define(frozen=True)
class InputDefinition(SerialMixin):
    """A bounded decision variable of a simulation optimization problem.

    Values are rounded to the nearest multiple of the granularity before they are used
    to identify a design point. A granularity of zero denotes a continuous input.
    """

    name: str = field(validator=[instance_of(str), validate_not_blank])
    """The name of the input."""

    bounds: Interval = field(converter=Interval.create)
    """The range of admissible values."""

    granularity: float = field(
        default=0.0, converter=float, validator=[finite_float, ge(0.0)]
    )
    """The smallest distinguishable change of the input (0 for continuous inputs)."""

    @bounds.validator
    def _validate_bounds(self, _: Any, value: Interval) -> None:  # noqa: DOC101, DOC103
        """Validate the bounds.

        Raises:
            ValueError: If the bounds are unbounded or degenerate.
        """
        if not value.is_bounded:
            raise ValueError(
                f"The bounds of input '{self.name}' must be finite. Given: {value}."
            )
        if value.is_degenerate:
            raise ValueError(
                f"The bounds of input '{self.name}' must span a non-empty range. "
                f"Given: {value}."
            )

    @property
    def lower(self) -> float:
        """The lower bound of the input."""
        return self.bounds.lower

    @property
    def upper(self) -> float:
        """The upper bound of the input."""
        return self.bounds.upper

    @property
    def is_continuous(self) -> bool:
        """Boolean indicating if the input has no granularity."""
        return self.granularity == 0.0

    def round_to_granularity(self, value: float, /) -> float:
        """Round a value to the nearest multiple of the granularity.

        Example:
            >>> InputDefinition("x", (0, 10), 0.5).round_to_granularity(1.3)
            1.5
        """
        if self.is_continuous:
            return float(value)
        return float(round(value / self.granularity) * self.granularity)

    def is_in_range(self, value: float, /) -> bool:
        """Check if a value lies within the bounds."""
        return self.bounds.contains(value)

    @override
    def __str__(self) -> str:
        return f"{self.name} in [{self.lower:g}, {self.upper:g}]"


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

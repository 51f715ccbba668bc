"""Linear and response constraints of simulation optimization problems."""

from __future__ import annotations

import gc
import math
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from attrs import define, field
from attrs.validators import deep_mapping, instance_of, min_len
from scipy import stats
from typing_extensions import override

from simeval.problem.enum import InequalityType
from simeval.serialization import SerialMixin
from simeval.utils.validation import (
    finite_float,
    validate_confidence_level,
    validate_not_blank,
)

if TYPE_CHECKING:
    from simeval.estimates import EstimatedResponse


def _to_coefficients(value: Mapping[str, float]) -> dict[str, float]:
    return {str(k): float(v) for k, v in value.items()}


@define(frozen=True)
class LinearConstraint(SerialMixin):
    """A linear constraint on the inputs of the form ``sum(c_i * x_i) <= rhs``.

    With :attr:`InequalityType.GREATER_THAN`, the constraint reads
    ``sum(c_i * x_i) >= rhs`` instead.
    """

    equation: dict[str, float] = field(
        converter=_to_coefficients,
        validator=[
            min_len(1),
            deep_mapping(
                key_validator=instance_of(str), value_validator=finite_float
            ),
        ],
        hash=False,
    )
    """The coefficients of the constraint, indexed by input name."""

    rhs: float = field(default=0.0, converter=float, validator=finite_float)
    """The right-hand side of the constraint."""

    inequality_type: InequalityType = field(
        default=InequalityType.LESS_THAN, converter=InequalityType
    )
    """The direction of the inequality."""

    @equation.validator
    def _validate_equation(  # noqa: DOC101, DOC103
        self, _: Any, equation: dict[str, float]
    ) -> None:
        """Validate the input names of the equation.

        Raises:
            ValueError: If an input name is blank.
        """
        if any(not name.strip() for name in equation):
            raise ValueError(
                f"The input names of a linear constraint cannot be blank. "
                f"Given: {list(equation)}."
            )

    @property
    def input_names(self) -> frozenset[str]:
        """The names of the inputs the constraint refers to."""
        return frozenset(self.equation)

    def coefficient(self, name: str, /) -> float:
        """The coefficient of an input (0 if the input is not part of the equation)."""
        return self.equation.get(name, 0.0)

    def coefficients(self, input_names: Iterable[str], /) -> tuple[float, ...]:
        """The coefficients of the given inputs, in the given order."""
        return tuple(self.coefficient(name) for name in input_names)

    def _sign(self) -> float:
        return 1.0 if self.inequality_type is InequalityType.LESS_THAN else -1.0

    def left_hand_side(self, values: Mapping[str, float], /) -> float:
        """Evaluate the left-hand side for the given input values.

        Raises:
            KeyError: If an input of the constraint is missing in the values.
        """
        return math.fsum(c * values[name] for name, c in self.equation.items())

    def slack(self, values: Mapping[str, float], /) -> float:
        """The signed distance to the boundary (non-negative if satisfied)."""
        return self._sign() * (self.rhs - self.left_hand_side(values))

    def is_satisfied(self, values: Mapping[str, float], /) -> bool:
        """Check if the given input values satisfy the constraint."""
        return self.slack(values) >= 0.0

    @override
    def __str__(self) -> str:
        terms = " + ".join(f"{c:g}*{name}" for name, c in self.equation.items())
        op = "<=" if self.inequality_type is InequalityType.LESS_THAN else ">="
        return f"{terms} {op} {self.rhs:g}"


@define(frozen=True)
class ResponseConstraint(SerialMixin):
    """A constraint on the expected value of a response.

    Violations are measured as the positive distance of the estimated average to the
    feasible region and enter the penalized objective of a solution.
    """

    name: str = field(validator=[instance_of(str), validate_not_blank])
    """The name of the constrained response."""

    rhs: float = field(converter=float, validator=finite_float)
    """The right-hand side of the constraint."""

    inequality_type: InequalityType = field(
        default=InequalityType.LESS_THAN, converter=InequalityType
    )
    """The direction of the inequality."""

    def _sign(self) -> float:
        return 1.0 if self.inequality_type is InequalityType.LESS_THAN else -1.0

    def violation(self, estimate: EstimatedResponse, /) -> float:
        """The amount by which the estimated average violates the constraint."""
        return max(0.0, self._sign() * (estimate.average - self.rhs))

    def is_feasible(
        self, estimate: EstimatedResponse, level: float, num_constraints: int = 1
    ) -> bool:
        """Test the constraint at the given confidence level.

        The constraint is considered feasible unless the estimate provides evidence
        that it is violated, using a one-sided interval whose individual level is
        Bonferroni-adjusted for the number of jointly tested constraints. Estimates
        from a single observation are compared directly.

        Args:
            estimate: The estimate of the constrained response.
            level: The joint confidence level.
            num_constraints: The number of jointly tested constraints.

        Returns:
            ``True`` if the constraint is considered feasible.
        """
        validate_confidence_level(level)
        distance = self._sign() * (estimate.average - self.rhs)
        if estimate.count <= 1:
            return distance <= 0.0
        individual = 1.0 - (1.0 - level) / max(1, num_constraints)
        quantile = float(stats.t.ppf(individual, estimate.count - 1))
        hw = quantile * estimate.standard_error
        return distance - hw <= 0.0

    @override
    def __str__(self) -> str:
        op = "<=" if self.inequality_type is InequalityType.LESS_THAN else ">="
        return f"E[{self.name}] {op} {self.rhs:g}"


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

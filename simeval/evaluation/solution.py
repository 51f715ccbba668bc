"""Evaluated design points."""

from __future__ import annotations

import gc
import math
from typing import TYPE_CHECKING, Any

from attrs import define, field
from attrs.validators import deep_iterable, ge, instance_of
from typing_extensions import override

from simeval.estimates import EstimatedResponse, ResponseMap
from simeval.exceptions import MergeMismatchError, UnknownResponseError
from simeval.problem import InputMap
from simeval.utils.basic import first_duplicate

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey
    from simeval.problem import ProblemDefinition


@define(frozen=True)
class Solution:
    """A design point together with the estimates of its responses.

    Solutions are ranked by their penalized objective, i.e. the estimated objective
    plus a penalty for violated response constraints that grows with the iteration
    number. Smaller is better.
    """

    input_map: InputMap = field(validator=instance_of(InputMap))
    """The evaluated design point."""

    estimated_objective: EstimatedResponse = field(
        validator=instance_of(EstimatedResponse)
    )
    """The estimate of the objective response."""

    response_estimates: tuple[EstimatedResponse, ...] = field(
        factory=tuple,
        converter=tuple,
        validator=deep_iterable(member_validator=instance_of(EstimatedResponse)),
    )
    """The estimates of the remaining responses of the problem."""

    iteration_number: int = field(default=0, validator=[instance_of(int), ge(0)])
    """The number of the evaluation that produced the solution."""

    is_bad: bool = field(default=False, validator=instance_of(bool), kw_only=True)
    """Boolean flag indicating a sentinel solution for a failed evaluation."""

    @estimated_objective.validator
    def _validate_estimated_objective(  # noqa: DOC101, DOC103
        self, _: Any, value: EstimatedResponse
    ) -> None:
        """Validate that the objective estimate refers to the objective response.

        Raises:
            UnknownResponseError: If the estimate refers to a different response.
        """
        if value.name != self.problem.objective_response_name:
            raise UnknownResponseError(
                f"The objective of problem '{self.problem.problem_name}' is "
                f"'{self.problem.objective_response_name}'. Given: '{value.name}'."
            )

    @response_estimates.validator
    def _validate_response_estimates(  # noqa: DOC101, DOC103
        self, _: Any, value: tuple[EstimatedResponse, ...]
    ) -> None:
        """Validate the names of the response estimates.

        Raises:
            ValueError: If a response is estimated more than once.
            UnknownResponseError: If a response is not produced by the model.
        """
        names = [e.name for e in value]
        if (dup := first_duplicate(names)) is not None:
            raise ValueError(f"The response '{dup}' is estimated more than once.")
        if unknown := set(names) - self.problem.response_names:
            raise UnknownResponseError(
                f"The responses {sorted(unknown)} are not produced by model "
                f"'{self.problem.model_identifier}'."
            )

    @classmethod
    def from_response_map(
        cls,
        input_map: InputMap,
        response_map: ResponseMap,
        iteration_number: int = 0,
    ) -> Solution:
        """Create a solution from the estimates returned for a design point.

        Raises:
            ValueError: If the map lacks a response required by the problem.
        """
        problem = input_map.problem
        if missing := problem.required_response_names.difference(response_map):
            raise ValueError(
                f"The responses {sorted(missing)} required by problem "
                f"'{problem.problem_name}' have not been estimated."
            )
        return cls(
            input_map,
            response_map[problem.objective_response_name],
            tuple(
                response_map[name]
                for name in sorted(response_map)
                if name in problem.response_names
            ),
            iteration_number,
        )

    @property
    def problem(self) -> ProblemDefinition:
        """The problem the solution belongs to."""
        return self.input_map.problem

    @property
    def key(self) -> InputsKey:
        """The identity of the evaluated design point."""
        return self.input_map.key

    @property
    def inputs(self) -> dict[str, float]:
        """The input values of the evaluated design point."""
        return dict(self.input_map)

    @property
    def count(self) -> int:
        """The number of replications the objective estimate is based on."""
        return self.estimated_objective.count

    @property
    def num_replications(self) -> int:
        """Alias for :attr:`count`."""
        return self.count

    @property
    def estimated_objective_value(self) -> float:
        """The estimated average of the objective response."""
        return self.estimated_objective.average

    @property
    def estimates(self) -> dict[str, EstimatedResponse]:
        """All estimates of the solution, indexed by response name."""
        estimates = {e.name: e for e in self.response_estimates}
        estimates[self.estimated_objective.name] = self.estimated_objective
        return estimates

    @property
    def penalty_value(self) -> float:
        """The penalty factor for the iteration that produced the solution."""
        return self.problem.penalty_function(self.iteration_number)

    @property
    def response_violation(self) -> float:
        """The total violation of all response constraints."""
        if self.is_bad:
            return math.inf
        return self.problem.total_response_violation(self.estimates)

    @property
    def constraint_violation_penalty(self) -> float:
        """The penalty added to the objective for violated response constraints."""
        if self.is_bad:
            return math.inf
        violation = self.response_violation
        if violation == 0.0:
            return 0.0
        return violation * self.penalty_value

    @property
    def penalized_objective(self) -> float:
        """The objective average plus the constraint violation penalty."""
        if self.is_bad:
            return math.inf
        return self.estimated_objective.average + self.constraint_violation_penalty

    @property
    def is_input_range_feasible(self) -> bool:
        """Boolean indicating if the inputs lie within their bounds."""
        return self.input_map.is_input_range_feasible

    @property
    def is_linear_constraint_feasible(self) -> bool:
        """Boolean indicating if the inputs satisfy the linear constraints."""
        return self.input_map.is_linear_constraint_feasible

    @property
    def is_input_feasible(self) -> bool:
        """Boolean indicating if the inputs satisfy bounds and linear constraints."""
        return self.input_map.is_input_feasible

    def is_response_constraint_feasible(self, level: float | None = None) -> bool:
        """Jointly test the response constraints at the given confidence level.

        Args:
            level: The overall confidence level. Defaults to the active settings.

        Returns:
            ``True`` if no constraint is detected to be violated. Bad solutions are
            never feasible.
        """
        if self.is_bad:
            return False
        if level is None:
            from simeval.settings import active_settings

            level = active_settings.confidence_level
        return self.problem.is_response_constraint_feasible(self.estimates, level)

    def to_response_map(self) -> ResponseMap:
        """Collect the estimates of the solution into a fresh response map."""
        return ResponseMap.from_estimates(
            self.problem.model_identifier,
            self.problem.required_response_names,
            self.estimates.values(),
        )

    def merge(self, other: Solution, iteration_number: int | None = None) -> Solution:
        """Combine the estimates of two independent evaluations of the same point.

        Args:
            other: The solution to merge with.
            iteration_number: The iteration number of the merged solution. Defaults to
                the larger iteration number of both solutions.

        Raises:
            MergeMismatchError: If the solutions belong to different design points.
            MergeMismatchError: If the solutions estimate different responses.
            ValueError: If one of the solutions is bad.

        Returns:
            The merged solution.
        """
        if self.key != other.key:
            raise MergeMismatchError(
                f"Only solutions of the same design point can be merged. "
                f"Given: '{self.key}' and '{other.key}'."
            )
        if self.is_bad or other.is_bad:
            raise ValueError("Bad solutions cannot be merged.")
        if self.estimates.keys() != other.estimates.keys():
            raise MergeMismatchError(
                f"Only solutions estimating the same responses can be merged. "
                f"Given: {sorted(self.estimates)} and {sorted(other.estimates)}."
            )
        response_map = self.to_response_map()
        response_map.merge_all(other.to_response_map())
        if iteration_number is None:
            iteration_number = max(self.iteration_number, other.iteration_number)
        return Solution.from_response_map(
            self.input_map, response_map, iteration_number
        )

    def as_mapped_data(self) -> dict[str, float]:
        """Return the inputs and statistical summaries as a flat dictionary."""
        data: dict[str, float] = dict(self.input_map)
        data["iteration_number"] = float(self.iteration_number)
        data["penalized_objective"] = self.penalized_objective
        data["is_bad"] = float(self.is_bad)
        for estimate in self.estimates.values():
            data.update(estimate.as_mapped_data())
        return data

    @override
    def __str__(self) -> str:
        status = " (bad)" if self.is_bad else ""
        return (
            f"Solution #{self.iteration_number}{status}: [{self.input_map}] "
            f"objective={self.estimated_objective_value:g} (n={self.count}), "
            f"penalized={self.penalized_objective:g}"
        )


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

"""Definitions of simulation optimization problems."""

from __future__ import annotations

import gc
import math
import sys
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from attrs import define, field
from attrs.validators import deep_iterable, instance_of, is_callable, min_len
from typing_extensions import override

from simeval.estimates import EstimatedResponse
from simeval.exceptions import UnknownResponseError
from simeval.problem.constraints import LinearConstraint, ResponseConstraint
from simeval.problem.input_map import InputMap
from simeval.problem.inputs import InputDefinition
from simeval.serialization import (
    block_deserialization_hook,
    block_serialization_hook,
    converter,
)
from simeval.utils.basic import first_duplicate
from simeval.utils.validation import validate_confidence_level, validate_not_blank

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import ModelInputs
    from simeval.evaluation.solution import Solution


def default_penalty_function(iteration_number: int, /) -> float:
    """The default penalty growth, i.e. the squared iteration number."""
    return float(iteration_number) ** 2


@define(frozen=True, eq=False)
class ProblemDefinition:
    """A simulation optimization problem.

    The definition declares the decision variables, the responses produced by the
    simulation model and the constraints a solution must satisfy. The objective
    response is minimized.
    """

    problem_name: str = field(validator=[instance_of(str), validate_not_blank])
    """The name of the problem."""

    model_identifier: str = field(validator=[instance_of(str), validate_not_blank])
    """The identifier of the simulation model evaluating the problem."""

    objective_response_name: str = field(
        validator=[instance_of(str), validate_not_blank]
    )
    """The name of the response to be minimized."""

    inputs: tuple[InputDefinition, ...] = field(
        converter=tuple,
        validator=[
            min_len(1),
            deep_iterable(member_validator=instance_of(InputDefinition)),
        ],
    )
    """The decision variables."""

    response_names: frozenset[str] = field(
        factory=frozenset,
        converter=frozenset,
        validator=deep_iterable(member_validator=instance_of(str)),
    )
    """The names of additional responses produced by the model."""

    linear_constraints: tuple[LinearConstraint, ...] = field(
        factory=tuple,
        converter=tuple,
        validator=deep_iterable(member_validator=instance_of(LinearConstraint)),
    )
    """The linear constraints on the inputs."""

    response_constraints: tuple[ResponseConstraint, ...] = field(
        factory=tuple,
        converter=tuple,
        validator=deep_iterable(member_validator=instance_of(ResponseConstraint)),
    )
    """The constraints on the expected values of responses."""

    penalty_function: Callable[[int], float] = field(
        default=default_penalty_function, validator=is_callable(), kw_only=True
    )
    """A non-decreasing function mapping iteration numbers to penalty factors."""

    @inputs.validator
    def _validate_inputs(  # noqa: DOC101, DOC103
        self, _: Any, inputs: tuple[InputDefinition, ...]
    ) -> None:
        """Validate that the input names are unique.

        Raises:
            ValueError: If an input name appears more than once.
        """
        if (dup := first_duplicate(i.name for i in inputs)) is not None:
            raise ValueError(f"The input name '{dup}' is used more than once.")

    @linear_constraints.validator
    def _validate_linear_constraints(  # noqa: DOC101, DOC103
        self, _: Any, constraints: tuple[LinearConstraint, ...]
    ) -> None:
        """Validate that the linear constraints refer to defined inputs.

        Raises:
            ValueError: If a constraint refers to an unknown input.
        """
        names = set(self.input_names)
        for constraint in constraints:
            if unknown := constraint.input_names - names:
                raise ValueError(
                    f"The linear constraint '{constraint}' refers to the unknown "
                    f"inputs {sorted(unknown)}."
                )

    @response_constraints.validator
    def _validate_response_constraints(  # noqa: DOC101, DOC103
        self, _: Any, constraints: tuple[ResponseConstraint, ...]
    ) -> None:
        """Validate that the response constraints refer to known responses.

        Raises:
            UnknownResponseError: If a constraint refers to an unknown response.
        """
        for constraint in constraints:
            if constraint.name not in self.required_response_names:
                raise UnknownResponseError(
                    f"The response constraint '{constraint}' refers to the response "
                    f"'{constraint.name}', which is not produced by model "
                    f"'{self.model_identifier}'."
                )

    @property
    def input_names(self) -> tuple[str, ...]:
        """The names of the inputs, in definition order."""
        return tuple(i.name for i in self.inputs)

    @property
    def required_response_names(self) -> frozenset[str]:
        """The names of all responses a model evaluation must provide."""
        return self.response_names | {self.objective_response_name}

    def get_input(self, name: str, /) -> InputDefinition:
        """Retrieve an input definition by name.

        Raises:
            KeyError: If the problem has no input with the given name.
        """
        for input_ in self.inputs:
            if input_.name == name:
                return input_
        raise KeyError(f"Problem '{self.problem_name}' has no input named '{name}'.")

    def round_to_granularity(self, values: Mapping[str, float], /) -> dict[str, float]:
        """Round the values of all inputs to their granularity.

        Raises:
            KeyError: If a value refers to an unknown input.
        """
        return {
            name: self.get_input(name).round_to_granularity(value)
            for name, value in values.items()
        }

    def to_input_map(self, values: Mapping[str, float], /) -> InputMap:
        """Create a rounded input map for this problem."""
        return InputMap(self, self.round_to_granularity(values))

    def to_model_inputs(
        self, values: Mapping[str, float], num_replications: int = 1
    ) -> ModelInputs:
        """Create a request for evaluating the given input values."""
        return self.to_input_map(values).to_model_inputs(num_replications)

    def is_input_range_feasible(self, values: Mapping[str, float], /) -> bool:
        """Check if all values lie within the bounds of their inputs."""
        return all(self.get_input(k).is_in_range(v) for k, v in values.items())

    def is_linear_constraint_feasible(self, values: Mapping[str, float], /) -> bool:
        """Check if all linear constraints are satisfied by the values."""
        return all(c.is_satisfied(values) for c in self.linear_constraints)

    def is_input_feasible(self, values: Mapping[str, float], /) -> bool:
        """Check if the values satisfy the input bounds and the linear constraints."""
        return self.is_input_range_feasible(
            values
        ) and self.is_linear_constraint_feasible(values)

    def total_response_violation(
        self, estimates: Mapping[str, EstimatedResponse], /
    ) -> float:
        """Sum up the violations of all response constraints.

        Raises:
            UnknownResponseError: If an estimate of a constrained response is missing.
        """
        return math.fsum(
            c.violation(self._estimate_for(c, estimates))
            for c in self.response_constraints
        )

    def is_response_constraint_feasible(
        self, estimates: Mapping[str, EstimatedResponse], level: float
    ) -> bool:
        """Jointly test all response constraints at the given confidence level."""
        validate_confidence_level(level)
        k = len(self.response_constraints)
        return all(
            c.is_feasible(self._estimate_for(c, estimates), level, k)
            for c in self.response_constraints
        )

    def _estimate_for(
        self, constraint: ResponseConstraint, estimates: Mapping[str, EstimatedResponse]
    ) -> EstimatedResponse:
        try:
            return estimates[constraint.name]
        except KeyError as ex:
            raise UnknownResponseError(
                f"No estimate is available for the constrained response "
                f"'{constraint.name}'."
            ) from ex

    def bad_solution(self, input_map: InputMap, iteration_number: int = 0) -> Solution:
        """Create the sentinel solution for a design point whose evaluation failed.

        The objective of the sentinel is the largest representable float, so that it
        ranks behind every regularly evaluated solution.
        """
        from simeval.evaluation.solution import Solution

        objective = EstimatedResponse(
            self.objective_response_name, sys.float_info.max, float("nan"), 1
        )
        return Solution(input_map, objective, (), iteration_number, is_bad=True)

    @override
    def __str__(self) -> str:
        inputs = "; ".join(str(i) for i in self.inputs)
        return (
            f"{self.problem_name} (model '{self.model_identifier}', "
            f"minimize '{self.objective_response_name}'): {inputs}"
        )


# Problems carry arbitrary penalty callables, which cannot be serialized
converter.register_unstructure_hook(ProblemDefinition, block_serialization_hook)
converter.register_structure_hook(ProblemDefinition, block_deserialization_hook)

# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

"""Rounded input assignments bound to a problem."""

from __future__ import annotations

import gc
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from attrs import define, field
from typing_extensions import override

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey, ModelInputs
    from simeval.problem.definition import ProblemDefinition


@define(frozen=True, eq=False)
class InputMap(Mapping[str, float]):
    """An assignment of values to all inputs of a problem.

    Instances are usually created via
    :meth:`~simeval.problem.definition.ProblemDefinition.to_input_map`, which rounds
    the values to the granularity of the inputs. Two maps are equal if they belong to
    the same model and hold the same values.
    """

    problem: ProblemDefinition = field(repr=False)
    """The problem the inputs belong to."""

    _values: dict[str, float] = field(
        alias="values", converter=lambda x: {str(k): float(v) for k, v in x.items()}
    )
    """The rounded input values, indexed by input name."""

    @_values.validator
    def _validate_values(  # noqa: DOC101, DOC103
        self, _: Any, values: dict[str, float]
    ) -> None:
        """Validate that the values cover exactly the inputs of the problem.

        Raises:
            ValueError: If inputs are missing or unknown to the problem.
        """
        if not values:
            raise ValueError("An input map cannot be empty.")
        expected = set(self.problem.input_names)
        if missing := expected - values.keys():
            raise ValueError(
                f"The inputs {sorted(missing)} of problem "
                f"'{self.problem.problem_name}' have no assigned value."
            )
        if unknown := values.keys() - expected:
            raise ValueError(
                f"The inputs {sorted(unknown)} are not defined in problem "
                f"'{self.problem.problem_name}'."
            )

    @override
    def __getitem__(self, name: str, /) -> float:
        return self._values[name]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    @override
    def __len__(self) -> int:
        return len(self._values)

    @property
    def key(self) -> InputsKey:
        """The identity of the design point used for caching and deduplication."""
        from simeval.evaluation.model_inputs import InputsKey

        return InputsKey(self.problem.model_identifier, self._values)

    @property
    def is_input_range_feasible(self) -> bool:
        """Boolean indicating if all values lie within the input bounds."""
        return self.problem.is_input_range_feasible(self)

    @property
    def is_linear_constraint_feasible(self) -> bool:
        """Boolean indicating if all linear constraints are satisfied."""
        return self.problem.is_linear_constraint_feasible(self)

    @property
    def is_input_feasible(self) -> bool:
        """Boolean indicating if the inputs satisfy bounds and linear constraints."""
        return self.is_input_range_feasible and self.is_linear_constraint_feasible

    def to_model_inputs(self, num_replications: int = 1) -> ModelInputs:
        """Create a request for evaluating the design point."""
        from simeval.evaluation.model_inputs import ModelInputs

        return ModelInputs(
            self.problem.model_identifier,
            self._values,
            num_replications,
            self.problem.required_response_names,
        )

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InputMap):
            return NotImplemented
        return self.key == other.key

    @override
    def __hash__(self) -> int:
        return hash(self.key)

    @override
    def __str__(self) -> str:
        return ", ".join(f"{k}={v:g}" for k, v in self._values.items())


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

"""Design points submitted for evaluation."""

from __future__ import annotations

import gc
import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from attrs import define, evolve, field
from attrs.validators import deep_iterable, ge, instance_of
from typing_extensions import Self, override

from simeval.serialization import SerialMixin
from simeval.utils.validation import validate_not_blank


def _to_sorted_items(
    value: Mapping[str, float] | Iterable[tuple[str, float]],
) -> tuple[tuple[str, float], ...]:
    """Normalize input values to a sorted tuple of name-value pairs."""
    items = value.items() if isinstance(value, Mapping) else value
    return tuple(sorted((str(k), float(v)) for k, v in items))


def _to_input_dict(value: Mapping[str, float]) -> dict[str, float]:
    return {str(k): float(v) for k, v in value.items()}


def _validate_inputs(self: Any, _: Any, value: Mapping[str, float]) -> None:
    """Validate that the inputs are non-empty, named and finite."""
    if not value:
        raise ValueError(
            f"The inputs of a '{self.__class__.__name__}' object cannot be empty."
        )
    for name, v in dict(value).items():
        if not name.strip():
            raise ValueError("Input names cannot be blank.")
        if not math.isfinite(v):
            raise ValueError(f"The value of input '{name}' must be finite. Given: {v}.")


@define(frozen=True)
class InputsKey(SerialMixin):
    """The identity of a design point.

    Keys are equal if and only if they refer to the same model and the same input
    values. They are used for caching and for deduplicating requests.
    """

    model_identifier: str = field(validator=[instance_of(str), validate_not_blank])
    """The identifier of the model evaluating the design point."""

    inputs: tuple[tuple[str, float], ...] = field(
        converter=_to_sorted_items, validator=_validate_inputs
    )
    """The input values as name-value pairs, sorted by name."""

    def as_dict(self) -> dict[str, float]:
        """Return the input values as a dictionary."""
        return dict(self.inputs)

    @override
    def __str__(self) -> str:
        values = ", ".join(f"{k}={v:g}" for k, v in self.inputs)
        return f"{self.model_identifier}({values})"


@define(frozen=True)
class ModelInputs(SerialMixin):
    """A design point together with the evaluation details requested for it.

    Only the model identifier and the input values identify the design point, as
    captured by :attr:`key`. The remaining attributes describe the request. Use the key,
    not the object itself, when checking whether two requests target the same point.
    """

    model_identifier: str = field(validator=[instance_of(str), validate_not_blank])
    """The identifier of the model evaluating the design point."""

    inputs: dict[str, float] = field(
        converter=_to_input_dict, validator=_validate_inputs, hash=False
    )
    """The input values, indexed by input name."""

    num_replications: int = field(default=1, validator=[instance_of(int), ge(1)])
    """The number of replications requested for the design point."""

    response_names: frozenset[str] = field(
        factory=frozenset,
        converter=frozenset,
        validator=deep_iterable(member_validator=instance_of(str)),
    )
    """The responses of interest (empty means all responses of the model)."""

    request_time: datetime = field(
        factory=datetime.now, validator=instance_of(datetime)
    )
    """The time at which the request was created."""

    @property
    def key(self) -> InputsKey:
        """The identity of the design point."""
        return InputsKey(self.model_identifier, self.inputs)

    def with_replications(self, num_replications: int, /) -> Self:
        """Create a copy of the request with a different number of replications."""
        return evolve(self, num_replications=num_replications)

    @override
    def __str__(self) -> str:
        return f"{self.key} x {self.num_replications}"


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

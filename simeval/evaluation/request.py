"""Batches of design points submitted for evaluation."""

from __future__ import annotations

import gc
from typing import Any

from attrs import define, field
from attrs.validators import deep_iterable, instance_of, min_len
from typing_extensions import override

from simeval.evaluation.model_inputs import InputsKey, ModelInputs
from simeval.serialization import SerialMixin
from simeval.utils.basic import first_duplicate
from simeval.utils.validation import validate_not_blank


@define(frozen=True)
class EvaluationRequest(SerialMixin):
    """A validated batch of unique design points for a single model.

    Requests using common random numbers (CRN) evaluate all points with the same
    random number streams. Because the resulting estimates are correlated across
    points, such requests must contain at least two points and must not be cached.
    """

    model_identifier: str = field(validator=[instance_of(str), validate_not_blank])
    """The identifier of the model evaluating the design points."""

    model_inputs: tuple[ModelInputs, ...] = field(
        converter=tuple,
        validator=[
            min_len(1),
            deep_iterable(member_validator=instance_of(ModelInputs)),
        ],
    )
    """The design points to be evaluated, in request order."""

    crn_option: bool = field(default=False, validator=instance_of(bool), kw_only=True)
    """Boolean flag indicating if common random numbers are used across the points."""

    caching_allowed: bool = field(
        default=True, validator=instance_of(bool), kw_only=True
    )
    """Boolean flag indicating if results may be served from and written to a cache."""

    @model_inputs.validator
    def _validate_model_inputs(  # noqa: DOC101, DOC103
        self, _: Any, model_inputs: tuple[ModelInputs, ...]
    ) -> None:
        """Validate the design points.

        Raises:
            ValueError: If a design point targets a different model.
            ValueError: If a design point appears more than once.
        """
        for mi in model_inputs:
            if mi.model_identifier != self.model_identifier:
                raise ValueError(
                    f"All design points of a request must target model "
                    f"'{self.model_identifier}'. Given: '{mi.model_identifier}'."
                )
        if (dup := first_duplicate(mi.key for mi in model_inputs)) is not None:
            raise ValueError(
                f"The design point '{dup}' appears more than once in the request."
            )

    @crn_option.validator
    def _validate_crn_option(  # noqa: DOC101, DOC103
        self, _: Any, value: bool
    ) -> None:
        """Validate that common random numbers are used with multiple points only.

        Raises:
            ValueError: If common random numbers are requested for a single point.
        """
        if value and len(self.model_inputs) == 1:
            raise ValueError(
                "Common random numbers require at least two design points."
            )

    @caching_allowed.validator
    def _validate_caching_allowed(  # noqa: DOC101, DOC103
        self, _: Any, value: bool
    ) -> None:
        """Validate that results based on common random numbers are not cached.

        Raises:
            ValueError: If caching is allowed for a request using common random
                numbers.
        """
        if value and self.crn_option:
            raise ValueError(
                "Requests using common random numbers cannot allow caching since "
                "their results are not independent."
            )

    @property
    def keys(self) -> tuple[InputsKey, ...]:
        """The identities of the design points, in request order."""
        return tuple(mi.key for mi in self.model_inputs)

    @property
    def total_replications(self) -> int:
        """The total number of replications requested across all design points."""
        return sum(mi.num_replications for mi in self.model_inputs)

    def __len__(self) -> int:
        return len(self.model_inputs)

    @override
    def __str__(self) -> str:
        return (
            f"EvaluationRequest(model='{self.model_identifier}', "
            f"points={len(self.model_inputs)}, crn={self.crn_option}, "
            f"caching={self.caching_allowed})"
        )


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

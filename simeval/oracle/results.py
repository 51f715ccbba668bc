"""Outcomes of simulation oracle runs."""

from __future__ import annotations

import gc
from typing import Union

from attrs import define, field
from attrs.validators import instance_of
from typing_extensions import override

from simeval.estimates import ResponseMap


@define(frozen=True)
class OracleSuccess:
    """The estimates produced for a design point."""

    response_map: ResponseMap = field(validator=instance_of(ResponseMap))
    """The estimated responses."""

    @property
    def is_success(self) -> bool:
        """Boolean flag indicating a successful run."""
        return True

    @override
    def __str__(self) -> str:
        return f"OracleSuccess({self.response_map})"


@define(frozen=True)
class OracleFailure:
    """The error that prevented the evaluation of a design point."""

    error: Exception = field(validator=instance_of(Exception))
    """The cause of the failure."""

    @property
    def is_success(self) -> bool:
        """Boolean flag indicating a successful run."""
        return False

    @override
    def __str__(self) -> str:
        return f"OracleFailure({self.error!r})"


OracleResult = Union[OracleSuccess, OracleFailure]
"""The outcome of evaluating a single design point."""


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

"""Validation utilities."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

from attrs import Attribute


def _describe(self: Any, attribute: Attribute) -> str:
    return f"attribute '{attribute.name}' of class '{type(self).__name__}'"


def _make_float_validator(*, finite: bool) -> Callable[[Any, Attribute, Any], None]:
    """Make an attrs-compatible validator rejecting ``nan`` and optionally infinity.

    Args:
        finite: If True, infinite values are rejected as well.

    Returns:
        The validator.
    """

    def validator(self: Any, attribute: Attribute, value: Any) -> None:
        if not isinstance(value, float):
            raise ValueError(
                f"The value passed to {_describe(self, attribute)} must be a float. "
                f"Given: {value!r} of type '{type(value).__name__}'."
            )
        if math.isnan(value):
            raise ValueError(
                f"The value passed to {_describe(self, attribute)} cannot be 'nan'."
            )
        if finite and math.isinf(value):
            raise ValueError(
                f"The value passed to {_describe(self, attribute)} cannot be 'inf' "
                f"or '-inf'. Given: {value}."
            )

    return validator


finite_float = _make_float_validator(finite=True)
"""Validator for floats that are neither ``nan`` nor infinite."""

non_nan_float = _make_float_validator(finite=False)
"""Validator for floats other than ``nan``, allowing infinite values."""


def validate_not_blank(self: Any, attribute: Attribute, value: str) -> None:
    """Attrs-compatible validator to forbid empty or whitespace-only strings."""
    if not value.strip():
        raise ValueError(
            f"The value passed to {_describe(self, attribute)} cannot be blank."
        )


def validate_confidence_level(level: float, /) -> None:
    """Validate that a confidence level lies strictly between 0 and 1.

    Raises:
        ValueError: If the level is outside the open interval (0, 1).
    """
    if not 0.0 < level < 1.0:
        raise ValueError(
            f"The confidence level must lie strictly between 0 and 1. Given: {level}."
        )


def confidence_level_validator(self: Any, attribute: Attribute, value: float) -> None:
    """Attrs-compatible version of :func:`validate_confidence_level`."""
    if not 0.0 < value < 1.0:
        raise ValueError(
            f"The value passed to {_describe(self, attribute)} must lie strictly "
            f"between 0 and 1. Given: {value}."
        )

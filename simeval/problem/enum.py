"""Problem-related enumerations."""

from enum import Enum


class InequalityType(Enum):
    """Available directions of inequality constraints."""

    LESS_THAN = "LESS_THAN"
    """The left-hand side must not exceed the right-hand side."""

    GREATER_THAN = "GREATER_THAN"
    """The left-hand side must not fall below the right-hand side."""

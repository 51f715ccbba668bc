"""Serialization functionality."""

from simeval.serialization.core import (
    block_deserialization_hook,
    block_serialization_hook,
    converter,
)
from simeval.serialization.mixin import SerialMixin

__all__ = [
    "block_deserialization_hook",
    "block_serialization_hook",
    "converter",
    "SerialMixin",
]

"""Utilities for serialization tests."""

from typing import TypeVar

from simeval.serialization.mixin import SerialMixin

Serializable = TypeVar("Serializable", bound=SerialMixin)


def roundtrip(obj: Serializable) -> Serializable:
    """Perform a roundtrip serialization of the given object."""
    string = obj.to_json()
    return type(obj).from_json(string)


def assert_roundtrip_consistency(obj: SerialMixin) -> None:
    """A serialization roundtrip yields an equivalent object."""
    obj_roundtrip = roundtrip(obj)
    assert obj == obj_roundtrip, (obj, obj_roundtrip)

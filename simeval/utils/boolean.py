"""Functions implementing Boolean checks."""

from __future__ import annotations

from abc import ABC
from typing import Any

from typing_extensions import is_protocol

_TRUE_STRINGS = frozenset({"y", "yes", "t", "true", "on", "1"})
_FALSE_STRINGS = frozenset({"n", "no", "f", "false", "off", "0"})


def is_abstract(cls: Any) -> bool:
    """Check if a class directly derives from ``abc.ABC`` or is a protocol class.

    Unlike :func:`inspect.isabstract`, the check does not depend on the presence of
    abstract methods.
    """
    return ABC in cls.__bases__ or is_protocol(cls)


def strtobool(val: str) -> bool:
    """Convert a string representation of truth to ``True`` or ``False``.

    Accepted values follow the former ``distutils.util.strtobool``.

    Raises:
        ValueError: If ``val`` does not represent a truth value.
    """
    if (normalized := val.strip().lower()) in _TRUE_STRINGS:
        return True
    if normalized in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid truth value: {val}")

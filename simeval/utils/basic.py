"""Collection of small basic utilities."""

from collections.abc import Callable, Iterable
from typing import TypeVar

from simeval.exceptions import UnidentifiedSubclassError

_C = TypeVar("_C", bound=type)
_T = TypeVar("_T")


def get_subclasses(cls: _C, abstract: bool = False) -> list[_C]:
    """Collect the direct and indirect subclasses of a class.

    Args:
        cls: The class whose subclasses are collected.
        abstract: Boolean flag indicating if abstract subclasses are included.

    Returns:
        The subclasses, in depth-first order.
    """
    from simeval.utils.boolean import is_abstract

    subclasses = []
    for subclass in cls.__subclasses__():
        if abstract or not is_abstract(subclass):
            subclasses.append(subclass)
        subclasses.extend(get_subclasses(subclass, abstract))
    return subclasses


def refers_to(cls: type, name: str, /) -> bool:
    """Check if a serialized type name refers to the given class."""
    return name == cls.__name__


def find_subclass(base: type, name: str, /):
    """Retrieve the concrete subclass of a base class with the given name.

    Raises:
        UnidentifiedSubclassError: If no subclass carries the name.
    """
    for subclass in get_subclasses(base):
        if refers_to(subclass, name):
            return subclass
    raise UnidentifiedSubclassError(
        f"The name '{name}' does not refer to any subclass of '{base.__name__}'."
    )


def first_duplicate(items: Iterable[_T], /) -> _T | None:
    """Return the first element that appears a second time, or ``None``.

    Example:
        >>> first_duplicate(["a", "b", "a", "b"])
        'a'
    """
    seen: set[_T] = set()
    for item in items:
        if item in seen:
            return item
        seen.add(item)
    return None


class classproperty:
    """A read-only property evaluated on the class rather than on its instances.

    Chaining ``@classmethod`` and ``@property`` is deprecated since Python 3.11.
    """

    def __init__(self, fn: Callable) -> None:
        self.fn = fn

    def __get__(self, _, cl: type):
        return self.fn(cl)

"""The package converter and its hooks."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

import cattrs
from cattrs.strategies import configure_union_passthrough

from simeval.utils.basic import find_subclass
from simeval.utils.boolean import is_abstract

_T = TypeVar("_T")

_TYPE_FIELD = "type"
"""The key under which serialized objects store the name of their class."""

converter = cattrs.Converter(
    unstruct_collection_overrides={set: list, frozenset: list},
    forbid_extra_keys=True,
    use_alias=True,
)
"""The converter shared by all serializable SimEval objects."""

configure_union_passthrough(bool | int | float | str, converter)


def _add_type_to_dict(dct: dict[str, Any], type_name: str, /) -> dict[str, Any]:
    """Return a copy of an unstructured object with its class name in front."""
    return {_TYPE_FIELD: type_name, **dct}


def _is_abstract_simeval_class(cls: type) -> bool:
    return is_abstract(cls) and cls.__module__.startswith("simeval.")


def _unstructure_tagged(obj: Any, /) -> dict[str, Any]:
    """Unstructure an object via the hook of its concrete class and tag it."""
    hook = converter.get_unstructure_hook(type(obj))
    return _add_type_to_dict(hook(obj), type(obj).__name__)


def _make_tagged_structure_hook(
    base: type[_T],
) -> Callable[[dict[str, Any] | str, type[_T]], _T]:
    """Create a hook restoring subclasses of an abstract base from their type tag.

    Objects without further attributes may also be given by their class name alone.
    """

    def structure_tagged(val: dict[str, Any] | str, _: type[_T]) -> _T:
        if isinstance(val, str):
            type_name, attributes = val, {}
        else:
            attributes = dict(val)
            type_name = attributes.pop(_TYPE_FIELD)
        subclass = find_subclass(base, type_name)
        return converter.get_structure_hook(subclass)(attributes, subclass)

    return structure_tagged


def block_serialization_hook(obj: Any) -> None:  # noqa: DOC101, DOC103
    """Refuse to unstructure the given object.

    Raises:
        NotImplementedError: Always.
    """
    raise NotImplementedError(
        f"Objects of type '{type(obj).__name__}' cannot be serialized."
    )


def block_deserialization_hook(_: Any, cls: type) -> None:  # noqa: DOC101, DOC103
    """Refuse to structure into the given class.

    Raises:
        NotImplementedError: Always.
    """
    raise NotImplementedError(f"Objects of type '{cls.__name__}' cannot be restored.")


converter.register_unstructure_hook_func(
    _is_abstract_simeval_class, _unstructure_tagged
)
converter.register_structure_hook_factory(
    _is_abstract_simeval_class, _make_tagged_structure_hook
)

converter.register_unstructure_hook(datetime, datetime.isoformat)
converter.register_structure_hook(datetime, lambda x, _: datetime.fromisoformat(x))

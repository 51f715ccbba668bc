"""Serialization mixin class."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from simeval.serialization.core import _TYPE_FIELD, _add_type_to_dict, converter
from simeval.utils.basic import refers_to
from simeval.utils.boolean import is_abstract

_T = TypeVar("_T", bound="SerialMixin")

if TYPE_CHECKING:
    from _typeshed import SupportsRead, SupportsWrite


class SerialMixin:
    """Dictionary and JSON (de-)serialization through the package converter.

    Serialized objects carry the name of their class in a ``type`` field, which allows
    abstract base classes to restore the correct concrete class.
    """

    # Use slots so that derived classes also remain slotted
    # See also: https://www.attrs.org/en/stable/glossary.html#term-slotted-classes
    __slots__ = ()

    def to_dict(self) -> dict:
        """Create the dictionary representation of the object."""
        return _add_type_to_dict(converter.unstructure(self), self.__class__.__name__)

    @classmethod
    def from_dict(cls: type[_T], dictionary: dict) -> _T:
        """Restore an object from its dictionary representation.

        Args:
            dictionary: The dictionary representation.

        Raises:
            ValueError: If the ``type`` field names a different class.

        Returns:
            The restored object.
        """
        if is_abstract(cls):
            return converter.structure(dictionary, cls)

        dictionary = dict(dictionary)
        type_ = dictionary.pop(_TYPE_FIELD, None)
        if type_ is not None and not refers_to(cls, type_):
            raise ValueError(
                f"The class '{cls.__name__}' specified for deserialization "
                f"does not match with the given type information '{type_}'."
            )
        return converter.structure(dictionary, cls)

    def to_json(
        self,
        sink: str | Path | SupportsWrite[str] | None = None,
        /,
        *,
        overwrite: bool = False,
        **kwargs: Any,
    ) -> str:
        """Create the JSON representation of the object.

        Args:
            sink: An optional destination, given either as a file path or as a
                writable file-like object.
            overwrite: Boolean flag indicating if an existing file may be replaced.
            **kwargs: Additional keyword arguments passed to :func:`json.dumps`.

        Raises:
            FileExistsError: If ``sink`` points to an existing file and ``overwrite``
                is not set.

        Returns:
            The JSON string.
        """
        string = json.dumps(self.to_dict(), **kwargs)
        if sink is None:
            return string

        if isinstance(sink, (str, Path)):
            path = Path(sink)
            if path.is_file() and not overwrite:
                raise FileExistsError(
                    f"The file '{path}' already exists. Set 'overwrite=True' to "
                    f"replace it."
                )
            path.write_text(string)
        else:
            sink.write(string)
        return string

    @classmethod
    def from_json(cls: type[_T], source: str | Path | SupportsRead[str], /) -> _T:
        """Restore an object from its JSON representation.

        Args:
            source: A JSON string, a path to a JSON file, or a readable file-like
                object.

        Raises:
            ValueError: If ``source`` is none of the above.

        Returns:
            The restored object.
        """
        if isinstance(source, Path):
            string = source.read_text()
        elif isinstance(source, str):
            # Strings are first tried as file paths
            try:
                string = Path(source).read_text()
            except OSError:
                string = source
        elif callable(getattr(source, "read", None)):
            string = source.read()
        else:
            raise ValueError(
                "The source must be a JSON string, a path to a JSON file, or a "
                "file-like object with a 'read()' method."
            )
        return cls.from_dict(json.loads(string))

"""Collections of response estimates for a single evaluated design point."""

from __future__ import annotations

import gc
from collections.abc import Iterable, Iterator, Mapping

from attrs import define, field
from attrs.validators import deep_iterable, instance_of, min_len
from typing_extensions import Self, override

from simeval.estimates.response import EstimatedResponse
from simeval.exceptions import MergeMismatchError, UnknownResponseError
from simeval.utils.validation import validate_not_blank


@define
class ResponseMap(Mapping[str, EstimatedResponse]):
    """A named collection of response estimates belonging to one design point.

    The map only accepts estimates for response names that the owning problem
    recognizes. Apart from :meth:`add`, :meth:`merge` and :meth:`merge_all`, it
    behaves like a read-only mapping from response names to estimates.
    """

    model_identifier: str = field(validator=[instance_of(str), validate_not_blank])
    """The identifier of the model that produced the estimates."""

    response_names: frozenset[str] = field(
        converter=frozenset,
        validator=[min_len(1), deep_iterable(member_validator=instance_of(str))],
    )
    """The response names the map may hold."""

    _estimates: dict[str, EstimatedResponse] = field(factory=dict, init=False)
    """The estimates, indexed by response name."""

    @classmethod
    def from_estimates(
        cls,
        model_identifier: str,
        response_names: Iterable[str],
        estimates: Iterable[EstimatedResponse],
    ) -> Self:
        """Create a map pre-populated with the given estimates."""
        response_map = cls(model_identifier, response_names)
        for estimate in estimates:
            response_map.add(estimate)
        return response_map

    @override
    def __getitem__(self, name: str, /) -> EstimatedResponse:
        return self._estimates[name]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._estimates)

    @override
    def __len__(self) -> int:
        return len(self._estimates)

    def _validate_name(self, name: str) -> None:
        if name not in self.response_names:
            raise UnknownResponseError(
                f"The response '{name}' is not recognized for model "
                f"'{self.model_identifier}'. "
                f"Allowed responses: {sorted(self.response_names)}."
            )

    def add(self, estimate: EstimatedResponse, /) -> None:
        """Insert an estimate, replacing any estimate of the same name.

        Raises:
            UnknownResponseError: If the response name is not recognized.
        """
        self._validate_name(estimate.name)
        self._estimates[estimate.name] = estimate

    def merge(self, estimate: EstimatedResponse, /) -> None:
        """Merge an estimate into the map.

        If an estimate of the same name exists, it is replaced by the merged estimate,
        otherwise the estimate is inserted.

        Raises:
            UnknownResponseError: If the response name is not recognized.
        """
        self._validate_name(estimate.name)
        if (current := self._estimates.get(estimate.name)) is not None:
            estimate = current.merge(estimate)
        self._estimates[estimate.name] = estimate

    def merge_all(self, other: ResponseMap, /) -> None:
        """Merge all estimates of another map into this one.

        Both maps must represent independent replications of the same design point.

        Raises:
            MergeMismatchError: If the maps belong to different models.
        """
        if other.model_identifier != self.model_identifier:
            raise MergeMismatchError(
                f"Cannot merge responses of model '{other.model_identifier}' into "
                f"responses of model '{self.model_identifier}'."
            )
        for estimate in other.values():
            self.merge(estimate)

    def has_response(self, name: str, /) -> bool:
        """Check if an estimate for the given response is present."""
        return name in self._estimates

    def has_all_responses(self) -> bool:
        """Check if every recognized response has an estimate."""
        return self.response_names.issubset(self._estimates)

    def has_requested_replications(self, num_replications: int, /) -> bool:
        """Check if every estimate is based on at least the given number of samples."""
        return all(e.count >= num_replications for e in self._estimates.values())

    def copy(self) -> ResponseMap:
        """Create an independent copy of the map."""
        return ResponseMap.from_estimates(
            self.model_identifier, self.response_names, self._estimates.values()
        )

    def as_mapped_data(self) -> dict[str, float]:
        """Return the statistical summaries of all estimates in a flat dictionary."""
        data: dict[str, float] = {}
        for estimate in self._estimates.values():
            data.update(estimate.as_mapped_data())
        return data

    @override
    def __str__(self) -> str:
        entries = ", ".join(str(e) for e in self._estimates.values())
        return f"ResponseMap({self.model_identifier}: {entries})"


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

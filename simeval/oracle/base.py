"""Base protocol for all simulation oracles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey
    from simeval.evaluation.request import EvaluationRequest
    from simeval.oracle.results import OracleResult


@runtime_checkable
class SimulationOracle(Protocol):
    """Type protocol specifying the interface simulation oracles need to implement."""

    # Use slots so that derived classes also remain slotted
    # See also: https://www.attrs.org/en/stable/glossary.html#term-slotted-classes
    __slots__ = ()

    def provides_model(self, model_identifier: str, /) -> bool:
        """Check if the oracle can evaluate the given model.

        Args:
            model_identifier: The identifier of the model.

        Returns:
            ``True`` if the model is served by the oracle.
        """
        ...

    def simulate(
        self, request: EvaluationRequest, /
    ) -> dict[InputsKey, OracleResult]:
        """Evaluate all design points of a request.

        For requests using common random numbers, the points must be evaluated in
        request order with the same random number streams. Failures of individual
        points are reported as :class:`~simeval.oracle.results.OracleFailure` and
        must not be raised.

        Args:
            request: The request to be evaluated.

        Returns:
            One result per design point, indexed by the point's key. Successful results
            carry estimates for all requested responses based on the requested number
            of replications.
        """
        ...

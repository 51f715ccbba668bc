"""Custom exceptions and warnings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import ModelInputs

##### Warnings #####


class UnusedObjectWarning(UserWarning):
    """
    A method or function was called with undesired arguments which indicates an
    unintended user fault.
    """


class OracleBudgetExhaustedWarning(UserWarning):
    """The oracle replication budget of an evaluator has been used up."""


##### Exceptions #####


class IncompatibilityError(Exception):
    """Incompatible components are used together."""


class UnknownResponseError(IncompatibilityError):
    """A response name is used that the owning problem does not recognize."""


class MergeMismatchError(IncompatibilityError, ValueError):
    """
    Two estimates or solutions that do not describe the same quantity or the same
    design point were attempted to be merged.
    """


class ModelNotProvidedError(Exception):
    """The simulation oracle does not serve the requested model."""


class SimulationRunError(Exception):
    """A simulation run for a design point failed inside the oracle."""

    def __init__(self, *args: object, model_inputs: ModelInputs | None = None):
        super().__init__(*args)
        self.model_inputs = model_inputs
        """The design point whose simulation failed, if known."""


class UnidentifiedSubclassError(Exception):
    """A specified subclass cannot be found in the given class hierarchy."""

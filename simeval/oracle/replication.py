"""An in-process oracle running replication functions."""

from __future__ import annotations

import gc
import hashlib
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

import numpy as np
from attrs import define, field
from attrs.validators import deep_mapping, instance_of, is_callable
from attrs.validators import optional as optional_v

from simeval.estimates import EstimatedResponse, ResponseMap
from simeval.exceptions import ModelNotProvidedError, SimulationRunError
from simeval.oracle.results import OracleFailure, OracleResult, OracleSuccess

if TYPE_CHECKING:
    from simeval.evaluation.model_inputs import InputsKey, ModelInputs
    from simeval.evaluation.request import EvaluationRequest

_logger = logging.getLogger(__name__)

ReplicationFunction = Callable[
    [Mapping[str, float], np.random.Generator], Mapping[str, float]
]
"""A function running one replication of a model.

It receives the input values of a design point and a random number generator and
returns the observed value of each response.
"""


def _default_random_seed() -> int | None:
    from simeval.settings import active_settings

    return active_settings.random_seed


@define
class ReplicationOracle:
    """A simulation oracle executing replication functions in the current process.

    Without common random numbers, the stream of a design point is derived from the
    seed, the point itself and the number of earlier runs of that point. Results per
    point are therefore reproducible regardless of how points are grouped into
    requests or in which order concurrent requests arrive, while repeated runs of a
    point draw fresh observations. For requests using common random numbers, all
    points are evaluated in request order and each point restarts the same stream.
    """

    models: dict[str, ReplicationFunction] = field(
        converter=dict,
        validator=deep_mapping(
            key_validator=instance_of(str), value_validator=is_callable()
        ),
    )
    """The replication functions, indexed by model identifier."""

    random_seed: int | None = field(
        factory=_default_random_seed, validator=optional_v(instance_of(int))
    )
    """The seed from which all random number streams are derived. Defaults to the
    seed of the active settings."""

    execution_counter: int = field(default=0, init=False)
    """The number of requests simulated so far."""

    replication_counter: int = field(default=0, init=False)
    """The number of replications executed so far."""

    _seed_sequence: np.random.SeedSequence = field(init=False, repr=False)
    """The source of the random number streams."""

    _runs_per_point: defaultdict[InputsKey, int] = field(
        factory=lambda: defaultdict(int), init=False, repr=False
    )
    """The number of independent runs executed so far, per design point."""

    _lock: threading.Lock = field(factory=threading.Lock, init=False, repr=False)
    """Guards the random number streams and the counters."""

    @_seed_sequence.default
    def _default_seed_sequence(self) -> np.random.SeedSequence:
        return np.random.SeedSequence(self.random_seed)

    def _point_seed(self, key: InputsKey, /) -> np.random.SeedSequence:
        """Derive the stream for the next independent run of a design point."""
        digest = hashlib.sha256(repr(key).encode()).digest()
        run = self._runs_per_point[key]
        self._runs_per_point[key] += 1
        return np.random.SeedSequence(
            self._seed_sequence.entropy,
            spawn_key=(int.from_bytes(digest[:8], "little"), run),
        )

    def provides_model(self, model_identifier: str, /) -> bool:
        """Check if the oracle can evaluate the given model."""
        return model_identifier in self.models

    def simulate(self, request: EvaluationRequest, /) -> dict[InputsKey, OracleResult]:
        """Evaluate all design points of a request.

        See :meth:`simeval.oracle.base.SimulationOracle.simulate`.
        """
        if not self.provides_model(request.model_identifier):
            _logger.warning(
                "Model '%s' is not provided by the oracle.", request.model_identifier
            )
            error = ModelNotProvidedError(
                f"The model '{request.model_identifier}' is not provided."
            )
            return {key: OracleFailure(error) for key in request.keys}

        function = self.models[request.model_identifier]
        with self._lock:
            self.execution_counter += 1
            self.replication_counter += request.total_replications
            if request.crn_option:
                seeds = self._seed_sequence.spawn(1) * len(request)
            else:
                seeds = [self._point_seed(key) for key in request.keys]

        _logger.info(
            "Simulating %d design point(s) of model '%s' (CRN: %s).",
            len(request),
            request.model_identifier,
            request.crn_option,
        )
        return {
            mi.key: self._run(function, mi, np.random.default_rng(seed))
            for mi, seed in zip(request.model_inputs, seeds, strict=True)
        }

    def _run(
        self,
        function: ReplicationFunction,
        model_inputs: ModelInputs,
        rng: np.random.Generator,
    ) -> OracleResult:
        """Run all replications of a design point and summarize the observations."""
        try:
            observations: defaultdict[str, list[float]] = defaultdict(list)
            for _ in range(model_inputs.num_replications):
                for name, value in function(model_inputs.inputs, rng).items():
                    observations[name].append(float(value))

            names = model_inputs.response_names or frozenset(observations)
            if missing := names - observations.keys():
                raise SimulationRunError(
                    f"The responses {sorted(missing)} were not observed.",
                    model_inputs=model_inputs,
                )

            response_map = ResponseMap(model_inputs.model_identifier, names)
            for name in names:
                response_map.add(EstimatedResponse.from_data(name, observations[name]))
            return OracleSuccess(response_map)

        except Exception as ex:
            _logger.warning("Simulation of '%s' failed: %s", model_inputs.key, ex)
            if isinstance(ex, SimulationRunError):
                return OracleFailure(ex)
            error = SimulationRunError(
                f"The simulation of '{model_inputs.key}' failed.",
                model_inputs=model_inputs,
            )
            error.__cause__ = ex
            return OracleFailure(error)


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

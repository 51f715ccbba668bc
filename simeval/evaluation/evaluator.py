"""Orchestration of cache lookups and oracle runs."""

from __future__ import annotations

import gc
import logging
import threading
import warnings
from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from attrs import define, field, fields
from attrs.validators import ge, instance_of
from attrs.validators import optional as optional_v
from typing_extensions import override

from simeval.cache.base import SolutionCacheProtocol
from simeval.evaluation._single_flight import SingleFlight
from simeval.evaluation.model_inputs import InputsKey, ModelInputs
from simeval.evaluation.request import EvaluationRequest
from simeval.evaluation.solution import Solution
from simeval.exceptions import (
    ModelNotProvidedError,
    OracleBudgetExhaustedWarning,
    SimulationRunError,
)
from simeval.oracle.base import SimulationOracle
from simeval.oracle.results import OracleFailure, OracleResult, OracleSuccess
from simeval.problem import InputMap, ProblemDefinition
from simeval.serialization import SerialMixin
from simeval.utils.basic import first_duplicate

_logger = logging.getLogger(__name__)


@define(frozen=True)
class EvaluatorStats(SerialMixin):
    """A snapshot of the bookkeeping counters of an :class:`Evaluator`."""

    total_evaluations: int = 0
    """The number of evaluation calls."""

    total_requests_received: int = 0
    """The number of design points received."""

    total_replications: int = 0
    """The number of replications requested."""

    total_oracle_evaluations: int = 0
    """The number of design points sent to the oracle."""

    total_oracle_replications: int = 0
    """The number of replications requested from the oracle."""

    total_cached_evaluations: int = 0
    """The number of design points served fully or partially from the cache."""

    total_cached_replications: int = 0
    """The number of replications served from the cache."""

    total_failed_evaluations: int = 0
    """The number of design points whose oracle run failed."""


@define
class _Gap:
    """The replications missing for a design point claimed by this caller."""

    input_map: InputMap
    num_replications: int
    cached: Solution | None = None

    @property
    def key(self) -> InputsKey:
        return self.input_map.key


@define
class Evaluator:
    """Evaluates design points by combining cached solutions with oracle runs.

    For each requested design point, the evaluator first consults the cache. Points
    that are missing or lack replications are sent to the oracle, whose results are
    merged with the cached estimates and written back. Requests using common random
    numbers or disallowing caching bypass the cache entirely.

    Concurrent calls requesting the same uncached design point share a single oracle
    run.
    """

    problem: ProblemDefinition = field(validator=instance_of(ProblemDefinition))
    """The problem whose design points are evaluated."""

    oracle: SimulationOracle = field(validator=instance_of(SimulationOracle))
    """The oracle producing response estimates."""

    cache: SolutionCacheProtocol | None = field(
        default=None, validator=optional_v(instance_of(SolutionCacheProtocol))
    )
    """The optional cache of previously evaluated solutions."""

    oracle_replication_budget: int | None = field(
        default=None, validator=optional_v([instance_of(int), ge(1)]), kw_only=True
    )
    """The maximum number of replications to request from the oracle, if limited."""

    # >>>>> Internal
    _stats: dict[str, int] = field(init=False, repr=False)
    """The running bookkeeping counters."""

    _stats_lock: threading.Lock = field(factory=threading.Lock, init=False, repr=False)
    """Guards the counters."""

    _flights: SingleFlight = field(factory=SingleFlight, init=False, repr=False)
    """Coordinates concurrent oracle runs of the same design point."""
    # <<<<< Internal

    @_stats.default
    def _default_stats(self) -> dict[str, int]:
        return {fld.name: 0 for fld in fields(EvaluatorStats)}

    def _count(self, **increments: int) -> None:
        with self._stats_lock:
            for name, value in increments.items():
                self._stats[name] += value

    def stats(self) -> EvaluatorStats:
        """Return an immutable snapshot of the bookkeeping counters."""
        with self._stats_lock:
            return EvaluatorStats(**self._stats)

    def reset_counts(self) -> None:
        """Reset all bookkeeping counters to zero."""
        with self._stats_lock:
            for name in self._stats:
                self._stats[name] = 0

    @property
    def total_evaluations(self) -> int:
        """The number of evaluation calls."""
        return self.stats().total_evaluations

    @property
    def total_requests_received(self) -> int:
        """The number of design points received."""
        return self.stats().total_requests_received

    @property
    def total_replications(self) -> int:
        """The number of replications requested."""
        return self.stats().total_replications

    @property
    def total_oracle_evaluations(self) -> int:
        """The number of design points sent to the oracle."""
        return self.stats().total_oracle_evaluations

    @property
    def total_oracle_replications(self) -> int:
        """The number of replications requested from the oracle."""
        return self.stats().total_oracle_replications

    @property
    def total_cached_evaluations(self) -> int:
        """The number of design points served fully or partially from the cache."""
        return self.stats().total_cached_evaluations

    @property
    def total_cached_replications(self) -> int:
        """The number of replications served from the cache."""
        return self.stats().total_cached_replications

    @property
    def total_failed_evaluations(self) -> int:
        """The number of design points whose oracle run failed."""
        return self.stats().total_failed_evaluations

    @property
    def remaining_oracle_replications(self) -> int | None:
        """The replications left in the oracle budget (``None`` if unlimited)."""
        if self.oracle_replication_budget is None:
            return None
        return max(0, self.oracle_replication_budget - self.total_oracle_replications)

    @property
    def has_remaining_oracle_replications(self) -> bool:
        """Boolean indicating if the oracle budget is not yet used up."""
        remaining = self.remaining_oracle_replications
        return remaining is None or remaining > 0

    def evaluate(self, request: EvaluationRequest, /) -> list[Solution]:
        """Evaluate all design points of a request.

        Args:
            request: The request to be evaluated.

        Raises:
            ValueError: If the request targets a model other than the problem's.
            ValueError: If several design points round to the same point.
            ModelNotProvidedError: If the oracle does not provide the requested model.

        Returns:
            One solution per design point, in request order. Points whose oracle run
            failed are represented by the problem's bad solution.
        """
        if request.model_identifier != self.problem.model_identifier:
            raise ValueError(
                f"The request targets model '{request.model_identifier}' but the "
                f"problem is evaluated by model '{self.problem.model_identifier}'."
            )
        if not self.oracle.provides_model(request.model_identifier):
            raise ModelNotProvidedError(
                f"The oracle does not provide the model '{request.model_identifier}'."
            )

        input_maps = [
            self.problem.to_input_map(mi.inputs) for mi in request.model_inputs
        ]
        if (dup := first_duplicate(im.key for im in input_maps)) is not None:
            raise ValueError(
                f"Several design points of the request round to the same design "
                f"point '{dup}'."
            )
        with self._stats_lock:
            self._stats["total_evaluations"] += 1
            self._stats["total_requests_received"] += len(request)
            self._stats["total_replications"] += request.total_replications
            iteration = self._stats["total_evaluations"]

        if request.crn_option or not request.caching_allowed or self.cache is None:
            solutions = self._evaluate_directly(request, input_maps, iteration)
        else:
            solutions = self._evaluate_with_cache(request, input_maps, iteration)
        return solutions

    def _evaluate_directly(
        self,
        request: EvaluationRequest,
        input_maps: Sequence[InputMap],
        iteration: int,
    ) -> list[Solution]:
        """Send the full request to the oracle as one ordered batch without caching."""
        rounded = EvaluationRequest(
            request.model_identifier,
            [
                self._model_inputs(im, mi.num_replications)
                for im, mi in zip(input_maps, request.model_inputs, strict=True)
            ],
            crn_option=request.crn_option,
            caching_allowed=request.caching_allowed,
        )
        self._count(
            total_oracle_evaluations=len(rounded),
            total_oracle_replications=rounded.total_replications,
        )
        outcomes = self._call_oracle(rounded)
        self._check_budget(rounded.total_replications)
        return [
            self._to_solution(_Gap(im, mi.num_replications), outcomes, iteration)
            for im, mi in zip(input_maps, rounded.model_inputs, strict=True)
        ]

    def _evaluate_with_cache(
        self,
        request: EvaluationRequest,
        input_maps: Sequence[InputMap],
        iteration: int,
    ) -> list[Solution]:
        """Serve the request from the cache, filling the gaps via the oracle."""
        assert self.cache is not None
        requested = {
            im.key: (im, mi.num_replications)
            for im, mi in zip(input_maps, request.model_inputs, strict=True)
        }
        results: dict[InputsKey, Solution] = {}
        pending = dict(requested)

        while pending:
            cached = self.cache.retrieve(pending)
            gaps: list[_Gap] = []
            waits: list[tuple[InputsKey, Future[Solution | None]]] = []

            for key, (input_map, n) in pending.items():
                if self._use_cached(key, cached.get(key), n, results):
                    continue
                future, is_leader = self._flights.claim(key)
                if not is_leader:
                    waits.append((key, future))
                    continue
                # Another leader may have completed the point since the cache lookup
                solution = self.cache.get(key)
                if self._use_cached(key, solution, n, results):
                    self._flights.resolve(key, solution)
                    continue
                gaps.append(self._gap(input_map, n, solution))

            if gaps:
                self._run_gaps(request, gaps, iteration, results)

            pending = {}
            for key, future in waits:
                n = requested[key][1]
                solution = future.result()
                if solution is not None and solution.is_bad:
                    _logger.debug("Adopting failed evaluation of '%s'.", key)
                    self._count(total_failed_evaluations=1)
                    results[key] = solution
                elif not self._use_cached(key, solution, n, results):
                    pending[key] = requested[key]

        return [results[key] for key in requested]

    def _use_cached(
        self,
        key: InputsKey,
        solution: Solution | None,
        num_replications: int,
        results: dict[InputsKey, Solution],
    ) -> bool:
        """Serve a design point from a solution holding enough replications."""
        if solution is None or solution.count < num_replications:
            return False
        _logger.debug("Serving '%s' from the cache (n=%d).", key, solution.count)
        self._count(
            total_cached_evaluations=1, total_cached_replications=num_replications
        )
        results[key] = solution
        return True

    def _gap(
        self, input_map: InputMap, num_replications: int, cached: Solution | None
    ) -> _Gap:
        """Determine the replications the oracle must provide for a design point."""
        if cached is None:
            return _Gap(input_map, num_replications)
        _logger.debug(
            "Partial cache hit for '%s': %d of %d replications cached.",
            input_map.key,
            cached.count,
            num_replications,
        )
        self._count(total_cached_evaluations=1, total_cached_replications=cached.count)
        return _Gap(input_map, num_replications - cached.count, cached)

    def _run_gaps(
        self,
        request: EvaluationRequest,
        gaps: list[_Gap],
        iteration: int,
        results: dict[InputsKey, Solution],
    ) -> None:
        """Run the oracle for the claimed design points and resolve their flights."""
        assert self.cache is not None
        resolved: dict[InputsKey, Solution] = {}
        try:
            sub_request = EvaluationRequest(
                request.model_identifier,
                [self._model_inputs(g.input_map, g.num_replications) for g in gaps],
            )
            self._count(
                total_oracle_evaluations=len(sub_request),
                total_oracle_replications=sub_request.total_replications,
            )
            outcomes = self._call_oracle(sub_request)
            self._check_budget(sub_request.total_replications)

            for gap in gaps:
                solution = self._to_solution(gap, outcomes, iteration)
                if not solution.is_bad:
                    self.cache.put(gap.key, solution)
                resolved[gap.key] = solution
        finally:
            for gap in gaps:
                self._flights.resolve(gap.key, resolved.get(gap.key))
        results.update(resolved)

    def _model_inputs(self, input_map: InputMap, num_replications: int) -> ModelInputs:
        return ModelInputs(
            self.problem.model_identifier,
            dict(input_map),
            num_replications,
            self.problem.required_response_names,
        )

    def _call_oracle(self, request: EvaluationRequest) -> dict[InputsKey, OracleResult]:
        """Invoke the oracle, in parallel per design point if configured."""
        from simeval.settings import active_settings

        parallel = (
            active_settings.parallelize_oracle_runs
            and not request.crn_option
            and len(request) > 1
        )
        if not parallel:
            return self._simulate(request)

        sub_requests = [
            EvaluationRequest(request.model_identifier, [mi])
            for mi in request.model_inputs
        ]
        workers = min(active_settings.max_oracle_workers, len(sub_requests))
        outcomes: dict[InputsKey, OracleResult] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for result in executor.map(self._simulate, sub_requests):
                outcomes.update(result)
        return outcomes

    def _simulate(self, request: EvaluationRequest) -> dict[InputsKey, OracleResult]:
        """Invoke the oracle, converting unexpected errors into failed results."""
        _logger.info(
            "Requesting %d replication(s) of %d design point(s) from the oracle.",
            request.total_replications,
            len(request),
        )
        try:
            return self.oracle.simulate(request)
        except Exception as ex:
            _logger.warning("The oracle failed for the entire request: %s", ex)
            error = SimulationRunError(f"The oracle failed to simulate {request}.")
            error.__cause__ = ex
            return {key: OracleFailure(error) for key in request.keys}

    def _to_solution(
        self,
        gap: _Gap,
        outcomes: Mapping[InputsKey, OracleResult],
        iteration: int,
    ) -> Solution:
        """Turn the oracle outcome for a design point into a (merged) solution."""
        outcome = outcomes.get(gap.key)
        short = isinstance(outcome, OracleSuccess) and (
            not outcome.response_map.has_requested_replications(gap.num_replications)
        )
        if short:
            outcome = OracleFailure(
                SimulationRunError(
                    f"The oracle returned fewer than the requested "
                    f"{gap.num_replications} replication(s) for '{gap.key}'."
                )
            )
        if isinstance(outcome, OracleSuccess):
            try:
                fresh = Solution.from_response_map(
                    gap.input_map, outcome.response_map, iteration
                )
                if gap.cached is None:
                    return fresh
                return gap.cached.merge(fresh, iteration)
            except ValueError as ex:
                outcome = OracleFailure(ex)

        error = (
            outcome.error
            if isinstance(outcome, OracleFailure)
            else SimulationRunError(f"The oracle returned no result for '{gap.key}'.")
        )
        _logger.warning("Evaluation of '%s' failed: %s", gap.key, error)
        self._count(total_failed_evaluations=1)
        return self.problem.bad_solution(gap.input_map, iteration)

    def _check_budget(self, num_replications: int) -> None:
        """Warn when a run uses up the oracle replication budget."""
        if self.oracle_replication_budget is None:
            return
        total = self.total_oracle_replications
        if total - num_replications < self.oracle_replication_budget <= total:
            warnings.warn(
                f"The oracle replication budget of {self.oracle_replication_budget} "
                f"has been used up ({total} replications requested).",
                OracleBudgetExhaustedWarning,
            )

    @override
    def __str__(self) -> str:
        return (
            f"Evaluator(problem='{self.problem.problem_name}', "
            f"cache={'yes' if self.cache is not None else 'no'}, {self.stats()})"
        )


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()

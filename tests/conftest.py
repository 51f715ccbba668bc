"""PyTest configuration."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping

import numpy as np
import pytest
from hypothesis import settings as hypothesis_settings

from simeval.cache import MemorySolutionCache
from simeval.estimates import EstimatedResponse
from simeval.evaluation import EvaluationRequest, Evaluator, ModelInputs, Solution
from simeval.oracle import ReplicationOracle
from simeval.problem import (
    InputDefinition,
    LinearConstraint,
    ProblemDefinition,
    ResponseConstraint,
)
from simeval.utils.boolean import strtobool
from tests.models import MODEL, quadratic_cost

# Hypothesis settings
hypothesis_settings.register_profile("ci", deadline=500, max_examples=100)
if strtobool(os.getenv("CI", "false")):
    hypothesis_settings.load_profile("ci")

# All fixture functions have prefix 'fixture_' and explicitly declared name, so they
# can be reused by other fixtures, see
# https://docs.pytest.org/en/stable/reference/reference.html#pytest-fixture


@pytest.fixture(name="noise", params=[1.0], ids=["noisy"])
def fixture_noise(request):
    """The standard deviation of the observation noise."""
    return request.param


@pytest.fixture(name="replication_function")
def fixture_replication_function(noise):
    """A noisy quadratic model also reporting a load response."""

    def replicate(inputs: Mapping[str, float], rng: np.random.Generator):
        x, y = inputs["x"], inputs["y"]
        return {
            "cost": quadratic_cost(x, y) + noise * rng.standard_normal(),
            "load": x + y + noise * rng.standard_normal(),
        }

    return replicate


@pytest.fixture(name="problem")
def fixture_problem():
    """A two-dimensional problem with one linear and one response constraint."""
    return ProblemDefinition(
        "test_problem",
        MODEL,
        "cost",
        [
            InputDefinition("x", (0.0, 10.0), 0.5),
            InputDefinition("y", (0.0, 10.0), 0.5),
        ],
        {"load"},
        [LinearConstraint({"x": 1.0, "y": 1.0}, 15.0)],
        [ResponseConstraint("load", 12.0)],
    )


@pytest.fixture(name="oracle")
def fixture_oracle(replication_function):
    """An oracle serving the test model."""
    return ReplicationOracle({MODEL: replication_function}, random_seed=1337)


@pytest.fixture(name="cache_capacity")
def fixture_cache_capacity():
    return 100


@pytest.fixture(name="cache")
def fixture_cache(cache_capacity):
    """An empty solution cache."""
    return MemorySolutionCache(cache_capacity)


@pytest.fixture(name="evaluator")
def fixture_evaluator(problem, oracle, cache):
    """An evaluator combining the test oracle with the cache."""
    return Evaluator(problem, oracle, cache)


@pytest.fixture(name="make_request")
def fixture_make_request(problem) -> Callable[..., EvaluationRequest]:
    """A factory for requests of the test model."""

    def make_request(
        points: list[tuple[float, float]], num_replications: int = 1, **kwargs
    ) -> EvaluationRequest:
        return EvaluationRequest(
            problem.model_identifier,
            [
                ModelInputs(
                    problem.model_identifier,
                    {"x": x, "y": y},
                    num_replications,
                    problem.required_response_names,
                )
                for x, y in points
            ],
            **kwargs,
        )

    return make_request


@pytest.fixture(name="make_solution")
def fixture_make_solution(problem) -> Callable[..., Solution]:
    """A factory for solutions of the test problem with prescribed estimates."""

    def make_solution(
        x: float = 1.0,
        y: float = 2.0,
        cost: float = 0.0,
        *,
        load: float = 0.0,
        count: int = 1,
        variance: float | None = None,
        iteration_number: int = 0,
    ) -> Solution:
        if variance is None:
            variance = float("nan") if count == 1 else 1.0
        return Solution(
            problem.to_input_map({"x": x, "y": y}),
            EstimatedResponse("cost", cost, variance, count),
            (EstimatedResponse("load", load, variance, count),),
            iteration_number,
        )

    return make_solution

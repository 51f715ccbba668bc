"""Tests for problem definitions."""

import math
import sys

import pytest
from pytest import param

from simeval.estimates import EstimatedResponse
from simeval.exceptions import UnknownResponseError
from simeval.problem import (
    InequalityType,
    InputDefinition,
    LinearConstraint,
    ResponseConstraint,
    default_penalty_function,
)


@pytest.mark.parametrize(
    ("granularity", "value", "expected"),
    [
        param(0.5, 1.3, 1.5, id="up"),
        param(0.5, 1.2, 1.0, id="down"),
        param(1.0, 7.6, 8.0, id="integer"),
        param(0.0, 1.234, 1.234, id="continuous"),
    ],
)
def test_input_rounding(granularity, value, expected):
    """Values are rounded to the nearest multiple of the granularity."""
    definition = InputDefinition("x", (0, 10), granularity)
    assert definition.round_to_granularity(value) == pytest.approx(expected)
    assert definition.is_continuous == (granularity == 0.0)


def test_input_range():
    definition = InputDefinition("x", (0, 10))
    assert definition.lower == 0.0
    assert definition.upper == 10.0
    assert definition.is_in_range(0.0)
    assert definition.is_in_range(10.0)
    assert not definition.is_in_range(10.5)
    assert not definition.is_in_range(-1e-3)


@pytest.mark.parametrize(
    ("inequality_type", "values", "satisfied"),
    [
        param(InequalityType.LESS_THAN, {"x": 1.0, "y": 2.0}, True, id="le_inside"),
        param(InequalityType.LESS_THAN, {"x": 2.0, "y": 2.0}, True, id="le_boundary"),
        param(InequalityType.LESS_THAN, {"x": 3.0, "y": 2.0}, False, id="le_outside"),
        param(InequalityType.GREATER_THAN, {"x": 3.0, "y": 2.0}, True, id="ge_inside"),
        param(InequalityType.GREATER_THAN, {"x": 1.0, "y": 2.0}, False, id="ge_out"),
    ],
)
def test_linear_constraint(inequality_type, values, satisfied):
    """The constraint x + 0.5 * y (<= or >=) 3 is evaluated with its slack."""
    constraint = LinearConstraint({"x": 1.0, "y": 0.5}, 3.0, inequality_type)
    assert constraint.left_hand_side(values) == values["x"] + 0.5 * values["y"]
    assert constraint.is_satisfied(values) is satisfied
    assert (constraint.slack(values) >= 0.0) is satisfied


def test_linear_constraint_coefficients():
    constraint = LinearConstraint({"x": 2.0}, 1.0)
    assert constraint.input_names == {"x"}
    assert constraint.coefficient("x") == 2.0
    assert constraint.coefficient("y") == 0.0
    assert constraint.coefficients(["y", "x"]) == (0.0, 2.0)


@pytest.mark.parametrize(
    ("inequality_type", "average", "violation"),
    [
        param(InequalityType.LESS_THAN, 12.0, 0.0, id="le_boundary"),
        param(InequalityType.LESS_THAN, 14.5, 2.5, id="le_violated"),
        param(InequalityType.GREATER_THAN, 9.0, 3.0, id="ge_violated"),
        param(InequalityType.GREATER_THAN, 13.0, 0.0, id="ge_satisfied"),
    ],
)
def test_response_violation(inequality_type, average, violation):
    constraint = ResponseConstraint("load", 12.0, inequality_type)
    assert constraint.violation(EstimatedResponse("load", average)) == violation


def test_response_feasibility_with_single_observation():
    """Single observations are compared directly with the right-hand side."""
    constraint = ResponseConstraint("load", 12.0)
    assert constraint.is_feasible(EstimatedResponse("load", 11.9), 0.95)
    assert not constraint.is_feasible(EstimatedResponse("load", 12.1), 0.95)


def test_response_feasibility_accounts_for_noise():
    """A violation is only detected if it is significant."""
    constraint = ResponseConstraint("load", 12.0)

    # Standard error 1, one-sided 95% quantile with 3 degrees of freedom ~ 2.35
    noisy = EstimatedResponse("load", 12.5, 4.0, 4)
    assert constraint.is_feasible(noisy, 0.95)

    precise = EstimatedResponse("load", 12.5, 0.01, 100)
    assert not constraint.is_feasible(precise, 0.95)


def test_response_feasibility_bonferroni():
    """Jointly testing more constraints widens each individual test."""
    constraint = ResponseConstraint("load", 12.0)

    # One-sided 95% quantile ~ 2.02, 97.5% quantile ~ 2.57 (5 dof, standard error 1)
    estimate = EstimatedResponse("load", 14.2, 6.0, 6)
    assert not constraint.is_feasible(estimate, 0.95, num_constraints=1)
    assert constraint.is_feasible(estimate, 0.95, num_constraints=2)


def test_problem_properties(problem):
    assert problem.input_names == ("x", "y")
    assert problem.required_response_names == {"cost", "load"}
    assert problem.get_input("y").granularity == 0.5
    with pytest.raises(KeyError, match="no input named 'z'"):
        problem.get_input("z")


def test_problem_rounding(problem):
    assert problem.round_to_granularity({"x": 1.2, "y": 3.8}) == {"x": 1.0, "y": 4.0}

    input_map = problem.to_input_map({"x": 1.2, "y": 3.8})
    assert dict(input_map) == {"x": 1.0, "y": 4.0}
    assert input_map == problem.to_input_map({"x": 0.9, "y": 4.1})
    assert input_map.key == problem.to_input_map({"y": 4.0, "x": 1.0}).key

    model_inputs = problem.to_model_inputs({"x": 1.2, "y": 3.8}, 4)
    assert model_inputs.inputs == {"x": 1.0, "y": 4.0}
    assert model_inputs.num_replications == 4
    assert model_inputs.response_names == {"cost", "load"}


@pytest.mark.parametrize(
    ("values", "in_range", "linear"),
    [
        param({"x": 1.0, "y": 2.0}, True, True, id="feasible"),
        param({"x": 11.0, "y": 2.0}, False, True, id="out_of_range"),
        param({"x": 8.0, "y": 8.0}, True, False, id="linear_violated"),
        param({"x": 12.0, "y": 9.0}, False, False, id="both_violated"),
    ],
)
def test_input_feasibility(problem, values, in_range, linear):
    input_map = problem.to_input_map(values)
    assert input_map.is_input_range_feasible is in_range
    assert input_map.is_linear_constraint_feasible is linear
    assert input_map.is_input_feasible is (in_range and linear)
    assert problem.is_input_feasible(values) is (in_range and linear)


def test_total_response_violation(problem):
    estimates = {"load": EstimatedResponse("load", 14.0)}
    assert problem.total_response_violation(estimates) == 2.0
    with pytest.raises(UnknownResponseError, match="'load'"):
        problem.total_response_violation({})


def test_bad_solution(problem):
    """The sentinel of a failed evaluation ranks behind everything else."""
    input_map = problem.to_input_map({"x": 1.0, "y": 2.0})
    bad = problem.bad_solution(input_map, 3)
    assert bad.is_bad
    assert bad.iteration_number == 3
    assert bad.estimated_objective_value == sys.float_info.max
    assert bad.count == 1
    assert math.isinf(bad.penalized_objective)
    assert math.isinf(bad.response_violation)
    assert not bad.is_response_constraint_feasible(0.95)


@pytest.mark.parametrize("iteration", [0, 4])
def test_bad_solution_penalty(problem, iteration):
    """The penalty of a bad solution is infinite, also when the factor is zero."""
    bad = problem.bad_solution(problem.to_input_map({"x": 1.0, "y": 2.0}), iteration)
    assert bad.constraint_violation_penalty == math.inf


def test_default_penalty():
    assert default_penalty_function(0) == 0.0
    assert default_penalty_function(3) == 9.0

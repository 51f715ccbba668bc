"""Tests for evaluated solutions."""

import pytest

from simeval.estimates import EstimatedResponse, ResponseMap
from simeval.evaluation import Solution
from simeval.exceptions import MergeMismatchError, UnknownResponseError


def test_penalized_objective(make_solution):
    """Response violations are penalized with a factor growing over iterations."""
    # The load constraint is violated by 2, the penalty factor at iteration 3 is 9
    solution = make_solution(cost=5.0, load=14.0, iteration_number=3)
    assert solution.response_violation == 2.0
    assert solution.penalty_value == 9.0
    assert solution.constraint_violation_penalty == 18.0
    assert solution.penalized_objective == 23.0

    feasible = make_solution(cost=5.0, load=11.0, iteration_number=3)
    assert feasible.constraint_violation_penalty == 0.0
    assert feasible.penalized_objective == 5.0


def test_accessors(make_solution):
    solution = make_solution(1.0, 2.0, cost=3.0, load=4.0, count=5)
    assert solution.inputs == {"x": 1.0, "y": 2.0}
    assert solution.count == solution.num_replications == 5
    assert solution.estimated_objective_value == 3.0
    assert set(solution.estimates) == {"cost", "load"}
    assert solution.key == solution.input_map.key
    assert solution.problem.problem_name == "test_problem"


def test_from_response_map(problem):
    input_map = problem.to_input_map({"x": 1.0, "y": 2.0})
    response_map = ResponseMap.from_estimates(
        problem.model_identifier,
        problem.required_response_names,
        [
            EstimatedResponse("cost", 1.0, 1.0, 2),
            EstimatedResponse("load", 2.0, 1.0, 2),
        ],
    )
    solution = Solution.from_response_map(input_map, response_map, 4)
    assert solution.estimated_objective == response_map["cost"]
    assert solution.response_estimates == (response_map["load"],)
    assert solution.iteration_number == 4
    assert solution.to_response_map() == response_map


def test_from_incomplete_response_map(problem):
    input_map = problem.to_input_map({"x": 1.0, "y": 2.0})
    response_map = ResponseMap.from_estimates(
        problem.model_identifier,
        problem.required_response_names,
        [EstimatedResponse("cost", 1.0)],
    )
    with pytest.raises(ValueError, match="have not been estimated"):
        Solution.from_response_map(input_map, response_map)


def test_merge(make_solution):
    """Independent evaluations of the same point are merged."""
    a = make_solution(cost=1.0, load=2.0, count=2, iteration_number=1)
    b = make_solution(cost=4.0, load=2.0, count=4, iteration_number=5)
    merged = a.merge(b)
    assert merged.count == 6
    assert merged.estimated_objective_value == pytest.approx(3.0)
    assert merged.estimates["load"].count == 6
    assert merged.iteration_number == 5
    assert merged.key == a.key

    assert a.merge(b, iteration_number=7).iteration_number == 7


def test_merge_requires_same_point(make_solution):
    with pytest.raises(MergeMismatchError, match="same design point"):
        make_solution(1.0, 2.0).merge(make_solution(2.0, 2.0))


def test_merge_rejects_bad_solutions(problem, make_solution):
    solution = make_solution()
    bad = problem.bad_solution(solution.input_map)
    with pytest.raises(ValueError, match="Bad solutions"):
        solution.merge(bad)


def test_objective_must_match(problem):
    input_map = problem.to_input_map({"x": 1.0, "y": 2.0})
    with pytest.raises(UnknownResponseError, match="objective"):
        Solution(input_map, EstimatedResponse("load", 1.0))


def test_unknown_response_estimates(problem):
    input_map = problem.to_input_map({"x": 1.0, "y": 2.0})
    with pytest.raises(UnknownResponseError, match="not produced"):
        Solution(
            input_map,
            EstimatedResponse("cost", 1.0),
            (EstimatedResponse("power", 1.0),),
        )
    with pytest.raises(ValueError, match="more than once"):
        Solution(
            input_map,
            EstimatedResponse("cost", 1.0),
            (EstimatedResponse("load", 1.0), EstimatedResponse("load", 2.0)),
        )


def test_response_constraint_feasibility(make_solution):
    assert make_solution(load=11.0).is_response_constraint_feasible(0.95)
    assert not make_solution(load=13.0).is_response_constraint_feasible(0.95)

    # Noisy estimates only violate the constraint if the evidence is significant
    noisy = make_solution(load=12.5, count=4, variance=4.0)
    assert noisy.is_response_constraint_feasible(0.95)


def test_input_feasibility(make_solution):
    assert make_solution(1.0, 2.0).is_input_feasible
    assert not make_solution(12.0, 2.0).is_input_range_feasible
    assert not make_solution(8.0, 8.0).is_linear_constraint_feasible


def test_as_mapped_data(make_solution):
    solution = make_solution(1.0, 2.0, cost=3.0, load=4.0, iteration_number=2)
    data = solution.as_mapped_data()
    assert data["x"] == 1.0
    assert data["y"] == 2.0
    assert data["iteration_number"] == 2.0
    assert data["penalized_objective"] == 3.0
    assert data["is_bad"] == 0.0
    assert data["cost_average"] == 3.0
    assert data["load_average"] == 4.0

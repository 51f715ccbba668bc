"""Definitions of simulation optimization problems."""

from simeval.problem.constraints import LinearConstraint, ResponseConstraint
from simeval.problem.definition import ProblemDefinition, default_penalty_function
from simeval.problem.enum import InequalityType
from simeval.problem.input_map import InputMap
from simeval.problem.inputs import InputDefinition

__all__ = [
    "InequalityType",
    "InputDefinition",
    "InputMap",
    "LinearConstraint",
    "ProblemDefinition",
    "ResponseConstraint",
    "default_penalty_function",
]

"""Retention and monitoring of solutions found by solvers."""

from simeval.solutions.checker import SolutionChecker
from simeval.solutions.solutions import Solutions

__all__ = [
    "SolutionChecker",
    "Solutions",
]

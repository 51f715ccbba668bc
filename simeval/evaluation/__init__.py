"""Evaluation of design points via caches and simulation oracles."""

from simeval.evaluation.comparators import (
    ConfidenceIntervalComparator,
    InputEqualityComparator,
    ObjectiveComparator,
    PenalizedObjectiveComparator,
    SolutionComparator,
    SolutionComparatorBase,
)
from simeval.evaluation.evaluator import Evaluator, EvaluatorStats
from simeval.evaluation.model_inputs import InputsKey, ModelInputs
from simeval.evaluation.request import EvaluationRequest
from simeval.evaluation.solution import Solution

__all__ = [
    "ConfidenceIntervalComparator",
    "EvaluationRequest",
    "Evaluator",
    "EvaluatorStats",
    "InputEqualityComparator",
    "InputsKey",
    "ModelInputs",
    "ObjectiveComparator",
    "PenalizedObjectiveComparator",
    "Solution",
    "SolutionComparator",
    "SolutionComparatorBase",
]

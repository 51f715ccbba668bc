"""Statistical estimates of simulation responses."""

from simeval.estimates.response import (
    EstimatedResponse,
    EstimatedResponseComparator,
    compare_estimated_responses,
    difference_confidence_interval,
    statistical_summaries,
)
from simeval.estimates.response_map import ResponseMap

__all__ = [
    "EstimatedResponse",
    "EstimatedResponseComparator",
    "ResponseMap",
    "compare_estimated_responses",
    "difference_confidence_interval",
    "statistical_summaries",
]

"""Validation tests for solution caches and collections."""

import pytest
from pytest import param

from simeval.cache import MemorySolutionCache, WorstSolutionEvictionRule
from simeval.solutions import Solutions


@pytest.mark.parametrize(
    ("capacity", "error", "match"),
    [
        param(1, ValueError, "must be >= 2", id="too_small"),
        param(2.0, TypeError, "<class 'int'>", id="float"),
    ],
)
def test_invalid_cache_capacity(capacity, error, match):
    with pytest.raises(error, match=match):
        MemorySolutionCache(capacity)


@pytest.mark.parametrize(
    ("capacity", "error", "match"),
    [
        param(0, ValueError, "must be >= 1", id="zero"),
        param("3", TypeError, "<class 'int'>", id="string"),
    ],
)
def test_invalid_solutions_capacity(capacity, error, match):
    with pytest.raises(error, match=match):
        Solutions(capacity)


def test_invalid_eviction_rule():
    with pytest.raises(TypeError, match="eviction_rule"):
        MemorySolutionCache(5, eviction_rule=object())


def test_eviction_from_empty_cache():
    with pytest.raises(ValueError, match="empty cache"):
        WorstSolutionEvictionRule().find_eviction_candidate({})

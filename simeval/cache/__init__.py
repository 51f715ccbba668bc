"""Caches for evaluated solutions."""

from simeval.cache.base import EvictionRule, SolutionCacheProtocol
from simeval.cache.memory import MemorySolutionCache, WorstSolutionEvictionRule

__all__ = [
    "EvictionRule",
    "MemorySolutionCache",
    "SolutionCacheProtocol",
    "WorstSolutionEvictionRule",
]

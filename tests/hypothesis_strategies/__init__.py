"""Hypothesis strategies for generating SimEval objects."""

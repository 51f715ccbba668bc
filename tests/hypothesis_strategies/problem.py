"""Hypothesis strategies for problem building blocks."""

import hypothesis.strategies as st

from simeval.problem import (
    InequalityType,
    InputDefinition,
    LinearConstraint,
    ResponseConstraint,
)

from .basic import finite_floats, names

_values = finite_floats(min_value=-1e3, max_value=1e3)


@st.composite
def input_definitions(draw: st.DrawFn):
    """Generate :class:`simeval.problem.InputDefinition`."""
    lower = draw(_values)
    width = draw(finite_floats(min_value=1e-3, max_value=1e3))
    granularity = draw(
        st.one_of(st.just(0.0), finite_floats(min_value=1e-3, max_value=1.0))
    )
    return InputDefinition(draw(names), (lower, lower + width), granularity)


@st.composite
def linear_constraints(draw: st.DrawFn):
    """Generate :class:`simeval.problem.LinearConstraint`."""
    equation = draw(st.dictionaries(names, _values, min_size=1, max_size=4))
    return LinearConstraint(
        equation, draw(_values), draw(st.sampled_from(InequalityType))
    )


@st.composite
def response_constraints(draw: st.DrawFn):
    """Generate :class:`simeval.problem.ResponseConstraint`."""
    return ResponseConstraint(
        draw(names), draw(_values), draw(st.sampled_from(InequalityType))
    )

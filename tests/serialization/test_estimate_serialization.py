"""Estimate serialization tests."""

import pytest
from hypothesis import given

from simeval.estimates import EstimatedResponse
from tests.hypothesis_strategies.estimates import estimated_responses
from tests.serialization.utils import assert_roundtrip_consistency


@given(estimated_responses())
def test_estimate_roundtrip(estimate: EstimatedResponse):
    """A serialization roundtrip yields an equivalent object."""
    assert_roundtrip_consistency(estimate)


def test_single_observation_keeps_nan_variance():
    """The undefined variance of a single observation survives serialization."""
    dct = EstimatedResponse("y", 1.5).to_dict()
    assert dct["type"] == "EstimatedResponse"
    assert EstimatedResponse.from_dict(dct) == EstimatedResponse("y", 1.5)


@pytest.mark.parametrize("type_name", ["Solution", "InputsKey"])
def test_type_mismatch(type_name: str):
    """Deserializing into a class not matching the type information fails."""
    dct = EstimatedResponse("y", 1.0, 0.5, 3).to_dict() | {"type": type_name}
    with pytest.raises(ValueError, match="does not match"):
        EstimatedResponse.from_dict(dct)

"""Request serialization tests."""

from datetime import datetime

import pytest

from simeval.evaluation import EvaluationRequest, EvaluatorStats, InputsKey, ModelInputs
from tests.serialization.utils import assert_roundtrip_consistency, roundtrip

A = ModelInputs("m", {"x": 1.0, "y": 2.0}, 3, {"cost"}, datetime(2024, 5, 1, 12))
B = ModelInputs("m", {"x": 2.0, "y": 2.0}, 1, {"cost", "load"})


@pytest.mark.parametrize(
    "obj",
    [
        InputsKey("m", {"x": 1.0, "y": 2.0}),
        A,
        EvaluationRequest("m", [A, B]),
        EvaluationRequest("m", [A, B], crn_option=True, caching_allowed=False),
        EvaluatorStats(total_evaluations=2, total_cached_replications=5),
    ],
    ids=["key", "model_inputs", "request", "crn_request", "stats"],
)
def test_roundtrip(obj):
    """A serialization roundtrip yields an equivalent object."""
    assert_roundtrip_consistency(obj)


def test_key_survives_roundtrip():
    """Deserialized design points identify the same cache entry."""
    assert roundtrip(A).key == A.key
    assert hash(roundtrip(A.key)) == hash(A.key)


def test_json_file(tmp_path):
    path = tmp_path / "request.json"
    request = EvaluationRequest("m", [A, B])
    request.to_json(path)
    assert EvaluationRequest.from_json(path) == request

    with pytest.raises(FileExistsError):
        request.to_json(path)
    request.to_json(path, overwrite=True)

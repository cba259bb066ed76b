import math

import pytest

from itergraph import GraphReference, fingerprint
from itergraph.exceptions import UnserializableValueError


def test_fingerprint_is_stable():
    value = {"graph": {"graphId": "g"}, "inputs": [1, "two", None, {"x": 1.5}]}

    assert fingerprint(value) == fingerprint(value)
    assert len(fingerprint(value)) == 64
    int(fingerprint(value), 16)


def test_fingerprint_distinguishes_content():
    assert fingerprint({"a": 1}) != fingerprint({"a": 2})
    assert fingerprint([1, 2]) != fingerprint([2, 1])


def test_fingerprint_keeps_field_order():
    # mappings are hashed in insertion order, reordered fields never collide
    assert fingerprint({"a": 1, "b": 2}) != fingerprint({"b": 2, "a": 1})


def test_fingerprint_of_model_matches_its_dump():
    reference = GraphReference(graph_id="g", graph_name="G")

    assert fingerprint(reference) == fingerprint({"graphId": "g", "graphName": "G"})


@pytest.mark.parametrize(
    "value", (math.nan, math.inf, object(), {1, 2}), ids=("nan", "inf", "object", "set")
)
def test_fingerprint_rejects_unserializable(value):
    with pytest.raises(UnserializableValueError):
        fingerprint({"value": value})

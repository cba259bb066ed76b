import base64

import pytest

from itergraph import JsonZstdSerializer
from itergraph.exceptions import (
    CodecError,
    CorruptedValueError,
    TamperedDataError,
    UnserializableValueError,
)


@pytest.fixture
def serializer() -> JsonZstdSerializer:
    return JsonZstdSerializer("secret")


@pytest.mark.parametrize(
    "value",
    (
        {"outputs": {"type": "string", "value": "héllo wörld"}},
        [{"a": {"type": "number", "value": 1}}, None, True, 2.5],
        "x" * 10_000,
    ),
    ids=("mapping", "list", "large"),
)
def test_round_trip(serializer, value):
    encoded = serializer.encode(value)

    assert isinstance(encoded, str)
    assert serializer.decode(encoded) == value


def test_compresses_repetitive_values(serializer):
    value = {"text": "abc" * 5_000}

    assert len(serializer.encode(value)) < len(str(value))


def test_encode_rejects_unserializable(serializer):
    with pytest.raises(UnserializableValueError):
        serializer.encode({"value": object()})


def test_decode_rejects_empty(serializer):
    with pytest.raises(CorruptedValueError):
        serializer.decode("")


def test_decode_rejects_tampered_payload(serializer):
    raw = base64.urlsafe_b64decode(serializer.encode({"a": 1}))
    signature, compressed = raw.split(b"|", 1)
    tampered = signature + b"|" + compressed[:-1] + bytes([compressed[-1] ^ 0xFF])

    with pytest.raises(TamperedDataError):
        serializer.decode(base64.urlsafe_b64encode(tampered).decode())


def test_decode_rejects_foreign_secret(serializer):
    encoded = JsonZstdSerializer("other").encode({"a": 1})

    with pytest.raises(TamperedDataError):
        serializer.decode(encoded)


def test_decode_rejects_truncated(serializer):
    encoded = serializer.encode({"a": list(range(100))})

    with pytest.raises(CodecError):
        serializer.decode(encoded[: len(encoded) // 2])

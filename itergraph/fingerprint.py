"""
Deterministic fingerprints of structured values.

Values are rendered as compact JSON and digested with BLAKE2b. Mapping keys keep
their insertion order, so two mappings holding the same fields in a different order
produce different fingerprints.
"""

import json
from hashlib import blake2b
from typing import TYPE_CHECKING

from pydantic import BaseModel

from .exceptions import UnserializableValueError

if TYPE_CHECKING:  # pragma: no cover
    from typing import Any

DIGEST_SIZE = 32


def _encode_model(value: "Any") -> "Any":
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")

    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_json(value: "Any") -> str:
    """Render a value as compact JSON, rejecting anything JSON cannot represent."""
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_encode_model,
        )
    except (TypeError, ValueError, RecursionError) as e:
        raise UnserializableValueError(value) from e


def fingerprint(value: "Any") -> str:
    digest = blake2b(digest_size=DIGEST_SIZE, usedforsecurity=True)
    digest.update(canonical_json(value).encode())
    return digest.hexdigest()

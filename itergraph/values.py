from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:  # pragma: no cover
    from typing import Any

T = TypeVar("T")

SCALAR_TYPES: frozenset[str] = frozenset(
    {
        "any",
        "string",
        "number",
        "boolean",
        "object",
        "date",
        "time",
        "datetime",
        "chat-message",
        "vector",
        "image",
        "binary",
        "audio",
        "document",
        "gpt-function",
        "graph-reference",
        "control-flow-excluded",
    }
)

OBJECT_TYPE = "object"
CONTROL_FLOW_EXCLUDED = "control-flow-excluded"


class ValueKind(Enum):
    SCALAR = "scalar"
    ARRAY = "array"
    FUNCTION = "function"


def value_kind(data_type: str) -> ValueKind | None:
    """Classify a data type tag, or return None if the tag is unknown."""
    match data_type:
        case str() if data_type in SCALAR_TYPES:
            return ValueKind.SCALAR
        case str() if data_type.endswith("[]") and data_type[:-2] in SCALAR_TYPES:
            return ValueKind.ARRAY
        case str() if (
            data_type.startswith("fn<")
            and data_type.endswith(">")
            and data_type[3:-1] in SCALAR_TYPES
        ):
            return ValueKind.FUNCTION
        case _:
            return None


@dataclass(kw_only=True, frozen=True, slots=True)
class TaggedValue(Generic[T]):
    type: str
    value: T

    @property
    def kind(self) -> ValueKind | None:
        return value_kind(self.type)

    @classmethod
    def parse(cls, raw: "Any") -> "TaggedValue[Any] | None":
        """Read a `{"type": ..., "value": ...}` mapping with a known tag."""
        if (
            isinstance(raw, Mapping)
            and "value" in raw
            and isinstance(data_type := raw.get("type"), str)
            and value_kind(data_type) is not None
        ):
            return cls(type=data_type, value=raw["value"])

        return None


def is_object_value(raw: "Any") -> bool:
    return (
        isinstance(raw, Mapping)
        and raw.get("type") == OBJECT_TYPE
        and isinstance(raw.get("value"), Mapping)
    )


def item_fields(item: "Mapping[str, Any]") -> "Mapping[str, Any]":
    """Return the field mapping of an item, unwrapping an object-tagged wrapper."""
    return item["value"] if is_object_value(item) else item


def excluded() -> dict[str, "Any"]:
    return {"type": CONTROL_FLOW_EXCLUDED, "value": None}

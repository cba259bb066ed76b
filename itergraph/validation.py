"""
Batch validation against a subgraph's declared inputs.

Every item is checked before any work is dispatched, and the problems of all items
are gathered into a single error so the caller sees them at once.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import InvalidBatchError, MalformedBatchError
from .values import TaggedValue, item_fields

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Sequence
    from typing import Any


@dataclass(frozen=True, slots=True)
class SubgraphContract:
    field_names: tuple[str, ...]

    @classmethod
    def from_input_ids(cls, input_ids: "Iterable[str]") -> "SubgraphContract":
        return cls(field_names=tuple(dict.fromkeys(input_ids)))


@dataclass(slots=True)
class ItemValidation:
    missing_fields: set[str] = field(default_factory=set)
    invalid_fields: set[tuple[str, str]] = field(default_factory=set)

    @property
    def valid(self) -> bool:
        return not self.missing_fields and not self.invalid_fields

    def merge(self, other: "ItemValidation") -> None:
        self.missing_fields |= other.missing_fields
        self.invalid_fields |= other.invalid_fields


def _render(value: "Any") -> str:
    return json.dumps(value, default=repr)


def validate(item: "Mapping[str, Any]", contract: SubgraphContract) -> ItemValidation:
    fields = item_fields(item)
    result = ItemValidation()

    result.missing_fields.update(
        name for name in contract.field_names if name not in fields
    )
    result.invalid_fields.update(
        (name, _render(value))
        for name, value in fields.items()
        if TaggedValue.parse(value) is None
    )

    return result


def validate_batch(items: "Sequence[Any]", contract: SubgraphContract) -> None:
    """Raise a single error describing every problem found across the batch."""
    if any(not isinstance(item, Mapping) for item in items):
        raise MalformedBatchError()

    report = ItemValidation()
    for item in items:
        report.merge(validate(item, contract))

    if not report.valid:
        raise InvalidBatchError(report.missing_fields, report.invalid_fields)

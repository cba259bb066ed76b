import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable
    from typing import Any


class IterGraphError(Exception):
    def __init__(self, *args: "Any", **kwargs: "Any") -> None:
        super().__init__(*args, **kwargs)


##
## BATCH VALIDATION
##


class ValidationError(IterGraphError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class MalformedBatchError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            "Input array must be an array of objects. Each object needs to be a"
            " DataValue. A graph needs an object with keys that match the graph's"
            " input ports."
        )


class InvalidBatchError(ValidationError):
    def __init__(
        self,
        missing_fields: "Iterable[str]",
        invalid_fields: "Iterable[tuple[str, str]]",
    ) -> None:
        self.missing_fields = frozenset(missing_fields)
        self.invalid_fields = frozenset(invalid_fields)

        message = "Input validation error::"
        if self.missing_fields:
            message += " Missing keys required for graph: " + "; ".join(
                sorted(self.missing_fields)
            )
        if self.invalid_fields:
            message += (
                " Invalid Inputs, make sure each input item is a ObjectDataValue: "
                + "; ".join(
                    f"{name}={value}" for name, value in sorted(self.invalid_fields)
                )
            )

        super().__init__(message)


##
## ITEM EXECUTION
##


class ItemExecutionError(IterGraphError):
    def __init__(
        self, graph_name: str, index: int, item: "Any", cause: BaseException
    ) -> None:
        self.index = index
        self.item = item
        super().__init__(
            f"Error running graph {graph_name}. ItemIndex: {index}:: Inputs:"
            f" {json.dumps(item, default=repr)} Message: {cause}"
        )


class IterationError(IterGraphError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


##
## CACHE CODEC
##


class CodecError(IterGraphError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class UnserializableValueError(CodecError):
    def __init__(self, value: "Any") -> None:
        super().__init__(f"{value!r} is not a serializable value.")


class TamperedDataError(CodecError):
    def __init__(self) -> None:
        super().__init__("Deserialization failed due to signature mismatch.")


class CorruptedValueError(CodecError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Deserialization failed: {reason}.")


##
## CONFIGURATION
##


class ConfigurationError(IterGraphError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class GraphNotFoundError(ConfigurationError):
    def __init__(self, graph_id: str) -> None:
        super().__init__(f"Graph '{graph_id}' is not defined in the current project.")


class InvalidGraphReferenceError(ConfigurationError):
    def __init__(self, value: "Any") -> None:
        super().__init__(f"{value!r} is not a valid graph reference.")

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .engine import BatchError
from .exceptions import MalformedBatchError
from .values import excluded

if TYPE_CHECKING:  # pragma: no cover
    from .cancellation import CancellationToken
    from .engine import IterationEngine

logger = structlog.get_logger(__name__)

GRAPH_PORT = "graph"
ITERATOR_INPUTS_PORT = "iteratorInputs"
ITERATOR_OUTPUTS_PORT = "iteratorOutputs"
CHUNK_SIZE_PORT = "chunkSize"
HAS_CACHE_PORT = "hasCache"
ERROR_PORT = "error"


class IteratorNodeData(BaseModel):
    chunk_size: int = Field(default=1, alias="chunkSize")
    use_chunk_size_toggle: bool = Field(default=False, alias="useChunkSizeToggle")
    has_cache: bool = Field(default=False, alias="hasCache")
    node_id: str = Field(default_factory=lambda: str(uuid4()), alias="nodeId")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def _unwrap(raw: Any) -> Any:
    """Strip the `{"type": ..., "value": ...}` envelope of a port value, if any."""
    if isinstance(raw, Mapping) and "type" in raw and "value" in raw:
        return raw["value"]

    return raw


def _coerce_items(raw: Any) -> list[Any]:
    value = _unwrap(raw)
    if not isinstance(value, list | tuple):
        raise MalformedBatchError()

    return list(value)


class IteratorNode:
    """
    Port-level adapter around an IterationEngine.

    Reads the graph reference, the item array and the optional overrides from the node's
    input ports, and renders the engine's outcome onto the output ports. On failure the
    item array output carries the control-flow-excluded sentinel and the error port
    carries the consolidated message.
    """

    def __init__(
        self, engine: "IterationEngine", data: IteratorNodeData | None = None
    ) -> None:
        self.engine = engine
        self.data = data or IteratorNodeData()

    def input_port_ids(self) -> list[str]:
        ports = [GRAPH_PORT, ITERATOR_INPUTS_PORT]
        if self.data.use_chunk_size_toggle:
            ports.append(CHUNK_SIZE_PORT)

        return ports

    def _concurrency(self, inputs: Mapping[str, Any]) -> int:
        if self.data.use_chunk_size_toggle and (
            override := _unwrap(inputs.get(CHUNK_SIZE_PORT))
        ) is not None:
            try:
                return int(override)
            except (TypeError, ValueError, OverflowError):
                logger.warning("Ignoring non-numeric chunk size", chunk_size=override)

        return self.data.chunk_size

    def _use_cache(self, inputs: Mapping[str, Any]) -> bool:
        # hasCache is not a declared port; callers may still pass it as an override.
        if (override := _unwrap(inputs.get(HAS_CACHE_PORT))) is not None:
            return bool(override)

        return self.data.has_cache

    async def process(
        self, inputs: Mapping[str, Any], signal: "CancellationToken | None" = None
    ) -> dict[str, Any]:
        try:
            items = _coerce_items(inputs.get(ITERATOR_INPUTS_PORT))
        except MalformedBatchError as e:
            return self._failure(str(e))

        outcome = await self.engine.run(
            inputs.get(GRAPH_PORT),
            items,
            instance_key=self.data.node_id,
            concurrency=self._concurrency(inputs),
            use_cache=self._use_cache(inputs),
            signal=signal,
        )

        if isinstance(outcome, BatchError):
            return self._failure(outcome.message)

        return {ITERATOR_OUTPUTS_PORT: {"type": "object[]", "value": outcome.results}}

    @staticmethod
    def _failure(message: str) -> dict[str, Any]:
        return {
            ITERATOR_OUTPUTS_PORT: excluded(),
            ERROR_PORT: {"type": "string", "value": message},
        }

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import GraphNotFoundError, InvalidGraphReferenceError
from .fingerprint import fingerprint

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Awaitable, Callable

    SubgraphCallable = Callable[["GraphReference", dict[str, Any]], Awaitable[Any]]

GRAPH_INPUT_NODE = "graphInput"


class GraphReference(BaseModel):
    graph_id: str = Field(alias="graphId")
    graph_name: str = Field(default="", alias="graphName")

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @classmethod
    def coerce(cls, value: Any) -> "GraphReference":
        """Accept a reference, a `graph-reference` tagged value or a bare mapping."""
        if isinstance(value, GraphReference):
            return value

        if isinstance(value, dict) and value.get("type") == "graph-reference":
            value = value.get("value")

        try:
            return cls.model_validate(value)
        except PydanticValidationError as e:
            raise InvalidGraphReferenceError(value) from e

    def dump(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class GraphNode(BaseModel):
    id: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class Subgraph(BaseModel):
    id: str
    name: str = ""
    nodes: list[GraphNode] = Field(default_factory=list)

    @property
    def input_ids(self) -> list[str]:
        """Field names a valid item must contain, one per declared graph input."""
        return [
            node.data["id"]
            for node in self.nodes
            if node.type == GRAPH_INPUT_NODE and node.data.get("id") is not None
        ]

    def snapshot(self) -> str:
        """Fingerprint of every node's data, used to detect definition changes."""
        return fingerprint([node.data for node in self.nodes])


@runtime_checkable
class SubgraphProvider(Protocol):
    def get_graph(self, reference: GraphReference) -> Subgraph: ...


class Project(BaseModel):
    graphs: dict[str, Subgraph] = Field(default_factory=dict)

    @classmethod
    def from_graphs(cls, *graphs: Subgraph) -> "Project":
        return cls(graphs={graph.id: graph for graph in graphs})

    def get_graph(self, reference: GraphReference) -> Subgraph:
        if graph := self.graphs.get(reference.graph_id):
            return graph

        raise GraphNotFoundError(reference.graph_id)

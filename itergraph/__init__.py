from .cache import CacheEntry, ResultCache
from .cancellation import CancellationToken
from .config import Config
from .engine import BatchError, BatchResult, IterationEngine
from .executor import BoundedExecutor, Failed, Skipped, Success
from .fingerprint import fingerprint
from .graph import GraphNode, GraphReference, Project, Subgraph, SubgraphProvider
from .node import IteratorNode, IteratorNodeData
from .serialization import JsonZstdSerializer, Serializer
from .values import TaggedValue, ValueKind

__all__ = [
    "BatchError",
    "BatchResult",
    "BoundedExecutor",
    "CacheEntry",
    "CancellationToken",
    "Config",
    "Failed",
    "GraphNode",
    "GraphReference",
    "IterationEngine",
    "IteratorNode",
    "IteratorNodeData",
    "JsonZstdSerializer",
    "Project",
    "ResultCache",
    "Serializer",
    "Skipped",
    "Subgraph",
    "SubgraphProvider",
    "Success",
    "TaggedValue",
    "ValueKind",
    "fingerprint",
]

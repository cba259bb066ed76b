from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING

import structlog
from anyio import to_thread

from .cache import CacheEntry, ResultCache
from .cancellation import CancellationToken
from .config import Config
from .exceptions import (
    CodecError,
    ConfigurationError,
    ItemExecutionError,
    IterationError,
    ValidationError,
)
from .executor import BoundedExecutor, Failed, Skipped, Success
from .fingerprint import fingerprint
from .graph import GraphReference
from .serialization import JsonZstdSerializer
from .validation import SubgraphContract, validate_batch
from .values import OBJECT_TYPE, item_fields

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping, Sequence
    from typing import Any

    from .executor import TaskOutcome
    from .graph import SubgraphCallable, SubgraphProvider
    from .serialization import Serializer

logger = structlog.get_logger(__name__)

_MISS = object()


class IterationState(Enum):
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    AGGREGATING = "aggregating"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class BatchResult:
    results: list["Any"]
    outcomes: list["TaskOutcome"] = field(default_factory=list)

    def unwrap(self) -> list["Any"]:
        return self.results


@dataclass(frozen=True, slots=True)
class BatchError:
    message: str
    outcomes: list["TaskOutcome"] = field(default_factory=list)

    def unwrap(self) -> list["Any"]:
        raise IterationError(self.message)


@dataclass(slots=True)
class _Invocation:
    reference: GraphReference
    token: CancellationToken
    entry: CacheEntry | None


class IterationEngine:
    """
    Runs a subgraph once per item of a batch.

    Items are validated against the subgraph's declared inputs before anything runs,
    then dispatched to a bounded pool of workers. When caching is enabled, results are
    memoized per engine instance key and invalidated whenever the subgraph definition
    changes. The first failing item aborts every item that has not started yet.
    """

    def __init__(
        self,
        provider: "SubgraphProvider",
        invoke: "SubgraphCallable",
        cache: ResultCache | None = None,
        serializer: "Serializer | None" = None,
        **settings: "Any",
    ) -> None:
        self.config = Config(**settings)
        self.provider = provider
        self.invoke = invoke
        self.cache: ResultCache = cache or ResultCache(ttl=self.config.cache_ttl)
        self.serializer: "Serializer" = serializer or JsonZstdSerializer(
            self.config.serialization_secret
        )

    def resolve_concurrency(self, override: int | None = None) -> int:
        limit = self.config.default_concurrency if override is None else override
        return max(int(limit), 1)

    async def run(
        self,
        graph: "GraphReference | Mapping[str, Any]",
        items: "Sequence[Any]",
        *,
        instance_key: str | None = None,
        concurrency: int | None = None,
        use_cache: bool | None = None,
        signal: CancellationToken | None = None,
    ) -> BatchResult | BatchError:
        log = logger.bind(instance_key=instance_key, items=len(items))

        log.debug("Iteration state", state=IterationState.VALIDATING.value)
        try:
            reference = GraphReference.coerce(graph)
            subgraph = self.provider.get_graph(reference)
            validate_batch(items, SubgraphContract.from_input_ids(subgraph.input_ids))
        except (ConfigurationError, ValidationError) as e:
            log.warning("Batch rejected", error=str(e))
            return BatchError(message=str(e))

        log.debug("Iteration state", state=IterationState.DISPATCHING.value)
        caching = (
            self.config.cache_enabled if use_cache is None else use_cache
        ) and instance_key is not None

        entry: CacheEntry | None = None
        if caching:
            snapshot = await to_thread.run_sync(subgraph.snapshot)
            entry = self.cache.get_or_create(instance_key)
            self.cache.reconcile(entry, snapshot)

        invocation = _Invocation(
            reference=reference,
            token=signal.child() if signal is not None else CancellationToken(),
            entry=entry,
        )
        tasks = [
            partial(self._run_item, invocation, index, item)
            for index, item in enumerate(items)
        ]

        log.debug("Iteration state", state=IterationState.AWAITING.value)
        executor = BoundedExecutor(self.resolve_concurrency(concurrency))
        outcomes = await executor.run(tasks, invocation.token)

        log.debug("Iteration state", state=IterationState.AGGREGATING.value)
        if entry is not None:
            self.cache.commit(instance_key, entry)
            self.cache.sweep_expired()

        result = self._aggregate(outcomes)
        log.debug("Iteration state", state=IterationState.DONE.value)
        return result

    def _aggregate(self, outcomes: list["TaskOutcome"]) -> BatchResult | BatchError:
        if all(isinstance(outcome, Success) for outcome in outcomes):
            return BatchResult(
                results=[outcome.result for outcome in outcomes], outcomes=outcomes
            )

        message = "; ".join(
            f"ItemIndex: {outcome.index}:: {outcome.message}"
            for outcome in outcomes
            if isinstance(outcome, Failed)
        )
        if not message:
            skipped = sum(isinstance(outcome, Skipped) for outcome in outcomes)
            message = f"Iteration aborted before {skipped} item(s) could run."

        return BatchError(message=message, outcomes=outcomes)

    async def _run_item(
        self, invocation: _Invocation, index: int, item: "Mapping[str, Any]"
    ) -> "TaskOutcome":
        if invocation.token.cancelled:
            return Skipped(index=index)

        fields = dict(item_fields(item))
        key: str | None = None

        if invocation.entry is not None:
            key = await self._fingerprint(invocation.reference, fields)
            if key is not None:
                cached = await self._load(invocation.entry, key)
                if cached is not _MISS:
                    return Success(index=index, result=cached, cached=True)

        try:
            result = await self.invoke(invocation.reference, fields)
        except Exception as e:
            reference = invocation.reference
            error = ItemExecutionError(
                reference.graph_name or reference.graph_id, index, item, e
            )
            logger.warning("Item failed", index=index, error=str(e))
            invocation.token.cancel(error)
            return Failed(index=index, message=str(error), item=item)

        if invocation.entry is not None and key is not None:
            await self._save(invocation.entry, key, result)

        return Success(index=index, result=result)

    async def _fingerprint(
        self, reference: GraphReference, fields: dict[str, "Any"]
    ) -> str | None:
        payload = {
            "graph": reference.dump(),
            "inputs": {"type": OBJECT_TYPE, "value": fields},
        }
        try:
            return await to_thread.run_sync(fingerprint, payload)
        except CodecError as e:
            logger.warning("Item cannot be fingerprinted, not caching", error=str(e))
            return None

    async def _load(self, entry: CacheEntry, key: str) -> "Any":
        compressed = self.cache.lookup(entry, key)
        if compressed is None:
            return _MISS

        try:
            value = await to_thread.run_sync(self.serializer.decode, compressed)
        except CodecError as e:
            logger.warning("Discarding unreadable cached result", key=key, error=str(e))
            return _MISS

        logger.debug("Cache hit", key=key)
        return value

    async def _save(self, entry: CacheEntry, key: str, result: "Any") -> None:
        try:
            compressed = await to_thread.run_sync(self.serializer.encode, result)
        except CodecError as e:
            logger.warning("Result cannot be cached", key=key, error=str(e))
            return

        self.cache.store(entry, key, compressed)
        logger.debug("Cache stored", key=key)

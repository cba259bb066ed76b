from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import anyio
import structlog

from .cancellation import CancellationToken

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Awaitable, Callable, Sequence
    from typing import Any

    from anyio.streams.memory import MemoryObjectReceiveStream

    Task = Callable[[], Awaitable["TaskOutcome"]]

T = TypeVar("T")

logger = structlog.get_logger(__name__)


@dataclass(kw_only=True, frozen=True, slots=True)
class Success(Generic[T]):
    index: int
    result: T
    cached: bool = False


@dataclass(kw_only=True, frozen=True, slots=True)
class Skipped:
    index: int
    reason: str = "aborted"


@dataclass(kw_only=True, frozen=True, slots=True)
class Failed:
    index: int
    message: str
    item: "Any" = None


TaskOutcome = Success | Skipped | Failed


class BoundedExecutor:
    """
    Runs tasks on a fixed pool of concurrent workers.

    At most `concurrency` tasks are in flight at once and outcomes are returned in task
    order. Cancellation is cooperative: once the token is cancelled, workers record
    `Skipped` for every task they have not started yet, while tasks already running
    finish normally. `run` only returns once every task has an outcome.
    """

    def __init__(self, concurrency: int = 1) -> None:
        self.concurrency = max(concurrency, 1)

    async def _worker(
        self,
        receive_stream: "MemoryObjectReceiveStream[tuple[int, Task]]",
        outcomes: list["TaskOutcome | None"],
        token: CancellationToken,
    ) -> None:
        async with receive_stream:
            async for index, task in receive_stream:
                if token.cancelled:
                    outcomes[index] = Skipped(index=index)
                    continue

                try:
                    outcomes[index] = await task()
                except Exception as e:
                    logger.warning("Task raised", index=index, error=str(e))
                    outcomes[index] = Failed(index=index, message=str(e))
                    token.cancel(e)

    async def run(
        self, tasks: "Sequence[Task]", token: CancellationToken | None = None
    ) -> list["TaskOutcome"]:
        if not tasks:
            return []

        if token is None:
            token = CancellationToken()

        outcomes: list["TaskOutcome | None"] = [None] * len(tasks)
        send_stream, receive_stream = anyio.create_memory_object_stream[
            "tuple[int, Task]"
        ](len(tasks))

        async with send_stream:
            for index, task in enumerate(tasks):
                send_stream.send_nowait((index, task))

        async with receive_stream, anyio.create_task_group() as tg:
            for _ in range(min(self.concurrency, len(tasks))):
                tg.start_soon(self._worker, receive_stream.clone(), outcomes, token)

        return outcomes  # type: ignore[return-value]

"""A fixed-size pool of workers that shares out messages by least load."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Union

from actorkit.delivery import ActorNotRunning, Recipient, SendError

Factory = Callable[[], Union[Recipient, Awaitable[Recipient]]]


def _check_size(size: int) -> None:
    if size < 1:
        raise ValueError("an actor pool needs at least one worker")


async def _produce(factory: Factory) -> Recipient:
    worker = factory()
    if inspect.isawaitable(worker):
        worker = await worker
    return worker


class ActorPool:
    """A fixed set of workers made by ``factory``.

    ``dispatch`` sends a message to the worker with the fewest messages in
    flight; ``broadcast`` sends one to every worker. A worker that stops is
    replaced by a fresh one from the factory, so the pool keeps its size.
    """

    def __init__(self, size: int, factory: Callable[[], Recipient]) -> None:
        _check_size(size)
        workers = []
        for _ in range(size):
            worker = factory()
            if inspect.isawaitable(worker):
                if inspect.iscoroutine(worker):
                    worker.close()
                raise TypeError("the factory is asynchronous; use ActorPool.create")
            workers.append(worker)
        self._setup(factory, workers)

    @classmethod
    async def create(cls, size: int, factory: Factory) -> ActorPool:
        """Build a pool whose factory may be a coroutine function."""
        _check_size(size)
        workers = await asyncio.gather(*(_produce(factory) for _ in range(size)))
        pool = cls.__new__(cls)
        pool._setup(factory, list(workers))
        return pool

    def _setup(self, factory: Factory, workers: list[Recipient]) -> None:
        self._factory = factory
        self._size = len(workers)
        self._workers: list[Recipient] = []
        self._load: dict[int, int] = {}
        self._watchers: set[asyncio.Task] = set()
        for worker in workers:
            self._workers.append(worker)
            self._adopt(worker)

    def __repr__(self) -> str:
        return f"ActorPool(size={self._size}, workers={self.worker_ids()})"

    @property
    def size(self) -> int:
        """The number of workers the pool keeps."""
        return self._size

    def worker_ids(self) -> list[int]:
        """The ids of the current workers, in pool order."""
        return [worker.id for worker in self._workers]

    def _adopt(self, worker: Recipient) -> None:
        self._load[worker.id] = 0
        if worker.is_alive:
            task = asyncio.get_running_loop().create_task(self._watch(worker))
            self._watchers.add(task)
            task.add_done_callback(self._watchers.discard)

    async def _watch(self, worker: Recipient) -> None:
        await worker.wait_for_shutdown()
        await self.worker_died(worker.id)

    def _index_of(self, actor_id: int) -> int | None:
        return next((i for i, w in enumerate(self._workers) if w.id == actor_id), None)

    def _least_loaded(self, tried: set[int]) -> Recipient | None:
        candidates = (w for w in self._workers if w.id not in tried)
        return min(candidates, key=lambda w: self._load.get(w.id, 0), default=None)

    async def dispatch(self, message: Any) -> Any:
        """Send ``message`` to the least loaded worker and return its reply.

        Workers that are not running are skipped; ``ActorNotRunning`` is raised
        when no worker could take the message. Handler errors propagate.
        """
        tried: set[int] = set()
        for _ in range(len(self._workers)):
            worker = self._least_loaded(tried)
            if worker is None:
                break
            tried.add(worker.id)
            self._load[worker.id] = self._load.get(worker.id, 0) + 1
            try:
                return await worker.ask(message)
            except ActorNotRunning:
                continue
            finally:
                if worker.id in self._load:
                    self._load[worker.id] -= 1
        raise ActorNotRunning(message)

    async def broadcast(self, message: Any) -> list[SendError | None]:
        """Send ``message`` to every worker.

        Returns one entry per worker, in pool order: ``None`` when the message
        was queued, otherwise the ``SendError`` that stopped it.
        """

        async def send(worker: Recipient) -> SendError | None:
            try:
                await worker.tell(message)
            except SendError as exc:
                return exc
            return None

        return list(await asyncio.gather(*(send(w) for w in list(self._workers))))

    async def worker_died(self, actor_id: int) -> Recipient | None:
        """Replace the worker ``actor_id`` with a fresh one from the factory.

        Returns the new worker, or ``None`` if ``actor_id`` is not in the pool.
        """
        if self._index_of(actor_id) is None:
            return None
        replacement = await _produce(self._factory)
        index = self._index_of(actor_id)
        if index is None:
            replacement.stop()
            return None
        self._workers[index] = replacement
        self._load.pop(actor_id, None)
        self._adopt(replacement)
        return replacement
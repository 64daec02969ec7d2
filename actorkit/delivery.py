"""Delivery strategies and the mailbox-backed recipients that messages go to."""

from __future__ import annotations

import asyncio
import enum
import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

_log = logging.getLogger(__name__)

_ids = itertools.count()
_STOP = object()
_background: set[asyncio.Task] = set()


class DeliveryKind(enum.Enum):
    """How a publisher hands a message to each of its subscribers."""

    GUARANTEED = "guaranteed"
    BEST_EFFORT = "best_effort"
    TIMED_DELIVERY = "timed_delivery"
    SPAWNED = "spawned"
    SPAWNED_WITH_TIMEOUT = "spawned_with_timeout"


_TIMED_KINDS = frozenset({DeliveryKind.TIMED_DELIVERY, DeliveryKind.SPAWNED_WITH_TIMEOUT})
_SPAWNED_KINDS = frozenset({DeliveryKind.SPAWNED, DeliveryKind.SPAWNED_WITH_TIMEOUT})


@dataclass(frozen=True)
class DeliveryStrategy:
    """A delivery kind plus, for the timed kinds, a timeout in seconds.

    The default is best-effort delivery, which skips full mailboxes.
    """

    kind: DeliveryKind = DeliveryKind.BEST_EFFORT
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.kind in _TIMED_KINDS:
            if self.timeout is None:
                raise ValueError(f"{self.kind.value} delivery needs a timeout")
            if self.timeout < 0:
                raise ValueError("timeout must not be negative")
        elif self.timeout is not None:
            raise ValueError(f"{self.kind.value} delivery takes no timeout")

    @classmethod
    def guaranteed(cls) -> DeliveryStrategy:
        """Wait until every recipient has accepted the message."""
        return cls(DeliveryKind.GUARANTEED)

    @classmethod
    def best_effort(cls) -> DeliveryStrategy:
        """Skip recipients whose mailbox is full."""
        return cls(DeliveryKind.BEST_EFFORT)

    @classmethod
    def timed_delivery(cls, timeout: float) -> DeliveryStrategy:
        """Wait for each recipient, but at most ``timeout`` seconds."""
        return cls(DeliveryKind.TIMED_DELIVERY, timeout)

    @classmethod
    def spawned(cls) -> DeliveryStrategy:
        """Deliver each message from its own background task."""
        return cls(DeliveryKind.SPAWNED)

    @classmethod
    def spawned_with_timeout(cls, timeout: float) -> DeliveryStrategy:
        """Deliver from a background task that gives up after ``timeout`` seconds."""
        return cls(DeliveryKind.SPAWNED_WITH_TIMEOUT, timeout)


class SendError(Exception):
    """A message could not be handed to a recipient."""

    reason = "message could not be sent"

    def __init__(self, message: Any = None) -> None:
        super().__init__(self.reason)
        self.message = message


class ActorNotRunning(SendError):
    """The recipient is not running, or stopped before handling the message."""

    reason = "actor not running"


class MailboxFull(SendError):
    """The recipient's mailbox has no free slot."""

    reason = "mailbox full"


class SendTimeout(SendError):
    """No mailbox slot became free within the timeout."""

    reason = "timed out waiting for a mailbox slot"


Handler = Callable[[Any], Any]


class Recipient:
    """An actor that runs ``handler`` on each message from its mailbox, one at a time.

    ``capacity`` bounds the mailbox; ``None`` leaves it unbounded. A handler
    error raised for a message sent with ``tell`` stops the actor; for ``ask``
    it is raised to the caller and the actor keeps running.
    """

    def __init__(self, handler: Handler, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._handler = handler
        self._capacity = capacity
        self._id = next(_ids)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._space = asyncio.Condition()
        self._in_flight = 0
        self._accepting = False
        self._task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"Recipient(id={self._id}, alive={self.is_alive})"

    @property
    def id(self) -> int:
        """A process-wide unique identifier."""
        return self._id

    @property
    def capacity(self) -> int | None:
        """The mailbox bound, or ``None`` when unbounded."""
        return self._capacity

    @property
    def is_alive(self) -> bool:
        """Whether the actor is running and accepting messages."""
        return self._accepting and self._task is not None and not self._task.done()

    def start(self) -> Recipient:
        """Start processing the mailbox on the running event loop."""
        if self._task is not None:
            raise RuntimeError("recipient already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._accepting = True
        return self

    def stop(self) -> None:
        """Stop accepting messages; those already queued are still handled."""
        if not self._accepting:
            return
        self._accepting = False
        self._queue.put_nowait(_STOP)

    async def wait_for_shutdown(self) -> None:
        """Wait until the actor has finished running."""
        if self._task is not None:
            await asyncio.wait({self._task})

    async def __aenter__(self) -> Recipient:
        return self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        self.stop()
        await self.wait_for_shutdown()

    async def tell(self, message: Any) -> None:
        """Queue a message, waiting for a mailbox slot if needed."""
        await self._reserve(message)
        self._enqueue(message, None)

    def try_tell(self, message: Any) -> None:
        """Queue a message now, or raise ``MailboxFull``."""
        self._ensure_running(message)
        if self._capacity is not None and self._in_flight >= self._capacity:
            raise MailboxFull(message)
        self._enqueue(message, None)

    async def tell_timeout(self, message: Any, timeout: float) -> None:
        """Queue a message, waiting at most ``timeout`` seconds for a slot."""
        try:
            await asyncio.wait_for(self._reserve(message), timeout)
        except asyncio.TimeoutError:
            raise SendTimeout(message) from None
        self._enqueue(message, None)

    async def ask(self, message: Any) -> Any:
        """Queue a message and return the handler's result."""
        await self._reserve(message)
        reply = asyncio.get_running_loop().create_future()
        self._enqueue(message, reply)
        return await reply

    def _ensure_running(self, message: Any) -> None:
        if not self.is_alive:
            raise ActorNotRunning(message)

    def _can_accept(self) -> bool:
        return not self._accepting or self._in_flight < self._capacity

    async def _reserve(self, message: Any) -> None:
        self._ensure_running(message)
        if self._capacity is not None:
            async with self._space:
                await self._space.wait_for(self._can_accept)
        self._ensure_running(message)

    def _enqueue(self, message: Any, reply: asyncio.Future | None) -> None:
        self._in_flight += 1
        self._queue.put_nowait((message, reply))

    async def _taken(self) -> None:
        self._in_flight -= 1
        async with self._space:
            self._space.notify_all()

    async def _run(self) -> None:
        try:
            while True:
                item = await self._queue.get()
                if item is _STOP:
                    break
                await self._taken()
                message, reply = item
                try:
                    result = self._handler(message)
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as exc:
                    if reply is None:
                        _log.error("actor %s stopped by handler error: %r", self._id, exc)
                        break
                    if not reply.done():
                        reply.set_exception(exc)
                else:
                    if reply is not None and not reply.done():
                        reply.set_result(result)
        finally:
            self._accepting = False
            while not self._queue.empty():
                item = self._queue.get_nowait()
                if item is _STOP:
                    continue
                self._in_flight -= 1
                message, reply = item
                if reply is not None and not reply.done():
                    reply.set_exception(ActorNotRunning(message))
            async with self._space:
                self._space.notify_all()


NotRunningCallback = Callable[[Recipient], "Awaitable[None] | None"]


async def _notify(callback: NotRunningCallback | None, recipient: Recipient) -> None:
    if callback is None:
        return
    result = callback(recipient)
    if inspect.isawaitable(result):
        await result


async def _send_in_background(
    recipient: Recipient,
    message: Any,
    timeout: float | None,
    on_not_running: NotRunningCallback | None,
) -> None:
    try:
        if timeout is None:
            await recipient.tell(message)
        else:
            await recipient.tell_timeout(message, timeout)
    except ActorNotRunning:
        await _notify(on_not_running, recipient)
    except (MailboxFull, SendTimeout):
        pass


async def deliver(
    recipient: Recipient,
    message: Any,
    strategy: DeliveryStrategy,
    on_not_running: NotRunningCallback | None = None,
) -> asyncio.Task | None:
    """Hand ``message`` to ``recipient`` the way ``strategy`` says.

    ``on_not_running`` is called with the recipient when it turns out not to be
    running. Full mailboxes and timeouts are skipped silently. The spawned
    strategies return the background task doing the delivery.
    """
    kind = strategy.kind
    if kind in _SPAWNED_KINDS:
        task = asyncio.get_running_loop().create_task(
            _send_in_background(recipient, message, strategy.timeout, on_not_running)
        )
        _background.add(task)
        task.add_done_callback(_background.discard)
        return task
    try:
        if kind is DeliveryKind.GUARANTEED:
            await recipient.tell(message)
        elif kind is DeliveryKind.BEST_EFFORT:
            recipient.try_tell(message)
        else:
            await recipient.tell_timeout(message, strategy.timeout)
    except ActorNotRunning:
        await _notify(on_not_running, recipient)
    except (MailboxFull, SendTimeout):
        pass
    return None
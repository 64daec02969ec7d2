"""An exchange-and-queue message router with direct, topic, fanout and header exchanges."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from actorkit.amqp import (
    AmqpError,
    BindingAlreadyExists,
    ExchangeAlreadyExists,
    ExchangeInUse,
    ExchangeNotFound,
    ExchangeType,
    FilterFn,
    HeaderMatch,
    HeadersRequired,
    MessageProperties,
    QueueAlreadyExists,
    QueueInUse,
    QueueNotFound,
)
from actorkit.delivery import DeliveryKind, DeliveryStrategy, Recipient, deliver
from actorkit.pattern import TopicPattern

_SPAWNED = frozenset({DeliveryKind.SPAWNED, DeliveryKind.SPAWNED_WITH_TIMEOUT})


def _accept_all(_tags: Mapping[str, str]) -> bool:
    return True


@dataclass
class _Binding:
    queue_name: str
    routing_key: str
    header_match: HeaderMatch | None = None


@dataclass
class _Exchange:
    name: str
    kind: ExchangeType
    auto_delete: bool = False
    bindings: list[_Binding] = field(default_factory=list)


@dataclass
class _Consumer:
    recipient: Recipient
    tags: dict[str, str]


@dataclass
class _Queue:
    auto_delete: bool
    consumers: dict[type, list[_Consumer]] = field(default_factory=dict)


class MessageQueue:
    """Routes published messages through exchanges into named queues.

    Every declared queue is bound to the default direct exchange (the empty
    name) with its own name as routing key. A queue hands each message to the
    consumers registered for the message's exact type, according to the
    delivery strategy; consumers found not to be running are cancelled.
    """

    def __init__(self, delivery_strategy: DeliveryStrategy | None = None) -> None:
        self.delivery_strategy = delivery_strategy or DeliveryStrategy()
        self._exchanges: dict[str, _Exchange] = {}
        self._queues: dict[str, _Queue] = {}
        self._default = _Exchange("", ExchangeType.DIRECT)

    @property
    def exchanges(self) -> frozenset[str]:
        """Names of the declared exchanges, not counting the default one."""
        return frozenset(self._exchanges)

    @property
    def queues(self) -> frozenset[str]:
        """Names of the declared queues."""
        return frozenset(self._queues)

    def exchange_declare(
        self,
        exchange: str,
        kind: ExchangeType = ExchangeType.DIRECT,
        auto_delete: bool = False,
    ) -> None:
        """Declare a new exchange; the empty name is reserved for the default one."""
        if not exchange or exchange in self._exchanges:
            raise ExchangeAlreadyExists()
        self._exchanges[exchange] = _Exchange(exchange, kind, auto_delete)

    def exchange_delete(self, exchange: str, if_unused: bool = False) -> None:
        """Delete an exchange; with ``if_unused`` only when it has no bindings."""
        found = self._exchanges.get(exchange)
        if found is None:
            raise ExchangeNotFound()
        if if_unused and found.bindings:
            raise ExchangeInUse()
        del self._exchanges[exchange]

    def queue_declare(self, queue: str, auto_delete: bool = False) -> None:
        """Declare a queue and bind it to the default exchange under its name."""
        if queue in self._queues:
            raise QueueAlreadyExists()
        self._queues[queue] = _Queue(auto_delete)
        self._default.bindings.append(_Binding(queue, queue))

    def queue_delete(self, queue: str, if_unused: bool = False) -> None:
        """Delete a queue and its bindings; with ``if_unused`` only when it has no consumers.

        Auto-delete exchanges left without bindings are deleted too.
        """
        found = self._queues.get(queue)
        if found is None:
            raise QueueNotFound()
        if if_unused and found.consumers:
            raise QueueInUse()
        del self._queues[queue]

        self._default.bindings[:] = [b for b in self._default.bindings if b.queue_name != queue]
        for name, exchange in list(self._exchanges.items()):
            exchange.bindings[:] = [b for b in exchange.bindings if b.queue_name != queue]
            if not exchange.bindings and exchange.auto_delete:
                del self._exchanges[name]

    def queue_bind(
        self,
        queue: str,
        exchange: str,
        routing_key: str,
        arguments: Mapping[str, str] | None = None,
    ) -> None:
        """Bind ``queue`` to ``exchange`` under ``routing_key``.

        For a headers exchange, ``arguments`` hold the header rules and an
        optional ``x-match`` of ``all`` or ``any``.
        """
        if queue not in self._queues:
            raise QueueNotFound()
        target = self._exchanges.get(exchange)
        if target is None:
            raise ExchangeNotFound()
        if any(b.queue_name == queue and b.routing_key == routing_key for b in target.bindings):
            raise BindingAlreadyExists()
        header_match = None
        if target.kind is ExchangeType.HEADERS:
            header_match = HeaderMatch.from_arguments(dict(arguments or {}))
        target.bindings.append(_Binding(queue, routing_key, header_match))

    def queue_unbind(self, queue: str, exchange: str, routing_key: str) -> None:
        """Remove the binding of ``queue`` to ``exchange`` under ``routing_key``.

        An auto-delete exchange left without bindings is deleted.
        """
        target = self._exchanges.get(exchange)
        if target is None:
            raise ExchangeNotFound()
        target.bindings[:] = [
            b for b in target.bindings if not (b.queue_name == queue and b.routing_key == routing_key)
        ]
        if not target.bindings and target.auto_delete:
            del self._exchanges[exchange]

    async def basic_publish(
        self,
        exchange: str,
        routing_key: str,
        message: Any,
        properties: MessageProperties | None = None,
    ) -> None:
        """Route ``message`` through ``exchange`` (empty for the default) to its queues."""
        if not exchange:
            source = self._default
        else:
            source = self._exchanges.get(exchange)
            if source is None:
                raise ExchangeNotFound()

        properties = properties or MessageProperties()
        accept: FilterFn = properties.filter or _accept_all
        bindings = list(source.bindings)

        if source.kind is ExchangeType.DIRECT:
            targets = (b.queue_name for b in bindings if b.routing_key == routing_key)
        elif source.kind is ExchangeType.TOPIC:
            targets = (b.queue_name for b in bindings if TopicPattern(b.routing_key).matches(routing_key))
        elif source.kind is ExchangeType.FANOUT:
            targets = (b.queue_name for b in bindings)
        else:
            headers = properties.headers
            if headers is None:
                raise HeadersRequired()
            targets = (
                b.queue_name
                for b in bindings
                if b.header_match is not None and b.header_match.matches(headers)
            )

        for queue_name in dict.fromkeys(targets):
            await self._deliver(queue_name, message, accept)

    def basic_consume(
        self,
        queue: str,
        recipient: Recipient,
        message_type: type,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Have ``recipient`` consume messages of ``message_type`` from ``queue``.

        Registering the same actor twice for one type has no further effect.
        """
        found = self._queues.get(queue)
        if found is None:
            raise QueueNotFound()
        consumers = found.consumers.setdefault(message_type, [])
        if not any(c.recipient.id == recipient.id for c in consumers):
            consumers.append(_Consumer(recipient, dict(tags or {})))

    def basic_cancel(self, queue: str, recipient: Recipient, message_type: type) -> None:
        """Stop ``recipient`` consuming messages of ``message_type`` from ``queue``.

        An auto-delete queue is then deleted if it has no consumers left, and
        ``QueueInUse`` is raised if it still has some.
        """
        found = self._queues.get(queue)
        if found is None:
            raise QueueNotFound()
        consumers = found.consumers.get(message_type)
        if consumers is not None:
            consumers[:] = [c for c in consumers if c.recipient.id != recipient.id]
        found.consumers = {t: cs for t, cs in found.consumers.items() if cs}
        if found.auto_delete:
            self.queue_delete(queue, True)

    def _cancel_quietly(self, queue: str, recipient: Recipient, message_type: type) -> None:
        try:
            self.basic_cancel(queue, recipient, message_type)
        except AmqpError:
            pass

    async def _deliver(self, queue_name: str, message: Any, accept: FilterFn) -> None:
        queue = self._queues.get(queue_name)
        if queue is None:
            return
        message_type = type(message)
        spawned = self.delivery_strategy.kind in _SPAWNED
        dead: list[Recipient] = []

        def on_not_running(gone: Recipient) -> None:
            if spawned:
                self._cancel_quietly(queue_name, gone, message_type)
            else:
                dead.append(gone)

        for consumer in list(queue.consumers.get(message_type, ())):
            if not accept(consumer.tags):
                continue
            await deliver(consumer.recipient, message, self.delivery_strategy, on_not_running)

        for recipient in dead:
            self._cancel_quietly(queue_name, recipient, message_type)
"""Publish-subscribe: broadcast each message to every subscriber, optionally filtered."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Optional

from actorkit.delivery import DeliveryKind, DeliveryStrategy, Recipient, deliver

Predicate = Callable[[Any], bool]

_SPAWNED = frozenset({DeliveryKind.SPAWNED, DeliveryKind.SPAWNED_WITH_TIMEOUT})


class PubSub:
    """Broadcasts published messages to subscribed recipients.

    Each subscriber may carry a predicate; a message goes to it only when the
    predicate returns true. Subscribers are keyed by actor id, so subscribing
    the same actor again replaces its predicate. Subscribers found not to be
    running are dropped, except under the spawned strategies, whose deliveries
    finish in the background.
    """

    def __init__(self, delivery_strategy: DeliveryStrategy | None = None) -> None:
        self.delivery_strategy = delivery_strategy or DeliveryStrategy()
        self._subscribers: dict[int, tuple[Recipient, Optional[Predicate]]] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._subscribers

    def __iter__(self) -> Iterator[Recipient]:
        return (recipient for recipient, _ in list(self._subscribers.values()))

    def subscribe(self, recipient: Recipient) -> None:
        """Send every published message to ``recipient``."""
        self._subscribers[recipient.id] = (recipient, None)

    def subscribe_filter(self, recipient: Recipient, predicate: Predicate) -> None:
        """Send ``recipient`` only the published messages ``predicate`` accepts."""
        self._subscribers[recipient.id] = (recipient, predicate)

    def unsubscribe(self, actor_id: int) -> None:
        """Stop sending messages to the actor ``actor_id``."""
        self._subscribers.pop(actor_id, None)

    async def publish(self, message: Any) -> None:
        """Deliver ``message`` to every subscriber whose predicate accepts it."""
        strategy = self.delivery_strategy
        spawned = strategy.kind in _SPAWNED
        dead: list[int] = []
        for recipient, predicate in list(self._subscribers.values()):
            if predicate is not None and not predicate(message):
                continue
            await deliver(
                recipient,
                message,
                strategy,
                None if spawned else (lambda gone: dead.append(gone.id)),
            )
        for actor_id in dead:
            self._subscribers.pop(actor_id, None)
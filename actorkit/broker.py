"""A topic-based broker that routes published messages to glob subscriptions."""

from __future__ import annotations

from typing import Any

from actorkit.delivery import DeliveryStrategy, Recipient, deliver
from actorkit.pattern import TopicPattern


def _as_pattern(topic: str | TopicPattern) -> TopicPattern:
    return topic if isinstance(topic, TopicPattern) else TopicPattern(topic)


class Broker:
    """Delivers each published message to every recipient whose pattern matches
    the topic, according to the delivery strategy. Recipients found not to be
    running are dropped from their subscription."""

    def __init__(self, delivery_strategy: DeliveryStrategy | None = None) -> None:
        self.delivery_strategy = delivery_strategy or DeliveryStrategy()
        self._subscriptions: dict[TopicPattern, list[Recipient]] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, topic: object) -> bool:
        if not isinstance(topic, (str, TopicPattern)):
            return False
        return _as_pattern(topic) in self._subscriptions

    def subscribe(self, topic: str | TopicPattern, recipient: Recipient) -> None:
        """Subscribe ``recipient`` to every topic matching the pattern ``topic``."""
        self._subscriptions.setdefault(_as_pattern(topic), []).append(recipient)

    def unsubscribe(self, actor_id: int, topic: str | TopicPattern | None = None) -> None:
        """Remove an actor from one pattern, or from all patterns when ``topic`` is None."""
        patterns = list(self._subscriptions) if topic is None else [_as_pattern(topic)]
        for pattern in patterns:
            recipients = self._subscriptions.get(pattern)
            if recipients is None:
                continue
            recipients[:] = [r for r in recipients if r.id != actor_id]
            if not recipients:
                del self._subscriptions[pattern]

    async def publish(self, topic: str, message: Any) -> None:
        """Deliver ``message`` to the subscribers of every pattern matching ``topic``."""
        for pattern, recipients in list(self._subscriptions.items()):
            if not pattern.matches(topic):
                continue
            for recipient in list(recipients):
                await deliver(
                    recipient,
                    message,
                    self.delivery_strategy,
                    lambda dead, pattern=pattern: self.unsubscribe(dead.id, pattern),
                )
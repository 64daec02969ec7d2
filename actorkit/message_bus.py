"""A type-based message bus: messages go to whoever registered for their type."""

from __future__ import annotations

from typing import Any

from actorkit.delivery import DeliveryStrategy, Recipient, deliver


class MessageBus:
    """Delivers each published message to every recipient registered for its
    exact type, according to the delivery strategy. Recipients found not to be
    running are unregistered."""

    def __init__(self, delivery_strategy: DeliveryStrategy | None = None) -> None:
        self.delivery_strategy = delivery_strategy or DeliveryStrategy()
        self._subscriptions: dict[type, list[Recipient]] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, message_type: object) -> bool:
        return message_type in self._subscriptions

    def register(self, message_type: type, recipient: Recipient) -> None:
        """Have ``recipient`` receive every published message of ``message_type``."""
        self._subscriptions.setdefault(message_type, []).append(recipient)

    def unregister(self, message_type: type, actor_id: int) -> None:
        """Stop sending messages of ``message_type`` to the actor ``actor_id``."""
        recipients = self._subscriptions.get(message_type)
        if recipients is None:
            return
        recipients[:] = [r for r in recipients if r.id != actor_id]
        if not recipients:
            del self._subscriptions[message_type]

    async def publish(self, message: Any) -> None:
        """Deliver ``message`` to every recipient registered for its type."""
        message_type = type(message)
        for recipient in list(self._subscriptions.get(message_type, ())):
            await deliver(
                recipient,
                message,
                self.delivery_strategy,
                lambda dead: self.unregister(message_type, dead.id),
            )
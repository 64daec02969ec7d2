"""Asyncio actors: recipients and delivery strategies, topic broker, message bus,
pub/sub, AMQP-style message queue and worker pool."""

__version__ = "0.2.0"
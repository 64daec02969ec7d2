import asyncio

import pytest

from actorkit.broker import Broker
from actorkit.delivery import DeliveryStrategy, Recipient
from actorkit.pattern import PatternError, TopicPattern


def collector(capacity=None):
    received = []
    return Recipient(received.append, capacity).start(), received


async def finish(*recipients):
    for recipient in recipients:
        recipient.stop()
    for recipient in recipients:
        await recipient.wait_for_shutdown()


def dead_recipient():
    return Recipient(lambda message: None)


@pytest.mark.asyncio
async def test_publish_reaches_matching_subscribers():
    broker = Broker(DeliveryStrategy.guaranteed())
    exact, exact_got = collector()
    wildcard, wildcard_got = collector()
    other, other_got = collector()
    broker.subscribe("my-topic", exact)
    broker.subscribe("my-*", wildcard)
    broker.subscribe("other/*", other)
    await broker.publish("my-topic", "Hola")
    await finish(exact, wildcard, other)
    assert exact_got == ["Hola"]
    assert wildcard_got == ["Hola"]
    assert other_got == []


@pytest.mark.asyncio
async def test_wildcard_does_not_cross_separator():
    broker = Broker()
    display, got = collector()
    broker.subscribe(TopicPattern("sensors/kitchen/*"), display)
    await broker.publish("sensors/kitchen/temperature", 22.5)
    await broker.publish("sensors/kitchen/fridge/temperature", 4.0)
    await finish(display)
    assert got == [22.5]


@pytest.mark.asyncio
async def test_same_recipient_twice_receives_twice():
    broker = Broker(DeliveryStrategy.guaranteed())
    recipient, got = collector()
    broker.subscribe("t", recipient)
    broker.subscribe("t", recipient)
    await broker.publish("t", "m")
    await finish(recipient)
    assert got == ["m", "m"]


def test_subscribe_rejects_bad_pattern():
    broker = Broker()
    with pytest.raises(PatternError):
        broker.subscribe("a**", dead_recipient())
    assert len(broker) == 0


def test_unsubscribe_from_one_pattern():
    broker = Broker()
    first, second = dead_recipient(), dead_recipient()
    broker.subscribe("a/*", first)
    broker.subscribe("a/*", second)
    broker.subscribe("b/*", first)
    broker.unsubscribe(first.id, "a/*")
    assert "a/*" in broker
    assert "b/*" in broker
    broker.unsubscribe(second.id, TopicPattern("a/*"))
    assert "a/*" not in broker
    assert len(broker) == 1


def test_unsubscribe_from_all_patterns():
    broker = Broker()
    first, second = dead_recipient(), dead_recipient()
    broker.subscribe("a/*", first)
    broker.subscribe("b/*", first)
    broker.subscribe("b/*", second)
    broker.unsubscribe(first.id)
    assert "a/*" not in broker
    assert "b/*" in broker
    assert len(broker) == 1


def test_unsubscribe_unknown_pattern_is_harmless():
    broker = Broker()
    recipient = dead_recipient()
    broker.subscribe("a", recipient)
    broker.unsubscribe(recipient.id, "zzz")
    assert "a" in broker


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "strategy",
    [
        DeliveryStrategy.guaranteed(),
        DeliveryStrategy.best_effort(),
        DeliveryStrategy.timed_delivery(0.1),
    ],
)
async def test_dead_recipient_is_removed(strategy):
    broker = Broker(strategy)
    alive, got = collector()
    dead = dead_recipient()
    broker.subscribe("t/*", alive)
    broker.subscribe("t/*", dead)
    broker.subscribe("u", dead)
    await broker.publish("t/1", "m")
    await finish(alive)
    assert got == ["m"]
    assert "t/*" in broker
    assert "u" in broker
    await broker.publish("t/2", "n")
    assert "t/*" not in broker


@pytest.mark.asyncio
async def test_spawned_delivery_removes_dead_recipient_later():
    broker = Broker(DeliveryStrategy.spawned())
    dead = dead_recipient()
    broker.subscribe("t", dead)
    await broker.publish("t", "m")
    for _ in range(5):
        await asyncio.sleep(0)
    assert "t" not in broker


@pytest.mark.asyncio
async def test_spawned_delivery_reaches_live_recipient():
    broker = Broker(DeliveryStrategy.spawned_with_timeout(0.5))
    recipient, got = collector()
    broker.subscribe("t", recipient)
    await broker.publish("t", "m")
    for _ in range(5):
        await asyncio.sleep(0)
    await finish(recipient)
    assert got == ["m"]
    assert "t" in broker


@pytest.mark.asyncio
async def test_full_mailbox_keeps_subscription():
    gate = asyncio.Event()
    got = []

    async def handler(message):
        await gate.wait()
        got.append(message)

    slow = Recipient(handler, 1).start()
    await slow.tell("first")
    for _ in range(5):
        await asyncio.sleep(0)
    await slow.tell("second")
    broker = Broker(DeliveryStrategy.best_effort())
    broker.subscribe("t", slow)
    await broker.publish("t", "dropped")
    assert "t" in broker
    gate.set()
    await finish(slow)
    assert got == ["first", "second"]
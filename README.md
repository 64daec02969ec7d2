# actorkit

Building blocks for passing messages between asyncio actors.

Every component delivers messages to `Recipient` objects. A recipient is a
small actor that owns a mailbox and runs its handler on one message at a
time. A `DeliveryStrategy` chooses how a message is handed to a recipient.

## Components

| Module                   | What it provides                                                              |
|--------------------------|-------------------------------------------------------------------------------|
| `actorkit.delivery`      | `Recipient`, `DeliveryStrategy`, `DeliveryKind`, the send errors and `deliver` |
| `actorkit.pattern`       | `TopicPattern` and `PatternError`: glob matching of topic names               |
| `actorkit.broker`        | `Broker`: publish/subscribe with topic pattern subscriptions                  |
| `actorkit.message_bus`   | `MessageBus`: routes each message by its exact type                           |
| `actorkit.pubsub`        | `PubSub`: broadcasts to every subscriber, each with an optional predicate     |
| `actorkit.amqp`          | `ExchangeType`, `HeaderMatch`, `MessageProperties` and the `AmqpError` family |
| `actorkit.message_queue` | `MessageQueue`: exchanges, queues and bindings                                |
| `actorkit.pool`          | `ActorPool`: least-loaded dispatch over a fixed set of workers                |

### Which one to use

- **MessageBus** routes by message type. It has no topics.
- **Broker** handles hierarchical topics and pattern subscriptions such as `sensors/*/humidity`.
- **PubSub** broadcasts to all subscribers. Each subscriber can have a predicate that filters what it receives.
- **MessageQueue** offers direct, topic, fanout and headers exchanges bound to named queues.
- **ActorPool** spreads work over several workers and replaces any worker that stops.

## Recipients

`Recipient(handler, capacity)` wraps a plain or async function.

- **Capacity.** `capacity` bounds the mailbox. Pass `None` for an unbounded mailbox.
- **Starting and stopping.** Call `start()` inside a running event loop. `stop()` stops the recipient from accepting new messages. Messages already queued are still handled. `await wait_for_shutdown()` waits for the recipient to finish. `async with Recipient(...)` starts the recipient on entry and stops it on exit.
- **Sending.** There are four ways to send a message:
  - `await tell(msg)` waits for a free mailbox slot.
  - `try_tell(msg)` raises `MailboxFull` if no slot is free.
  - `await tell_timeout(msg, seconds)` raises `SendTimeout` if no slot frees up in time.
  - `await ask(msg)` returns the handler's result.
- **Sending to a stopped recipient.** Every send raises `ActorNotRunning` once the recipient has stopped.
- **Handler errors.** If the handler raises for a message sent with `ask`, the error goes to the caller and the recipient keeps running. If it raises for a message sent with one of the `tell` calls, the recipient stops. Any `ask` still waiting in its mailbox then fails with `ActorNotRunning`.

Each recipient has an integer `id`. The components use this id to unsubscribe, unregister or cancel it.

## Delivery strategies

| Strategy                                           | Behaviour                                                     |
|----------------------------------------------------|---------------------------------------------------------------|
| `DeliveryStrategy.guaranteed()`                    | wait until each recipient accepts the message                 |
| `DeliveryStrategy.best_effort()` (the default)     | skip recipients whose mailbox is full                         |
| `DeliveryStrategy.timed_delivery(timeout)`         | wait for each recipient, at most `timeout` seconds            |
| `DeliveryStrategy.spawned()`                       | hand each delivery to a background task                       |
| `DeliveryStrategy.spawned_with_timeout(timeout)`   | a background task that gives up after `timeout` seconds       |

Full mailboxes and timeouts are skipped silently.

`Broker`, `MessageBus` and `MessageQueue` drop any recipient that turns out not to be running. They do this under every strategy. `PubSub` drops such subscribers too, except under the two spawned strategies.

## Topic patterns

`TopicPattern` compiles a glob pattern. Matching is case sensitive.

- `*` and `?` never cross a `/`.
- `**` matches whole path segments.
- `[...]` and `[!...]` are character classes.

Malformed patterns raise `PatternError`.

## Example: a topic broker

```python
import asyncio

from actorkit.broker import Broker
from actorkit.delivery import DeliveryStrategy, Recipient


async def main():
    received = []

    async def display(message):
        received.append(message)

    recipient = Recipient(display, 16)
    recipient.start()

    broker = Broker(DeliveryStrategy.guaranteed())
    broker.subscribe("sensors/kitchen/*", recipient)

    await broker.publish("sensors/kitchen/temperature", 22.5)
    await broker.publish("sensors/garage/temperature", 9.0)  # no subscriber matches

    recipient.stop()
    await recipient.wait_for_shutdown()
    print(received)  # [22.5]


asyncio.run(main())
```

## Example: exchanges and queues

```python
import asyncio

from actorkit.amqp import ExchangeType
from actorkit.delivery import DeliveryStrategy, Recipient
from actorkit.message_queue import MessageQueue


async def main():
    readings = []
    async with Recipient(readings.append, 16) as display:
        mq = MessageQueue(DeliveryStrategy.best_effort())
        mq.exchange_declare("sensors", ExchangeType.TOPIC, False)
        mq.queue_declare("temperature", False)
        mq.queue_bind("temperature", "sensors", "temperature.*", {})
        mq.basic_consume("temperature", display, float, {})

        await mq.basic_publish("sensors", "temperature.kitchen", 22.5, None)
    print(readings)  # [22.5]


asyncio.run(main())
```

### Queues and exchanges

- **Default exchange.** Every declared queue is also bound to the default direct exchange. That exchange has the empty name and routes by the queue's own name.
- **Consumers.** A queue hands a message only to consumers registered for the message's exact type.
- **Headers exchanges.** For a headers exchange, the binding arguments hold the header rules. An optional `x-match` argument set to `all` (the default) or `any` says how the rules combine. Publishing to a headers exchange needs `MessageProperties(headers=...)`.
- **Filtering by tags.** `MessageProperties(filter=...)` limits delivery to consumers whose tags the filter accepts.
- **Auto-delete.** An auto-delete exchange is removed when it loses its last binding. An auto-delete queue is removed when it loses its last consumer.
- **Errors.** Refused operations raise subclasses of `AmqpError`, such as `ExchangeNotFound`, `QueueInUse` or `HeadersRequired`.

## Example: a worker pool

```python
import asyncio

from actorkit.delivery import Recipient
from actorkit.pool import ActorPool


async def handle_job(job):
    return f"done: {job}"


def make_worker():
    return Recipient(handle_job, 64).start()


async def main():
    pool = ActorPool(4, make_worker)
    print(await pool.dispatch("job"))        # goes to the least-loaded worker
    print(await pool.broadcast("reload"))    # one entry per worker: None or a SendError


asyncio.run(main())
```

### How the pool behaves

- **Where to build it.** Build the pool inside a running event loop. The pool watches each running worker.
- **Replacing workers.** When a worker stops, `worker_died` puts a fresh worker from the factory in its place. You can also call `worker_died` yourself.
- **Async factories.** `await ActorPool.create(size, factory)` accepts a factory that is a coroutine function.
- **Dispatch failures.** `dispatch` skips workers that are not running. It raises `ActorNotRunning` only if no worker could take the message.

## What this package does not do

Everything runs inside one process and one asyncio event loop. The package has:

- no networking and no remote actors;
- no persistence of queues or messages;
- no supervision beyond the pool's worker replacement;
- no command-line tool.
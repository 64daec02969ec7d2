"""Exchange types, errors, message properties and header matching for the message queue."""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

FilterFn = Callable[[Mapping[str, str]], bool]


class ExchangeType(enum.Enum):
    """How an exchange picks the queues a published message goes to."""

    DIRECT = "direct"
    TOPIC = "topic"
    FANOUT = "fanout"
    HEADERS = "headers"


class AmqpError(Exception):
    """A message queue operation was refused."""

    reason = "message queue error"

    def __init__(self) -> None:
        super().__init__(self.reason)


class ExchangeAlreadyExists(AmqpError):
    reason = "Exchange already exists"


class QueueAlreadyExists(AmqpError):
    reason = "Queue already exists"


class ExchangeNotFound(AmqpError):
    reason = "Exchange not found"


class QueueNotFound(AmqpError):
    reason = "Queue not found"


class BindingAlreadyExists(AmqpError):
    reason = "Binding already exists"


class HeadersRequired(AmqpError):
    reason = "Headers required"


class InvalidHeaderMatch(AmqpError):
    reason = "Invalid header match"


class ExchangeInUse(AmqpError):
    reason = "Exchange in use"


class QueueInUse(AmqpError):
    reason = "Queue in use"


@dataclass
class MessageProperties:
    """Headers for header-based routing and an optional consumer-tag filter.

    ``filter`` is called with each consumer's tags; the message goes only to
    consumers for which it returns true.
    """

    headers: dict[str, str] | None = None
    filter: FilterFn | None = None


@dataclass(frozen=True)
class HeaderMatch:
    """Header rules of a binding: all of them must match, or any one of them."""

    rules: Mapping[str, str] = field(default_factory=dict)
    require_all: bool = True

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, str]) -> HeaderMatch:
        """Build the rules from binding arguments.

        ``x-match`` selects ``all`` (the default) or ``any``; keys starting
        with ``x-`` are not rules.
        """
        mode = arguments.get("x-match", "all")
        rules = {k: v for k, v in arguments.items() if not k.startswith("x-")}
        if mode == "all":
            return cls(rules, True)
        if mode == "any":
            return cls(rules, False)
        raise InvalidHeaderMatch()

    def matches(self, headers: Mapping[str, str]) -> bool:
        """Whether ``headers`` satisfy the rules."""
        hits = (key in headers and headers[key] == value for key, value in self.rules.items())
        return all(hits) if self.require_all else any(hits)
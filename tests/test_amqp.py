import pytest

from actorkit.amqp import (
    AmqpError,
    BindingAlreadyExists,
    ExchangeAlreadyExists,
    ExchangeInUse,
    ExchangeNotFound,
    ExchangeType,
    HeaderMatch,
    HeadersRequired,
    InvalidHeaderMatch,
    MessageProperties,
    QueueAlreadyExists,
    QueueInUse,
    QueueNotFound,
)


def test_all_requires_every_rule():
    match = HeaderMatch.from_arguments(
        {"format": "json", "priority": "high", "x-match": "all"}
    )
    assert match.matches({"format": "json", "priority": "high"})
    assert match.matches({"format": "json", "priority": "high", "extra": "1"})
    assert not match.matches({"format": "json"})
    assert not match.matches({"format": "json", "priority": "low"})


def test_any_requires_one_rule():
    match = HeaderMatch.from_arguments(
        {"format": "xml", "priority": "low", "x-match": "any"}
    )
    assert match.matches({"priority": "low"})
    assert match.matches({"format": "xml", "priority": "medium"})
    assert not match.matches({"format": "csv", "priority": "medium"})
    assert not match.matches({})


def test_default_mode_is_all():
    match = HeaderMatch.from_arguments({"format": "json", "priority": "high"})
    assert match.require_all is True
    assert not match.matches({"format": "json"})


def test_x_keys_are_not_rules():
    match = HeaderMatch.from_arguments({"x-match": "any", "x-other": "1", "a": "b"})
    assert dict(match.rules) == {"a": "b"}


def test_invalid_mode_raises():
    with pytest.raises(InvalidHeaderMatch):
        HeaderMatch.from_arguments({"x-match": "some"})


def test_empty_rules():
    assert HeaderMatch({}, True).matches({"a": "b"})
    assert not HeaderMatch({}, False).matches({"a": "b"})


def test_header_values_must_be_equal():
    match = HeaderMatch({"a": "b"})
    assert not match.matches({"a": "B"})
    assert match.matches({"a": "b"})


@pytest.mark.parametrize(
    "error, text",
    [
        (ExchangeAlreadyExists, "Exchange already exists"),
        (QueueAlreadyExists, "Queue already exists"),
        (ExchangeNotFound, "Exchange not found"),
        (QueueNotFound, "Queue not found"),
        (BindingAlreadyExists, "Binding already exists"),
        (HeadersRequired, "Headers required"),
        (InvalidHeaderMatch, "Invalid header match"),
        (ExchangeInUse, "Exchange in use"),
        (QueueInUse, "Queue in use"),
    ],
)
def test_error_messages(error, text):
    instance = error()
    assert str(instance) == text
    assert isinstance(instance, AmqpError)


def test_message_properties_defaults():
    props = MessageProperties()
    assert props.headers is None
    assert props.filter is None


def test_message_properties_filter_is_callable_on_tags():
    props = MessageProperties(filter=lambda tags: tags.get("role") == "main")
    assert props.filter({"role": "main"}) is True
    assert props.filter({"role": "backup"}) is False


def test_exchange_types_are_distinct():
    assert len(set(ExchangeType)) == 4
    assert ExchangeType("topic") is ExchangeType.TOPIC
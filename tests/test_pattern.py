import pytest

from actorkit.pattern import PatternError, TopicPattern


@pytest.mark.parametrize(
    "pattern, topic",
    [
        ("sensors/kitchen/*", "sensors/kitchen/temperature"),
        ("*/temperature", "kitchen/temperature"),
        ("sensors/*/humidity", "sensors/bathroom/humidity"),
        ("my-*", "my-topic"),
        ("my-topic", "my-topic"),
        ("temperature.*", "temperature.kitchen"),
        ("a?c", "abc"),
        ("[abc]x", "bx"),
        ("[!abc]x", "dx"),
        ("[a-c]", "b"),
        ("[]]", "]"),
        ("a/**", "a/b/c"),
        ("**/x", "x"),
        ("**/x", "a/b/x"),
        ("a/**/z", "a/z"),
        ("a/**/z", "a/b/c/z"),
        ("**", "any/thing/at/all"),
        ("*", ""),
    ],
)
def test_matches(pattern, topic):
    assert TopicPattern(pattern).matches(topic) is True


@pytest.mark.parametrize(
    "pattern, topic",
    [
        ("sensors/kitchen/*", "sensors/kitchen/a/b"),
        ("sensors/kitchen/*", "sensors/garage/temperature"),
        ("my-*", "your-topic"),
        ("My-*", "my-topic"),
        ("a?c", "a/c"),
        ("a*c", "a/c"),
        ("[!abc]x", "ax"),
        ("[!abc]", "/"),
        ("[/]", "/"),
        ("[a-c]", "d"),
        ("**/x", "ax"),
        ("my-topic", "my-topic-2"),
    ],
)
def test_does_not_match(pattern, topic):
    assert TopicPattern(pattern).matches(topic) is False


@pytest.mark.parametrize("pattern", ["a**", "**a", "a/***", "[abc", "x[", "[]"])
def test_invalid_patterns(pattern):
    with pytest.raises(PatternError):
        TopicPattern(pattern)


def test_error_reports_position():
    with pytest.raises(PatternError) as info:
        TopicPattern("ab[")
    assert info.value.pos == 2
    assert info.value.msg == "invalid range pattern"


def test_regex_metacharacters_are_literal():
    pattern = TopicPattern("a.b+(c)")
    assert pattern.matches("a.b+(c)")
    assert not pattern.matches("axb+(c)")


def test_equality_and_hash_follow_source_text():
    assert TopicPattern("a/*") == TopicPattern("a/*")
    assert len({TopicPattern("a/*"), TopicPattern("a/*"), TopicPattern("b/*")}) == 2


def test_str_is_source_text():
    assert str(TopicPattern("sensors/*")) == "sensors/*"
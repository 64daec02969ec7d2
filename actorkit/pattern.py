"""Glob patterns for topic names, with ``/`` as a literal separator."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_GLOB_PART = re.compile(
    r"(?P<stars>\*+)"
    r"|(?P<any>\?)"
    r"|(?P<cls>\[!?(?:\][^\]]*|[^\]]+)\])"
    r"|(?P<bad>\[)"
    r"|(?P<lit>[^*?\[]+)"
)
_CLASS_ITEM = re.compile(r"(.)-(.)|(.)", re.DOTALL)


class PatternError(ValueError):
    """A topic pattern is not valid glob syntax."""

    def __init__(self, pos: int, msg: str) -> None:
        super().__init__(f"pattern syntax error near position {pos}: {msg}")
        self.pos = pos
        self.msg = msg


def _char_class(part: str) -> str:
    negated = part.startswith("[!")
    body = part[2:-1] if negated else part[1:-1]
    items = []
    for item in _CLASS_ITEM.finditer(body):
        low, high, single = item.groups()
        if single is not None:
            items.append(re.escape(single))
        elif low <= high:
            items.append(f"{re.escape(low)}-{re.escape(high)}")
    if negated:
        return "[^/" + "".join(items) + "]"
    if not items:
        return "(?!)"
    return "(?!/)[" + "".join(items) + "]"


def _translate(pattern: str) -> str:
    parts = []
    skip_separator = False
    for part in _GLOB_PART.finditer(pattern):
        kind, text, start, end = part.lastgroup, part.group(), part.start(), part.end()
        if kind == "lit":
            if skip_separator:
                text = text[1:]
            skip_separator = False
            parts.append(re.escape(text))
            continue
        skip_separator = False
        if kind == "any":
            parts.append("[^/]")
        elif kind == "cls":
            parts.append(_char_class(text))
        elif kind == "bad":
            raise PatternError(start, "invalid range pattern")
        elif len(text) == 1:
            parts.append("[^/]*")
        elif len(text) > 2:
            raise PatternError(start, "wildcards are either regular `*` or recursive `**`")
        else:
            if start > 0 and pattern[start - 1] != "/":
                raise PatternError(start, "recursive wildcards must form a single path component")
            if end == len(pattern):
                parts.append(".*")
            elif pattern[end] == "/":
                parts.append("(?:.*/)?")
                skip_separator = True
            else:
                raise PatternError(start, "recursive wildcards must form a single path component")
    return "".join(parts)


@dataclass(frozen=True)
class TopicPattern:
    """A compiled glob pattern: ``*`` and ``?`` stay within one ``/`` segment,
    ``**`` spans whole segments, and ``[...]``/``[!...]`` are character classes.
    Matching is case sensitive."""

    pattern: str
    _regex: re.Pattern = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(_translate(self.pattern), re.DOTALL))

    def __str__(self) -> str:
        return self.pattern

    def matches(self, topic: str) -> bool:
        """Whether the whole of ``topic`` matches the pattern."""
        return self._regex.fullmatch(topic) is not None
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from ..errors import ParseError, byte_offset

TOKEN_NEGATE = "NEGATE"
TOKEN_STAR = "STAR"
TOKEN_KEY = "KEY"
TOKEN_QUOTED = "QUOTED"
TOKEN_REGEX = "REGEX"
TOKEN_TAGLIST = "TAGLIST"
TOKEN_WORD = "WORD"

KEYS = (
    "title",
    "summary",
    "author",
    "feed",
    "feedurl",
    "feedweburl",
    "all",
    "tag",
    "newer",
    "older",
    "syncedbefore",
    "syncedafter",
    "sort",
)

KEYWORDS = ("read", "unread", "marked", "unmarked", "tagged", "today", "lastsync")

_TAG = r"#\w[\w\-]*"

# Order matters: keys must win over plain words sharing their prefix.
_TOKEN_SPEC = (
    (TOKEN_NEGATE, r"~"),
    (TOKEN_STAR, r"\*"),
    (TOKEN_KEY, r"(?:" + "|".join(sorted(KEYS, key=len, reverse=True)) + r"):"),
    (TOKEN_QUOTED, r'"[^"\n\r\\]*(?:\\.[^"\n\r\\]*)*"'),
    (TOKEN_REGEX, r"/[^/\\]*(?:\\.[^/\\]*)*/"),
    (TOKEN_TAGLIST, _TAG + r"(?:," + _TAG + r")*"),
    (TOKEN_WORD, r"\w[\w.\-]*"),
)
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))
_SPACE_RE = re.compile(r"\s+")
_ESCAPE_RE = re.compile(r"\\(.)")


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    start: int
    offset: int

    @property
    def value(self) -> str:
        if self.kind == TOKEN_KEY:
            return self.text[:-1]
        if self.kind == TOKEN_QUOTED:
            return _ESCAPE_RE.sub(r"\1", self.text[1:-1])
        if self.kind == TOKEN_REGEX:
            return self.text[1:-1]
        return self.text

    @property
    def is_keyword(self) -> bool:
        return self.kind == TOKEN_WORD and self.text in KEYWORDS


def tokenize(text: str) -> Iterator[Token]:
    position = 0
    length = len(text)
    while position < length:
        space = _SPACE_RE.match(text, position)
        if space is not None:
            position = space.end()
            continue

        match = _TOKEN_RE.match(text, position)
        if match is None:
            end = _SPACE_RE.search(text, position)
            bad = text[position : end.start() if end else length]
            raise ParseError(
                "invalid token",
                offset=byte_offset(text, position),
                token=bad,
                expected="key (title:, newer:, ...), keyword or word",
            )

        kind = match.lastgroup or TOKEN_WORD
        yield Token(kind=kind, text=match.group(), start=position, offset=byte_offset(text, position))
        position = match.end()

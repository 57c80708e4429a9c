from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from .sort import SortSpec

FIELD_TITLE = "title"
FIELD_SUMMARY = "summary"
FIELD_AUTHOR = "author"
FIELD_FEED = "feed"
FIELD_FEED_URL = "feedurl"
FIELD_FEED_WEB_URL = "feedweburl"
FIELD_ALL = "all"
FIELDS = (
    FIELD_TITLE,
    FIELD_SUMMARY,
    FIELD_AUTHOR,
    FIELD_FEED,
    FIELD_FEED_URL,
    FIELD_FEED_WEB_URL,
    FIELD_ALL,
)

RELATION_NEWER = "newer"
RELATION_OLDER = "older"
RELATION_BEFORE = "before"
RELATION_AFTER = "after"


def _collapse(text: str) -> str:
    return " ".join(text.casefold().split())


@dataclass(frozen=True, slots=True)
class Word:
    text: str

    def test(self, content: str) -> bool:
        return self.text.casefold() in content.casefold()

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class Phrase:
    text: str

    def test(self, content: str) -> bool:
        return _collapse(self.text) in _collapse(content)

    def __str__(self) -> str:
        escaped = self.text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'


@dataclass(frozen=True, slots=True)
class Regex:
    pattern: re.Pattern[str]

    def test(self, content: str) -> bool:
        return self.pattern.search(content) is not None

    def __str__(self) -> str:
        return f"/{self.pattern.pattern}/"


Matcher = Union[Word, Phrase, Regex]


@dataclass(frozen=True, slots=True)
class MatchAll:
    def __str__(self) -> str:
        return "*"


@dataclass(frozen=True, slots=True)
class ReadState:
    read: bool

    def __str__(self) -> str:
        return "read" if self.read else "unread"


@dataclass(frozen=True, slots=True)
class MarkState:
    marked: bool

    def __str__(self) -> str:
        return "marked" if self.marked else "unmarked"


@dataclass(frozen=True, slots=True)
class TaggedPresence:
    def __str__(self) -> str:
        return "tagged"


@dataclass(frozen=True, slots=True)
class FieldMatch:
    field: str
    matcher: Matcher

    def __str__(self) -> str:
        return f"{self.field}:{self.matcher}"


@dataclass(frozen=True, slots=True)
class TagMembership:
    tags: frozenset[str]

    def __str__(self) -> str:
        return "tag:" + ",".join(f"#{tag}" for tag in sorted(self.tags))


@dataclass(frozen=True, slots=True)
class TimeRelation:
    relation: str
    instant: datetime

    def __str__(self) -> str:
        return f'{self.relation}:"{self.instant.isoformat()}"'


@dataclass(frozen=True, slots=True)
class TodayFlag:
    start: datetime
    end: datetime

    def __str__(self) -> str:
        return "today"


@dataclass(frozen=True, slots=True)
class LastSyncFlag:
    def __str__(self) -> str:
        return "lastsync"


@dataclass(frozen=True, slots=True)
class SyncedRelation:
    relation: str
    instant: datetime

    def __str__(self) -> str:
        return f'synced{self.relation}:"{self.instant.isoformat()}"'


Predicate = Union[
    MatchAll,
    ReadState,
    MarkState,
    TaggedPresence,
    FieldMatch,
    TagMembership,
    TimeRelation,
    TodayFlag,
    SyncedRelation,
    LastSyncFlag,
]


@dataclass(frozen=True, slots=True)
class QueryTerm:
    predicate: Predicate
    negated: bool = False

    def __str__(self) -> str:
        return f"~{self.predicate}" if self.negated else str(self.predicate)


@dataclass(frozen=True, slots=True)
class Query:
    text: str = ""
    terms: tuple[QueryTerm, ...] = ()
    sort: SortSpec | None = None

    def __str__(self) -> str:
        parts = [str(term) for term in self.terms]
        if self.sort:
            parts.append(f'sort:"{self.sort}"')
        return " ".join(parts)

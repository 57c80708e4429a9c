from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Iterable

from ..errors import ParseError, byte_offset
from ..schemas import ArticleRecord


class SortKey(str, Enum):
    feed = "feed"
    date = "date"
    synced = "synced"
    title = "title"
    author = "author"


class SortDirection(str, Enum):
    ascending = "<"
    descending = ">"

    def reversed(self) -> SortDirection:
        if self is SortDirection.ascending:
            return SortDirection.descending
        return SortDirection.ascending


DEFAULT_DIRECTIONS = {
    SortKey.feed: SortDirection.ascending,
    SortKey.date: SortDirection.descending,
    SortKey.synced: SortDirection.descending,
    SortKey.title: SortDirection.ascending,
    SortKey.author: SortDirection.ascending,
}

_TOKEN_RE = re.compile(r"\s*(?:(?P<direction>[<>])|(?P<word>[^\s<>]+))")


@dataclass(frozen=True, slots=True)
class SortSpec:
    entries: tuple[tuple[SortKey, SortDirection], ...] = ()

    def __bool__(self) -> bool:
        return bool(self.entries)

    def __str__(self) -> str:
        return " ".join(f"{direction.value}{key.value}" for key, direction in self.entries)

    def reversed(self) -> SortSpec:
        return SortSpec(tuple((key, direction.reversed()) for key, direction in self.entries))


def parse_sort(text: str) -> SortSpec:
    """Parse a sort expression such as ``feed <date >title``.

    Each key may be prefixed by ``<`` (ascending) or ``>`` (descending); a bare
    key uses its default direction (newest first for date and synced, A to Z
    for the text keys). A key may appear only once.
    """
    entries: list[tuple[SortKey, SortDirection]] = []
    seen: set[SortKey] = set()
    position = 0
    pending_direction: SortDirection | None = None
    pending_at = 0

    while True:
        match = _TOKEN_RE.match(text, position)
        if match is None:
            break
        position = match.end()
        direction = match.group("direction")
        if direction is not None:
            if pending_direction is not None:
                raise ParseError(
                    "expecting sort key",
                    offset=byte_offset(text, match.start("direction")),
                    token=direction,
                    expected="feed, date, synced, title or author",
                )
            pending_direction = SortDirection(direction)
            pending_at = match.start("direction")
            continue

        word = match.group("word")
        start = match.start("word")
        try:
            key = SortKey(word)
        except ValueError:
            raise ParseError(
                "expecting sort key" if pending_direction is not None else "expecting sort direction or key",
                offset=byte_offset(text, start),
                token=word,
                expected="feed, date, synced, title or author" if pending_direction is not None else "<, > or a sort key",
            ) from None

        if key in seen:
            raise ParseError(
                "duplicate sort key",
                offset=byte_offset(text, pending_at if pending_direction is not None else start),
                token=word,
                expected="each sort key at most once",
            )
        seen.add(key)
        entries.append((key, pending_direction or DEFAULT_DIRECTIONS[key]))
        pending_direction = None

    if pending_direction is not None:
        raise ParseError(
            "expecting sort key",
            offset=byte_offset(text, len(text)),
            token=pending_direction.value,
            expected="feed, date, synced, title or author",
        )

    return SortSpec(tuple(entries))


def _casefold(value: str | None) -> str:
    return (value or "").casefold()


def _cmp(left, right) -> int:
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def _compare_key(key: SortKey, article_1: ArticleRecord, article_2: ArticleRecord) -> int:
    if key is SortKey.date:
        return _cmp(article_1.published_at, article_2.published_at)
    if key is SortKey.synced:
        return _cmp(article_1.synced_at, article_2.synced_at)
    if key is SortKey.feed:
        return _cmp(_casefold(article_1.feed_name), _casefold(article_2.feed_name))
    if key is SortKey.title:
        return _cmp(_casefold(article_1.title), _casefold(article_2.title))
    if key is SortKey.author:
        return _cmp(_casefold(article_1.author), _casefold(article_2.author))
    raise ValueError(f"unsupported sort key {key!r}")


def compare(spec: SortSpec, article_1: ArticleRecord, article_2: ArticleRecord) -> int:
    for key, direction in spec.entries:
        ordering = _compare_key(key, article_1, article_2)
        if ordering:
            return -ordering if direction is SortDirection.descending else ordering
    # Article ids break remaining ties so that distinct articles never compare equal.
    return _cmp(article_1.article_id, article_2.article_id)


def sort_articles(spec: SortSpec, articles: Iterable[ArticleRecord]) -> list[ArticleRecord]:
    return sorted(articles, key=cmp_to_key(lambda a, b: compare(spec, a, b)))


def effective_sort(spec: SortSpec | None, default: SortSpec) -> SortSpec:
    if spec:
        return spec
    return default

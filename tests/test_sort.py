from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from tidings.errors import ParseError
from tidings.query.sort import SortDirection, SortKey, SortSpec, parse_sort, sort_articles
from tidings.schemas import ArticleRecord

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def _article(article_id: str, **overrides) -> ArticleRecord:
    base = ArticleRecord(
        article_id=article_id,
        title="",
        summary="",
        author="",
        url="",
        feed_id="1",
        feed_name="",
        feed_url="",
        feed_web_url="",
        tags=frozenset(),
        published_at=NOW,
        synced_at=NOW,
        is_read=False,
        is_marked=False,
    )
    return replace(base, **overrides)


def _ids(spec: SortSpec, articles: list[ArticleRecord]) -> list[str]:
    return [article.article_id for article in sort_articles(spec, articles)]


def test_feed_then_oldest_first():
    articles = [
        _article("cnn-new", feed_name="CNN", published_at=NOW),
        _article("bbc-new", feed_name="BBC", published_at=NOW),
        _article("bbc-old", feed_name="BBC", published_at=NOW - timedelta(days=1)),
        _article("cnn-old", feed_name="CNN", published_at=NOW - timedelta(days=2)),
    ]

    assert _ids(parse_sort("feed <date"), articles) == ["bbc-old", "bbc-new", "cnn-old", "cnn-new"]


def test_default_directions():
    spec = parse_sort("feed date synced title author")

    assert spec.entries == (
        (SortKey.feed, SortDirection.ascending),
        (SortKey.date, SortDirection.descending),
        (SortKey.synced, SortDirection.descending),
        (SortKey.title, SortDirection.ascending),
        (SortKey.author, SortDirection.ascending),
    )


def test_whitespace_between_direction_and_key():
    assert parse_sort("> title").entries == ((SortKey.title, SortDirection.descending),)
    assert parse_sort("<date>feed").entries == (
        (SortKey.date, SortDirection.ascending),
        (SortKey.feed, SortDirection.descending),
    )


def test_bare_date_sorts_newest_first():
    articles = [
        _article("old", published_at=NOW - timedelta(days=1)),
        _article("new", published_at=NOW),
    ]

    assert _ids(parse_sort("date"), articles) == ["new", "old"]


def test_text_keys_compare_case_insensitively():
    articles = [_article("1", title="banana"), _article("2", title="Apple"), _article("3", title="cherry")]

    assert _ids(parse_sort("title"), articles) == ["2", "1", "3"]


def test_article_id_breaks_ties():
    articles = [_article("b"), _article("c"), _article("a")]

    assert _ids(parse_sort("feed"), articles) == ["a", "b", "c"]
    assert _ids(SortSpec(), articles) == ["a", "b", "c"]


def test_empty_sort_is_falsy():
    assert not parse_sort("   ")
    assert parse_sort("title")


def test_reversed_flips_every_direction():
    spec = parse_sort("feed >date")

    assert str(spec.reversed()) == ">feed <date"
    assert spec.reversed().reversed() == spec


@pytest.mark.parametrize(
    ("text", "offset", "token"),
    [
        ("<", 1, "<"),
        ("< >date", 2, ">"),
        ("feed popularity", 5, "popularity"),
        ("<popularity", 1, "popularity"),
        ("date <date", 5, "date"),
    ],
)
def test_parse_errors(text, offset, token):
    with pytest.raises(ParseError) as excinfo:
        parse_sort(text)

    assert excinfo.value.offset == offset
    assert excinfo.value.token == token

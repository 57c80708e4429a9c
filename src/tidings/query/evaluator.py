from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..schemas import ArticleRecord
from .terms import (
    FIELD_ALL,
    FIELD_AUTHOR,
    FIELD_FEED,
    FIELD_FEED_URL,
    FIELD_FEED_WEB_URL,
    FIELD_SUMMARY,
    FIELD_TITLE,
    RELATION_AFTER,
    RELATION_BEFORE,
    RELATION_NEWER,
    RELATION_OLDER,
    FieldMatch,
    LastSyncFlag,
    MarkState,
    MatchAll,
    Predicate,
    Query,
    QueryTerm,
    ReadState,
    SyncedRelation,
    TaggedPresence,
    TagMembership,
    TimeRelation,
    TodayFlag,
)


def _field_values(field: str, article: ArticleRecord) -> tuple[str, ...]:
    if field == FIELD_TITLE:
        return (article.title,)
    if field == FIELD_SUMMARY:
        return (article.summary,)
    if field == FIELD_AUTHOR:
        return (article.author,)
    if field == FIELD_FEED:
        return (article.feed_name,)
    if field == FIELD_FEED_URL:
        return (article.feed_url,)
    if field == FIELD_FEED_WEB_URL:
        return (article.feed_web_url,)
    if field == FIELD_ALL:
        return (article.title, article.summary, article.author, article.feed_name)
    raise ValueError(f"unknown field {field!r}")


def _test_predicate(predicate: Predicate, article: ArticleRecord, last_sync: datetime | None = None) -> bool:
    if isinstance(predicate, MatchAll):
        return True
    if isinstance(predicate, ReadState):
        return article.is_read == predicate.read
    if isinstance(predicate, MarkState):
        return article.is_marked == predicate.marked
    if isinstance(predicate, TaggedPresence):
        return bool(article.tags)
    if isinstance(predicate, FieldMatch):
        return any(predicate.matcher.test(value or "") for value in _field_values(predicate.field, article))
    if isinstance(predicate, TagMembership):
        return not predicate.tags.isdisjoint(article.tags)
    if isinstance(predicate, TimeRelation):
        if predicate.relation == RELATION_NEWER:
            return article.published_at > predicate.instant
        if predicate.relation == RELATION_OLDER:
            return article.published_at < predicate.instant
        raise ValueError(f"unknown time relation {predicate.relation!r}")
    if isinstance(predicate, TodayFlag):
        return predicate.start <= article.published_at < predicate.end
    if isinstance(predicate, SyncedRelation):
        if predicate.relation == RELATION_BEFORE:
            return article.synced_at < predicate.instant
        if predicate.relation == RELATION_AFTER:
            return article.synced_at > predicate.instant
        raise ValueError(f"unknown synced relation {predicate.relation!r}")
    if isinstance(predicate, LastSyncFlag):
        # no recorded sync: every article counts as retrieved by it
        return last_sync is None or article.synced_at >= last_sync
    raise TypeError(f"unsupported predicate {type(predicate).__name__}")


def evaluate_term(term: QueryTerm, article: ArticleRecord, last_sync: datetime | None = None) -> bool:
    result = _test_predicate(term.predicate, article, last_sync)
    return not result if term.negated else result


def evaluate(query: Query, article: ArticleRecord, last_sync: datetime | None = None) -> bool:
    """Test every term against ``article``.

    ``last_sync`` is the start of the most recent sync, used by ``lastsync``.
    """
    return all(evaluate_term(term, article, last_sync) for term in query.terms)


def filter_articles(
    query: Query,
    articles: Iterable[ArticleRecord],
    last_sync: datetime | None = None,
) -> list[ArticleRecord]:
    return [article for article in articles if evaluate(query, article, last_sync)]

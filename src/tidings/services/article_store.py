from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..db import transaction
from ..errors import MutationError
from ..models import Article, Feed, Tag, Tagging
from ..schemas import (
    ARTICLE_STATE_MARKED,
    ARTICLE_STATE_UNREAD,
    NODE_KIND_ALL,
    NODE_KIND_FEED,
    NODE_KIND_TAG,
    ArticleRecord,
    FeedNode,
    VisibleScope,
)
from ..time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class ArticleStore(Protocol):
    def list_articles(self, scope: VisibleScope | None = None) -> list[ArticleRecord]: ...

    def list_feed_nodes(self) -> list[FeedNode]: ...

    def set_read(self, ids: Sequence[str]) -> int: ...

    def set_unread(self, ids: Sequence[str]) -> int: ...

    def mark(self, ids: Sequence[str]) -> int: ...

    def unmark(self, ids: Sequence[str]) -> int: ...

    def add_tag(self, ids: Sequence[str], tag_id: int) -> int: ...

    def remove_tag(self, ids: Sequence[str], tag_id: int) -> int: ...

    def resolve_tag_ids(self, names: Iterable[str]) -> list[int]: ...

    def last_sync(self) -> datetime | None: ...


def _to_record(article: Article) -> ArticleRecord:
    feed = article.feed
    return ArticleRecord(
        article_id=str(article.id),
        title=article.title or "",
        summary=article.summary or "",
        author=article.author or "",
        url=article.url or "",
        feed_id=str(feed.id),
        feed_name=feed.label,
        feed_url=feed.feed_url,
        feed_web_url=feed.website_url or "",
        tags=frozenset(tagging.tag.label for tagging in article.taggings),
        published_at=ensure_utc(article.published_at),
        synced_at=ensure_utc(article.synced_at),
        is_read=bool(article.is_read),
        is_marked=bool(article.is_marked),
    )


def _parse_ids(ids: Sequence[str]) -> list[int]:
    parsed: list[int] = []
    for raw in ids:
        try:
            parsed.append(int(raw))
        except (TypeError, ValueError):
            raise MutationError(f"unknown article id `{raw}`") from None
    return parsed


class SqlArticleStore:
    """Article store backed by the SQLAlchemy tables in :mod:`tidings.models`."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def list_articles(self, scope: VisibleScope | None = None) -> list[ArticleRecord]:
        active_scope = scope or VisibleScope()
        stmt = select(Article).options(
            selectinload(Article.feed),
            selectinload(Article.taggings).selectinload(Tagging.tag),
        )
        if active_scope.feed_id is not None:
            stmt = stmt.where(Article.feed_id == int(active_scope.feed_id))
        if active_scope.tag is not None:
            stmt = stmt.join(Tagging, Tagging.article_id == Article.id).join(Tag, Tag.id == Tagging.tag_id)
            stmt = stmt.where(Tag.label == active_scope.tag)
        if active_scope.state == ARTICLE_STATE_UNREAD:
            stmt = stmt.where(Article.is_read.is_(False))
        elif active_scope.state == ARTICLE_STATE_MARKED:
            stmt = stmt.where(Article.is_marked.is_(True))
        stmt = stmt.order_by(Article.published_at.desc(), Article.id.asc())

        with transaction(self.session_factory) as session:
            return [_to_record(article) for article in session.scalars(stmt).unique().all()]

    def list_feed_nodes(self) -> list[FeedNode]:
        with transaction(self.session_factory) as session:
            feeds = session.scalars(select(Feed).order_by(Feed.label.asc(), Feed.id.asc())).all()
            tags = session.scalars(select(Tag).order_by(Tag.label.asc())).all()
            nodes = [FeedNode(kind=NODE_KIND_ALL, key=None, label="All articles")]
            nodes.extend(FeedNode(kind=NODE_KIND_FEED, key=str(feed.id), label=feed.label) for feed in feeds)
            nodes.extend(FeedNode(kind=NODE_KIND_TAG, key=tag.label, label=f"#{tag.label}") for tag in tags)
            return nodes

    def last_sync(self) -> datetime | None:
        """Stamp of the most recent sync, taken as the newest ``synced_at``."""
        with transaction(self.session_factory) as session:
            latest = session.scalar(select(func.max(Article.synced_at)))
        return ensure_utc(latest) if latest is not None else None

    def _load(self, session: Session, ids: Sequence[str]) -> list[Article]:
        wanted = _parse_ids(ids)
        if not wanted:
            return []
        articles = session.scalars(select(Article).where(Article.id.in_(wanted))).all()
        found = {article.id for article in articles}
        missing = [str(article_id) for article_id in wanted if article_id not in found]
        if missing:
            raise MutationError(f"unknown article id(s): {', '.join(missing)}")
        return list(articles)

    def _set_flag(self, ids: Sequence[str], attribute: str, value: bool) -> int:
        changed = 0
        with transaction(self.session_factory) as session:
            for article in self._load(session, ids):
                if getattr(article, attribute) != value:
                    setattr(article, attribute, value)
                    changed += 1
        logger.debug("set %s=%s on %d of %d article(s)", attribute, value, changed, len(ids))
        return changed

    def set_read(self, ids: Sequence[str]) -> int:
        return self._set_flag(ids, "is_read", True)

    def set_unread(self, ids: Sequence[str]) -> int:
        return self._set_flag(ids, "is_read", False)

    def mark(self, ids: Sequence[str]) -> int:
        return self._set_flag(ids, "is_marked", True)

    def unmark(self, ids: Sequence[str]) -> int:
        return self._set_flag(ids, "is_marked", False)

    def _require_tag(self, session: Session, tag_id: int) -> Tag:
        tag = session.get(Tag, tag_id)
        if tag is None:
            raise MutationError(f"unknown tag id `{tag_id}`")
        return tag

    def add_tag(self, ids: Sequence[str], tag_id: int) -> int:
        changed = 0
        with transaction(self.session_factory) as session:
            self._require_tag(session, tag_id)
            for article in self._load(session, ids):
                if session.get(Tagging, (article.id, tag_id)) is None:
                    session.add(Tagging(article_id=article.id, tag_id=tag_id))
                    changed += 1
        return changed

    def remove_tag(self, ids: Sequence[str], tag_id: int) -> int:
        with transaction(self.session_factory) as session:
            self._require_tag(session, tag_id)
            article_ids = [article.id for article in self._load(session, ids)]
            if not article_ids:
                return 0
            result = session.execute(
                delete(Tagging).where(Tagging.tag_id == tag_id, Tagging.article_id.in_(article_ids))
            )
            return int(result.rowcount or 0)

    def resolve_tag_ids(self, names: Iterable[str]) -> list[int]:
        labels = [name.lstrip("#") for name in names]
        with transaction(self.session_factory) as session:
            rows = session.execute(select(Tag.label, Tag.id).where(Tag.label.in_(labels))).all()
        by_label = {label: tag_id for label, tag_id in rows}
        missing = [label for label in labels if label not in by_label]
        if missing:
            raise MutationError(f"unknown tag(s): {', '.join('#' + label for label in missing)}")
        return [by_label[label] for label in labels]

    def create_feed(self, label: str, feed_url: str, website_url: str | None = None) -> str:
        with transaction(self.session_factory) as session:
            existing = session.scalar(select(Feed).where(Feed.feed_url == feed_url))
            if existing is not None:
                raise MutationError(f"feed with url `{feed_url}` already exists")
            feed = Feed(label=label, feed_url=feed_url, website_url=website_url)
            session.add(feed)
            session.flush()
            return str(feed.id)

    def create_tag(self, label: str) -> int:
        normalized = label.lstrip("#")
        if not normalized:
            raise MutationError("tag label must not be empty")
        with transaction(self.session_factory) as session:
            if session.scalar(select(Tag).where(Tag.label == normalized)) is not None:
                raise MutationError(f"tag #{normalized} already exists")
            tag = Tag(label=normalized)
            session.add(tag)
            session.flush()
            return tag.id

    def create_article(
        self,
        feed_id: str,
        external_id: str,
        title: str,
        published_at: datetime,
        summary: str | None = None,
        author: str | None = None,
        url: str = "",
        synced_at: datetime | None = None,
        is_read: bool = False,
        is_marked: bool = False,
    ) -> str:
        with transaction(self.session_factory) as session:
            feed = session.get(Feed, int(feed_id))
            if feed is None:
                raise MutationError(f"unknown feed id `{feed_id}`")
            article = Article(
                feed_id=feed.id,
                external_id=external_id,
                title=title,
                summary=summary,
                author=author,
                url=url,
                # SQLite drops the offset, so everything is stored as UTC.
                published_at=ensure_utc(published_at),
                synced_at=ensure_utc(synced_at or utcnow()),
                is_read=is_read,
                is_marked=is_marked,
            )
            session.add(article)
            session.flush()
            return str(article.id)

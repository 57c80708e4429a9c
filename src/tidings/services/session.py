from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..query.evaluator import filter_articles
from ..query.sort import SortSpec, sort_articles
from ..query.terms import Query
from ..schemas import (
    ARTICLE_STATE_ALL,
    NODE_KIND_ALL,
    NODE_KIND_FEED,
    NODE_KIND_TAG,
    ArticleRecord,
    FeedNode,
    VisibleScope,
)
from .article_store import ArticleStore


class Panel(str, Enum):
    feeds = "feeds"
    articles = "articles"
    content = "content"


PANEL_ORDER = (Panel.feeds, Panel.articles, Panel.content)


def clamp_selection(index: int, size: int) -> int:
    if size <= 0:
        return 0
    return max(0, min(index, size - 1))


def node_scope(node: FeedNode, state: str = ARTICLE_STATE_ALL) -> VisibleScope:
    if node.kind == NODE_KIND_FEED:
        return VisibleScope(feed_id=node.key, state=state)
    if node.kind == NODE_KIND_TAG:
        return VisibleScope(tag=node.key, state=state)
    return VisibleScope(state=state)


@dataclass
class ReaderSession:
    """UI state the dispatcher reads and mutates for one interactive session."""

    default_sort: SortSpec
    focus: Panel = Panel.articles
    feed_index: int = 0
    article_index: int = 0
    article_state: str = ARTICLE_STATE_ALL
    filter: Query | None = None
    sort: SortSpec | None = None
    query: Query | None = None
    search: Query | None = None
    content_article_id: str | None = None
    content_scroll: int = 0
    quit_requested: bool = False
    last_sync: datetime | None = None
    log: list[str] = field(default_factory=list)

    def append_log(self, message: str, max_entries: int = 50) -> None:
        self.log.append(message)
        if len(self.log) > max_entries:
            del self.log[: len(self.log) - max_entries]

    def selected_node(self, store: ArticleStore) -> FeedNode:
        nodes = store.list_feed_nodes()
        if not nodes:
            return FeedNode(kind=NODE_KIND_ALL, key=None, label="All articles")
        return nodes[clamp_selection(self.feed_index, len(nodes))]

    def visible_scope(self, store: ArticleStore) -> VisibleScope:
        if self.query is not None:
            return VisibleScope(state=self.article_state)
        return node_scope(self.selected_node(store), self.article_state)

    def effective_sort(self) -> SortSpec:
        if self.sort:
            return self.sort
        if self.query is not None and self.query.sort:
            return self.query.sort
        if self.filter is not None and self.filter.sort:
            return self.filter.sort
        return self.default_sort

    def visible_articles(self, store: ArticleStore) -> list[ArticleRecord]:
        """Articles of the article panel, read fresh from the store."""
        articles = store.list_articles(self.visible_scope(store))
        if self.query is not None:
            articles = filter_articles(self.query, articles, self.last_sync)
        if self.filter is not None:
            articles = filter_articles(self.filter, articles, self.last_sync)
        return sort_articles(self.effective_sort(), articles)

    def selected_article(self, articles: list[ArticleRecord]) -> ArticleRecord | None:
        if not articles:
            return None
        return articles[clamp_selection(self.article_index, len(articles))]

    def content_article(self, articles: list[ArticleRecord]) -> ArticleRecord | None:
        if self.content_article_id is not None:
            for article in articles:
                if article.article_id == self.content_article_id:
                    return article
        return self.selected_article(articles)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

ARTICLE_STATE_ALL = "all"
ARTICLE_STATE_UNREAD = "unread"
ARTICLE_STATE_MARKED = "marked"
ARTICLE_STATES = (ARTICLE_STATE_ALL, ARTICLE_STATE_UNREAD, ARTICLE_STATE_MARKED)

NODE_KIND_ALL = "all"
NODE_KIND_FEED = "feed"
NODE_KIND_TAG = "tag"


@dataclass(frozen=True, slots=True)
class ArticleRecord:
    article_id: str
    title: str
    summary: str
    author: str
    url: str
    feed_id: str
    feed_name: str
    feed_url: str
    feed_web_url: str
    tags: frozenset[str]
    published_at: datetime
    synced_at: datetime
    is_read: bool
    is_marked: bool


@dataclass(frozen=True, slots=True)
class FeedNode:
    kind: str
    key: str | None
    label: str


@dataclass(frozen=True, slots=True)
class VisibleScope:
    feed_id: str | None = None
    tag: str | None = None
    state: str = ARTICLE_STATE_ALL


@dataclass(slots=True)
class CommandOutcome:
    command: str
    ok: bool
    message: str | None = None
    error: Exception | None = None
    affected_ids: list[str] = field(default_factory=list)

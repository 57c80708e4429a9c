from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tidings.config import Settings
from tidings.errors import ParseError
from tidings.engine import ReaderEngine
from tidings.input.keys import KeyChord
from tidings.schemas import FeedNode, NODE_KIND_ALL, VisibleScope

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


class EmptyStore:
    def __init__(self) -> None:
        self.read_calls: list[list[str]] = []

    def list_articles(self, scope: VisibleScope | None = None):
        return []

    def list_feed_nodes(self):
        return [FeedNode(kind=NODE_KIND_ALL, key=None, label="All articles")]

    def set_read(self, ids):
        self.read_calls.append(list(ids))
        return 0

    set_unread = mark = unmark = set_read

    def add_tag(self, ids, tag_id):
        return 0

    remove_tag = add_tag

    def resolve_tag_ids(self, names):
        return [1 for _ in names]

    def last_sync(self):
        return NOW


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _settings(**overrides) -> Settings:
    values = dict(
        db_url="sqlite:///:memory:",
        input_timeout_millis=1000,
        abort_key="esc",
        scroll_amount=10,
        default_sort_order=">date",
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def engine(monotonic) -> ReaderEngine:
    return ReaderEngine(EmptyStore(), settings=_settings(), monotonic=monotonic, clock=lambda: NOW)


def test_key_sequence_runs_bound_commands(engine):
    assert engine.feed_key_event(KeyChord("g")) is None
    assert engine.key_hints()[0] == ("a", ("focus articles",))

    result = engine.feed_key_event(KeyChord("g"))

    assert result.commands == ("gotofirst",)
    assert result.ok


def test_quit_binding(engine):
    result = engine.feed_key_event(KeyChord("q"))

    assert result.commands == ("quit",)
    assert engine.session.quit_requested


def test_tick_reports_nothing_while_idle(engine, monotonic):
    engine.feed_key_event(KeyChord("s"))
    monotonic.now = 2.0

    assert engine.tick() is None
    assert engine.keys.state.is_idle


def test_abort_key_from_settings(monotonic):
    engine = ReaderEngine(EmptyStore(), settings=_settings(abort_key="C-g"), monotonic=monotonic)

    engine.feed_key_event(KeyChord("g"))
    assert engine.feed_key_event(KeyChord("g", ctrl=True)) is None
    assert engine.keys.state.is_idle


def test_invalid_abort_key_is_ignored(monotonic):
    engine = ReaderEngine(EmptyStore(), settings=_settings(abort_key="nonsense"), monotonic=monotonic)

    assert engine.keys.abort_key is None


def test_dispatch_reports_errors_without_raising(engine):
    outcome = engine.dispatch("sort bogus")

    assert not outcome.ok
    assert isinstance(outcome.error, ParseError)


def test_parse_helpers(engine):
    assert str(engine.parse_sort("feed")) == "<feed"
    assert engine.parse_query('newer:"1 day ago"').terms[0].predicate.instant < NOW
    with pytest.raises(ParseError):
        engine.parse_query("~")


def test_default_sort_comes_from_settings(monotonic):
    engine = ReaderEngine(EmptyStore(), settings=_settings(default_sort_order="<feed title"), monotonic=monotonic)

    assert str(engine.session.effective_sort()) == "<feed <title"


def test_session_starts_with_store_last_sync(engine):
    assert engine.session.last_sync == NOW

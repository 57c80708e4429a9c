from __future__ import annotations

from datetime import datetime, timezone

from tidings.input.keys import parse_key_sequence
from tidings.schemas import ArticleRecord, CommandOutcome
from tidings.views.table_renderer import _title_cell, render_article_records, render_bindings, render_outcomes


def _record(**overrides) -> ArticleRecord:
    values = dict(
        article_id="7",
        title="Storm warning",
        summary="",
        author="",
        url="https://bbc.example/storm",
        feed_id="1",
        feed_name="BBC News",
        feed_url="https://bbc.example/rss",
        feed_web_url="",
        tags=frozenset({"weather", "alerts"}),
        published_at=datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc),
        synced_at=datetime(2024, 5, 10, 12, 5, tzinfo=timezone.utc),
        is_read=True,
        is_marked=True,
    )
    values.update(overrides)
    return ArticleRecord(**values)


def test_title_cell_links_to_article():
    title = _title_cell("Storm warning", "https://bbc.example/storm")

    assert "https://bbc.example/storm" in str(title.style)
    assert _title_cell("No link", "") == "No link"


def test_article_table_shows_flags_feed_and_tags():
    rendered = render_article_records([_record()], heading="1 article(s)")

    assert "1 article(s)" in rendered
    assert "[x]*" in rendered
    assert "BBC News" in rendered
    assert "#alerts" in rendered
    assert "#weather" in rendered


def test_empty_article_list():
    assert "No matching articles." in render_article_records([])


def test_bindings_table():
    rendered = render_bindings([(parse_key_sequence("g g"), ("gotofirst",)), (parse_key_sequence("o"), ("open", "read"))])

    assert "g g" in rendered
    assert "open; read" in rendered


def test_outcomes_are_listed_in_order():
    rendered = render_outcomes(
        [
            CommandOutcome(command="open", ok=True),
            CommandOutcome(command="read", ok=False, message="article 7 was deleted"),
        ]
    )

    assert rendered.index("[ok] open") < rendered.index("[error] read: article 7 was deleted")

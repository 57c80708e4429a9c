from __future__ import annotations

import logging
from typing import NoReturn

import typer
from rich.logging import RichHandler

from .config import get_settings
from .db import get_session_factory, init_db
from .engine import ReaderEngine
from .errors import TidingsError
from .input.bindings import BindingTable
from .input.keys import format_key_sequence, parse_key_sequence
from .query.evaluator import filter_articles
from .query.parser import parse_query
from .query.sort import effective_sort, parse_sort, sort_articles
from .services.article_store import SqlArticleStore
from .services.session import Panel
from .time_utils import resolve_time_expression
from .views.table_renderer import render_article_records, render_bindings, render_outcomes

app = typer.Typer(help="Query, sort and command engine of a terminal news reader", no_args_is_help=True)
feed_app = typer.Typer(help="Feed management")
tag_app = typer.Typer(help="Tag management")
article_app = typer.Typer(help="Article management")
app.add_typer(feed_app, name="feed")
app.add_typer(tag_app, name="tag")
app.add_typer(article_app, name="article")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_settings().resolved_log_level()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at debug level")) -> None:
    _configure_logging(verbose)


def _build_store() -> SqlArticleStore:
    settings = get_settings()
    init_db(settings)
    return SqlArticleStore(get_session_factory(settings))


def _fail(exc: TidingsError) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@feed_app.command("add")
def feed_add(
    label: str = typer.Option(..., "--label"),
    url: str = typer.Option(..., "--url", help="Feed URL"),
    web_url: str | None = typer.Option(None, "--web-url", help="Website URL"),
) -> None:
    """Add a feed."""

    store = _build_store()
    try:
        feed_id = store.create_feed(label=label, feed_url=url, website_url=web_url)
    except TidingsError as exc:
        _fail(exc)
    typer.echo(f"Added feed {feed_id}: {label}")


@tag_app.command("add")
def tag_add(label: str = typer.Option(..., "--label")) -> None:
    """Add a tag."""

    store = _build_store()
    try:
        store.create_tag(label)
    except TidingsError as exc:
        _fail(exc)
    typer.echo(f"Added tag #{label.lstrip('#')}")


@article_app.command("add")
def article_add(
    feed_id: str = typer.Option(..., "--feed-id"),
    title: str = typer.Option(..., "--title"),
    published: str = typer.Option("now", "--published", help='Absolute or relative time, e.g. "2 days ago"'),
    synced: str = typer.Option("now", "--synced", help="When the article was retrieved"),
    external_id: str | None = typer.Option(None, "--external-id"),
    summary: str | None = typer.Option(None, "--summary"),
    author: str | None = typer.Option(None, "--author"),
    url: str = typer.Option("", "--url"),
    tags: list[str] = typer.Option([], "--tag", help="Tag label, may be repeated"),
    is_read: bool = typer.Option(False, "--read"),
    is_marked: bool = typer.Option(False, "--marked"),
) -> None:
    """Add an article to a feed."""

    store = _build_store()
    try:
        published_at = resolve_time_expression(published)
        synced_at = resolve_time_expression(synced)
        article_id = store.create_article(
            feed_id=feed_id,
            external_id=external_id or url or title,
            title=title,
            published_at=published_at,
            summary=summary,
            author=author,
            url=url,
            synced_at=synced_at,
            is_read=is_read,
            is_marked=is_marked,
        )
        if tags:
            for tag_id in store.resolve_tag_ids(tags):
                store.add_tag([article_id], tag_id)
    except TidingsError as exc:
        _fail(exc)
    typer.echo(f"Added article {article_id}: {title}")


@app.command("query")
def query(
    text: str = typer.Argument("", help='Query, e.g. unread feed:bbc sort:"<date"'),
    sort_text: str | None = typer.Option(None, "--sort", help="Sort order overriding the query's sort clause"),
) -> None:
    """List all articles matching a query."""

    settings = get_settings()
    store = _build_store()
    try:
        parsed = parse_query(text)
        override = parse_sort(sort_text) if sort_text else None
    except TidingsError as exc:
        _fail(exc)

    spec = override or effective_sort(parsed.sort, parse_sort(settings.default_sort_order))
    articles = sort_articles(spec, filter_articles(parsed, store.list_articles(), store.last_sync()))
    typer.echo(render_article_records(articles, heading=f"{len(articles)} article(s), sorted by {spec}"), nl=False)


@app.command("sort")
def sort(text: str = typer.Argument(..., help='Sort order, e.g. "feed >date"')) -> None:
    """Validate a sort order and print its canonical form."""

    try:
        spec = parse_sort(text)
    except TidingsError as exc:
        _fail(exc)
    typer.echo(str(spec) if spec else "(default order)")


@app.command("run")
def run(
    commands: list[str] = typer.Argument(..., help='Commands, e.g. "read %" "sort >date"'),
    select: str | None = typer.Option(None, "--select", help="Article id to select before running"),
    focus: Panel = typer.Option(Panel.articles, "--focus", help="Panel focused before running"),
) -> None:
    """Run commands against the article list and show the result."""

    store = _build_store()
    engine = ReaderEngine(store)
    engine.session.focus = focus
    if select is not None:
        visible = engine.session.visible_articles(store)
        ids = [article.article_id for article in visible]
        if select not in ids:
            typer.echo(f"Error: article {select} is not visible", err=True)
            raise typer.Exit(code=1)
        engine.session.article_index = ids.index(select)

    outcomes = engine.dispatcher.run_commands(commands, engine.session)
    typer.echo(render_outcomes(outcomes), nl=False)
    articles = engine.session.visible_articles(store)
    heading = f"{len(articles)} article(s), sorted by {engine.session.effective_sort()}"
    typer.echo(render_article_records(articles, heading=heading), nl=False)
    if any(not outcome.ok for outcome in outcomes):
        raise typer.Exit(code=1)


@app.command("keys")
def keys(pending: str | None = typer.Option(None, "--pending", help="Show continuations of a key prefix, e.g. g")) -> None:
    """Show the default key bindings."""

    table = BindingTable.defaults()
    if pending is None:
        typer.echo(render_bindings(table.items()), nl=False)
        return

    try:
        prefix = parse_key_sequence(pending)
    except TidingsError as exc:
        _fail(exc)
    continuations = table.continuations(prefix)
    if not continuations:
        typer.echo(f"No bindings continue `{format_key_sequence(prefix)}`")
        return
    typer.echo(render_bindings([(prefix + suffix, commands) for suffix, commands in continuations]), nl=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

from __future__ import annotations

from datetime import datetime, timezone

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..input.keys import KeySequence, format_key_sequence
from ..schemas import ArticleRecord, CommandOutcome


def _console() -> Console:
    return Console(
        force_terminal=True,
        color_system="standard",
        markup=False,
        highlight=False,
        width=120,
    )


def _format_time(dt: datetime) -> str:
    value = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _flags(article: ArticleRecord) -> str:
    read = "x" if article.is_read else " "
    marked = "*" if article.is_marked else " "
    return f"[{read}]{marked}"


def _title_cell(title: str, url: str) -> Text | str:
    if not url:
        return title
    return Text(title, style=f"link {url}")


def _build_article_table() -> Table:
    table = Table(
        show_header=True,
        header_style="bold cyan",
        box=box.SQUARE,
        pad_edge=True,
        expand=True,
    )
    table.add_column("ID", justify="right", width=5, no_wrap=True)
    table.add_column("Read", width=5, no_wrap=True)
    table.add_column("Feed", width=16, overflow="fold")
    table.add_column("Published", width=16, no_wrap=True)
    table.add_column("Title", ratio=4, overflow="fold")
    table.add_column("Tags", ratio=1, overflow="fold")
    return table


def render_article_records(articles: list[ArticleRecord], heading: str | None = None) -> str:
    console = _console()
    with console.capture() as capture:
        if heading:
            console.print(heading)
        if not articles:
            console.print("No matching articles.")
        else:
            table = _build_article_table()
            for article in articles:
                table.add_row(
                    article.article_id,
                    _flags(article),
                    article.feed_name,
                    _format_time(article.published_at),
                    _title_cell(article.title, article.url),
                    ", ".join(f"#{tag}" for tag in sorted(article.tags)),
                )
            console.print(table)
    return capture.get()


def render_bindings(bindings: list[tuple[KeySequence, tuple[str, ...]]]) -> str:
    console = _console()
    with console.capture() as capture:
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE)
        table.add_column("Keys", no_wrap=True)
        table.add_column("Commands", overflow="fold")
        for keys, commands in sorted(bindings, key=lambda item: format_key_sequence(item[0])):
            table.add_row(format_key_sequence(keys), "; ".join(commands))
        console.print(table)
    return capture.get()


def render_outcomes(outcomes: list[CommandOutcome]) -> str:
    console = _console()
    with console.capture() as capture:
        for outcome in outcomes:
            status = "ok" if outcome.ok else "error"
            line = f"[{status}] {outcome.command}"
            if outcome.message:
                line += f": {outcome.message}"
            console.print(line)
    return capture.get()

from __future__ import annotations

import logging
import webbrowser
from datetime import datetime
from typing import Callable, Iterable

from ..errors import TidingsError
from ..query.evaluator import evaluate, filter_articles
from ..schemas import ArticleRecord, CommandOutcome, VisibleScope
from ..time_utils import utcnow
from .article_store import ArticleStore
from .command_parser import AllScope, CurrentScope, ParsedCommand, QueryScope, parse_command
from .session import PANEL_ORDER, Panel, ReaderSession, clamp_selection, node_scope

logger = logging.getLogger(__name__)

_MUTATIONS = {
    "read": "set_read",
    "unread": "set_unread",
    "mark": "mark",
    "unmark": "unmark",
}


class Dispatcher:
    """Runs command lines against an article store and a reader session.

    ``execute`` raises on any engine error; ``dispatch`` reports the error in
    the returned outcome instead, so a failing command never stops a binding.
    """

    def __init__(
        self,
        store: ArticleStore,
        opener: Callable[[str], object] = webbrowser.open,
        scroll_amount: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.opener = opener
        self.scroll_amount = max(scroll_amount, 1)
        self.clock = clock

    def dispatch(self, text: str, session: ReaderSession) -> CommandOutcome:
        try:
            outcome = self.execute(text, session)
        except TidingsError as exc:
            logger.warning("command `%s` failed: %s", text, exc)
            session.append_log(f"{text}: {exc}")
            return CommandOutcome(command=text, ok=False, message=str(exc), error=exc)
        if outcome.message:
            session.append_log(outcome.message)
        return outcome

    def run_commands(self, commands: Iterable[str], session: ReaderSession) -> list[CommandOutcome]:
        return [self.dispatch(command, session) for command in commands]

    def execute(self, text: str, session: ReaderSession) -> CommandOutcome:
        command = parse_command(text, now=self.clock())
        logger.debug("dispatching `%s`", text)
        return self._run(command, session)

    def _run(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        handler = getattr(self, f"_cmd_{command.verb}", None)
        if handler is None:
            method = _MUTATIONS.get(command.verb)
            if method is None:
                raise ValueError(f"no handler for `{command.verb}`")
            return self._mutate(command, session, method)
        return handler(command, session)

    def resolve_scope(self, command: ParsedCommand, session: ReaderSession) -> list[ArticleRecord]:
        """Articles a scoped command applies to, read fresh from the store."""
        target = command.target or session.focus
        scope = command.scope or CurrentScope()

        if target == Panel.feeds:
            if isinstance(scope, CurrentScope):
                return self.store.list_articles(node_scope(session.selected_node(self.store)))
            pool = self.store.list_articles(VisibleScope())
        else:
            visible = session.visible_articles(self.store)
            if isinstance(scope, CurrentScope):
                if target == Panel.content:
                    current = session.content_article(visible)
                else:
                    current = session.selected_article(visible)
                return [current] if current is not None else []
            pool = visible

        if isinstance(scope, AllScope):
            return pool
        if isinstance(scope, QueryScope):
            return filter_articles(scope.query, pool, session.last_sync)
        raise TypeError(f"unsupported scope: {scope!r}")

    def _mutate(self, command: ParsedCommand, session: ReaderSession, method: str) -> CommandOutcome:
        articles = self.resolve_scope(command, session)
        ids = [article.article_id for article in articles]
        if not ids:
            return _ok(command, f"{command.verb}: no articles in scope")
        changed = getattr(self.store, method)(ids)
        return _ok(command, f"{command.verb}: {changed} of {len(ids)} article(s) changed", ids)

    def _cmd_tag(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        return self._tagging(command, session, add=True)

    def _cmd_untag(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        return self._tagging(command, session, add=False)

    def _tagging(self, command: ParsedCommand, session: ReaderSession, add: bool) -> CommandOutcome:
        tag_id = self.store.resolve_tag_ids([command.tag or ""])[0]
        ids = [article.article_id for article in self.resolve_scope(command, session)]
        if not ids:
            return _ok(command, f"{command.verb}: no articles in scope")
        if add:
            changed = self.store.add_tag(ids, tag_id)
        else:
            changed = self.store.remove_tag(ids, tag_id)
        return _ok(command, f"{command.verb} #{command.tag}: {changed} of {len(ids)} article(s) changed", ids)

    def _cmd_open(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        opened: list[str] = []
        for article in self.resolve_scope(command, session):
            if not article.url:
                continue
            self.opener(article.url)
            opened.append(article.article_id)
        if not opened:
            return _ok(command, "open: nothing to open")
        return _ok(command, f"open: {len(opened)} article(s) opened", opened)

    def _cmd_nop(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        return _ok(command)

    def _cmd_quit(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.quit_requested = True
        return _ok(command)

    def _move(self, session: ReaderSession, offset: int | None, to_end: bool = False) -> None:
        # offset None jumps to the first (or with to_end, the last) item
        if session.focus == Panel.content:
            if offset is None:
                if to_end:
                    article = session.content_article(session.visible_articles(self.store))
                    lines = article.summary.splitlines() if article is not None else []
                    session.content_scroll = max(len(lines) - 1, 0)
                else:
                    session.content_scroll = 0
            else:
                session.content_scroll = max(session.content_scroll + offset, 0)
            return

        if session.focus == Panel.feeds:
            size = len(self.store.list_feed_nodes())
            current = session.feed_index
        else:
            size = len(session.visible_articles(self.store))
            current = session.article_index

        if offset is None:
            index = size - 1 if to_end else 0
        else:
            index = current + offset
        index = clamp_selection(index, size)

        if session.focus == Panel.feeds:
            if index != session.feed_index:
                session.feed_index = index
                session.article_index = 0
                session.content_article_id = None
        else:
            session.article_index = index
            self._follow_selection(session)

    def _follow_selection(self, session: ReaderSession, articles: list[ArticleRecord] | None = None) -> None:
        if session.content_article_id is None:
            return
        selected = session.selected_article(articles if articles is not None else session.visible_articles(self.store))
        session.content_article_id = selected.article_id if selected is not None else None
        session.content_scroll = 0

    def _cmd_up(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, -1)
        return _ok(command)

    def _cmd_down(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, 1)
        return _ok(command)

    def _cmd_pageup(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, -self.scroll_amount)
        return _ok(command)

    def _cmd_pagedown(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, self.scroll_amount)
        return _ok(command)

    def _cmd_gotofirst(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, None)
        return _ok(command)

    def _cmd_gotolast(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._move(session, None, to_end=True)
        return _ok(command)

    def _focus(self, session: ReaderSession, panel: Panel) -> None:
        session.focus = panel
        if panel == Panel.content:
            selected = session.selected_article(session.visible_articles(self.store))
            session.content_article_id = selected.article_id if selected is not None else None
            session.content_scroll = 0

    def _shift_focus(self, session: ReaderSession, step: int, cycle: bool) -> None:
        index = PANEL_ORDER.index(session.focus) + step
        if cycle:
            index %= len(PANEL_ORDER)
        else:
            index = clamp_selection(index, len(PANEL_ORDER))
        self._focus(session, PANEL_ORDER[index])

    def _cmd_next(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._shift_focus(session, 1, cycle=False)
        return _ok(command)

    def _cmd_prev(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._shift_focus(session, -1, cycle=False)
        return _ok(command)

    def _cmd_nextc(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._shift_focus(session, 1, cycle=True)
        return _ok(command)

    def _cmd_prevc(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._shift_focus(session, -1, cycle=True)
        return _ok(command)

    def _cmd_focus(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        self._focus(session, command.panel or session.focus)
        return _ok(command)

    def _cmd_in(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        if command.inner is None or command.panel is None:
            raise ValueError("`in` requires a panel and a command")
        previous = session.focus
        session.focus = command.panel
        try:
            inner = self._run(command.inner, session)
        finally:
            session.focus = previous
        return CommandOutcome(
            command=command.text,
            ok=inner.ok,
            message=inner.message,
            error=inner.error,
            affected_ids=inner.affected_ids,
        )

    def _cmd_nextunread(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        articles = session.visible_articles(self.store)
        index = _find_next(articles, session.article_index, lambda article: not article.is_read)
        if index is None:
            return _ok(command, "nextunread: no unread article")
        session.article_index = index
        self._follow_selection(session, articles)
        return _ok(command, affected_ids=[articles[index].article_id])

    def _cmd_show(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.article_state = command.state or session.article_state
        session.article_index = 0
        return _ok(command)

    def _cmd_filter(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.filter = command.query
        session.article_index = 0
        return _ok(command)

    def _cmd_filterclear(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.filter = None
        session.article_index = 0
        return _ok(command)

    def _cmd_sort(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.sort = command.sort
        return _ok(command, f"sort: {command.sort}")

    def _cmd_sortreverse(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.sort = session.effective_sort().reversed()
        return _ok(command, f"sort: {session.sort}")

    def _cmd_sortclear(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.sort = None
        return _ok(command, f"sort: {session.effective_sort()}")

    def _cmd_query(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.query = command.query
        session.article_index = 0
        return _ok(command)

    def _cmd_search(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        session.search = command.query
        if command.query is None:
            return _ok(command, "search cleared")
        return self._jump_to_match(command, session, forward=True, include_current=True)

    def _cmd_searchnext(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        return self._jump_to_match(command, session, forward=True)

    def _cmd_searchprev(self, command: ParsedCommand, session: ReaderSession) -> CommandOutcome:
        return self._jump_to_match(command, session, forward=False)

    def _jump_to_match(
        self,
        command: ParsedCommand,
        session: ReaderSession,
        forward: bool,
        include_current: bool = False,
    ) -> CommandOutcome:
        search = session.search
        if search is None:
            raise TidingsError("no active search")
        articles = session.visible_articles(self.store)
        start = session.article_index - 1 if include_current else session.article_index
        index = _find_next(
            articles,
            start,
            lambda article: evaluate(search, article, session.last_sync),
            forward=forward,
        )
        if index is None:
            return _ok(command, f"search: no match for `{search.text}`")
        session.article_index = index
        self._follow_selection(session, articles)
        return _ok(command, affected_ids=[articles[index].article_id])


def _ok(command: ParsedCommand, message: str | None = None, affected_ids: list[str] | None = None) -> CommandOutcome:
    return CommandOutcome(command=command.text, ok=True, message=message, affected_ids=list(affected_ids or []))


def _find_next(
    articles: list[ArticleRecord],
    start: int,
    predicate: Callable[[ArticleRecord], bool],
    forward: bool = True,
) -> int | None:
    """Index of the first match after ``start``, wrapping around the list."""
    size = len(articles)
    step = 1 if forward else -1
    for distance in range(1, size + 1):
        index = (start + step * distance) % size
        if predicate(articles[index]):
            return index
    return None

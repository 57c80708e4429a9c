from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from ..errors import CommandParseError, ParseError, ScopeResolutionError, UnknownCommandError, byte_offset
from ..query.parser import parse_query
from ..query.sort import SortSpec, parse_sort
from ..query.terms import Query
from ..schemas import ARTICLE_STATES
from .session import Panel

ARGS_NONE = "none"
ARGS_TARGET_SCOPE = "target_scope"
ARGS_SCOPE = "scope"
ARGS_TAG_SCOPE = "tag_scope"
ARGS_PANEL = "panel"
ARGS_QUERY = "query"
ARGS_OPTIONAL_QUERY = "optional_query"
ARGS_SORT = "sort"
ARGS_STATE = "state"
ARGS_PANEL_COMMAND = "panel_command"

TARGET_CURRENT = "."


@dataclass(frozen=True, slots=True)
class CommandSpec:
    verb: str
    arguments: str
    usage: str
    description: str


_SPECS = (
    CommandSpec("nop", ARGS_NONE, "nop", "no operation (for unmapping key bindings)"),
    CommandSpec("up", ARGS_NONE, "up", "navigate up in the focused panel"),
    CommandSpec("down", ARGS_NONE, "down", "navigate down in the focused panel"),
    CommandSpec("pageup", ARGS_NONE, "pageup", "navigate up by several items"),
    CommandSpec("pagedown", ARGS_NONE, "pagedown", "navigate down by several items"),
    CommandSpec("gotofirst", ARGS_NONE, "gotofirst", "navigate to the first item"),
    CommandSpec("gotolast", ARGS_NONE, "gotolast", "navigate to the last item"),
    CommandSpec("next", ARGS_NONE, "next", "focus the next panel until article content"),
    CommandSpec("prev", ARGS_NONE, "prev", "focus the previous panel until feed list"),
    CommandSpec("nextc", ARGS_NONE, "nextc", "focus the next panel, cycling back to the feed list"),
    CommandSpec("prevc", ARGS_NONE, "prevc", "focus the previous panel, cycling back to article content"),
    CommandSpec("focus", ARGS_PANEL, "focus <panel>", "focus the given panel"),
    CommandSpec("read", ARGS_TARGET_SCOPE, "read [<target>] [<scope>]", "set articles in scope to read"),
    CommandSpec("unread", ARGS_TARGET_SCOPE, "unread [<target>] [<scope>]", "set articles in scope to unread"),
    CommandSpec("mark", ARGS_TARGET_SCOPE, "mark [<target>] [<scope>]", "mark articles in scope"),
    CommandSpec("unmark", ARGS_TARGET_SCOPE, "unmark [<target>] [<scope>]", "unmark articles in scope"),
    CommandSpec("open", ARGS_SCOPE, "open [<scope>]", "open articles in scope in the web browser"),
    CommandSpec("tag", ARGS_TAG_SCOPE, "tag <tag> [<scope>]", "add the tag to articles in scope"),
    CommandSpec("untag", ARGS_TAG_SCOPE, "untag <tag> [<scope>]", "remove the tag from articles in scope"),
    CommandSpec("nextunread", ARGS_NONE, "nextunread", "select the next unread article"),
    CommandSpec("show", ARGS_STATE, "show all|unread|marked", "show only articles in the given state"),
    CommandSpec("filter", ARGS_QUERY, "filter <query>", "filter the article list by query"),
    CommandSpec("filterclear", ARGS_NONE, "filterclear", "clear the article list filter"),
    CommandSpec("sort", ARGS_SORT, "sort <sort order>", "sort the article list"),
    CommandSpec("sortreverse", ARGS_NONE, "sortreverse", "reverse the current sort order"),
    CommandSpec("sortclear", ARGS_NONE, "sortclear", "return to the default sort order"),
    CommandSpec("query", ARGS_OPTIONAL_QUERY, "query [<query>]", "list all articles matching the query"),
    CommandSpec("search", ARGS_OPTIONAL_QUERY, "search [<query>]", "select the next article matching the query"),
    CommandSpec("searchnext", ARGS_NONE, "searchnext", "select the next search match"),
    CommandSpec("searchprev", ARGS_NONE, "searchprev", "select the previous search match"),
    CommandSpec("in", ARGS_PANEL_COMMAND, "in <panel> <command>", "run the command with the panel focused"),
    CommandSpec("quit", ARGS_NONE, "quit", "quit the application"),
)

COMMANDS: dict[str, CommandSpec] = {spec.verb: spec for spec in _SPECS}


@dataclass(frozen=True, slots=True)
class CurrentScope:
    def __str__(self) -> str:
        return "current article"


@dataclass(frozen=True, slots=True)
class AllScope:
    def __str__(self) -> str:
        return "all articles"


@dataclass(frozen=True, slots=True)
class QueryScope:
    query: Query

    def __str__(self) -> str:
        return f"all articles matching {self.query.text}"


Scope = Union[CurrentScope, AllScope, QueryScope]


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    verb: str
    text: str
    target: Panel | None = None
    scope: Scope | None = None
    tag: str | None = None
    panel: Panel | None = None
    query: Query | None = None
    sort: SortSpec | None = None
    state: str | None = None
    inner: ParsedCommand | None = None


def split_off_first(text: str) -> tuple[str, str | None]:
    trimmed = text.strip()
    parts = trimmed.split(None, 1)
    if not parts:
        return "", None
    if len(parts) == 1:
        return parts[0], None
    return parts[0], parts[1].strip() or None


def parse_scope(text: str | None, now: datetime | None = None) -> Scope:
    if text is None or not text.strip() or text.strip() == ".":
        return CurrentScope()
    if text.strip() == "%":
        return AllScope()
    try:
        return QueryScope(parse_query(text.strip(), now=now))
    except ParseError as exc:
        raise ScopeResolutionError(text.strip(), exc) from exc


def _parse_panel(word: str | None, text: str) -> Panel:
    try:
        return Panel(word or "")
    except ValueError:
        raise CommandParseError(
            "expecting panel",
            offset=byte_offset(text, text.find(word) if word else len(text)),
            token=word or "",
            expected="feeds, articles or content",
        ) from None


def parse_command(text: str, now: datetime | None = None) -> ParsedCommand:
    """Split a command line into verb and verb-specific arguments.

    Scopes and queries are parsed here, so a query in scope position is
    compiled afresh for every dispatched command.
    """
    verb, args = split_off_first(text)
    if not verb:
        raise CommandParseError("expecting command", token=text, expected="a command name")

    spec = COMMANDS.get(verb)
    if spec is None:
        raise UnknownCommandError(verb)

    if spec.arguments == ARGS_NONE:
        if args is not None:
            raise CommandParseError(
                f"`{verb}` takes no arguments",
                offset=byte_offset(text, text.find(args)),
                token=args,
                expected="end of command",
            )
        return ParsedCommand(verb=verb, text=text)

    if spec.arguments == ARGS_SCOPE:
        return ParsedCommand(verb=verb, text=text, scope=parse_scope(args, now=now))

    if spec.arguments == ARGS_TARGET_SCOPE:
        target: Panel | None = None
        first, rest = split_off_first(args or "")
        if first == TARGET_CURRENT:
            args = rest
        elif first in Panel.__members__:
            target = Panel(first)
            args = rest
        return ParsedCommand(verb=verb, text=text, target=target, scope=parse_scope(args, now=now))

    if spec.arguments == ARGS_TAG_SCOPE:
        tag, rest = split_off_first(args or "")
        if not tag:
            raise CommandParseError("expecting tag", offset=byte_offset(text, len(text)), expected="a tag name")
        return ParsedCommand(verb=verb, text=text, tag=tag.lstrip("#"), scope=parse_scope(rest, now=now))

    if spec.arguments == ARGS_PANEL:
        word, rest = split_off_first(args or "")
        panel = _parse_panel(word, text)
        if rest is not None:
            raise CommandParseError(
                f"`{verb}` takes a single panel",
                offset=byte_offset(text, text.find(rest)),
                token=rest,
                expected="end of command",
            )
        return ParsedCommand(verb=verb, text=text, panel=panel)

    if spec.arguments == ARGS_STATE:
        word, rest = split_off_first(args or "")
        if word not in ARTICLE_STATES or rest is not None:
            raise CommandParseError(
                "expecting article state",
                offset=byte_offset(text, len(verb) + 1),
                token=args or "",
                expected="all, unread or marked",
            )
        return ParsedCommand(verb=verb, text=text, state=word)

    if spec.arguments in (ARGS_QUERY, ARGS_OPTIONAL_QUERY):
        if args is None:
            if spec.arguments == ARGS_QUERY:
                raise CommandParseError(
                    "expecting article query", offset=byte_offset(text, len(text)), expected="a query"
                )
            return ParsedCommand(verb=verb, text=text)
        return ParsedCommand(verb=verb, text=text, query=parse_query(args, now=now))

    if spec.arguments == ARGS_SORT:
        if args is None:
            raise CommandParseError(
                "expecting sort order", offset=byte_offset(text, len(text)), expected="e.g. `feed >date`"
            )
        return ParsedCommand(verb=verb, text=text, sort=parse_sort(args))

    if spec.arguments == ARGS_PANEL_COMMAND:
        word, rest = split_off_first(args or "")
        panel = _parse_panel(word, text)
        if rest is None:
            raise CommandParseError("expecting command", offset=byte_offset(text, len(text)), expected="a command")
        return ParsedCommand(verb=verb, text=text, panel=panel, inner=parse_command(rest, now=now))

    raise ValueError(f"unsupported argument kind {spec.arguments!r}")

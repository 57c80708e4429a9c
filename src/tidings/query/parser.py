from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterator

from ..errors import ParseError, RegexCompileError, TimeExpressionError, byte_offset
from ..time_utils import ensure_utc, local_day_bounds_utc, local_timezone, utcnow
from .capabilities import DateutilTimeResolver, RegexCompiler, StdlibRegexCompiler, TimeResolver
from .lexer import (
    TOKEN_KEY,
    TOKEN_NEGATE,
    TOKEN_QUOTED,
    TOKEN_REGEX,
    TOKEN_STAR,
    TOKEN_TAGLIST,
    TOKEN_WORD,
    Token,
    tokenize,
)
from .sort import SortSpec, parse_sort
from .terms import (
    FIELD_ALL,
    FIELDS,
    RELATION_AFTER,
    RELATION_BEFORE,
    RELATION_NEWER,
    RELATION_OLDER,
    FieldMatch,
    LastSyncFlag,
    MarkState,
    MatchAll,
    Matcher,
    Phrase,
    Predicate,
    Query,
    QueryTerm,
    ReadState,
    Regex,
    SyncedRelation,
    TaggedPresence,
    TagMembership,
    TimeRelation,
    TodayFlag,
    Word,
)

logger = logging.getLogger(__name__)

_KEYWORD_PREDICATES: dict[str, Predicate] = {
    "read": ReadState(read=True),
    "unread": ReadState(read=False),
    "marked": MarkState(marked=True),
    "unmarked": MarkState(marked=False),
    "tagged": TaggedPresence(),
    "lastsync": LastSyncFlag(),
}

_TIME_KEYS = {
    "newer": (TimeRelation, RELATION_NEWER),
    "older": (TimeRelation, RELATION_OLDER),
    "syncedbefore": (SyncedRelation, RELATION_BEFORE),
    "syncedafter": (SyncedRelation, RELATION_AFTER),
}


class _QueryParser:
    def __init__(
        self,
        text: str,
        now: datetime,
        time_resolver: TimeResolver,
        regex_compiler: RegexCompiler,
    ) -> None:
        self.text = text
        self.now = now
        self.time_resolver = time_resolver
        self.regex_compiler = regex_compiler
        self.tokens: Iterator[Token] = tokenize(text)

    def _end_offset(self) -> int:
        return byte_offset(self.text, len(self.text))

    def _expect(self, key: Token, message: str, expected: str, kinds: tuple[str, ...]) -> Token:
        token = next(self.tokens, None)
        if token is None:
            raise ParseError(message, offset=self._end_offset(), token=key.text, expected=expected)
        if token.kind not in kinds:
            raise ParseError(message, offset=token.offset, token=token.text, expected=expected)
        return token

    def parse(self) -> Query:
        terms: list[QueryTerm] = []
        sort: SortSpec | None = None
        negation: Token | None = None

        for token in self.tokens:
            if token.kind == TOKEN_NEGATE:
                if negation is not None:
                    raise ParseError(
                        "expecting key after negation",
                        offset=token.offset,
                        token=token.text,
                        expected="a term after ~",
                    )
                negation = token
                continue

            if token.kind == TOKEN_KEY and token.value == "sort":
                if negation is not None:
                    raise ParseError(
                        "sort order cannot be negated",
                        offset=negation.offset,
                        token=negation.text,
                        expected="a predicate after ~",
                    )
                value = self._expect(token, "expecting sort order", 'quoted sort order (sort:"date <feed")', (TOKEN_QUOTED,))
                if sort is not None:
                    raise ParseError(
                        "multiple sort orders found, only one sort order allowed",
                        offset=token.offset,
                        token=token.text,
                        expected="a single sort: term",
                    )
                try:
                    sort = parse_sort(value.value)
                except ParseError as exc:
                    raise ParseError(
                        f"invalid sort order: {exc.message}",
                        offset=value.offset + 1 + exc.offset,
                        token=exc.token,
                        expected=exc.expected,
                    ) from exc
                continue

            predicate = self._predicate(token)
            terms.append(QueryTerm(predicate=predicate, negated=negation is not None))
            negation = None

        if negation is not None:
            raise ParseError(
                "expecting key after negation",
                offset=self._end_offset(),
                token=negation.text,
                expected="a term after ~",
            )

        query = Query(text=self.text, terms=tuple(terms), sort=sort)
        logger.debug("query parsed: %s", query)
        return query

    def _predicate(self, token: Token) -> Predicate:
        if token.kind == TOKEN_STAR:
            return MatchAll()

        if token.kind == TOKEN_WORD:
            if token.text == "today":
                start, end = local_day_bounds_utc(self.now.astimezone(local_timezone()).date())
                return TodayFlag(start=start, end=end)
            if token.text in _KEYWORD_PREDICATES:
                return _KEYWORD_PREDICATES[token.text]
            return FieldMatch(field=FIELD_ALL, matcher=Word(token.text))

        if token.kind == TOKEN_TAGLIST:
            return self._tag_list(token)

        if token.kind == TOKEN_KEY:
            key = token.value
            if key in FIELDS:
                value = self._expect(
                    token,
                    "expecting search term",
                    "unquoted word, /regex/ or quoted string",
                    (TOKEN_WORD, TOKEN_QUOTED, TOKEN_REGEX),
                )
                return FieldMatch(field=key, matcher=self._matcher(value))
            if key == "tag":
                value = self._expect(token, "expecting tag list", "#tag1,#tag2,...", (TOKEN_TAGLIST,))
                return self._tag_list(value)
            if key in _TIME_KEYS:
                value = self._expect(token, "expecting time or relative time", 'quoted time ("1 week ago")', (TOKEN_QUOTED,))
                predicate_type, relation = _TIME_KEYS[key]
                return predicate_type(relation=relation, instant=self._instant(value))

        raise ParseError(
            "expecting key or word to search",
            offset=token.offset,
            token=token.text,
            expected="key (title:, newer:, ...), keyword or word",
        )

    def _matcher(self, token: Token) -> Matcher:
        if token.kind == TOKEN_REGEX:
            try:
                return Regex(self.regex_compiler.compile(token.value))
            except re.error as exc:
                raise RegexCompileError(
                    f"invalid regular expression: {exc.msg}",
                    offset=token.offset,
                    token=token.text,
                    expected="valid regular expression",
                ) from exc
        if token.kind == TOKEN_QUOTED:
            return Phrase(token.value)
        return Word(token.value)

    def _tag_list(self, token: Token) -> TagMembership:
        return TagMembership(frozenset(tag.lstrip("#") for tag in token.text.split(",")))

    def _instant(self, token: Token) -> datetime:
        try:
            return ensure_utc(self.time_resolver.resolve(token.value, self.now))
        except TimeExpressionError as exc:
            raise TimeExpressionError(
                exc.message,
                offset=token.offset,
                token=token.text,
                expected=exc.expected,
            ) from exc


def parse_query(
    text: str,
    *,
    now: datetime | None = None,
    time_resolver: TimeResolver | None = None,
    regex_compiler: RegexCompiler | None = None,
) -> Query:
    """Parse query text into a :class:`Query`.

    Time expressions (``newer:``, ``older:``, ``syncedbefore:``,
    ``syncedafter:`` and ``today``) are resolved once, against ``now``, and the
    resulting instants are stored in the query.
    """
    parser = _QueryParser(
        text=text,
        now=ensure_utc(now or utcnow()),
        time_resolver=time_resolver or DateutilTimeResolver(),
        regex_compiler=regex_compiler or StdlibRegexCompiler(),
    )
    return parser.parse()

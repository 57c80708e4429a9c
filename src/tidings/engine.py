from __future__ import annotations

import logging
import time
import webbrowser
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .config import Settings, get_settings
from .errors import ParseError
from .input.bindings import BindingTable
from .input.keys import KeyChord
from .input.resolver import KeyInputHandler
from .query.parser import parse_query
from .query.sort import SortSpec, parse_sort
from .query.terms import Query
from .schemas import CommandOutcome
from .services.article_store import ArticleStore
from .services.dispatcher import Dispatcher
from .services.session import ReaderSession
from .time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class KeyEventResult:
    commands: tuple[str, ...] = ()
    outcomes: list[CommandOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def failures(self) -> list[CommandOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


class ReaderEngine:
    """Entry point for a UI loop: key events in, executed commands out."""

    def __init__(
        self,
        store: ArticleStore,
        settings: Settings | None = None,
        bindings: BindingTable | None = None,
        opener: Callable[[str], object] = webbrowser.open,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.bindings = bindings or BindingTable.defaults()
        try:
            abort_key = KeyChord.parse(self.settings.abort_key)
        except ParseError:
            logger.warning("ignoring invalid abort key `%s`", self.settings.abort_key)
            abort_key = None
        self.keys = KeyInputHandler(
            self.bindings,
            timeout_seconds=self.settings.input_timeout_seconds,
            abort_key=abort_key,
            clock=monotonic,
        )
        self.dispatcher = Dispatcher(
            store,
            opener=opener,
            scroll_amount=self.settings.scroll_amount,
            clock=clock,
        )
        self.clock = clock
        self.session = ReaderSession(
            default_sort=parse_sort(self.settings.default_sort_order),
            last_sync=store.last_sync(),
        )

    def feed_key_event(self, chord: KeyChord) -> KeyEventResult | None:
        commands = self.keys.feed_key_event(chord)
        if commands is None:
            return None
        return self._run(commands)

    def tick(self) -> KeyEventResult | None:
        commands = self.keys.tick()
        if commands is None:
            return None
        return self._run(commands)

    def _run(self, commands: tuple[str, ...]) -> KeyEventResult:
        return KeyEventResult(commands=commands, outcomes=self.dispatcher.run_commands(commands, self.session))

    def dispatch(self, text: str) -> CommandOutcome:
        return self.dispatcher.dispatch(text, self.session)

    def key_hints(self) -> list[tuple[str, tuple[str, ...]]]:
        return self.keys.hints()

    def parse_query(self, text: str) -> Query:
        return parse_query(text, now=self.clock())

    def parse_sort(self, text: str) -> SortSpec:
        return parse_sort(text)

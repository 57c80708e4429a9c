from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from .bindings import BindingTable
from .keys import KeyChord, KeySequence, format_key_sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolverState:
    pending: KeySequence = ()
    deadline: float | None = None

    @property
    def is_idle(self) -> bool:
        return not self.pending


IDLE = ResolverState()

Step = tuple[ResolverState, tuple[str, ...] | None]


def step(
    state: ResolverState,
    chord: KeyChord,
    table: BindingTable,
    now: float,
    timeout: float,
    abort_key: KeyChord | None = None,
) -> Step:
    """Advance the resolver by one keystroke.

    Returns the new state and the command list to execute, if any. An exact
    match that no longer binding extends commits at once; an exact match that
    is also a prefix waits for the next key or the deadline.
    """
    if abort_key is not None and chord == abort_key:
        if not state.is_idle:
            logger.debug("key sequence aborted: %s", format_key_sequence(state.pending))
        return IDLE, None

    expired: tuple[str, ...] | None = None
    if state.deadline is not None and now >= state.deadline:
        # The tick was missed: settle the stale sequence before reading this key.
        state, expired = expire(state, table, now)

    state, commands = _advance(state, chord, table, now, timeout)
    if expired is not None:
        return state, expired + (commands or ())
    return state, commands


def _advance(state: ResolverState, chord: KeyChord, table: BindingTable, now: float, timeout: float) -> Step:
    sequence = state.pending + (chord,)
    lookup = table.lookup(sequence)

    if lookup.is_dead_end:
        logger.debug("unknown key sequence: %s", format_key_sequence(sequence))
        return IDLE, None

    if lookup.commands is not None and not lookup.has_continuations:
        logger.debug("key sequence %s -> %s", format_key_sequence(sequence), ", ".join(lookup.commands))
        return IDLE, lookup.commands

    return ResolverState(pending=sequence, deadline=now + timeout), None


def expire(state: ResolverState, table: BindingTable, now: float) -> Step:
    """Apply the timeout rule: commit an already satisfied match or reset silently."""
    if state.is_idle or state.deadline is None or now < state.deadline:
        return state, None

    lookup = table.lookup(state.pending)
    if lookup.commands is not None:
        logger.debug(
            "key sequence %s timed out, committing %s",
            format_key_sequence(state.pending),
            ", ".join(lookup.commands),
        )
        return IDLE, lookup.commands

    logger.debug("key sequence %s timed out", format_key_sequence(state.pending))
    return IDLE, None


class KeyInputHandler:
    """Holds the resolver state of one interactive session."""

    def __init__(
        self,
        table: BindingTable,
        timeout_seconds: float,
        abort_key: KeyChord | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.table = table
        self.timeout_seconds = timeout_seconds
        self.abort_key = abort_key
        self.clock = clock
        self.state = IDLE

    def feed_key_event(self, chord: KeyChord) -> tuple[str, ...] | None:
        self.state, commands = step(
            self.state,
            chord,
            self.table,
            now=self.clock(),
            timeout=self.timeout_seconds,
            abort_key=self.abort_key,
        )
        return commands

    def tick(self) -> tuple[str, ...] | None:
        self.state, commands = expire(self.state, self.table, self.clock())
        return commands

    def reset(self) -> None:
        self.state = IDLE

    def hints(self) -> list[tuple[str, tuple[str, ...]]]:
        if self.state.is_idle:
            return []
        return [
            (format_key_sequence(keys, separator=""), commands)
            for keys, commands in self.table.continuations(self.state.pending)
        ]

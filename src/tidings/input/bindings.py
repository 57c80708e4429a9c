from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Mapping, Sequence

from .keys import KeyChord, KeySequence, parse_key_sequence

DEFAULT_BINDINGS: dict[str, tuple[str, ...]] = {
    "j": ("down",),
    "k": ("up",),
    "down": ("down",),
    "up": ("up",),
    "C-f": ("pagedown",),
    "C-b": ("pageup",),
    "g g": ("gotofirst",),
    "G": ("gotolast",),
    "g f": ("focus feeds",),
    "g a": ("focus articles",),
    "g c": ("focus content",),
    "q": ("quit",),
    "space": ("next",),
    "backspace": ("prev",),
    "tab": ("nextc",),
    "backtab": ("prevc",),
    "o": ("open", "read", "nextunread"),
    "n": ("read", "nextunread"),
    "r": ("read",),
    "u": ("unread",),
    "m": ("mark",),
    "M": ("unmark",),
    "a": ("read %",),
    "A": ("unread %",),
    "1": ("show all",),
    "2": ("show unread",),
    "3": ("show marked",),
    "/ c": ("filterclear",),
    "s r": ("sortreverse",),
    "s c": ("sortclear",),
}


@dataclass
class _Node:
    children: dict[KeyChord, _Node] = field(default_factory=dict)
    commands: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class Lookup:
    commands: tuple[str, ...] | None
    has_continuations: bool

    @property
    def is_dead_end(self) -> bool:
        return self.commands is None and not self.has_continuations


_DEAD_END = Lookup(commands=None, has_continuations=False)


class BindingTable:
    """Trie from key sequences to ordered command lists."""

    def __init__(self) -> None:
        self._root = _Node()
        self._count = 0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Sequence[str] | str]) -> BindingTable:
        table = cls()
        for keys, commands in mapping.items():
            if isinstance(commands, str):
                commands = (commands,)
            table.bind(parse_key_sequence(keys), commands)
        return table

    @classmethod
    def defaults(cls, overrides: Mapping[str, Sequence[str] | str] | None = None) -> BindingTable:
        merged: dict[str, Sequence[str] | str] = dict(DEFAULT_BINDINGS)
        merged.update(overrides or {})
        return cls.from_mapping(merged)

    def __len__(self) -> int:
        return self._count

    def bind(self, sequence: KeySequence, commands: Sequence[str]) -> None:
        node = self._root
        for chord in sequence:
            node = node.children.setdefault(chord, _Node())
        if node.commands is None:
            self._count += 1
        node.commands = tuple(commands)

    def unbind(self, sequence: KeySequence) -> bool:
        node = self._find(sequence)
        if node is None or node.commands is None:
            return False
        node.commands = None
        self._count -= 1
        return True

    def _find(self, sequence: KeySequence) -> _Node | None:
        node = self._root
        for chord in sequence:
            child = node.children.get(chord)
            if child is None:
                return None
            node = child
        return node

    def lookup(self, sequence: KeySequence) -> Lookup:
        node = self._find(sequence)
        if node is None:
            return _DEAD_END
        return Lookup(commands=node.commands, has_continuations=self._has_bound_descendant(node))

    def _has_bound_descendant(self, node: _Node) -> bool:
        return any(child.commands is not None or self._has_bound_descendant(child) for child in node.children.values())

    def continuations(self, sequence: KeySequence) -> list[tuple[KeySequence, tuple[str, ...]]]:
        """Bindings strictly extending ``sequence``, shortest first, keys relative to it."""
        node = self._find(sequence)
        if node is None:
            return []
        found = list(self._walk(node, ()))
        found.sort(key=lambda item: (len(item[0]), [str(chord) for chord in item[0]]))
        return [item for item in found if item[0]]

    def _walk(self, node: _Node, prefix: KeySequence) -> Iterator[tuple[KeySequence, tuple[str, ...]]]:
        if node.commands is not None:
            yield prefix, node.commands
        for chord, child in node.children.items():
            yield from self._walk(child, prefix + (chord,))

    def items(self) -> list[tuple[KeySequence, tuple[str, ...]]]:
        return self.continuations(())

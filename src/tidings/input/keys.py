from __future__ import annotations

from dataclasses import dataclass

from ..errors import ParseError

NAMED_KEYS = frozenset(
    {
        "enter",
        "space",
        "tab",
        "backtab",
        "backspace",
        "esc",
        "left",
        "right",
        "up",
        "down",
        "insert",
        "delete",
        "home",
        "end",
        "page_up",
        "page_down",
        *(f"f{index}" for index in range(1, 13)),
    }
)

_MODIFIER_PREFIXES = {"C": "ctrl", "M": "alt", "S": "shift"}


@dataclass(frozen=True, slots=True)
class KeyChord:
    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    @classmethod
    def from_event(cls, key: str, ctrl: bool = False, alt: bool = False, shift: bool = False) -> KeyChord:
        # Terminals already report shifted characters as the shifted glyph.
        if key == " ":
            key = "space"
        if shift and len(key) == 1:
            return cls(key=key.upper() if key.isalpha() else key, ctrl=ctrl, alt=alt)
        return cls(key=key, ctrl=ctrl, alt=alt, shift=shift)

    @classmethod
    def parse(cls, text: str) -> KeyChord:
        remaining = text
        modifiers = {"ctrl": False, "alt": False, "shift": False}
        while len(remaining) > 2 and remaining[1] == "-" and remaining[0] in _MODIFIER_PREFIXES:
            modifiers[_MODIFIER_PREFIXES[remaining[0]]] = True
            remaining = remaining[2:]

        if remaining in NAMED_KEYS or len(remaining) == 1 and not remaining.isspace():
            return cls.from_event(remaining, **modifiers)
        raise ParseError(
            f"unable to parse key `{text}`",
            token=text,
            expected="a single character, a key name (enter, esc, f1, ...) or C-/M-/S- prefixed key",
        )

    def __str__(self) -> str:
        prefix = ""
        if self.ctrl:
            prefix += "C-"
        if self.alt:
            prefix += "M-"
        if self.shift:
            prefix += "S-"
        return prefix + self.key


KeySequence = tuple[KeyChord, ...]


def parse_key_sequence(text: str) -> KeySequence:
    parts = text.split()
    if not parts:
        raise ParseError("empty key sequence", token=text, expected="space separated keys")
    return tuple(KeyChord.parse(part) for part in parts)


def format_key_sequence(sequence: KeySequence, separator: str = " ") -> str:
    return separator.join(str(chord) for chord in sequence)

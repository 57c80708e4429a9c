from .bindings import DEFAULT_BINDINGS, BindingTable
from .keys import KeyChord, KeySequence, format_key_sequence, parse_key_sequence
from .resolver import IDLE, KeyInputHandler, ResolverState, expire, step

__all__ = [
    "DEFAULT_BINDINGS",
    "BindingTable",
    "KeyChord",
    "KeySequence",
    "format_key_sequence",
    "parse_key_sequence",
    "IDLE",
    "KeyInputHandler",
    "ResolverState",
    "expire",
    "step",
]

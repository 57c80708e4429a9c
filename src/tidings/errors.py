from __future__ import annotations


class TidingsError(Exception):
    """Base class for every error raised by the engine."""


class ParseError(TidingsError):
    """Malformed query, sort or command text.

    ``offset`` is the byte offset of the offending token inside the parsed
    text, ``token`` its source text and ``expected`` a short hint of what would
    have been accepted instead.
    """

    def __init__(self, message: str, offset: int = 0, token: str = "", expected: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.token = token
        self.expected = expected

    def __str__(self) -> str:
        detail = f"{self.message} at offset {self.offset}"
        if self.token:
            detail += f" near `{self.token}`"
        if self.expected:
            detail += f" (expected {self.expected})"
        return detail


class RegexCompileError(ParseError):
    pass


class TimeExpressionError(ParseError):
    pass


class CommandParseError(ParseError):
    pass


class UnknownCommandError(TidingsError):
    def __init__(self, verb: str) -> None:
        super().__init__(f"unknown command `{verb}`")
        self.verb = verb


class ScopeResolutionError(TidingsError):
    def __init__(self, scope_text: str, parse_error: ParseError) -> None:
        super().__init__(f"invalid scope `{scope_text}`: {parse_error}")
        self.scope_text = scope_text
        self.parse_error = parse_error


class MutationError(TidingsError):
    pass


def byte_offset(text: str, index: int) -> int:
    return len(text[:index].encode("utf-8"))

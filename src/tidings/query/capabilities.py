from __future__ import annotations

import re
from datetime import datetime
from typing import Protocol

from ..time_utils import resolve_time_expression


class RegexCompiler(Protocol):
    def compile(self, pattern: str) -> re.Pattern[str]: ...


class TimeResolver(Protocol):
    def resolve(self, expr: str, now: datetime) -> datetime: ...


class StdlibRegexCompiler:
    def compile(self, pattern: str) -> re.Pattern[str]:
        return re.compile(pattern)


class DateutilTimeResolver:
    def resolve(self, expr: str, now: datetime) -> datetime:
        return resolve_time_expression(expr, now=now)

"""
errors.py

Exception types raised while turning raw access-log lines into entries.

Per-line errors (MalformedLineError, FieldParseError) are caught by the
ingestion driver, which skips the offending line and keeps going. Nothing
else in the package swallows exceptions.
"""

from __future__ import annotations

from typing import Optional


class LogStatsError(Exception):
    """Base class for every error raised by logstats."""

    kind = "error"


class MalformedLineError(LogStatsError):
    """The tokenizer produced the wrong number of fields for the format."""

    kind = "malformed_line"

    def __init__(self, line: str, expected: int, found: int):
        self.line = line
        self.expected = expected
        self.found = found
        super().__init__(f"Expected {expected} fields, found {found}: {line[:120]}")


class FieldParseError(LogStatsError):
    """A mandatory directive (address, timestamp, size) could not be parsed."""

    kind = "field_parse"

    def __init__(self, directive, cause: Optional[BaseException] = None, value: str = ""):
        self.directive = directive
        self.cause = cause
        self.value = value
        token = getattr(directive, "token", directive)
        super().__init__(f"Could not parse {token} from {value!r}: {cause}")


class UnknownDirectiveError(LogStatsError):
    kind = "unknown_directive"

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown log format directive: {token}")


class TooManyMalformedLines(LogStatsError, ValueError):
    kind = "too_many_malformed"


class ConfigError(LogStatsError, ValueError):
    kind = "config"

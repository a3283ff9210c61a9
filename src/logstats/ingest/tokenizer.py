"""
tokenizer.py

Splits one raw access-log line into its positional field values.

The scan walks the line one character at a time. A field is either plain
(terminated by a separator), quoted ("...") or bracketed ([...]). Inside a
quoted or bracketed region separators are literal content. In the plain
state a space always ends the field; a colon ends it only when the field
being read is not address-like (IPv6 addresses, URLs and filenames may
contain colons), which is why the tokenizer needs the FormatSpec.

The scan keeps all of its state in locals; nothing is shared between calls.
"""

from __future__ import annotations

from typing import List, Optional

from logstats.errors import MalformedLineError
from logstats.ingest.format_spec import FormatSpec

QUOTE = '"'
OPEN_BRACKET = "["
CLOSE_BRACKET = "]"
ESCAPE = "\\"


def _unescape(value: str) -> str:
    """Undo Apache's escaping of quotes and backslashes in quoted fields."""
    if ESCAPE not in value:
        return value
    out: List[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == ESCAPE and i + 1 < len(value) and value[i + 1] in (QUOTE, ESCAPE):
            out.append(value[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _splits_on_colon(spec: Optional[FormatSpec], index: int) -> bool:
    if spec is None or index >= len(spec):
        return True
    return not spec[index].address_like


def split_fields(line: str, spec: Optional[FormatSpec] = None) -> List[str]:
    """
    Split `line` into raw field strings without checking the field count.

    `spec` drives the colon rule; without it every plain colon separates.
    """
    fields: List[str] = []
    start = 0
    quoted = False
    bracketed = False
    escaped = False
    # the current field was already closed by its ']' or '"'
    closed = False
    colon_splits = _splits_on_colon(spec, 0)

    for i, ch in enumerate(line):
        if quoted:
            # a backslash escapes the next char: in \\" the quote is not escaped and closes the field
            # backslash escapes the next char, so \\" ends the field like Apache writes it
            if escaped:
                escaped = False
            elif ch == ESCAPE:
                escaped = True
            elif ch == QUOTE:
                fields.append(_unescape(line[start:i]))
                quoted = False
                closed = True
            continue

        if bracketed:
            if ch == CLOSE_BRACKET:
                fields.append(line[start:i])
                bracketed = False
                closed = True
            continue

        if ch == " " or (ch == ":" and colon_splits):
            if closed:
                closed = False
            else:
                fields.append(line[start:i])
            start = i + 1
            colon_splits = _splits_on_colon(spec, len(fields))
            continue

        if closed:
            # text glued to a closing delimiter starts the next field
            closed = False
            start = i
            colon_splits = _splits_on_colon(spec, len(fields))

        if ch == QUOTE and not (i > 0 and line[i - 1] == ESCAPE):
            quoted = True
            start = i + 1
        elif ch == OPEN_BRACKET:
            bracketed = True
            start = i + 1

    if quoted or bracketed:
        # closing delimiter was cut off; tolerate it, minus a stray trailing '\r' or space
        end = len(line)
        if end > start and line[end - 1].isspace():
            end -= 1
        value = line[start:end]
        fields.append(_unescape(value) if quoted else value)
    elif not closed:
        fields.append(line[start:])

    return fields


def tokenize(line: str, field_count: int, spec: Optional[FormatSpec] = None) -> List[str]:
    """
    Split `line` into exactly `field_count` raw fields.

    Raises MalformedLineError when the line yields a different number of
    fields than the format expects.
    """
    fields = split_fields(line, spec)
    if len(fields) != field_count:
        raise MalformedLineError(line, field_count, len(fields))
    return fields

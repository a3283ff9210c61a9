"""
access_log.py

Parses Apache-style access-log lines into typed Entry records.

This module drives the low-level work for a whole batch of lines: each line
is tokenized against the resolved FormatSpec and bound into an Entry. The
surrounding program is expected to have already read (and decompressed) the
files; this module only sees strings.

The parser is designed to be:
- Deterministic: the same input always produces the same output
- Robust: malformed lines are skipped, logged and reported, never fatal
- Format-driven: any LogFormat the resolver understands can be parsed

Expected input:
- an iterable of raw lines (trailing whitespace is stripped)
- a FormatSpec (or a LogFormat string) and the input date pattern

Returned:
- the list of Entry records, in input order
- an IngestReport with the skipped lines and their error kinds
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Iterable, List, Optional, Tuple, Union

from logstats.errors import FieldParseError, MalformedLineError, TooManyMalformedLines
from logstats.ingest.binder import DEFAULT_INPUT_DATE_FORMAT, Entry, bind
from logstats.ingest.format_spec import FormatSpec, resolve_format
from logstats.ingest.tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedLine:
    line_no: int
    kind: str
    message: str


@dataclass
class IngestReport:
    input_lines: int = 0
    parsed: int = 0
    skipped: List[SkippedLine] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skipped_by_kind(self):
        counts = {}
        for s in self.skipped:
            counts[s.kind] = counts.get(s.kind, 0) + 1
        return counts


def parse_line(
    line: str,
    spec: FormatSpec,
    input_date_format: str = DEFAULT_INPUT_DATE_FORMAT,
    *,
    assume_tz: Optional[tzinfo] = None,
) -> Entry:
    """
    Parse a single line. Raises MalformedLineError or FieldParseError.
    """
    fields = tokenize(line, len(spec), spec)
    return bind(fields, spec, input_date_format, assume_tz=assume_tz)


# Inputs:
# lines: raw log lines, already split on newlines
# max_bad_lines: optional safety valve so a wrong log format doesn't silently
#   skip the whole file; None means never give up
def parse_lines(
    lines: Iterable[str],
    spec: Union[FormatSpec, str],
    input_date_format: str = DEFAULT_INPUT_DATE_FORMAT,
    *,
    assume_tz: Optional[tzinfo] = None,
    max_bad_lines: Optional[int] = None,
) -> Tuple[List[Entry], IngestReport]:
    """
    Parse a batch of access-log lines.

    Behavior:
      - Blank lines are ignored.
      - Lines with the wrong field count or an unparsable address, timestamp
        or size are skipped and recorded in the report with their line number.
      - Raises TooManyMalformedLines only when max_bad_lines is set and exceeded.
    """
    if isinstance(spec, str):
        spec = resolve_format(spec)

    entries: List[Entry] = []
    report = IngestReport()

    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip()
        if not line.strip():
            continue
        report.input_lines += 1

        try:
            entries.append(parse_line(line, spec, input_date_format, assume_tz=assume_tz))
        except (MalformedLineError, FieldParseError) as e:
            logger.warning("Skipping line %d (%s): %s", line_no, e.kind, e)
            report.skipped.append(SkippedLine(line_no=line_no, kind=e.kind, message=str(e)))
            if max_bad_lines is not None and report.skipped_count > max_bad_lines:
                raise TooManyMalformedLines(
                    f"Too many malformed lines (> {max_bad_lines}). "
                    f"Last failure at line {line_no}: {line[:120]}"
                ) from e

    report.parsed = len(entries)
    logger.info(
        "Parsed %d of %d lines (%d skipped)",
        report.parsed,
        report.input_lines,
        report.skipped_count,
    )
    return entries, report

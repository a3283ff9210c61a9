"""
binder.py

Binds positional raw fields to directives and coerces them into an Entry.

Each attribute of Entry is looked up by directive: the binder takes the raw
field at the first position of the FormatSpec holding that directive. If the
directive is absent the attribute keeps its default, so custom log formats
may leave fields out and the reports simply show zeros for them.

Only three directives are mandatory: the client address, the timestamp and
the response size. When one of them is present but can't be parsed the
binder raises FieldParseError and the ingestion driver skips the line.
Every other field falls back to its default on a parse failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence

from logstats.errors import FieldParseError
from logstats.ingest.format_spec import Directive, FormatSpec

DEFAULT_INPUT_DATE_FORMAT = "%d/%b/%Y:%H:%M:%S %z"

# CLF placeholder for "no value"
PLACEHOLDER = "-"
ERROR_LOG_ID_DEFAULT = "-1"
CONNECTION_STATUS_UNKNOWN = "?"


@dataclass(frozen=True)
class Entry:
    """One parsed access-log record."""

    ip: str
    user: str
    timestamp: Optional[datetime]
    request: str
    status: str
    size: int
    referer: str = ""
    agent: str = ""

    # secondary fields, each defaulted on its own
    remote_logname: str = ""
    local_address: str = ""
    client_address: str = ""
    bytes_excluding_headers: int = 0
    bytes_received: int = 0
    bytes_transferred: int = 0
    serve_time_us: int = 0
    serve_time_s: int = 0
    filename: str = ""
    protocol: str = ""
    keepalive_requests: int = 0
    error_log_id: str = ERROR_LOG_ID_DEFAULT
    method: str = ""
    process_id: int = 0
    port: int = 0
    query: str = ""
    handler: str = ""
    url: str = ""
    canonical_server_name: str = ""
    server_name: str = ""
    connection_status: str = CONNECTION_STATUS_UNKNOWN

    @property
    def request_method(self) -> str:
        """First token of the request line, e.g. 'GET'."""
        parts = self.request.split()
        return parts[0] if parts else ""

    @property
    def request_path(self) -> str:
        """
        Requested resource of the request line.
        'GET /index.html HTTP/1.1' -> '/index.html'. Falls back to %U, then
        to the raw request line when it has no method.
        """
        parts = self.request.split()
        if len(parts) >= 2:
            return parts[1]
        if self.url:
            return self.url
        return self.request


def _raw(fields: Sequence[str], spec: FormatSpec, *directives: Directive) -> Optional[str]:
    """Raw value of the first directive (in preference order) present in the spec."""
    for directive in directives:
        pos = spec.position(directive)
        if pos is not None:
            return fields[pos]
    return None


def _present(spec: FormatSpec, *directives: Directive) -> Optional[Directive]:
    for directive in directives:
        if directive in spec:
            return directive
    return None


def _text(fields: Sequence[str], spec: FormatSpec, *directives: Directive) -> str:
    value = _raw(fields, spec, *directives)
    return "" if value is None else value


def _int(fields: Sequence[str], spec: FormatSpec, directive: Directive) -> int:
    value = _raw(fields, spec, directive)
    if value is None:
        return 0
    try:
        return int(value, 10)
    except ValueError:
        return 0


def parse_timestamp(
    value: str,
    input_date_format: str = DEFAULT_INPUT_DATE_FORMAT,
    *,
    assume_tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Parse an access-log timestamp like: 10/Oct/2000:13:55:36 -0700
    Returns a timezone-aware datetime, keeping the offset it was logged with.
    """
    ts = datetime.strptime(value, input_date_format)
    if ts.tzinfo is None:
        # no %z in the pattern: the log was written in local (or assumed) time
        ts = ts.replace(tzinfo=assume_tz) if assume_tz is not None else ts.astimezone()
    return ts


def _bind_address(fields: Sequence[str], spec: FormatSpec) -> str:
    directive = _present(spec, Directive.REMOTE_HOST, Directive.CLIENT_ADDRESS)
    if directive is None:
        return ""
    value = fields[spec.position(directive)]
    if not value or any(ch.isspace() for ch in value):
        raise FieldParseError(directive, ValueError("empty or invalid address"), value)
    return value


def _bind_timestamp(
    fields: Sequence[str],
    spec: FormatSpec,
    input_date_format: str,
    assume_tz: Optional[tzinfo],
) -> Optional[datetime]:
    if Directive.TIME not in spec:
        return None
    value = fields[spec.position(Directive.TIME)]
    try:
        return parse_timestamp(value, input_date_format, assume_tz=assume_tz)
    except ValueError as e:
        raise FieldParseError(Directive.TIME, e, value) from e


def _bind_size(fields: Sequence[str], spec: FormatSpec) -> int:
    directive = _present(spec, Directive.BYTES_SENT, Directive.BYTES_CLF, Directive.BYTES)
    if directive is None:
        return 0
    value = fields[spec.position(directive)]
    # %b writes '-' instead of 0
    if value == PLACEHOLDER:
        return 0
    try:
        size = int(value, 10)
    except ValueError as e:
        raise FieldParseError(directive, e, value) from e
    if size < 0:
        raise FieldParseError(directive, ValueError("negative size"), value)
    return size


def _connection_status(fields: Sequence[str], spec: FormatSpec) -> str:
    value = _raw(fields, spec, Directive.CONNECTION_STATUS)
    if value is None or len(value) != 1:
        return CONNECTION_STATUS_UNKNOWN
    return value


def bind(
    raw_fields: Sequence[str],
    spec: FormatSpec,
    input_date_format: str = DEFAULT_INPUT_DATE_FORMAT,
    *,
    assume_tz: Optional[tzinfo] = None,
) -> Entry:
    """
    Build an Entry from tokenized fields.

    Raises FieldParseError when the address, timestamp or size is present
    in the format but unparsable.
    """
    if len(raw_fields) != len(spec):
        raise ValueError(f"Got {len(raw_fields)} fields for a {len(spec)} directive format")

    fields: List[str] = list(raw_fields)
    error_log_id = _raw(fields, spec, Directive.ERROR_LOG_ID)

    return Entry(
        ip=_bind_address(fields, spec),
        user=_text(fields, spec, Directive.USER),
        timestamp=_bind_timestamp(fields, spec, input_date_format, assume_tz),
        request=_text(fields, spec, Directive.REQUEST),
        status=_text(fields, spec, Directive.FINAL_STATUS, Directive.STATUS),
        size=_bind_size(fields, spec),
        referer=_text(fields, spec, Directive.REFERER),
        agent=_text(fields, spec, Directive.USER_AGENT),
        remote_logname=_text(fields, spec, Directive.REMOTE_LOGNAME),
        local_address=_text(fields, spec, Directive.LOCAL_ADDRESS),
        client_address=_text(fields, spec, Directive.CLIENT_ADDRESS),
        bytes_excluding_headers=_int(fields, spec, Directive.BYTES),
        bytes_received=_int(fields, spec, Directive.BYTES_RECEIVED),
        bytes_transferred=_int(fields, spec, Directive.BYTES_TRANSFERRED),
        serve_time_us=_int(fields, spec, Directive.SERVE_TIME_US),
        serve_time_s=_int(fields, spec, Directive.SERVE_TIME_S),
        filename=_text(fields, spec, Directive.FILENAME),
        protocol=_text(fields, spec, Directive.PROTOCOL),
        keepalive_requests=_int(fields, spec, Directive.KEEPALIVE),
        error_log_id=error_log_id if error_log_id else ERROR_LOG_ID_DEFAULT,
        method=_text(fields, spec, Directive.METHOD),
        process_id=_int(fields, spec, Directive.PROCESS_ID),
        port=_int(fields, spec, Directive.PORT),
        query=_text(fields, spec, Directive.QUERY),
        handler=_text(fields, spec, Directive.HANDLER),
        url=_text(fields, spec, Directive.URL),
        canonical_server_name=_text(fields, spec, Directive.CANONICAL_SERVER_NAME),
        server_name=_text(fields, spec, Directive.SERVER_NAME),
        connection_status=_connection_status(fields, spec),
    )

"""
metrics.py

Computes the report values that get substituted into the HTML template.

This module takes the filtered Entry collection produced by the ingestion
pipeline and answers report keys: scalar keys ("overall-visits",
"first-visit", ...) render to a plain string, table keys ("hourly-table",
"ip-table", ...) render to a fragment of <tr> rows, and average keys
("monthly-avg-visits", ...) render the footer value of a table.

These values are deterministic and repeatable. A report whose directives
are missing from the log format degrades to zero/empty output; an unknown
key renders "(INVALID KEY)".
"""

from __future__ import annotations

import calendar
import html
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from logstats.config import ReportConfig, __version__
from logstats.ingest.binder import Entry
from logstats.ingest.normalize import entries_to_frame
from logstats.tools.aggregate import (
    AGENTS,
    DAY_OF_MONTH,
    DAYS_OF_WEEK,
    FILENAMES,
    HOURLY,
    IP,
    METHODS,
    MONTHLY,
    PAGES,
    QUERIES,
    REFERERS,
    RESPONSES,
    SERVERS,
    USERS,
    YEARLY,
    AggregateRow,
    AggregateTable,
    Dimension,
    aggregate,
)
from logstats.tools.formatting import (
    display_value,
    format_date,
    format_percent,
    human_readable_bytes,
    whois_link,
)

logger = logging.getLogger(__name__)

INVALID_KEY = "(INVALID KEY)"

TABLE_DIMENSIONS: Dict[str, Dimension] = {
    "yearly-table": YEARLY,
    "monthly-table": MONTHLY,
    "day-of-month-table": DAY_OF_MONTH,
    "days-of-week-table": DAYS_OF_WEEK,
    "hourly-table": HOURLY,
    "ip-table": IP,
    "users-table": USERS,
    "user-agent-table": AGENTS,
    "pages-table": PAGES,
    "methods-table": METHODS,
    "referers-table": REFERERS,
    "responses-table": RESPONSES,
    "filenames-table": FILENAMES,
    "queries-table": QUERIES,
    "servers-table": SERVERS,
}

# key spellings used by older templates
ALIASES = {
    "yearly-rows": "yearly-table",
    "monthly-rows": "monthly-table",
    "day-of-month-rows": "day-of-month-table",
    "days-of-week-rows": "days-of-week-table",
    "hourly-rows": "hourly-table",
    "ip-rows": "ip-table",
    "users-rows": "users-table",
    "agents-rows": "user-agent-table",
    "pages-rows": "pages-table",
    "referers-rows": "referers-table",
    "responses-rows": "responses-table",
}

AVERAGE_KEYS = {
    "yearly-avg-visitors": (YEARLY, "visitors"),
    "yearly-avg-visits": (YEARLY, "hits"),
    "yearly-avg-bandwidth": (YEARLY, "bytes"),
    "monthly-avg-visitors": (MONTHLY, "visitors"),
    "monthly-avg-visits": (MONTHLY, "hits"),
    "monthly-avg-bandwidth": (MONTHLY, "bytes"),
    "day-of-month-avg-visitors": (DAY_OF_MONTH, "visitors"),
    "day-of-month-avg-visits": (DAY_OF_MONTH, "hits"),
    "day-of-month-avg-bandwidth": (DAY_OF_MONTH, "bytes"),
    "days-of-week-avg-visits": (DAYS_OF_WEEK, "hits"),
    "days-of-week-avg-bandwidth": (DAYS_OF_WEEK, "bytes"),
    "hourly-avg-visits": (HOURLY, "hits"),
    "hourly-avg-bandwidth": (HOURLY, "bytes"),
}


def _cell(value: str) -> str:
    return f"<td>{value}</td>"


def _tr(cells: Iterable[str]) -> str:
    return "<tr>" + "".join(_cell(c) for c in cells) + "</tr>"


def _temporal_label(dimension: Dimension, key) -> str:
    if dimension is MONTHLY:
        return calendar.month_abbr[key]
    if dimension is DAYS_OF_WEEK:
        return calendar.day_abbr[key]
    if dimension is HOURLY:
        return f"{key:02d}"
    return str(key)


class Report:
    """
    Lazily computes report values for one Entry collection.

    The entry frame is built once and each dimension is aggregated at most
    once, however many keys refer to it.
    """

    def __init__(self, entries: Sequence[Entry], config: Optional[ReportConfig] = None):
        self.entries = list(entries)
        self.config = config or ReportConfig()
        self._frame: Optional[pd.DataFrame] = None
        self._tables: Dict[str, AggregateTable] = {}
        self._scalars: Dict[str, Callable[[], str]] = {
            "generated-date": self.generated_date,
            "first-visit": self.first_visit,
            "latest-visit": self.latest_visit,
            "overall-visitors": lambda: str(self.frame["ip"].nunique()),
            "overall-visits": lambda: str(len(self.entries)),
            "overall-bandwidth": lambda: human_readable_bytes(int(self.frame["size"].sum())),
            "footer": self.footer,
        }

    def keys(self) -> List[str]:
        """Every report key this renderer answers, scalars first."""
        return list(self._scalars) + list(TABLE_DIMENSIONS) + list(AVERAGE_KEYS)

    @property
    def frame(self) -> pd.DataFrame:
        if self._frame is None:
            self._frame = entries_to_frame(self.entries, self.config.timezone)
        return self._frame

    def table(self, dimension: Dimension) -> AggregateTable:
        if dimension.name not in self._tables:
            self._tables[dimension.name] = aggregate(
                self.frame, dimension, tz=self.config.timezone
            )
        return self._tables[dimension.name]

    # --- scalars ---

    def _date(self, ts: Optional[datetime]) -> str:
        return format_date(ts, self.config.output_date_format, self.config.timezone)

    def generated_date(self) -> str:
        return self._date(datetime.now().astimezone())

    def first_visit(self) -> str:
        times = [e.timestamp for e in self.entries if e.timestamp is not None]
        return self._date(min(times)) if times else ""

    def latest_visit(self) -> str:
        times = [e.timestamp for e in self.entries if e.timestamp is not None]
        return self._date(max(times)) if times else ""

    def footer(self) -> str:
        return f'<span class="ls-footer">logstats {__version__}</span>'

    def average(self, dimension: Dimension, metric: str) -> str:
        """Footer average of a table; '' when the table has no observed key."""
        table = self.table(dimension)
        if metric == "visitors":
            value = table.avg_visitors
        elif metric == "hits":
            value = table.avg_hits
        else:
            value = table.avg_bytes
        if value is None:
            return ""
        if metric == "bytes":
            return human_readable_bytes(value)
        return str(value)

    # --- tables ---

    def _text(self, field: str, value: str) -> str:
        rule = self.config.rule(field)
        return display_value(value, rule.length, rule.display)

    def _limited(self, rows: List[AggregateRow]) -> List[AggregateRow]:
        limit = self.config.table_limit
        return rows if limit is None else rows[:limit]

    def _temporal_rows(self, table: AggregateTable) -> str:
        out = []
        for row in table:
            out.append(
                _tr(
                    [
                        _temporal_label(table.dimension, row.key),
                        str(row.visitors),
                        str(row.hits),
                        format_percent(row.hit_percent),
                        human_readable_bytes(row.bytes),
                        format_percent(row.byte_percent),
                    ]
                )
            )
        return "".join(out)

    def _label(self, dimension: Dimension, key: str) -> str:
        if dimension is IP:
            return whois_link(key, self.config.whois_url)
        if dimension is AGENTS:
            return self._text("agent", key)
        if dimension is PAGES:
            return self._text("request", key)
        if dimension is FILENAMES:
            return self._text("filename", key)
        if dimension is QUERIES:
            return self._text("query", key)
        if dimension is REFERERS:
            return self._text("referer", key)
        return html.escape(key)

    def _categorical_rows(self, table: AggregateTable) -> str:
        dimension = table.dimension
        out = []
        for row in self._limited(table.rows):
            cells = [
                self._label(dimension, row.key),
                str(row.hits),
                format_percent(row.hit_percent),
            ]
            if dimension in (IP, USERS, PAGES):
                cells += [
                    human_readable_bytes(row.bytes),
                    format_percent(row.byte_percent),
                    self._date(row.latest),
                ]
            else:
                cells.append(str(row.visitors))
            out.append(_tr(cells))
        return "".join(out)

    def render_table(self, key: str) -> str:
        table = self.table(TABLE_DIMENSIONS[key])
        if table.dimension.temporal:
            return self._temporal_rows(table)
        return self._categorical_rows(table)

    # --- entry point ---

    def get(self, key: str) -> str:
        key = ALIASES.get(key, key)
        if key in self._scalars:
            return self._scalars[key]()
        if key in TABLE_DIMENSIONS:
            return self.render_table(key)
        if key in AVERAGE_KEYS:
            dimension, metric = AVERAGE_KEYS[key]
            return self.average(dimension, metric)
        logger.warning("Unknown report key: %s", key)
        return INVALID_KEY


def get_output(key: str, entries: Sequence[Entry], config: Optional[ReportConfig] = None) -> str:
    """Render a single report key for `entries`."""
    return Report(entries, config).get(key)


def build_report(
    entries: Sequence[Entry],
    config: Optional[ReportConfig] = None,
    keys: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """
    Render several report keys at once (every known key by default).
    The returned dict maps key -> rendered string.
    """
    report = Report(entries, config)
    if keys is None:
        keys = report.keys()
    return {key: report.get(key) for key in keys}

"""
aggregate.py

Groups access-log entries along one report dimension and computes per-group
metrics.

Every report table (hourly, monthly, per client address, per user agent,
...) is the same computation with a different Dimension:
- the grouping key: a column of the entry frame or a function of the Entry
- an optional fixed key domain (e.g. hours 0-23); keys never observed are
  still emitted as zero rows
- the ordering policy: natural key order, or descending hit count where
  equal counts keep the order in which their key was first seen

For each key the engine reports hits, distinct visitors (client addresses),
bytes, hit/byte percentages, the latest timestamp and the average bytes per
hit. Table footers get the averages per observed key.

The engine never fails on data: empty collections, single keys and
zero-byte entries are all valid, and every division is guarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

import pandas as pd

from logstats.ingest.binder import Entry
from logstats.ingest.normalize import entries_to_frame
from logstats.tools.formatting import percent, safe_div


class Ordering(Enum):
    NATURAL = "natural"
    BY_HITS = "by_hits"


@dataclass(frozen=True)
class Dimension:
    """
    How to group entries for one report table.

    `key` names a column of the entry frame, or is a function from Entry to
    the grouping key (None leaves the entry out of this table).
    """

    name: str
    key: Union[str, Callable[[Entry], Any]]
    domain: Optional[Tuple[Any, ...]] = None
    ordering: Ordering = Ordering.BY_HITS
    temporal: bool = False


@dataclass(frozen=True)
class AggregateRow:
    key: Any
    hits: int
    visitors: int
    bytes: int
    hit_percent: float
    byte_percent: float
    latest: Optional[datetime] = None
    avg_bytes: float = 0.0


@dataclass
class AggregateTable:
    dimension: Dimension
    rows: List[AggregateRow] = field(default_factory=list)
    total_hits: int = 0
    total_bytes: int = 0
    # footer averages over observed keys; None when nothing was observed
    avg_visitors: Optional[int] = None
    avg_hits: Optional[int] = None
    avg_bytes: Optional[float] = None

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def observed_keys(self) -> int:
        return sum(1 for r in self.rows if r.hits)


YEARLY = Dimension("yearly", "year", ordering=Ordering.NATURAL, temporal=True)
MONTHLY = Dimension(
    "monthly", "month", domain=tuple(range(1, 13)), ordering=Ordering.NATURAL, temporal=True
)
DAY_OF_MONTH = Dimension(
    "day-of-month", "day", domain=tuple(range(1, 32)), ordering=Ordering.NATURAL, temporal=True
)
DAYS_OF_WEEK = Dimension(
    "days-of-week", "weekday", domain=tuple(range(7)), ordering=Ordering.NATURAL, temporal=True
)
HOURLY = Dimension(
    "hourly", "hour", domain=tuple(range(24)), ordering=Ordering.NATURAL, temporal=True
)

IP = Dimension("ip", "ip")
USERS = Dimension("users", "user")
AGENTS = Dimension("user-agent", "agent")
PAGES = Dimension("pages", "path")
METHODS = Dimension("methods", "method")
REFERERS = Dimension("referers", "referer")
RESPONSES = Dimension("responses", "status")
FILENAMES = Dimension("filenames", "filename")
QUERIES = Dimension("queries", "query")
SERVERS = Dimension("servers", "server")

DIMENSIONS = {
    d.name: d
    for d in (
        YEARLY,
        MONTHLY,
        DAY_OF_MONTH,
        DAYS_OF_WEEK,
        HOURLY,
        IP,
        USERS,
        AGENTS,
        PAGES,
        METHODS,
        REFERERS,
        RESPONSES,
        FILENAMES,
        QUERIES,
        SERVERS,
    )
}


def _python_key(value: Any) -> Any:
    # numpy / nullable integer scalars -> plain int
    if hasattr(value, "item"):
        return value.item()
    return value


def _latest(value: Any) -> Optional[datetime]:
    if value is None or pd.isna(value):
        return None
    return value.to_pydatetime()


def _group(df: pd.DataFrame, key: Union[str, Callable[[Entry], Any]]) -> pd.DataFrame:
    """
    Per-key hits / visitors / bytes / latest, keys in first-seen order.

    `key` is a frame column, or a function applied to each row's Entry.
    """
    if callable(key):
        df = df.assign(_key=df["entry"].map(key))
        key = "_key"
    elif key not in df.columns:
        raise KeyError(f"Unknown dimension key column: {key}")

    sub = df[df[key].notna()]
    if sub.empty:
        return pd.DataFrame(
            {"hits": [], "visitors": [], "bytes": [], "latest": []},
        )

    grouped = sub.groupby(key, sort=False)
    return pd.DataFrame(
        {
            "hits": grouped.size(),
            "visitors": grouped["ip"].nunique(),
            "bytes": grouped["size"].sum(),
            "latest": grouped["timestamp"].max(),
        }
    )


def aggregate(
    entries: Union[Iterable[Entry], pd.DataFrame],
    dimension: Dimension,
    *,
    tz: Optional[tzinfo] = None,
) -> AggregateTable:
    """
    Aggregate entries (or a frame from entries_to_frame) along `dimension`.

    Percentages are relative to the entries that have a key for this
    dimension, so every table's hits add up to its total.
    """
    df = entries if isinstance(entries, pd.DataFrame) else entries_to_frame(entries, tz)
    g = _group(df, dimension.key)

    total_hits = int(g["hits"].sum()) if len(g) else 0
    total_bytes = int(g["bytes"].sum()) if len(g) else 0
    observed = len(g)

    if dimension.domain is not None:
        keys = list(dimension.domain)
        # keys outside the domain can't happen for calendar fields, keep them anyway
        keys += [k for k in (_python_key(k) for k in g.index) if k not in dimension.domain]
    elif dimension.ordering is Ordering.NATURAL:
        keys = sorted(_python_key(k) for k in g.index)
    else:
        # sorted() is stable: equal hit counts stay in first-seen order
        hits_by_key = {_python_key(k): int(v) for k, v in g["hits"].items()}
        keys = sorted(hits_by_key, key=lambda k: -hits_by_key[k])

    stats = {_python_key(k): row for k, row in g.iterrows()}

    rows: List[AggregateRow] = []
    for key in keys:
        row = stats.get(key)
        if row is None:
            rows.append(AggregateRow(key=key, hits=0, visitors=0, bytes=0,
                                     hit_percent=0.0, byte_percent=0.0))
            continue
        hits = int(row["hits"])
        size = int(row["bytes"])
        rows.append(
            AggregateRow(
                key=key,
                hits=hits,
                visitors=int(row["visitors"]),
                bytes=size,
                hit_percent=percent(hits, total_hits),
                byte_percent=percent(size, total_bytes),
                latest=_latest(row["latest"]),
                avg_bytes=safe_div(size, hits),
            )
        )

    table = AggregateTable(
        dimension=dimension,
        rows=rows,
        total_hits=total_hits,
        total_bytes=total_bytes,
    )
    if observed:
        table.avg_visitors = int(g["visitors"].sum()) // observed
        table.avg_hits = total_hits // observed
        table.avg_bytes = total_bytes / observed
    return table


def aggregate_all(
    entries: Iterable[Entry],
    dimensions: Iterable[Dimension],
    *,
    tz: Optional[tzinfo] = None,
) -> dict:
    """Aggregate the same entries along several dimensions, building the frame once."""
    df = entries_to_frame(entries, tz)
    return {d.name: aggregate(df, d, tz=tz) for d in dimensions}

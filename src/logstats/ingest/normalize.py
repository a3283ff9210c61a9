"""
normalize.py

Cleans parsed access-log entries and lays them out for aggregation.

Two steps happen here:
- loopback traffic (localhost, 127.x, ::1) is dropped, since requests the
  server makes to itself say nothing about its visitors
- the surviving entries are turned into a pandas DataFrame with one row per
  request and one column per grouping key, so every report dimension can be
  computed with the same groupby

Calendar columns (year, month, day, weekday, hour) are taken in the local
time zone (or the one passed in), not in the offset the line was logged
with. Entries without a timestamp get NA there and drop out of the time
based reports only.

This module contains no report logic and is intentionally deterministic.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from datetime import tzinfo
from typing import Iterable, List, Optional

import pandas as pd

from logstats.ingest.binder import Entry

logger = logging.getLogger(__name__)

# 127.0.0.1, 127.0.1, 127.1 and bare 127 all resolve to loopback
_IPV4_LOOPBACK_RE = re.compile(r"^127(\.\d{1,3}){0,3}$")

CALENDAR_COLUMNS = ["year", "month", "day", "weekday", "hour"]

FRAME_COLUMNS = [
    "ip",
    "user",
    "request",
    "method",
    "path",
    "status",
    "size",
    "referer",
    "agent",
    "filename",
    "query",
    "server",
    "timestamp",
    "entry",
] + CALENDAR_COLUMNS


def is_local_address(address: str) -> bool:
    """True for localhost, IPv4 loopback (with elided octets) and IPv6 ::1."""
    address = address.strip()
    if address.lower() == "localhost":
        return True
    if _IPV4_LOOPBACK_RE.match(address):
        return True
    if ":" in address:
        try:
            return ipaddress.IPv6Address(address.strip("[]")) == ipaddress.IPv6Address("::1")
        except ValueError:
            return False
    return False


def filter_local(entries: Iterable[Entry]) -> List[Entry]:
    """Drop every entry whose client address is loopback/local."""
    kept: List[Entry] = []
    dropped = 0
    for entry in entries:
        if is_local_address(entry.ip):
            dropped += 1
            continue
        kept.append(entry)
    if dropped:
        logger.info("Dropped %d local entries", dropped)
    return kept


def entries_to_frame(entries: Iterable[Entry], tz: Optional[tzinfo] = None) -> pd.DataFrame:
    """
    One row per entry, in input order.

    Columns:
      - ip, user, request, method, path, status, referer, agent, filename,
        query, server (string)
      - size (int)
      - timestamp (datetime64[ns, UTC], NaT when absent)
      - year, month, day, weekday, hour (Int64, local calendar, NA when absent)
      - entry (the Entry itself, for dimensions keyed by a function)
    """
    rows = []
    for entry in entries:
        local = entry.timestamp.astimezone(tz) if entry.timestamp is not None else None
        rows.append(
            {
                "ip": entry.ip,
                "user": entry.user,
                "request": entry.request,
                "method": entry.request_method,
                "path": entry.request_path,
                "status": entry.status,
                "size": entry.size,
                "referer": entry.referer,
                "agent": entry.agent,
                "filename": entry.filename,
                "query": entry.query,
                "server": entry.canonical_server_name or entry.server_name,
                "timestamp": entry.timestamp,
                "entry": entry,
                "year": local.year if local else None,
                "month": local.month if local else None,
                "day": local.day if local else None,
                # Monday = 0
                "weekday": local.weekday() if local else None,
                "hour": local.hour if local else None,
            }
        )

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)

    # Normalize types (an empty frame still gets the right dtypes)
    df["size"] = pd.to_numeric(df["size"]).fillna(0).astype("int64")
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    for c in CALENDAR_COLUMNS:
        df[c] = df[c].astype("Int64")
    return df

"""
validate_ingest.py

Simple script to check that log parsing and loopback filtering work.

This script loads the sample access log, runs it through the parser and
the local-address filter, and prints basic information about the results
(e.g., number of entries, time range, status code counts).

This is not a test suite and does not use assertions.
"""

from logstats.ingest.access_log import parse_lines
from logstats.ingest.format_spec import FORMATS
from logstats.ingest.normalize import entries_to_frame, filter_local

with open("examples/sample_access.log", "r", encoding="utf-8", errors="replace") as f:
    raw, rep = parse_lines(f, FORMATS["combined"])
entries = filter_local(raw)
df = entries_to_frame(entries)

print("=== Ingest Report ===")
print(rep)
print("skipped by kind:", rep.skipped_by_kind())

print("\n=== Head ===")
print(df.drop(columns="entry").head())

print("\n=== Dtypes ===")
print(df.dtypes)

print("\n=== Basic Sanity ===")
print("entries:", len(entries), "local dropped:", len(raw) - len(entries))
print("time range:", df["timestamp"].min(), "->", df["timestamp"].max())
print("unique IPs:", df["ip"].nunique())
print("status counts:\n", df["status"].value_counts().sort_index())

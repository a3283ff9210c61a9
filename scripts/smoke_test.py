"""
smoke_test.py

Quick sanity check for the ingestion + aggregation pipeline.

This script parses the sample access log, drops local traffic and
aggregates a couple of dimensions, asserting a few basic invariants:
- parsing produces entries and reports the broken line
- loopback addresses never reach a table
- hourly rows cover the whole day and add up to the entry count
"""

from logstats.ingest.access_log import parse_lines
from logstats.ingest.format_spec import FORMATS
from logstats.ingest.normalize import filter_local
from logstats.tools.aggregate import HOURLY, IP, aggregate

with open("examples/sample_access.log", "r", encoding="utf-8") as f:
    raw, rep = parse_lines(f, FORMATS["combined"])
entries = filter_local(raw)

assert len(entries) > 0
assert rep.skipped_count == 1

hourly = aggregate(entries, HOURLY)
assert [r.key for r in hourly] == list(range(24))
assert sum(r.hits for r in hourly) == len(entries)

ips = [r.key for r in aggregate(entries, IP)]
assert "127.0.0.1" not in ips and "::1" not in ips

"""
This script is a quick sanity check for the access log parser.

It loads the sample access log, runs it through the tokenizer and field
binder, and prints the first entries plus the skipped-line report.

The goal is to verify that:
- log lines are being split into the right fields
- timestamps and sizes have the expected types
- malformed lines are skipped with their line numbers

This script is for local development and debugging only.
"""

import logging

from logstats.ingest.access_log import parse_lines
from logstats.ingest.format_spec import FORMATS, resolve_format

logging.basicConfig(level=logging.INFO)

spec = resolve_format(FORMATS["combined"])
with open("examples/sample_access.log", "r", encoding="utf-8", errors="replace") as f:
    entries, report = parse_lines(f, spec)

for entry in entries[:10]:
    print(entry.ip, entry.timestamp, entry.request_method, entry.request_path, entry.status, entry.size)
print("Rows:", len(entries))
print("Skipped:", report.skipped)

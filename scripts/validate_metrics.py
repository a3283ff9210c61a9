import json
from pathlib import Path

from logstats.config import ReportConfig
from logstats.ingest.access_log import parse_lines
from logstats.ingest.normalize import filter_local
from logstats.tools.metrics import build_report

LOG_PATH = "examples/sample_access.log"

config = ReportConfig.from_mapping(
    {
        "log-format": "combined",
        "output-date-format": "%d %b %Y %H:%M",
        "whois-tool": "https://who.is/whois-ip/ip-address/<address>",
    }
)

with open(LOG_PATH, "r", encoding="utf-8", errors="replace") as f:
    raw, rep = parse_lines(f, config.resolved_log_format, config.input_date_format)
entries = filter_local(raw)

report = build_report(entries, config)

out_path = Path("artifacts")
out_path.mkdir(exist_ok=True)
with open(out_path / "report.json", "w", encoding="utf-8") as f:
    json.dump(report, f, indent=2)

print("Wrote artifacts/report.json")
print("overall-visits:", report["overall-visits"])
print("overall-visitors:", report["overall-visitors"])
print("overall-bandwidth:", report["overall-bandwidth"])
print("first/latest:", report["first-visit"], "->", report["latest-visit"])
print("skipped lines:", [(s.line_no, s.kind) for s in rep.skipped])

"""
config.py

Options consumed by the parser and the report renderer.

Loading the configuration file is left to the surrounding program; it
hands over whatever mapping it loaded and ReportConfig.from_mapping picks
out the options logstats understands (hyphenated names, as in the config
file).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import timedelta, timezone, tzinfo
from typing import Any, Dict, Mapping, Optional

from logstats.errors import ConfigError
from logstats.ingest.binder import DEFAULT_INPUT_DATE_FORMAT
from logstats.ingest.format_spec import FORMATS
from logstats.tools.formatting import DISPLAY_HOVER, DISPLAY_POLICIES

__version__ = "0.1.0"

DEFAULT_OUTPUT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class TruncateRule:
    """
    length:
      Max characters shown before '...'; None disables truncation.
    display:
      How the full value stays reachable: 'hover', 'click' or 'none'.
    """
    length: Optional[int] = 50
    display: str = DISPLAY_HOVER


def _default_truncation() -> Dict[str, TruncateRule]:
    return {
        "agent": TruncateRule(),
        "request": TruncateRule(),
        "referer": TruncateRule(),
        "filename": TruncateRule(),
        "query": TruncateRule(),
    }


@dataclass(frozen=True)
class ReportConfig:
    """
    log_format:
      Apache LogFormat string (or a preset name from FORMATS).
    input_date_format / output_date_format:
      strptime / strftime patterns for parsing and rendering timestamps.
    timezone:
      Zone for calendar buckets and rendered dates; None = system local.
    truncation:
      Per long-text field ('agent', 'request', 'referer', 'filename', 'query').
    whois_url:
      URL template for client address rows; '<address>' is substituted.
    table_limit:
      Max rows rendered for open-ended tables; None = all.
    """
    log_format: str = FORMATS["combined"]
    input_date_format: str = DEFAULT_INPUT_DATE_FORMAT
    output_date_format: str = DEFAULT_OUTPUT_DATE_FORMAT
    timezone: Optional[tzinfo] = None
    truncation: Dict[str, TruncateRule] = field(default_factory=_default_truncation)
    whois_url: Optional[str] = None
    table_limit: Optional[int] = None

    def __post_init__(self):
        for name, rule in self.truncation.items():
            if rule.display not in DISPLAY_POLICIES:
                raise ConfigError(
                    f"Invalid display policy for {name}: {rule.display!r} "
                    f"(expected one of {DISPLAY_POLICIES})"
                )
            if rule.length is not None and rule.length < 0:
                raise ConfigError(f"Negative truncate length for {name}: {rule.length}")
        if self.table_limit is not None and self.table_limit < 0:
            raise ConfigError(f"Negative table limit: {self.table_limit}")

    @property
    def resolved_log_format(self) -> str:
        return FORMATS.get(self.log_format, self.log_format)

    def rule(self, name: str) -> TruncateRule:
        return self.truncation.get(name, TruncateRule(length=None))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "ReportConfig":
        """
        Build a config from loaded options, e.g.

            {"log-format": "combined",
             "input-date-format": "%d/%b/%Y:%H:%M:%S %z",
             "truncate": {"agent": {"length": 40, "display": "click"}},
             "whois-tool": "https://who.is/whois-ip/ip-address/<address>"}

        Unknown keys are ignored.
        """
        kwargs: Dict[str, Any] = {}
        simple = {
            "log-format": "log_format",
            "input-date-format": "input_date_format",
            "output-date-format": "output_date_format",
            "whois-tool": "whois_url",
            "table-limit": "table_limit",
        }
        for key, attr in simple.items():
            if options.get(key) is not None:
                kwargs[attr] = options[key]

        if options.get("utc-offset-minutes") is not None:
            try:
                minutes = int(options["utc-offset-minutes"])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid utc-offset-minutes: {options['utc-offset-minutes']!r}") from e
            kwargs["timezone"] = timezone(timedelta(minutes=minutes))

        truncate = options.get("truncate") or {}
        if not isinstance(truncate, Mapping):
            raise ConfigError("'truncate' must be a mapping of field name -> rule")
        rules = _default_truncation()
        for name, spec in truncate.items():
            if not isinstance(spec, Mapping):
                raise ConfigError(f"Truncate rule for {name} must be a mapping")
            known = {f.name for f in fields(TruncateRule)}
            values = {k: v for k, v in spec.items() if k in known}
            if values.get("length") is not None:
                try:
                    values["length"] = int(values["length"])
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid truncate length for {name}: {values['length']!r}") from e
            rules[name] = replace(rules.get(name, TruncateRule()), **values)
        kwargs["truncation"] = rules

        return cls(**kwargs)

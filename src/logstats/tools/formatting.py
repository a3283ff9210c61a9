"""
formatting.py

Deterministic renderers shared by every report table: byte sizes,
percentages, dates and (HTML escaped) long text cells.
"""

from __future__ import annotations

import html
from datetime import datetime, tzinfo
from decimal import ROUND_DOWN, Decimal
from typing import Optional, Union

UNITS = ["", "k", "M", "G", "T", "P", "E", "Z", "Y"]

DISPLAY_HOVER = "hover"
DISPLAY_CLICK = "click"
DISPLAY_NONE = "none"
DISPLAY_POLICIES = (DISPLAY_HOVER, DISPLAY_CLICK, DISPLAY_NONE)

ADDRESS_PLACEHOLDER = "<address>"
ELLIPSIS = "..."


def human_readable_bytes(size: Union[int, float]) -> str:
    """
    1500000 -> '1.50 MB'. Decimal (SI) units; values are truncated, not
    rounded, so 999999 stays '999.99 kB'.
    """
    b = Decimal(size)
    magnitude = 0
    while abs(b) > 1000 and magnitude < len(UNITS) - 1:
        b /= 1000
        magnitude += 1

    if magnitude == 0:
        return f"{b.to_integral_value(rounding=ROUND_DOWN)} B"
    return f"{b.quantize(Decimal('0.01'), rounding=ROUND_DOWN)} {UNITS[magnitude]}B"


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def percent(part: float, total: float) -> float:
    """part / total * 100, 0.0 when total is 0."""
    return safe_div(part, total) * 100


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def format_date(
    ts: Optional[datetime],
    output_date_format: str,
    tz: Optional[tzinfo] = None,
) -> str:
    """Render a timestamp in the local (or given) zone; '' for a missing one."""
    if ts is None:
        return ""
    return ts.astimezone(tz).strftime(output_date_format)


def truncate(text: str, length: Optional[int]) -> str:
    if length is None or length <= 0 or len(text) <= length:
        return text
    return text[:length] + ELLIPSIS


def display_value(text: str, length: Optional[int], policy: str = DISPLAY_HOVER) -> str:
    """
    HTML for a possibly long value. If truncated, 'hover' keeps the full
    value in a title attribute, 'click' in a <details> element, 'none' drops it.
    """
    short = truncate(text, length)
    if short == text:
        return html.escape(text)
    if policy == DISPLAY_HOVER:
        return f'<span title="{html.escape(text)}">{html.escape(short)}</span>'
    if policy == DISPLAY_CLICK:
        return (
            f"<details><summary>{html.escape(short)}</summary>"
            f"{html.escape(text)}</details>"
        )
    return html.escape(short)


def whois_link(address: str, url_template: Optional[str]) -> str:
    """Link a client address to the configured whois tool, if any."""
    if not url_template:
        return html.escape(address)
    url = url_template.replace(ADDRESS_PLACEHOLDER, address)
    return f'<a href="{html.escape(url)}">{html.escape(address)}</a>'

"""
Tests for the shared renderers
"""

from datetime import datetime, timedelta, timezone

import pytest

from logstats.tools.formatting import (
    display_value,
    format_date,
    format_percent,
    human_readable_bytes,
    percent,
    truncate,
    whois_link,
)


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 B"),
        (999, "999 B"),
        (1000, "1000 B"),
        (1001, "1.00 kB"),
        (3000, "3.00 kB"),
        (999_999, "999.99 kB"),
        (1_500_000, "1.50 MB"),
        (2_340_000_000, "2.34 GB"),
        (1500.75, "1.50 kB"),
    ],
)
def test_human_readable_bytes(size, expected):
    assert human_readable_bytes(size) == expected


def test_huge_values_stay_in_yotta():
    assert human_readable_bytes(5 * 10**27).endswith(" YB")


class TestPercent:

    def test_percent(self):
        assert format_percent(percent(1, 3)) == "33.33%"

    def test_zero_total(self):
        assert percent(0, 0) == 0.0
        assert format_percent(percent(5, 0)) == "0.00%"


class TestText:

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc..."
        assert truncate("abc", 3) == "abc"
        assert truncate("abcdef", None) == "abcdef"

    def test_hover(self):
        assert display_value("abcdef", 3, "hover") == '<span title="abcdef">abc...</span>'

    def test_click(self):
        assert display_value("abcdef", 3, "click") == "<details><summary>abc...</summary>abcdef</details>"

    def test_none(self):
        assert display_value("abcdef", 3, "none") == "abc..."

    def test_short_values_are_escaped(self):
        assert display_value("<b>", 10, "hover") == "&lt;b&gt;"

    def test_whois_link(self):
        html = whois_link("1.2.3.4", "https://whois.example/<address>")
        assert html == '<a href="https://whois.example/1.2.3.4">1.2.3.4</a>'
        assert whois_link("1.2.3.4", None) == "1.2.3.4"


def test_format_date_converts_zone():
    ts = datetime(2023, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_date(ts, "%Y-%m-%d %H:%M", timezone.utc) == "2023-01-01 10:00"
    assert format_date(None, "%Y") == ""

"""
Tests for batch ingestion and loopback filtering
"""

from datetime import timezone

import pytest

from logstats.errors import TooManyMalformedLines
from logstats.ingest.access_log import parse_line, parse_lines
from logstats.ingest.format_spec import FORMATS
from logstats.ingest.normalize import entries_to_frame, filter_local, is_local_address


class TestParseLines:

    def test_parses_every_good_line(self, sample_lines):
        entries, report = parse_lines(sample_lines, FORMATS["combined"])
        assert len(entries) == 4
        assert report.input_lines == 4
        assert report.parsed == 4
        assert report.skipped == []

    def test_bad_lines_are_skipped_and_reported(self, sample_lines):
        lines = [sample_lines[0], "garbage", "", sample_lines[1].replace("01/Jan", "xx/Jan").replace("02/Jan", "xx/Jan")]
        entries, report = parse_lines(lines, FORMATS["combined"])

        assert len(entries) == 1
        assert report.input_lines == 3
        assert [(s.line_no, s.kind) for s in report.skipped] == [
            (2, "malformed_line"),
            (4, "field_parse"),
        ]
        assert report.skipped_by_kind() == {"malformed_line": 1, "field_parse": 1}

    def test_trailing_newlines_are_stripped(self, sample_lines):
        entries, _ = parse_lines([line + "\r\n" for line in sample_lines], FORMATS["combined"])
        assert entries[0].agent == "agent-a"

    def test_trailing_whitespace_is_stripped(self, sample_lines):
        entries, report = parse_lines([sample_lines[0] + " ", sample_lines[1] + " \t\n"], FORMATS["combined"])
        assert len(entries) == 2
        assert report.skipped == []
        assert entries[1].agent == "agent-a"

    def test_max_bad_lines(self):
        with pytest.raises(TooManyMalformedLines):
            parse_lines(["bad"] * 3, FORMATS["combined"], max_bad_lines=2)

    def test_skips_are_logged(self, caplog):
        with caplog.at_level("WARNING"):
            parse_lines(["bad line"], FORMATS["combined"])
        assert "Skipping line 1" in caplog.text

    def test_parse_line_with_resolved_spec(self, combined_line, combined_spec):
        assert parse_line(combined_line, combined_spec).size == 2326


class TestLocalFilter:

    @pytest.mark.parametrize(
        "address",
        ["localhost", "127.0.0.1", "127.0.1", "127.1", "127", "127.8.9.10",
         "::1", "0:0:0:0:0:0:0:1", "0000:0000::0001", "[::1]"],
    )
    def test_local_addresses(self, address):
        assert is_local_address(address)

    @pytest.mark.parametrize(
        "address",
        ["1.2.3.4", "128.0.0.1", "10.0.0.1", "::2", "2001:db8::1", "1270.0.0.1", ""],
    )
    def test_remote_addresses(self, address):
        assert not is_local_address(address)

    def test_filter_drops_loopback(self, sample_lines):
        entries, _ = parse_lines(sample_lines, FORMATS["combined"])
        kept = filter_local(entries)
        assert len(kept) == 3
        assert all(e.ip != "127.0.0.1" for e in kept)


class TestEntriesToFrame:

    def test_calendar_columns_use_given_zone(self, sample_lines):
        entries, _ = parse_lines(sample_lines[:1], FORMATS["combined"])
        df = entries_to_frame(entries, timezone.utc)
        assert df.loc[0, "hour"] == 10
        # 2023-01-01 was a Sunday
        assert df.loc[0, "weekday"] == 6
        assert df.loc[0, "path"] == "/a"

    def test_empty_frame_has_columns(self):
        df = entries_to_frame([])
        assert df.empty
        assert {"ip", "size", "timestamp", "hour"} <= set(df.columns)

    def test_frame_keeps_the_entry(self, sample_lines):
        entries, _ = parse_lines(sample_lines[:2], FORMATS["combined"])
        df = entries_to_frame(entries, timezone.utc)
        assert list(df["entry"]) == entries

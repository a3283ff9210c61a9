"""
Shared fixtures for logstats tests
"""

from datetime import datetime, timezone

import pytest

from logstats.ingest.binder import Entry
from logstats.ingest.format_spec import FORMATS, resolve_format


@pytest.fixture
def combined_spec():
    return resolve_format(FORMATS["combined"])


@pytest.fixture
def vhost_spec():
    return resolve_format(FORMATS["vhost_combined"])


@pytest.fixture
def combined_line():
    return (
        '203.0.113.7 - frank [10/Oct/2000:13:55:36 -0700] '
        '"GET /apache_pb.gif HTTP/1.0" 200 2326 '
        '"http://www.example.com/start.html" '
        '"Mozilla/4.08 [en] (Win98; I ;Nav)"'
    )


@pytest.fixture
def sample_lines():
    return [
        '1.2.3.4 - - [01/Jan/2023:10:00:00 +0000] "GET /a HTTP/1.1" 200 500 "-" "agent-a"',
        '1.2.3.4 - - [02/Jan/2023:10:00:00 +0000] "GET /b HTTP/1.1" 200 1500 "-" "agent-a"',
        '5.6.7.8 - - [02/Jan/2023:10:00:00 +0000] "GET /a HTTP/1.1" 404 1000 "-" "agent-b"',
        '127.0.0.1 - - [02/Jan/2023:11:00:00 +0000] "GET /status HTTP/1.1" 200 99 "-" "agent-c"',
    ]


def make_entry(ip="1.2.3.4", when=None, size=0, **kwargs):
    defaults = dict(user="-", request="GET / HTTP/1.1", status="200")
    defaults.update(kwargs)
    if when is None:
        when = datetime(2023, 1, 1, 10, 0, tzinfo=timezone.utc)
    return Entry(ip=ip, timestamp=when, size=size, **defaults)


@pytest.fixture
def scenario_entries():
    """Three entries from two visitors on two days."""
    return [
        make_entry("1.2.3.4", datetime(2023, 1, 1, 10, tzinfo=timezone.utc), 500),
        make_entry("1.2.3.4", datetime(2023, 1, 2, 10, tzinfo=timezone.utc), 1500),
        make_entry("5.6.7.8", datetime(2023, 1, 2, 10, tzinfo=timezone.utc), 1000),
    ]

"""
Unit tests for LogFormat resolution
"""

import pytest

from logstats.errors import UnknownDirectiveError
from logstats.ingest.format_spec import Directive, FORMATS, resolve_format


class TestResolveFormat:

    def test_combined_format(self, combined_spec):
        assert list(combined_spec) == [
            Directive.REMOTE_HOST,
            Directive.REMOTE_LOGNAME,
            Directive.USER,
            Directive.TIME,
            Directive.REQUEST,
            Directive.FINAL_STATUS,
            Directive.BYTES_SENT,
            Directive.REFERER,
            Directive.USER_AGENT,
        ]
        assert combined_spec.unknown == ()

    def test_vhost_combined_splits_on_colon(self, vhost_spec):
        assert vhost_spec[0] is Directive.CANONICAL_SERVER_NAME
        assert vhost_spec[1] is Directive.PORT
        assert vhost_spec[2] is Directive.REMOTE_HOST
        assert len(vhost_spec) == 11

    def test_header_names_are_case_insensitive(self):
        spec = resolve_format("%{referer}i %{USER-AGENT}i")
        assert list(spec) == [Directive.REFERER, Directive.USER_AGENT]

    def test_status_modifiers(self):
        spec = resolve_format("%>s %<s %s")
        assert list(spec) == [Directive.FINAL_STATUS, Directive.STATUS, Directive.STATUS]

    def test_literal_percent_is_skipped(self):
        spec = resolve_format("%h 100%% %u")
        assert list(spec) == [Directive.REMOTE_HOST, Directive.USER]

    def test_trailing_percent_is_literal(self):
        assert list(resolve_format("%h %u %")) == [Directive.REMOTE_HOST, Directive.USER]
        assert resolve_format("%h %").unknown == ()

    def test_unknown_directive_kept_in_position(self):
        spec = resolve_format("%h %{X-Forwarded-For}i %u")
        assert list(spec) == [Directive.REMOTE_HOST, Directive.UNKNOWN, Directive.USER]
        assert spec.unknown == ("%{X-Forwarded-For}i",)

    def test_unknown_directive_strict(self):
        with pytest.raises(UnknownDirectiveError):
            resolve_format("%h %{Cookie}C", strict=True)

    def test_position_is_first_occurrence(self):
        spec = resolve_format("%h %s %>s %s")
        assert spec.position(Directive.STATUS) == 1
        assert spec.position(Directive.FINAL_STATUS) == 2
        assert spec.position(Directive.TIME) is None

    def test_address_like_directives(self):
        for token in ("%h", "%a", "%A", "%U", "%q", "%f"):
            assert resolve_format(token)[0].address_like
        for token in ("%v", "%p", "%t", "%r", "%u"):
            assert not resolve_format(token)[0].address_like

    def test_common_format_length(self):
        assert len(resolve_format(FORMATS["common"])) == 7

"""Tests for diagnostic code normalization."""

import json

from lsprotocol.types import (
    CodeDescription,
    Diagnostic,
    DiagnosticSeverity,
    Position,
    Range,
)

from psalter.lsp.diagnostics import (
    normalize_diagnostic,
    normalize_diagnostics,
    parse_code_payload,
    resolve_code_link,
)
from psalter.types import CodePayload, LinkSource

RANGE = Range(start=Position(line=3, character=2), end=Position(line=3, character=9))
LEGACY_CODE = json.dumps({"value": "UndefinedVariable", "issue": "https://psalm.dev/024"})


def _diagnostic(code=None, href=None, source="psalm"):
    return Diagnostic(
        range=RANGE,
        message="Cannot find referenced variable $x",
        severity=DiagnosticSeverity.Error,
        source=source,
        code=code,
        code_description=CodeDescription(href=href) if href else None,
    )


class TestParseCodePayload:
    """Tests for parse_code_payload()."""

    def test_valid_payload(self):
        assert parse_code_payload(LEGACY_CODE) == CodePayload(
            value="UndefinedVariable", issue="https://psalm.dev/024"
        )

    def test_plain_string_code(self):
        assert parse_code_payload("UndefinedVariable") is None

    def test_integer_code(self):
        assert parse_code_payload(24) is None

    def test_invalid_json(self):
        assert parse_code_payload('{"value": "x", "issue": ') is None

    def test_json_array(self):
        assert parse_code_payload('["value", "issue"]') is None

    def test_missing_issue(self):
        assert parse_code_payload('{"value": "X"}') is None

    def test_missing_value_uses_url_tail(self):
        payload = parse_code_payload('{"issue": "https://psalm.dev/024/"}')
        assert payload == CodePayload(value="024", issue="https://psalm.dev/024/")


class TestResolveCodeLink:
    """Tests for resolve_code_link()."""

    def test_legacy(self):
        link = resolve_code_link(_diagnostic(code=LEGACY_CODE))
        assert link.source is LinkSource.LEGACY
        assert link.url == "https://psalm.dev/024"
        assert link.label == "UndefinedVariable"

    def test_structured(self):
        link = resolve_code_link(_diagnostic(code="UndefinedVariable", href="https://psalm.dev/024"))
        assert link.source is LinkSource.STRUCTURED
        assert link.url == "https://psalm.dev/024"
        assert link.label == "UndefinedVariable"

    def test_structured_wins_over_legacy(self):
        diagnostic = _diagnostic(code=LEGACY_CODE, href="https://example.com/new")
        link = resolve_code_link(diagnostic)
        assert link.source is LinkSource.STRUCTURED
        assert link.url == "https://example.com/new"
        assert link.label == "UndefinedVariable"

    def test_no_link(self):
        link = resolve_code_link(_diagnostic(code="UndefinedVariable"))
        assert link.source is LinkSource.NONE
        assert not link.has_url
        assert link.label == "UndefinedVariable"

    def test_no_code(self):
        assert not resolve_code_link(_diagnostic()).has_url


class TestNormalizeDiagnostic:
    """Tests for normalize_diagnostic(s)."""

    def test_legacy_code_is_shortened(self):
        result = normalize_diagnostic(_diagnostic(code=LEGACY_CODE))
        assert result.code == "UndefinedVariable"
        assert result.code_description.href == "https://psalm.dev/024"
        assert result.message == "Cannot find referenced variable $x"
        assert result.range == RANGE

    def test_original_is_not_mutated(self):
        original = _diagnostic(code=LEGACY_CODE)
        normalize_diagnostic(original)
        assert original.code == LEGACY_CODE
        assert original.code_description is None

    def test_without_link_is_unchanged(self):
        original = _diagnostic(code=24)
        assert normalize_diagnostic(original) is original

    def test_idempotent(self):
        once = normalize_diagnostic(_diagnostic(code=LEGACY_CODE))
        assert normalize_diagnostic(once) == once

    def test_link_still_resolvable_after_normalization(self):
        normalized = normalize_diagnostic(_diagnostic(code=LEGACY_CODE))
        assert resolve_code_link(normalized).url == "https://psalm.dev/024"

    def test_batch_keeps_order_and_length(self):
        batch = [
            _diagnostic(code=LEGACY_CODE),
            _diagnostic(code='{"broken'),
            _diagnostic(code=7),
            _diagnostic(code="X", href="https://psalm.dev/001"),
        ]
        result = normalize_diagnostics(batch)
        assert len(result) == 4
        assert [d.code for d in result] == ["UndefinedVariable", '{"broken', 7, "X"]

    def test_batch_survives_a_bad_entry(self):
        class Weird:
            @property
            def code(self):
                raise RuntimeError("boom")

        good = _diagnostic(code=LEGACY_CODE)
        weird = Weird()
        result = normalize_diagnostics([weird, good])
        assert result[0] is weird
        assert result[1].code == "UndefinedVariable"

"""Tests for code action synthesis."""

import json

from hypothesis import given
from hypothesis import strategies as st
from lsprotocol.types import (
    CodeActionKind,
    CodeDescription,
    Diagnostic,
    Position,
    Range,
)

from psalter.config import Settings
from psalter.lsp.actions import (
    SourceMatcher,
    is_doc_comment_line,
    is_single_line,
    leading_whitespace,
    link_actions,
    suppression_action,
    synthesize,
)
from psalter.lsp.document import TextDocument, apply_text_edits

URI = "file:///w/src/a.php"
TEXT = "<?php\n\nfunction f() {\n  echo $x;\n}\n"
LEGACY_CODE = json.dumps({"value": "UndefinedVariable", "issue": "https://x/abc"})


def _range(line, start_char=0, end_line=None, end_char=0):
    end_line = line + 1 if end_line is None else end_line
    return Range(
        start=Position(line=line, character=start_char),
        end=Position(line=end_line, character=end_char),
    )


def _diagnostic(line=3, source="psalm", code=LEGACY_CODE, href=None):
    return Diagnostic(
        range=Range(start=Position(line=line, character=7), end=Position(line=line, character=9)),
        message="Cannot find referenced variable $x",
        source=source,
        code=code,
        code_description=CodeDescription(href=href) if href else None,
    )


class TestRangeAndLineHelpers:
    """Tests for the small predicates."""

    def test_whole_line(self):
        assert is_single_line(_range(3))

    def test_point_at_column_zero(self):
        assert is_single_line(_range(3, end_line=3))

    def test_not_column_zero(self):
        assert not is_single_line(_range(3, start_char=2))

    def test_two_lines(self):
        assert not is_single_line(_range(3, end_line=5))

    def test_ends_mid_next_line(self):
        assert not is_single_line(_range(3, end_line=4, end_char=3))

    def test_leading_whitespace(self):
        assert leading_whitespace("  echo $x;") == "  "
        assert leading_whitespace("\t\techo;") == "\t\t"
        assert leading_whitespace("echo;") == ""
        assert leading_whitespace("   ") == "   "

    def test_doc_comment_lines(self):
        assert is_doc_comment_line("    /** @var int */")
        assert is_doc_comment_line("     * @psalm-suppress all")
        assert is_doc_comment_line("     */")
        assert not is_doc_comment_line("    // comment")
        assert not is_doc_comment_line("    $a = $b * 2;")


class TestSourceMatcher:
    """Tests for SourceMatcher."""

    def test_default_is_case_insensitive(self):
        matcher = SourceMatcher()
        assert matcher.matches("psalm")
        assert matcher.matches("Psalm")
        assert not matcher.matches("phpstan")
        assert not matcher.matches(None)

    def test_exact(self):
        matcher = SourceMatcher.from_settings(Settings(source_match="exact"))
        assert matcher.matches("psalm")
        assert not matcher.matches("Psalm")

    def test_custom_identifier(self):
        matcher = SourceMatcher.from_settings(Settings(source_identifier="Psalm LS"))
        assert matcher.matches("psalm ls")


class TestSuppressionAction:
    """Tests for the suppression quick fix."""

    def test_inserts_comment_with_indentation(self):
        doc = TextDocument(URI, TEXT)
        action = suppression_action(
            doc, _range(3), [_diagnostic()], source_matcher=SourceMatcher()
        )

        assert action is not None
        assert action.title == "Add @psalm suppress for this line"
        assert action.kind == CodeActionKind.QuickFix
        [edit] = action.edit.changes[URI]
        assert edit.range.start == Position(line=3, character=2)
        assert edit.range.end == Position(line=3, character=2)
        assert edit.new_text == "/** @psalm-suppress all */\n  "

    def test_applied_edit(self):
        doc = TextDocument(URI, TEXT)
        action = suppression_action(
            doc, _range(3), [_diagnostic()], source_matcher=SourceMatcher()
        )
        result = apply_text_edits(TEXT, action.edit.changes[URI])
        assert result.splitlines()[3:5] == ["  /** @psalm-suppress all */", "  echo $x;"]

    def test_tab_indentation_is_preserved(self):
        text = "<?php\nfunction f() {\n\techo $x;\n}\n"
        doc = TextDocument(URI, text)
        action = suppression_action(
            doc, _range(2), [_diagnostic(line=2)], source_matcher=SourceMatcher()
        )
        [edit] = action.edit.changes[URI]
        assert edit.range.start.character == 1
        assert edit.new_text == "/** @psalm-suppress all */\n\t"

    def test_doc_comment_line_gets_nothing(self):
        text = "<?php\n/**\n * @return int\n */\nfunction f() {}\n"
        doc = TextDocument(URI, text)
        for line in (1, 2, 3):
            action = suppression_action(
                doc, _range(line), [_diagnostic(line=line)], source_matcher=SourceMatcher()
            )
            assert action is None

    def test_foreign_source_gets_nothing(self):
        doc = TextDocument(URI, TEXT)
        action = suppression_action(
            doc, _range(3), [_diagnostic(source="phpstan")], source_matcher=SourceMatcher()
        )
        assert action is None

    def test_no_diagnostics_gets_nothing(self):
        doc = TextDocument(URI, TEXT)
        assert suppression_action(doc, _range(3), [], source_matcher=SourceMatcher()) is None

    def test_multi_line_range_gets_nothing(self):
        doc = TextDocument(URI, TEXT)
        action = suppression_action(
            doc, _range(2, end_line=4), [_diagnostic()], source_matcher=SourceMatcher()
        )
        assert action is None

    def test_line_past_end_gets_nothing(self):
        doc = TextDocument(URI, "<?php\n")
        action = suppression_action(
            doc, _range(10), [_diagnostic(line=10)], source_matcher=SourceMatcher()
        )
        assert action is None

    def test_custom_comment(self):
        doc = TextDocument(URI, TEXT)
        action = suppression_action(
            doc,
            _range(3),
            [_diagnostic()],
            source_matcher=SourceMatcher(),
            suppression_comment="/** @psalm-suppress UndefinedVariable */",
        )
        [edit] = action.edit.changes[URI]
        assert edit.new_text.startswith("/** @psalm-suppress UndefinedVariable */\n")

    @given(
        indent=st.text(alphabet=" \t", max_size=12),
        body=st.text(
            alphabet=st.characters(min_codepoint=ord("!"), max_codepoint=ord("~")),
            min_size=1,
            max_size=30,
        ).filter(lambda s: not s.startswith(("*", "/**"))),
    )
    def test_edit_preserves_line_and_indent(self, indent, body):
        """The comment lands above the line, both with the line's indentation."""
        line = indent + body
        text = f"<?php\n{line}\n"
        doc = TextDocument(URI, text)
        action = suppression_action(
            doc, _range(1), [_diagnostic(line=1)], source_matcher=SourceMatcher()
        )

        assert action is not None
        lines = apply_text_edits(text, action.edit.changes[URI]).split("\n")
        assert lines[1] == indent + "/** @psalm-suppress all */"
        assert lines[2] == line


class TestLinkActions:
    """Tests for the "show issue" actions."""

    def test_legacy_link(self):
        [action] = link_actions([_diagnostic()])
        assert action.title == "Show issue for https://x/abc"
        assert action.command.command == "vscode.open"
        assert action.command.arguments == ["https://x/abc"]
        assert action.edit is None

    def test_structured_link(self):
        [action] = link_actions([_diagnostic(code="X", href="https://psalm.dev/001")])
        assert action.command.arguments == ["https://psalm.dev/001"]

    def test_no_link(self):
        assert link_actions([_diagnostic(code="UndefinedVariable"), _diagnostic(code=5)]) == []

    def test_links_do_not_depend_on_source(self):
        assert len(link_actions([_diagnostic(source="other")])) == 1

    def test_one_per_diagnostic_in_order(self):
        diagnostics = [
            _diagnostic(code="A", href="https://psalm.dev/a"),
            _diagnostic(code="B"),
            _diagnostic(code="C", href="https://psalm.dev/c"),
        ]
        titles = [a.title for a in link_actions(diagnostics)]
        assert titles == ["Show issue for https://psalm.dev/a", "Show issue for https://psalm.dev/c"]


class TestSynthesize:
    """Tests for synthesize()."""

    def test_suppression_then_link(self):
        doc = TextDocument(URI, TEXT)
        actions = synthesize(doc, _range(3), [_diagnostic()])

        assert [a.title for a in actions] == [
            "Add @psalm suppress for this line",
            "Show issue for https://x/abc",
        ]

    def test_only_links_when_suppression_does_not_apply(self):
        doc = TextDocument(URI, TEXT)
        actions = synthesize(doc, _range(3, start_char=4), [_diagnostic()])
        assert [a.title for a in actions] == ["Show issue for https://x/abc"]

    def test_nothing_to_offer(self):
        doc = TextDocument(URI, TEXT)
        assert synthesize(doc, _range(3), [_diagnostic(source="phpstan", code="X")]) == []

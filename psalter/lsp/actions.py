"""Code actions for Psalm diagnostics.

Two kinds of actions are offered for a requested range:

- "Add @psalm suppress for this line": insert a suppression doc comment
  above the line, carrying the line's own indentation;
- "Show issue for <url>": open the documentation of each issue that has a
  resolvable link.

Everything here is a pure function of its inputs. Nothing raises for a
malformed diagnostic; such a diagnostic simply yields no action.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    Command,
    Diagnostic,
    Position,
    Range,
    TextEdit,
    WorkspaceEdit,
)

from psalter.config import Settings
from psalter.constants import (
    ANALYZER_SOURCE,
    OPEN_URL_COMMAND,
    SUPPRESS_ACTION_TITLE,
    SUPPRESS_ALL_COMMENT,
)
from psalter.lsp.diagnostics import resolve_code_link
from psalter.lsp.document import TextDocument

_DOC_COMMENT_PREFIXES = ("/**", "*")


@dataclass(frozen=True)
class SourceMatcher:
    """Decides whether a diagnostic came from the analyzer.

    Psalm has published both ``psalm`` and ``Psalm`` as its source over time,
    hence the case-insensitive default.
    """

    identifier: str = ANALYZER_SOURCE
    case_sensitive: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> SourceMatcher:
        return cls(
            identifier=settings.source_identifier,
            case_sensitive=settings.source_match == "exact",
        )

    def matches(self, source: object) -> bool:
        if not isinstance(source, str):
            return False
        if self.case_sensitive:
            return source == self.identifier
        return source.casefold() == self.identifier.casefold()


def is_single_line(range_: Range) -> bool:
    """A whole line (col 0 to col 0 of the next line) or a point on column 0."""
    start, end = range_.start, range_.end
    if start.character != 0:
        return False
    return (start.line + 1 == end.line and end.character == 0) or start.line == end.line


def leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def is_doc_comment_line(line: str) -> bool:
    """Lines inside a ``/** ... */`` block must not get a suppression above."""
    return line.strip().startswith(_DOC_COMMENT_PREFIXES)


def suppression_action(
    document: TextDocument,
    range_: Range,
    diagnostics: Sequence[Diagnostic],
    *,
    source_matcher: SourceMatcher,
    suppression_comment: str = SUPPRESS_ALL_COMMENT,
) -> CodeAction | None:
    """Build the suppression action, or None when it does not apply."""
    if not is_single_line(range_):
        return None
    if not any(source_matcher.matches(getattr(d, "source", None)) for d in diagnostics):
        return None

    line_number = range_.start.line
    line = document.line_at(line_number)
    if line is None or is_doc_comment_line(line):
        return None

    indent = leading_whitespace(line)
    insert_at = Position(line=line_number, character=len(indent))
    edit = TextEdit(
        range=Range(start=insert_at, end=insert_at),
        new_text=f"{suppression_comment}\n{indent}",
    )
    return CodeAction(
        title=SUPPRESS_ACTION_TITLE,
        kind=CodeActionKind.QuickFix,
        edit=WorkspaceEdit(changes={document.uri: [edit]}),
    )


def link_actions(diagnostics: Sequence[Diagnostic]) -> list[CodeAction]:
    """One "show issue" action per diagnostic with a link, in input order."""
    actions = []
    for diagnostic in diagnostics:
        link = resolve_code_link(diagnostic)
        if not link.has_url:
            continue
        actions.append(
            CodeAction(
                title=f"Show issue for {link.url}",
                command=Command(title="", command=OPEN_URL_COMMAND, arguments=[link.url]),
            )
        )
    return actions


def synthesize(
    document: TextDocument,
    range_: Range,
    diagnostics: Sequence[Diagnostic],
    *,
    source_matcher: SourceMatcher | None = None,
    suppression_comment: str = SUPPRESS_ALL_COMMENT,
) -> list[CodeAction]:
    """All code actions for ``range_``: suppression first, then issue links."""
    actions: list[CodeAction] = []
    suppress = suppression_action(
        document,
        range_,
        diagnostics,
        source_matcher=source_matcher or SourceMatcher(),
        suppression_comment=suppression_comment,
    )
    if suppress is not None:
        actions.append(suppress)
    actions.extend(link_actions(diagnostics))
    return actions

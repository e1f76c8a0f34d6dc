"""In-memory text documents and text-edit application.

Positions count lines split on ``\\n``, ``\\r\\n`` or ``\\r`` like the
language server protocol does; columns are counted in code points.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from lsprotocol.types import Position, TextEdit

from psalter.lsp.utils import path_to_uri

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class TextDocument:
    """A document snapshot as the editor sees it."""

    uri: str
    text: str

    @classmethod
    def from_path(cls, path: str | Path, encoding: str = "utf-8") -> TextDocument:
        path = Path(path)
        return cls(uri=path_to_uri(path), text=path.read_text(encoding=encoding))

    @property
    def lines(self) -> list[str]:
        return _LINE_BREAK.split(self.text)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_at(self, line: int) -> str | None:
        """Content of ``line`` without its line break, or None if out of range."""
        lines = self.lines
        if 0 <= line < len(lines):
            return lines[line]
        return None


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for match in _LINE_BREAK.finditer(text):
        offsets.append(match.end())
    return offsets


def _offset(text: str, offsets: list[int], position: Position) -> int:
    if position.line >= len(offsets):
        return len(text)
    start = offsets[position.line]
    end = offsets[position.line + 1] if position.line + 1 < len(offsets) else len(text)
    line_text = _LINE_BREAK.sub("", text[start:end])
    return start + min(position.character, len(line_text))


def apply_text_edits(text: str, edits: Iterable[TextEdit]) -> str:
    """Apply non-overlapping edits, all expressed against the original ``text``."""
    offsets = _line_offsets(text)
    spans = []
    for edit in edits:
        start = _offset(text, offsets, edit.range.start)
        end = _offset(text, offsets, edit.range.end)
        spans.append((start, end, edit.new_text))

    # Apply back to front so earlier offsets stay valid.
    result = text
    for start, end, new_text in sorted(spans, key=lambda s: (s[0], s[1]), reverse=True):
        result = result[:start] + new_text + result[end:]
    return result

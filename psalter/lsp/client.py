"""Language client wiring: options, middleware and the code action provider.

These are the hooks the editor's generic language client calls into. They
hold no state of their own beyond the session's settings.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from lsprotocol.types import CodeAction, CodeActionContext, Diagnostic, Position, Range

from psalter.config import Settings
from psalter.constants import CONFIG_SECTION, SUPPRESS_ALL_COMMENT
from psalter.lsp.actions import SourceMatcher, synthesize
from psalter.lsp.diagnostics import normalize_diagnostics
from psalter.lsp.document import TextDocument

T = TypeVar("T")


@dataclass(frozen=True)
class ClientOptions:
    """What the editor's language client needs to know about Psalm."""

    document_selector: list[Any]
    configuration_section: str = CONFIG_SECTION
    file_watch_globs: list[str] = field(default_factory=list)
    progress_on_initialization: bool = True
    diagnostic_collection_name: str = CONFIG_SECTION
    disabled_features: list[str] = field(default_factory=list)


def build_client_options(settings: Settings, config_file: str) -> ClientOptions:
    """Derive client options from settings and the discovered config file."""
    disabled = []
    if settings.disable_completion:
        disabled.append("completion")
    return ClientOptions(
        document_selector=list(settings.analyzed_file_extensions),
        # the config file, plus PHP files changed outside the editor
        file_watch_globs=[f"**/{config_file}", "**/*.php"],
        progress_on_initialization=not settings.disable_progress_on_initialization,
        disabled_features=disabled,
    )


class PsalmMiddleware:
    """Intercepts language client traffic for Psalm sessions."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def handle_diagnostics(
        self,
        uri: str,
        diagnostics: Sequence[Diagnostic],
        next_handler: Callable[[str, list[Diagnostic]], T],
    ) -> T:
        """Normalize diagnostic codes before they reach the editor's store."""
        return next_handler(uri, normalize_diagnostics(diagnostics))

    async def provide_definition(
        self,
        document: TextDocument,
        position: Position,
        next_handler: Callable[[TextDocument, Position], Awaitable[T]],
    ) -> T | None:
        """Forward definition requests unless ``disableDefinition`` is set."""
        if self._settings.disable_definition:
            return None
        return await next_handler(document, position)


class PsalmCodeActionProvider:
    """Adapts editor code action requests to ``synthesize``."""

    def __init__(
        self,
        source_matcher: SourceMatcher | None = None,
        suppression_comment: str = SUPPRESS_ALL_COMMENT,
    ) -> None:
        self._source_matcher = source_matcher or SourceMatcher()
        self._suppression_comment = suppression_comment

    def provide_code_actions(
        self,
        document: TextDocument,
        range_: Range,
        context: CodeActionContext,
    ) -> list[CodeAction]:
        return synthesize(
            document,
            range_,
            list(context.diagnostics),
            source_matcher=self._source_matcher,
            suppression_comment=self._suppression_comment,
        )

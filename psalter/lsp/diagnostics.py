"""Diagnostic code normalization.

Psalm attaches a documentation link to each issue in one of two ways:

- current servers fill the diagnostic's ``codeDescription.href``;
- older servers run with ``--use-extended-diagnostic-codes`` stuff a JSON
  string ``{"value": "<label>", "issue": "<url>"}`` into ``code``.

Both are resolved once per diagnostic into a ``CodeLink``. Normalization
shows the short label as the code and keeps the URL in ``code_description``
so that code actions can find it again.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

import attrs
from lsprotocol.types import CodeDescription, Diagnostic

from psalter.types import CodeLink, CodePayload, LinkSource
from psalter.utils.logger import logger


def parse_code_payload(code: object) -> CodePayload | None:
    """Parse a legacy JSON code payload, or return None.

    Only strings holding a JSON object with a non-empty string ``issue`` are
    accepted; a missing ``value`` falls back to the issue URL's last path
    segment.
    """
    if not isinstance(code, str) or not code.lstrip().startswith("{"):
        return None
    try:
        data = json.loads(code)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    issue = data.get("issue")
    if not isinstance(issue, str) or not issue:
        return None
    value = data.get("value")
    if value is None:
        value = issue.rstrip("/").rsplit("/", 1)[-1]
    return CodePayload(value=str(value), issue=issue)


def _structured_href(diagnostic: Diagnostic) -> str | None:
    description = getattr(diagnostic, "code_description", None)
    href = getattr(description, "href", None)
    if isinstance(href, str) and href:
        return href
    return None


def resolve_code_link(diagnostic: Diagnostic) -> CodeLink:
    """Find the issue link of a diagnostic.

    The structured ``code_description`` wins over a legacy JSON code when
    both are present; the legacy label is still used for display.
    """
    code = getattr(diagnostic, "code", None)
    payload = parse_code_payload(code)
    label = payload.value if payload is not None else code

    href = _structured_href(diagnostic)
    if href is not None:
        return CodeLink(LinkSource.STRUCTURED, url=href, label=label)
    if payload is not None:
        return CodeLink(LinkSource.LEGACY, url=payload.issue, label=label)
    return CodeLink(LinkSource.NONE, label=code)


def normalize_diagnostic(diagnostic: Diagnostic) -> Diagnostic:
    """Return ``diagnostic`` with a short code and its link kept aside.

    Diagnostics without a resolvable link are returned as-is.
    """
    link = resolve_code_link(diagnostic)
    if link.source is LinkSource.NONE:
        return diagnostic
    return attrs.evolve(
        diagnostic,
        code=link.label,
        code_description=CodeDescription(href=link.url),
    )


def normalize_diagnostics(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Normalize a batch; one bad entry never blocks the others."""
    normalized = []
    for diagnostic in diagnostics:
        try:
            normalized.append(normalize_diagnostic(diagnostic))
        except Exception:
            logger.opt(exception=True).debug("Leaving diagnostic code untouched")
            normalized.append(diagnostic)
    return normalized

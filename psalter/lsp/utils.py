"""Shared utilities for the LSP integration layer.

URI <-> path conversion used by documents, client options and the CLI.
"""

from __future__ import annotations

import os
import pathlib
from urllib.parse import unquote, urlparse


def path_to_uri(path: str | os.PathLike[str]) -> str:
    """Convert a filesystem path to a ``file://`` URI."""
    return pathlib.Path(path).resolve().as_uri()


def uri_to_path(uri: str) -> str:
    """Convert a ``file://`` URI to a filesystem path.

    Non-file URIs (``untitled:``) are returned unchanged.
    """
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return uri
    return unquote(parsed.path)


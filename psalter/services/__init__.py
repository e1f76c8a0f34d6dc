"""Session services for Psalter."""

from psalter.services.extension import EditorHost, PsalmExtension

__all__ = ["EditorHost", "PsalmExtension"]

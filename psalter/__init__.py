"""
Psalter - editor integration for the Psalm static-analysis language server.

Provides the client side of a Psalm session:
- Capability probing of the installed analyzer (``--help`` sniffing)
- Supervision of the analyzer process (start / stop / restart)
- Normalization of diagnostic codes into short labels plus issue links
- Code actions: ``@psalm-suppress`` comments and "show issue" links

The name is a nod to the psalter, the book that collects the psalms -
fitting for a layer whose job is to keep a Psalm process in order.
"""

__version__ = "0.1.0"

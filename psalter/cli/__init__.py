"""Command line interface for Psalter."""

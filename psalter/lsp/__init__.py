"""Psalm language server integration.

Capability probing, runtime checks, process supervision, diagnostic
normalization and code actions for the Psalm analyzer.
"""

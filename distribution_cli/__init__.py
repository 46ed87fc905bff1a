"""
Command-line entry point for ledgered token distribution.

Entry point: ``distribute-tokens`` (console script) or
``python -m distribution_cli``.
"""

from distribution_cli.main import main

__all__ = ["main"]

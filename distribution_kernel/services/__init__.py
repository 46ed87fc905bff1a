"""Kernel services: stateful components that own durable resources."""

from distribution_kernel.services.ledger_store import LedgerAppender, LedgerStore

__all__ = ["LedgerAppender", "LedgerStore"]

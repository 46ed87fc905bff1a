"""
distribution_ingestion -- Reading bid schedules into typed records.

Architecture:
    distribution_ingestion/ is a top-level package. It imports kernel domain
    types; nothing in kernel/ or engines/ imports from ingestion.
"""

from distribution_ingestion.bid_loader import load_bids, parse_bid

__all__ = ["load_bids", "parse_bid"]

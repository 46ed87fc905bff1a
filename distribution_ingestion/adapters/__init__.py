"""Source adapters for bid schedules (file I/O only)."""

from distribution_ingestion.adapters.csv_adapter import CsvSourceAdapter, SourceRow

__all__ = [
    "CsvSourceAdapter",
    "SourceRow",
]

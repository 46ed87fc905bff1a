"""
CSV source adapter for bid schedules.

Uses csv.DictReader. Configurable: delimiter, encoding, trim. Handles BOM via
utf-8-sig when encoding is utf-8. Streams rows, tagging each with its
1-indexed data row number so parse errors can point at the source line.

Trimming (default on) strips surrounding whitespace from header names and
from every field value before they reach a parser.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


@dataclass(frozen=True)
class SourceRow:
    """One data row: its 1-indexed position and column -> value mapping."""

    row_number: int
    values: dict[str, str | None]


class CsvSourceAdapter:
    """Read header-bearing CSV files as one SourceRow per data row."""

    def columns(self, source_path: Path, options: dict[str, Any]) -> tuple[str, ...]:
        """Header names (trimmed when ``trim`` is set); empty for an empty file."""
        trim = options.get("trim", True)
        with source_path.open("r", encoding=_get_encoding(options), newline="") as f:
            reader = csv.reader(f, delimiter=options.get("delimiter", ","))
            header = next(reader, None)
        if header is None:
            return ()
        return tuple(h.strip() if trim else h for h in header)

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[SourceRow]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        trim = options.get("trim", True)

        with source_path.open("r", encoding=encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=delimiter)
            if trim and reader.fieldnames is not None:
                reader.fieldnames = [name.strip() for name in reader.fieldnames]
            for row_number, row in enumerate(reader, start=1):
                values: dict[str, str | None] = {}
                for key, value in row.items():
                    # DictReader files surplus fields under the None key
                    if key is None:
                        continue
                    values[key] = value.strip() if trim and value is not None else value
                yield SourceRow(row_number=row_number, values=values)

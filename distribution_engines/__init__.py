"""
Module: distribution_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import distribution_kernel.domain and kernel logging.
    MUST NOT import distribution_services or distribution_ingestion.

Invariants enforced:
    - Decimal-only arithmetic; floats are rejected at the domain boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine``, emitting
    DISTRIBUTION_ENGINE_TRACE records with engine name, version, input
    fingerprint, and duration.
"""

from distribution_engines.conversion import (
    DEFAULT_NATIVE_DECIMAL_PLACES,
    create_allocation,
    derive_allocations,
)
from distribution_engines.reconciliation import (
    ReconciliationEngine,
    ReconciliationResult,
    ReplayMode,
    UnmatchedDebit,
    apply_previous_transactions,
)
from distribution_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "DEFAULT_NATIVE_DECIMAL_PLACES",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReplayMode",
    "UnmatchedDebit",
    "apply_previous_transactions",
    "compute_input_fingerprint",
    "create_allocation",
    "derive_allocations",
    "traced_engine",
]

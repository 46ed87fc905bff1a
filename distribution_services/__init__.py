"""
distribution_services -- Stateful orchestration above the pure engines.

Owns the Transfer Executor boundary and the orchestrator that runs one
distribution pass end to end.
"""

from distribution_services.distribution_orchestrator import (
    DistributionOrchestrator,
    DistributionReport,
    format_plan,
)
from distribution_services.transfer_executor import (
    TransferExecutor,
    load_executor,
    resolve_factory,
)

__all__ = [
    "DistributionOrchestrator",
    "DistributionReport",
    "TransferExecutor",
    "format_plan",
    "load_executor",
    "resolve_factory",
]

"""
Transfer Executor -- boundary to whatever actually moves value.

Contract:
    ``TransferExecutor.transfer(allocation, signers)`` performs exactly one
    transfer and returns its receipt (an opaque transaction identifier) once
    the transfer is confirmed dispatched. Any failure raises; a returned
    receipt always means the value has left the sender.

    Executors are supplied by deployment configuration as a
    ``"package.module:factory"`` path. The factory is called with the
    ``DistributionConfig`` and must return a ``TransferExecutor``.

Non-goals:
    Network transport, signing, retries, and timeouts belong to concrete
    executors, not to this package.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from distribution_kernel.domain.values import Allocation, SignerPair
from distribution_kernel.exceptions import ExecutorNotFoundError
from distribution_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from distribution_config.schema import DistributionConfig

logger = get_logger("services.transfer_executor")


@runtime_checkable
class TransferExecutor(Protocol):
    """Performs one transfer per call."""

    def transfer(self, allocation: Allocation, signers: SignerPair) -> str:
        """Send ``allocation.amount`` to ``allocation.recipient``; return the receipt.

        Chains that count in indivisible units can take
        ``allocation.to_base_units(config.native_decimal_places)``.
        """
        ...


ExecutorFactory = Callable[["DistributionConfig"], TransferExecutor]


def resolve_factory(spec: str) -> ExecutorFactory:
    """Import ``module:attribute`` and return the callable it names."""
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ExecutorNotFoundError(spec, "expected 'module:callable'")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise ExecutorNotFoundError(spec, str(exc)) from exc
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            raise ExecutorNotFoundError(spec, f"no attribute '{attr}'") from exc
    if not callable(target):
        raise ExecutorNotFoundError(spec, "not callable")
    return target  # type: ignore[return-value]


def load_executor(spec: str, config: DistributionConfig) -> TransferExecutor:
    """Build the configured executor and check it honours the protocol."""
    factory = resolve_factory(spec)
    executor = factory(config)
    if not isinstance(executor, TransferExecutor):
        raise ExecutorNotFoundError(spec, f"factory returned {type(executor).__name__}, not a TransferExecutor")
    logger.info(
        "transfer_executor_loaded",
        extra={"executor": spec, "executor_type": type(executor).__qualname__},
    )
    return executor

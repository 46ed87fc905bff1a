"""
DistributionConfig schema.

The single, frozen runtime configuration for one distribution run. YAML
files and CLI arguments are parsed into this type by the loader; nothing
downstream reads files, environment variables, or argv directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from distribution_engines.conversion import DEFAULT_NATIVE_DECIMAL_PLACES
from distribution_engines.reconciliation import ReplayMode
from distribution_kernel.domain.values import SignerPair
from distribution_kernel.services.ledger_store import DEFAULT_BACKUP_SUFFIX


@dataclass(frozen=True)
class DistributionConfig:
    """Everything a distribution run needs to know."""

    bids_csv: Path
    transactions_csv: Path
    dollars_per_unit: Decimal
    dry_run: bool = False
    replay_mode: ReplayMode = ReplayMode.BY_RECIPIENT
    native_decimal_places: int = DEFAULT_NATIVE_DECIMAL_PLACES
    backup_suffix: str = DEFAULT_BACKUP_SUFFIX
    json_rpc_url: str | None = None
    sender_keypair: str | None = None
    fee_payer: str | None = None
    executor: str | None = None  # "module:callable"
    log_level: str = "INFO"

    @property
    def signers(self) -> SignerPair | None:
        """Fee payer and funding source; None until a sender is configured."""
        if self.sender_keypair is None:
            return None
        return SignerPair(
            fee_payer=self.fee_payer or self.sender_keypair,
            sender=self.sender_keypair,
        )

    def as_dict(self) -> dict[str, object]:
        """Plain-value view used for checksums and trace logs."""
        return {
            "bids_csv": str(self.bids_csv),
            "transactions_csv": str(self.transactions_csv),
            "dollars_per_unit": str(self.dollars_per_unit),
            "dry_run": self.dry_run,
            "replay_mode": self.replay_mode.value,
            "native_decimal_places": self.native_decimal_places,
            "backup_suffix": self.backup_suffix,
            "json_rpc_url": self.json_rpc_url,
            "sender_keypair": self.sender_keypair,
            "fee_payer": self.fee_payer,
            "executor": self.executor,
            "log_level": self.log_level,
        }

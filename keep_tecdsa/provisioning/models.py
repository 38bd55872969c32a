"""Data models for keep-tecdsa provisioning."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from web3 import Web3

from .utils import format_amount, read_address_from_key_file

# Funding thresholds and amounts (wei)
FUNDING_THRESHOLD = Web3.to_wei(1, "ether")
FUNDING_AMOUNT = Web3.to_wei(10, "ether")
BONDING_DEPOSIT = Web3.to_wei(50, "ether")

# KEEP has 18 decimals
STAKE_AMOUNT = format_amount(20_000_000, 18)


@dataclass(frozen=True)
class OperatorAccount:
    """Operator account resolved from its key file."""

    address: str
    key_file: Path

    @classmethod
    def from_key_file(cls, key_file: str | Path) -> OperatorAccount:
        """Read the operator address from a JSON key file."""
        return cls(
            address=read_address_from_key_file(key_file),
            key_file=Path(key_file),
        )


@dataclass(frozen=True)
class ProvisioningContext:
    """
    Process-wide provisioning inputs.

    Built once at startup and passed to every step. The authorizer and
    purse are normally the contract owner.
    """

    owner_address: str
    authorizer_address: str
    purse_address: str
    network_id: str
    rpc_url: str
    ws_url: str
    application_address: str
    operator_key_files: tuple[Path, ...]
    data_dir: str
    config_template_path: Path
    config_output_path: Path


@dataclass(frozen=True)
class SortitionPoolRef:
    """Sortition pool of the sanctioned application."""

    application_address: str
    pool_address: str
    created: bool = False
    """True if the pool was created by this run."""


@dataclass(frozen=True)
class ClientConfigValues:
    """Runtime values written into the keep-tecdsa client configuration."""

    ws_url: str
    key_files: tuple[Path, ...]
    factory_address: str
    sanctioned_applications: tuple[str, ...]
    data_dir: str


@dataclass
class OperatorResult:
    """What provisioning did for a single operator."""

    address: str
    key_file: Path
    funded: bool = False
    """True if a funding transfer was sent."""
    staked: bool = False
    """True if a stake delegation was sent."""


@dataclass
class ProvisioningResult:
    """Result of a complete provisioning run."""

    sortition_pool: SortitionPoolRef
    operators: list[OperatorResult] = field(default_factory=list)
    config_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize for logging.

        Returns:
            Dictionary suitable for JSON serialization.
        """
        return {
            "application": self.sortition_pool.application_address,
            "sortition_pool": self.sortition_pool.pool_address,
            "sortition_pool_created": self.sortition_pool.created,
            "operators": {
                op.address: {
                    "key_file": str(op.key_file),
                    "funded": op.funded,
                    "staked": op.staked,
                }
                for op in self.operators
            },
            "config_path": str(self.config_path) if self.config_path else None,
        }

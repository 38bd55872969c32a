"""Type-safe chain data models."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from web3 import Web3

from .errors import ContractArtifactError


@dataclass(frozen=True)
class ContractArtifact:
    """
    Deployed contract description from a Truffle migration artifact.

    Immutable to prevent accidental modification.
    """

    name: str
    abi: list[dict[str, Any]]
    address: str

    @classmethod
    def from_dict(
        cls, name: str, data: dict[str, Any], network_id: str
    ) -> ContractArtifact:
        """
        Parse artifact JSON into a ContractArtifact.

        Expected format (Truffle build output):
        {
            "abi": [...],
            "networks": {
                "1101": {"address": "0x..."}
            }
        }
        """
        if not isinstance(data, dict):
            raise ContractArtifactError(f"Artifact for {name} is not a JSON object")

        abi = data.get("abi")
        if not abi or not isinstance(abi, list):
            raise ContractArtifactError(f"Artifact for {name} has no ABI")

        networks = data.get("networks")
        deployment = (
            networks.get(str(network_id)) if isinstance(networks, dict) else None
        )
        if not isinstance(deployment, dict) or not deployment.get("address"):
            raise ContractArtifactError(
                f"{name} is not deployed on network {network_id}"
            )

        try:
            address = Web3.to_checksum_address(deployment["address"])
        except (TypeError, ValueError) as e:
            raise ContractArtifactError(
                f"{name} has an invalid address on network {network_id}: {e}"
            ) from e

        return cls(name=name, abi=abi, address=address)

    @classmethod
    def from_file(cls, artifacts_path: Path, name: str, network_id: str) -> ContractArtifact:
        """
        Load <artifacts_path>/<name>.json for the given network.

        Raises:
            ContractArtifactError: If the file is missing, unreadable or
                does not describe a deployment on network_id.
        """
        path = artifacts_path / f"{name}.json"
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ContractArtifactError(f"Contract artifact not found: {path}") from e
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ContractArtifactError(f"Failed to read artifact {path}: {e}") from e

        return cls.from_dict(name, data, network_id)


@dataclass(frozen=True)
class TransactionReceipt:
    """Mined transaction summary."""

    tx_hash: str
    block_number: int
    gas_used: int
    status: int

    @property
    def succeeded(self) -> bool:
        """True if the transaction was not reverted."""
        return self.status == 1

    @classmethod
    def from_web3(cls, receipt: Any) -> TransactionReceipt:
        """Parse a web3 receipt (AttributeDict) into TransactionReceipt."""
        return cls(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt.get("blockNumber", 0),
            gas_used=receipt.get("gasUsed", 0),
            status=receipt.get("status", 0),
        )

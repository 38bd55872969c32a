"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3

from keep_tecdsa.chain import (
    BONDING_CONTRACT,
    FACTORY_CONTRACT,
    STAKING_CONTRACT,
    TOKEN_CONTRACT,
)
from keep_tecdsa.provisioning import ProvisioningContext

# Digit-only addresses are already in checksum form
OWNER_ADDRESS = "0x1000000000000000000000000000000000000001"
POOL_ADDRESS = "0x9000000000000000000000000000000000000009"
OPERATOR_ADDRESSES = [
    "0x2000000000000000000000000000000000000001",
    "0x2000000000000000000000000000000000000002",
    "0x2000000000000000000000000000000000000003",
]
CONTRACT_ADDRESSES = {
    FACTORY_CONTRACT: "0x4000000000000000000000000000000000000004",
    BONDING_CONTRACT: "0x5000000000000000000000000000000000000005",
    STAKING_CONTRACT: "0x6000000000000000000000000000000000000006",
    TOKEN_CONTRACT: "0x7000000000000000000000000000000000000007",
}

CONFIG_TEMPLATE = """\
[ethereum]
  URL = "ws://127.0.0.1:8546"
  URLRPC = "http://127.0.0.1:8545"

[ethereum.account]
  KeyFile = "/tmp/keyfile"

[ethereum.ContractAddresses]
  BondedECDSAKeepFactory = "0x0000000000000000000000000000000000000000"

[SanctionedApplications]
  Addresses = []

[Storage]
  DataDir = "/tmp/data"

[LibP2P]
  Peers = ["/ip4/127.0.0.1/tcp/3919/ipfs/16Uiu2HAmFRJtCWfdXhZEZHWb4tUpH1QMMgzH1oiamCfUuK6NgqWX"]
  Port = 3919
"""


@pytest.fixture
def owner_address() -> str:
    return OWNER_ADDRESS


@pytest.fixture
def application_address() -> str:
    return Web3.to_checksum_address("0x" + "aa" * 20)


@pytest.fixture
def pool_address() -> str:
    return POOL_ADDRESS


@pytest.fixture
def operator_addresses() -> list[str]:
    return list(OPERATOR_ADDRESSES)


@pytest.fixture
def contract_addresses() -> dict[str, str]:
    return dict(CONTRACT_ADDRESSES)


@pytest.fixture
def key_files(tmp_path: Path) -> list[Path]:
    """Write one geth-style key file (address without 0x) per operator."""
    keys_dir = tmp_path / "keys"
    keys_dir.mkdir()
    paths = []
    for i, address in enumerate(OPERATOR_ADDRESSES, start=1):
        path = keys_dir / f"operator-{i}.json"
        path.write_text(json.dumps({"address": address[2:], "version": 3}))
        paths.append(path)
    return paths


@pytest.fixture
def config_template(tmp_path: Path) -> Path:
    path = tmp_path / "keep-tecdsa-config-template.toml"
    path.write_text(CONFIG_TEMPLATE)
    return path


@pytest.fixture
def context(
    tmp_path: Path,
    key_files: list[Path],
    config_template: Path,
    application_address: str,
) -> ProvisioningContext:
    """Provisioning context with the owner acting as authorizer and purse."""
    return ProvisioningContext(
        owner_address=OWNER_ADDRESS,
        authorizer_address=OWNER_ADDRESS,
        purse_address=OWNER_ADDRESS,
        network_id="1101",
        rpc_url="http://eth-tx-node:8545",
        ws_url="ws://eth-ws-node:8546",
        application_address=application_address,
        operator_key_files=tuple(key_files),
        data_dir="/mnt/keep-tecdsa/data",
        config_template_path=config_template,
        config_output_path=tmp_path / "out" / "keep-tecdsa-config.toml",
    )


@pytest.fixture
def mock_chain() -> MagicMock:
    """
    Chain client mock for a fresh chain.

    Operators are unfunded and unstaked, the pool exists.
    """
    chain = MagicMock()
    chain.get_balance = AsyncMock(return_value=0)
    chain.call = AsyncMock(return_value=0)
    chain.transact = AsyncMock()
    chain.send_value = AsyncMock()
    chain.get_sortition_pool = AsyncMock(return_value=POOL_ADDRESS)
    chain.health_check = AsyncMock(return_value=True)
    chain.get_network_id = AsyncMock(return_value="1101")
    chain.contract_address.side_effect = CONTRACT_ADDRESSES.__getitem__
    return chain

"""
Provisioner configuration management.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_utils import ValidationError, is_hex_address
from web3 import Web3

from keep_tecdsa.chain import ChainConfig
from keep_tecdsa.provisioning import ProvisioningContext

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Operator key files come from numbered env vars set by the pod template
OPERATOR_KEY_FILE_ENV_VARS = (
    "KEEP_TECDSA_ETH_KEYFILE_1",
    "KEEP_TECDSA_ETH_KEYFILE_2",
    "KEEP_TECDSA_ETH_KEYFILE_3",
)


def _operator_key_files_from_env() -> list[str]:
    return [os.environ[var] for var in OPERATOR_KEY_FILE_ENV_VARS if os.environ.get(var)]


def add_args(parser: argparse.ArgumentParser) -> None:
    """
    Add provisioner arguments to the parser.

    Arguments can be overridden by environment variables.
    """

    parser.add_argument(
        "--eth.rpc_url",
        dest="eth_rpc_url",
        type=str,
        help="Ethereum JSON-RPC HTTP endpoint used for provisioning.",
        default=os.environ.get("ETH_RPC_URL", ""),
    )

    parser.add_argument(
        "--eth.ws_url",
        dest="eth_ws_url",
        type=str,
        help="Ethereum WebSocket endpoint written to the client config.",
        default=os.environ.get("ETH_WS_URL", ""),
    )

    parser.add_argument(
        "--eth.network_id",
        dest="eth_network_id",
        type=str,
        help="Network id used to select contract deployments from artifacts.",
        default=os.environ.get("ETH_NETWORK_ID", ""),
    )

    parser.add_argument(
        "--owner.address",
        dest="owner_address",
        type=str,
        help="Contract owner account (also authorizer and purse).",
        default=os.environ.get("CONTRACT_OWNER_ETH_ACCOUNT_ADDRESS", ""),
    )

    parser.add_argument(
        "--owner.private_key",
        dest="owner_private_key",
        type=str,
        help="Private key of the contract owner account.",
        default=os.environ.get("CONTRACT_OWNER_ETH_ACCOUNT_PRIVATE_KEY", ""),
    )

    parser.add_argument(
        "--operator.key_files",
        dest="operator_key_files",
        nargs="+",
        metavar="PATH",
        help="Operator JSON key files, provisioned in the given order.",
        default=_operator_key_files_from_env(),
    )

    parser.add_argument(
        "--application.address",
        dest="application_address",
        type=str,
        help="Application contract (TBTCSystem) to create a sortition pool for.",
        default=os.environ.get("TBTC_SYSTEM_CONTRACT_ADDRESS", ""),
    )

    parser.add_argument(
        "--data_dir",
        type=str,
        help="Data directory written to the client config.",
        default=os.environ.get("KEEP_DATA_DIR", ""),
    )

    parser.add_argument(
        "--artifacts.path",
        dest="artifacts_path",
        type=str,
        help="Directory containing <ContractName>.json Truffle artifacts.",
        default=os.environ.get("CONTRACT_ARTIFACTS_PATH", "."),
    )

    parser.add_argument(
        "--config.template",
        dest="config_template",
        type=str,
        help="Client config template (TOML).",
        default=os.environ.get(
            "KEEP_TECDSA_CONFIG_TEMPLATE", "./keep-tecdsa-config-template.toml"
        ),
    )

    parser.add_argument(
        "--config.output",
        dest="config_output",
        type=str,
        help="Path the final client config is written to.",
        default=os.environ.get("KEEP_TECDSA_CONFIG_OUTPUT", "./keep-tecdsa-config.toml"),
    )

    parser.add_argument(
        "--tx.gas",
        dest="tx_gas",
        type=int,
        help="Gas limit for contract transactions.",
        default=int(os.environ.get("ETH_DEFAULT_GAS", "4712388")),
    )

    parser.add_argument(
        "--tx.timeout",
        dest="tx_timeout",
        type=float,
        help="Seconds to wait for a transaction receipt.",
        default=float(os.environ.get("ETH_TX_POLLING_TIMEOUT", "480")),
    )

    parser.add_argument(
        "--rpc.timeout",
        dest="rpc_timeout",
        type=float,
        help="HTTP request timeout in seconds.",
        default=float(os.environ.get("ETH_RPC_TIMEOUT", "60")),
    )

    parser.add_argument(
        "--log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level.",
        default=os.environ.get("LOG_LEVEL", "INFO"),
    )


def get_config(args: list[str] | None = None) -> argparse.Namespace:
    """Parse arguments and return configuration."""
    parser = argparse.ArgumentParser(
        prog="keep-tecdsa-provision",
        description="Provision keep-tecdsa operators and client config",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_args(parser)
    config = parser.parse_args(args)

    # Convert paths to Path objects
    config.artifacts_path = Path(config.artifacts_path)
    config.config_template = Path(config.config_template)
    config.config_output = Path(config.config_output)
    config.operator_key_files = [Path(p) for p in config.operator_key_files]

    return config


def check_config(config: argparse.Namespace) -> None:
    """
    Validate configuration.

    Raises:
        ValueError: If configuration is invalid.
    """
    # argparse does not apply choices to env defaults
    if config.log_level not in LOG_LEVELS:
        raise ValueError(
            f"--log_level must be one of {', '.join(LOG_LEVELS)} "
            f"(or set LOG_LEVEL env var), got {config.log_level!r}"
        )

    if not config.eth_rpc_url:
        raise ValueError("--eth.rpc_url is required (or set ETH_RPC_URL env var)")

    if not config.eth_ws_url:
        raise ValueError("--eth.ws_url is required (or set ETH_WS_URL env var)")

    if not config.eth_network_id:
        raise ValueError("--eth.network_id is required (or set ETH_NETWORK_ID env var)")

    if not is_hex_address(config.owner_address):
        raise ValueError(
            "--owner.address must be a hex address "
            "(or set CONTRACT_OWNER_ETH_ACCOUNT_ADDRESS env var)"
        )

    if not config.owner_private_key:
        raise ValueError(
            "--owner.private_key is required "
            "(or set CONTRACT_OWNER_ETH_ACCOUNT_PRIVATE_KEY env var)"
        )

    try:
        derived = Account.from_key(config.owner_private_key).address
    except (TypeError, ValueError, ValidationError) as e:
        raise ValueError(f"--owner.private_key is not a valid private key: {e}") from e
    if derived.lower() != config.owner_address.lower():
        raise ValueError(
            f"--owner.private_key belongs to {derived}, not {config.owner_address}"
        )

    if not config.operator_key_files:
        raise ValueError(
            "--operator.key_files is required "
            "(or set KEEP_TECDSA_ETH_KEYFILE_1..3 env vars)"
        )

    if not is_hex_address(config.application_address):
        raise ValueError(
            "--application.address must be a hex address "
            "(or set TBTC_SYSTEM_CONTRACT_ADDRESS env var)"
        )

    if not config.data_dir:
        raise ValueError("--data_dir is required (or set KEEP_DATA_DIR env var)")


def config_to_dict(config: argparse.Namespace) -> dict[str, Any]:
    """Convert config to dictionary for logging."""
    return {
        "eth_rpc_url": config.eth_rpc_url,
        "eth_ws_url": config.eth_ws_url,
        "eth_network_id": config.eth_network_id,
        "owner_address": config.owner_address,
        "owner_private_key": "***" if config.owner_private_key else "",
        "operator_key_files": [str(p) for p in config.operator_key_files],
        "application_address": config.application_address,
        "data_dir": config.data_dir,
        "artifacts_path": str(config.artifacts_path),
        "config_template": str(config.config_template),
        "config_output": str(config.config_output),
        "tx_gas": config.tx_gas,
        "tx_timeout": config.tx_timeout,
        "rpc_timeout": config.rpc_timeout,
        "log_level": config.log_level,
    }


def to_chain_config(config: argparse.Namespace) -> ChainConfig:
    """Build the chain client configuration."""
    return ChainConfig(
        rpc_url=config.eth_rpc_url,
        network_id=config.eth_network_id,
        artifacts_path=config.artifacts_path,
        default_gas=config.tx_gas,
        tx_timeout=config.tx_timeout,
        request_timeout=config.rpc_timeout,
    )


def to_context(config: argparse.Namespace) -> ProvisioningContext:
    """Build the provisioning context. The owner is also authorizer and purse."""
    owner = Web3.to_checksum_address(config.owner_address)
    return ProvisioningContext(
        owner_address=owner,
        authorizer_address=owner,
        purse_address=owner,
        network_id=config.eth_network_id,
        rpc_url=config.eth_rpc_url,
        ws_url=config.eth_ws_url,
        application_address=Web3.to_checksum_address(config.application_address),
        operator_key_files=tuple(config.operator_key_files),
        data_dir=config.data_dir,
        config_template_path=config.config_template,
        config_output_path=config.config_output,
    )


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

"""Key file parsing and amount helpers."""

from __future__ import annotations

import json
from pathlib import Path

from eth_abi.packed import encode_packed
from eth_utils import is_hex_address
from web3 import Web3

from .errors import KeyFileError


def read_address_from_key_file(key_file: str | Path) -> str:
    """
    Read the account address from an Ethereum JSON key file.

    Geth-style key files store the address without the 0x prefix; the
    returned address is always 0x-prefixed and checksummed.

    Raises:
        KeyFileError: If the file is missing, not JSON, or has no valid address.
    """
    path = Path(key_file)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise KeyFileError(f"Key file not found: {path}") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise KeyFileError(f"Failed to read key file {path}: {e}") from e

    address = data.get("address") if isinstance(data, dict) else None
    if not isinstance(address, str) or not address:
        raise KeyFileError(f"Key file {path} has no address field")

    if not address.startswith("0x"):
        address = "0x" + address
    if not is_hex_address(address):
        raise KeyFileError(f"Key file {path} has an invalid address: {address}")

    return Web3.to_checksum_address(address)


def format_amount(amount: int, decimals: int) -> int:
    """Scale a whole-token amount to base units (amount * 10**decimals)."""
    return amount * 10**decimals


def encode_delegation(owner: str, operator: str, authorizer: str) -> bytes:
    """
    Build the TokenStaking delegation payload.

    approveAndCall forwards it to TokenStaking.receiveApproval, which reads
    three packed 20-byte addresses: owner, operator, authorizer.
    """
    return encode_packed(
        ["address", "address", "address"],
        [
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(operator),
            Web3.to_checksum_address(authorizer),
        ],
    )

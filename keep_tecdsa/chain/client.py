"""web3-based chain client for provisioning operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from .errors import (
    ChainConnectionError,
    ContractCallError,
    SortitionPoolNotFoundError,
    TransactionError,
    TransactionFailedError,
    UnknownSignerError,
)
from .models import ContractArtifact, TransactionReceipt

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount
    from web3.contract import AsyncContract

logger = logging.getLogger(__name__)

# Contracts migrated by keep-ecdsa / keep-core, looked up by artifact name
FACTORY_CONTRACT = "BondedECDSAKeepFactory"
BONDING_CONTRACT = "KeepBonding"
STAKING_CONTRACT = "TokenStaking"
TOKEN_CONTRACT = "KeepToken"

# Revert message of BondedECDSAKeepFactory.getSortitionPool for unknown applications
POOL_NOT_FOUND_REASON = "No pool found for the application"

# Gas for a plain value transfer
TRANSFER_GAS = 21000


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for the chain client."""

    rpc_url: str  # e.g., "http://eth-tx-node:8545"
    network_id: str  # Truffle network id used to pick deployment addresses
    artifacts_path: Path  # Directory holding <ContractName>.json artifacts
    default_gas: int = 4712388
    tx_timeout: float = 480.0  # Receipt polling timeout in seconds
    tx_poll_latency: float = 1.0  # Receipt polling interval in seconds
    request_timeout: float = 60.0  # HTTP request timeout in seconds


def _revert_reason(error: Exception) -> str:
    message = getattr(error, "message", None)
    return message if isinstance(message, str) and message else str(error)


@contextmanager
def _translate_errors(label: str) -> Iterator[None]:
    """Map web3/aiohttp exceptions raised inside the block to ChainError types."""
    try:
        yield
    except ContractLogicError as e:
        reason = _revert_reason(e)
        raise ContractCallError(f"{label} reverted: {reason}", reason=reason) from e
    except TimeExhausted as e:
        raise TransactionError(f"{label}: receipt not available: {e}") from e
    except Web3RPCError as e:
        reason = _revert_reason(e)
        raise ContractCallError(f"{label} rejected: {reason}", reason=reason) from e
    except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as e:
        raise ChainConnectionError(f"{label}: connection error: {e}") from e


class ChainClient:
    """
    Async client for the Ethereum chain keep-tecdsa runs against.

    Handles:
    - Loading contract instances from Truffle artifacts
    - Read-only contract calls
    - Locally signed transactions (contract methods and value transfers)

    Every call is a single attempt. Transactions wait for their receipt,
    bounded by the configured polling timeout.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        config: ChainConfig,
        signers: Iterable[LocalAccount] = (),
    ):
        """
        Initialize chain client.

        Args:
            w3: Connected AsyncWeb3 instance
            config: Chain configuration
            signers: Accounts allowed to send transactions
        """
        self._w3 = w3
        self._config = config
        self._signers = {
            Web3.to_checksum_address(account.address): account for account in signers
        }
        self._contracts: dict[str, AsyncContract] = {}

    @classmethod
    def create(cls, config: ChainConfig, private_keys: Iterable[str]) -> ChainClient:
        """Create a client over HTTP with the given signing keys."""
        provider = AsyncHTTPProvider(
            config.rpc_url,
            request_kwargs={
                "timeout": aiohttp.ClientTimeout(total=config.request_timeout)
            },
        )
        signers = [Account.from_key(key) for key in private_keys]
        return cls(AsyncWeb3(provider), config, signers)

    async def __aenter__(self) -> ChainClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    async def health_check(self) -> bool:
        """
        Check if the RPC endpoint answers.

        Returns:
            True if connected, False otherwise
        """
        return await self._w3.is_connected()

    async def get_network_id(self) -> str:
        """Return the node's net_version."""
        with _translate_errors("net_version"):
            return str(await self._w3.net.version)

    def contract(self, name: str) -> AsyncContract:
        """
        Get a contract instance by artifact name.

        Instances are cached for the lifetime of the client.

        Raises:
            ContractArtifactError: If the artifact cannot be loaded.
        """
        if name not in self._contracts:
            artifact = ContractArtifact.from_file(
                self._config.artifacts_path, name, self._config.network_id
            )
            self._contracts[name] = self._w3.eth.contract(
                address=artifact.address, abi=artifact.abi
            )
            logger.debug(f"Loaded contract {name} at {artifact.address}")
        return self._contracts[name]

    def contract_address(self, name: str) -> str:
        """Get the deployed address of a contract by artifact name."""
        return self.contract(name).address

    async def get_balance(self, address: str) -> int:
        """Get native balance of an address in wei."""
        with _translate_errors(f"eth_getBalance({address})"):
            return await self._w3.eth.get_balance(Web3.to_checksum_address(address))

    async def call(self, contract_name: str, method: str, *args: Any) -> Any:
        """
        Execute a read-only contract method.

        Raises:
            ContractCallError: If the call reverts or the node rejects it.
            ChainConnectionError: If the RPC endpoint is unreachable.
        """
        function = getattr(self.contract(contract_name).functions, method)(*args)
        with _translate_errors(f"{contract_name}.{method}"):
            return await function.call()

    async def transact(
        self,
        contract_name: str,
        method: str,
        *args: Any,
        sender: str,
        value: int = 0,
    ) -> TransactionReceipt:
        """
        Send a contract transaction signed by sender and wait for its receipt.

        Args:
            contract_name: Artifact name of the target contract
            method: Contract method name
            *args: Method arguments
            sender: Address of a configured signer
            value: Wei to attach to the transaction

        Raises:
            UnknownSignerError: If sender has no private key configured.
            ContractCallError: If building the transaction is rejected.
            TransactionFailedError: If the mined transaction reverted.
            TransactionError: If the node rejects the signed transaction or
                the receipt is not available in time.
        """
        label = f"{contract_name}.{method}"
        account = self._signer(sender)
        function = getattr(self.contract(contract_name).functions, method)(*args)

        with _translate_errors(label):
            params = await self._tx_params(account.address, value)
            tx = await function.build_transaction(params)

        return await self._sign_and_send(account, tx, label)

    async def send_value(self, sender: str, to: str, value: int) -> TransactionReceipt:
        """Transfer value (wei) from sender to an address."""
        label = f"transfer to {to}"
        account = self._signer(sender)

        with _translate_errors(label):
            tx = await self._tx_params(account.address, value)
            tx["to"] = Web3.to_checksum_address(to)
            tx["gas"] = TRANSFER_GAS
            tx["chainId"] = await self._w3.eth.chain_id

        return await self._sign_and_send(account, tx, label)

    async def get_sortition_pool(self, application: str) -> str:
        """
        Look up the sortition pool of an application.

        Returns:
            Pool contract address

        Raises:
            SortitionPoolNotFoundError: If no pool exists for the application.
            ContractCallError: For any other rejected lookup.
        """
        try:
            return await self.call(FACTORY_CONTRACT, "getSortitionPool", application)
        except ContractCallError as e:
            if POOL_NOT_FOUND_REASON in e.reason:
                raise SortitionPoolNotFoundError(
                    f"No sortition pool for application {application}",
                    reason=e.reason,
                ) from e
            raise

    def _signer(self, address: str) -> LocalAccount:
        account = self._signers.get(Web3.to_checksum_address(address))
        if account is None:
            raise UnknownSignerError(f"No private key configured for {address}")
        return account

    async def _tx_params(self, sender: str, value: int) -> dict[str, Any]:
        return {
            "from": sender,
            "value": value,
            "gas": self._config.default_gas,
            "gasPrice": await self._w3.eth.gas_price,
            "nonce": await self._w3.eth.get_transaction_count(sender, "pending"),
        }

    async def _sign_and_send(
        self, account: LocalAccount, tx: dict[str, Any], label: str
    ) -> TransactionReceipt:
        signed = account.sign_transaction(tx)

        with _translate_errors(label):
            try:
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            except Web3RPCError as e:
                raise TransactionError(
                    f"{label}: transaction rejected: {_revert_reason(e)}"
                ) from e
            logger.debug(f"{label}: sent {Web3.to_hex(tx_hash)}")
            raw_receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._config.tx_timeout,
                poll_latency=self._config.tx_poll_latency,
            )

        receipt = TransactionReceipt.from_web3(raw_receipt)
        if not receipt.succeeded:
            raise TransactionFailedError(
                f"{label} reverted in transaction {receipt.tx_hash}",
                tx_hash=receipt.tx_hash,
            )

        logger.debug(
            f"{label}: mined in block {receipt.block_number}, gas used {receipt.gas_used}"
        )
        return receipt

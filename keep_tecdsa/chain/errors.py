"""Custom exceptions for chain interactions."""


class ChainError(Exception):
    """Base exception for chain-related errors."""

    pass


class ChainConnectionError(ChainError):
    """
    Raised when the RPC endpoint cannot be reached.

    This can happen when:
    - The Ethereum node is not running yet
    - Network connectivity issues
    - The RPC URL is wrong
    """

    pass


class ContractArtifactError(ChainError):
    """
    Raised when a contract artifact cannot be loaded.

    This can happen when:
    - The <ContractName>.json file is missing
    - The artifact has no ABI
    - The contract was not migrated to the configured network id
    """

    pass


class ContractCallError(ChainError):
    """
    Raised when a contract call or transaction is rejected by the node.

    This can happen when:
    - The contract reverts (require/revert)
    - Gas estimation fails
    - The node returns a JSON-RPC error
    """

    def __init__(self, message: str, reason: str = ""):
        super().__init__(message)
        self.reason = reason


class SortitionPoolNotFoundError(ContractCallError):
    """
    Raised when the factory has no sortition pool for an application.

    This is the only expected revert during provisioning: it tells the
    caller to create the pool.
    """

    pass


class TransactionError(ChainError):
    """
    Raised when a transaction cannot be signed, sent or confirmed.

    This can happen when:
    - The receipt is not available within the polling timeout
    - The node rejects the raw transaction (nonce, funds)
    """

    pass


class TransactionFailedError(TransactionError):
    """Raised when a mined transaction has status 0 (reverted)."""

    def __init__(self, message: str, tx_hash: str = ""):
        super().__init__(message)
        self.tx_hash = tx_hash


class UnknownSignerError(ChainError):
    """
    Raised when a transaction is requested from an address with no key.

    Only accounts whose private keys were handed to the client can send.
    """

    pass

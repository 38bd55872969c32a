"""Chain interaction layer via web3."""

from .client import (
    BONDING_CONTRACT,
    FACTORY_CONTRACT,
    POOL_NOT_FOUND_REASON,
    STAKING_CONTRACT,
    TOKEN_CONTRACT,
    ChainClient,
    ChainConfig,
)
from .errors import (
    ChainConnectionError,
    ChainError,
    ContractArtifactError,
    ContractCallError,
    SortitionPoolNotFoundError,
    TransactionError,
    TransactionFailedError,
    UnknownSignerError,
)
from .models import ContractArtifact, TransactionReceipt

__all__ = [
    # Client
    "ChainClient",
    "ChainConfig",
    # Contract names
    "BONDING_CONTRACT",
    "FACTORY_CONTRACT",
    "STAKING_CONTRACT",
    "TOKEN_CONTRACT",
    "POOL_NOT_FOUND_REASON",
    # Errors
    "ChainConnectionError",
    "ChainError",
    "ContractArtifactError",
    "ContractCallError",
    "SortitionPoolNotFoundError",
    "TransactionError",
    "TransactionFailedError",
    "UnknownSignerError",
    # Models
    "ContractArtifact",
    "TransactionReceipt",
]

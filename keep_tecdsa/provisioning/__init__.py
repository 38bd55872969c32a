"""
keep-tecdsa provisioning - prepares operators and the client configuration.

This module provides:
- Provisioner: Runs the pool/fund/stake/authorize/config sequence
- ConfigWriter: Writes the client TOML configuration from a template

Usage:
    from keep_tecdsa.provisioning import Provisioner

    provisioner = Provisioner.create(chain, context)
    result = await provisioner.run()
"""

from .config_writer import ConfigWriter
from .errors import ConfigWriteError, KeyFileError, ProvisioningError
from .models import (
    BONDING_DEPOSIT,
    FUNDING_AMOUNT,
    FUNDING_THRESHOLD,
    STAKE_AMOUNT,
    ClientConfigValues,
    OperatorAccount,
    OperatorResult,
    ProvisioningContext,
    ProvisioningResult,
    SortitionPoolRef,
)
from .provisioner import Provisioner
from .utils import encode_delegation, format_amount, read_address_from_key_file

__all__ = [
    # Provisioning
    "Provisioner",
    "ConfigWriter",
    # Models
    "ClientConfigValues",
    "OperatorAccount",
    "OperatorResult",
    "ProvisioningContext",
    "ProvisioningResult",
    "SortitionPoolRef",
    # Amounts
    "BONDING_DEPOSIT",
    "FUNDING_AMOUNT",
    "FUNDING_THRESHOLD",
    "STAKE_AMOUNT",
    # Helpers
    "encode_delegation",
    "format_amount",
    "read_address_from_key_file",
    # Errors
    "ProvisioningError",
    "KeyFileError",
    "ConfigWriteError",
]

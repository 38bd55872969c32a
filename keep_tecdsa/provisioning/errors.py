"""Custom exceptions for provisioning operations."""


class ProvisioningError(Exception):
    """Base exception for all provisioning errors."""

    pass


class KeyFileError(ProvisioningError):
    """
    Raised when an operator key file cannot be used.

    This can happen when:
    - The key file path does not exist
    - The file is not valid JSON
    - The file has no valid `address` field
    """

    pass


class ConfigWriteError(ProvisioningError):
    """
    Raised when the client configuration cannot be produced.

    This can happen when:
    - The template file is missing or unreadable
    - The template is not valid TOML
    - The output path is not writable
    """

    pass

"""keep-tecdsa client configuration writer."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import toml

from .errors import ConfigWriteError
from .models import ClientConfigValues

logger = logging.getLogger(__name__)


def _table(document: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Return the nested table at keys, creating missing tables."""
    table = document
    for key in keys:
        table = table.setdefault(key, {})
        if not isinstance(table, dict):
            raise ConfigWriteError(f"Config key {'.'.join(keys)} is not a table")
    return table


class ConfigWriter:
    """
    Produces the client configuration from a TOML template.

    Overwrites the runtime fields and leaves everything else in the
    template untouched:
    - ethereum.URL
    - ethereum.account.KeyFile
    - ethereum.ContractAddresses.BondedECDSAKeepFactory
    - SanctionedApplications.Addresses
    - Storage.DataDir
    """

    def __init__(self, template_path: Path, output_path: Path):
        """
        Args:
            template_path: TOML template to read
            output_path: Where the final configuration is written
        """
        self._template_path = template_path
        self._output_path = output_path

    def load_template(self) -> dict[str, Any]:
        """
        Parse the template.

        Raises:
            ConfigWriteError: If the template cannot be read or parsed.
        """
        try:
            with open(self._template_path, encoding="utf-8") as f:
                return toml.load(f)
        except FileNotFoundError as e:
            raise ConfigWriteError(
                f"Config template not found: {self._template_path}"
            ) from e
        except (OSError, UnicodeDecodeError, toml.TomlDecodeError) as e:
            raise ConfigWriteError(
                f"Failed to parse config template {self._template_path}: {e}"
            ) from e

    @staticmethod
    def build(template: dict[str, Any], values: ClientConfigValues) -> dict[str, Any]:
        """Return a copy of template with the runtime fields overwritten."""
        document = copy.deepcopy(template)

        ethereum = _table(document, "ethereum")
        ethereum["URL"] = values.ws_url
        _table(document, "ethereum", "account")["KeyFile"] = [
            str(path) for path in values.key_files
        ]
        _table(document, "ethereum", "ContractAddresses")[
            "BondedECDSAKeepFactory"
        ] = values.factory_address

        _table(document, "SanctionedApplications")["Addresses"] = list(
            values.sanctioned_applications
        )
        _table(document, "Storage")["DataDir"] = values.data_dir

        return document

    def write(self, values: ClientConfigValues) -> Path:
        """
        Load the template, apply values and write the output file.

        Returns:
            Path of the written configuration

        Raises:
            ConfigWriteError: If reading, parsing or writing fails.
        """
        document = self.build(self.load_template(), values)

        try:
            self._output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._output_path, "w", encoding="utf-8") as f:
                f.write(toml.dumps(document))
        except OSError as e:
            raise ConfigWriteError(
                f"Failed to write config {self._output_path}: {e}"
            ) from e

        logger.info(f"keep-tecdsa config written to {self._output_path.resolve()}")
        return self._output_path

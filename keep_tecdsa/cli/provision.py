"""
keep-tecdsa provisioning entry point.

Runs once inside the keep-tecdsa init container and exits:
0 on success, 1 on any fatal error, 130 when interrupted.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from keep_tecdsa.chain import ChainClient, ChainConnectionError, ChainError
from keep_tecdsa.provisioning import Provisioner, ProvisioningError

from .config import (
    check_config,
    config_to_dict,
    get_config,
    setup_logging,
    to_chain_config,
    to_context,
)

logger = logging.getLogger(__name__)


async def main(args: list[str] | None = None) -> int:
    """Parse configuration, run provisioning and return the exit code."""
    config = get_config(args)

    try:
        check_config(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(config.log_level)

    logger.info(f"Config: {config_to_dict(config)}")

    try:
        async with ChainClient.create(
            to_chain_config(config), [config.owner_private_key]
        ) as chain:
            if not await chain.health_check():
                raise ChainConnectionError(
                    f"Ethereum node not reachable at {config.eth_rpc_url}"
                )

            network_id = await chain.get_network_id()
            if network_id != str(config.eth_network_id):
                logger.warning(
                    f"Node reports network id {network_id}, "
                    f"using deployments for {config.eth_network_id}"
                )

            result = await Provisioner.create(chain, to_context(config)).run()

    except (ChainError, ProvisioningError) as e:
        logger.error(f"Provisioning failed: {e}")
        return 1
    except Exception:
        logger.exception("Unexpected error during provisioning")
        return 1

    logger.info(f"Provisioning result: {json.dumps(result.to_dict())}")
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()

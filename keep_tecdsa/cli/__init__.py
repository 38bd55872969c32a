"""
keep-tecdsa provisioner CLI.

Usage:
    keep-tecdsa-provision \\
        --eth.rpc_url http://eth-tx-node:8545 \\
        --eth.ws_url ws://eth-ws-node:8546 \\
        --eth.network_id 1101 \\
        --application.address 0x... \\
        --operator.key_files /mnt/keys/1.json /mnt/keys/2.json

Every flag falls back to the environment variable set by the pod template
(ETH_RPC_URL, ETH_WS_URL, ETH_NETWORK_ID, KEEP_TECDSA_ETH_KEYFILE_1..3, ...).
"""

from .provision import main, run

__all__ = ["main", "run"]

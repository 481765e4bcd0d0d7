"""
Network configuration for flowdeploy.

Chain ids, RPC endpoints, Superfluid framework addresses and super tokens are
named entries in the packaged networks.json; nothing in the deploy or flow
logic embeds an address literal.
"""
import json
import logging
import os
from importlib import resources
from typing import Any, Dict, Optional

from web3 import Web3

logger = logging.getLogger(__name__)


class NetworkConfig:
    """Read-only access to the packaged network definitions."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load all network definitions.

        Returns:
            Mapping of network name to its configuration dictionary
        """
        if cls._networks_cache is None:
            text = resources.files("flowdeploy").joinpath("networks.json").read_text(encoding="utf-8")
            cls._networks_cache = json.loads(text)
            logger.debug(f"Loaded {len(cls._networks_cache)} network definitions")
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the configuration of a single network.

        Raises:
            ValueError: If the network is not defined
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC endpoint for a network.

        Precedence: explicit override, <NETWORK>_RPC_URL, PRIVATE_RPC, then the
        packaged default.
        """
        if override:
            return override
        env_name = network.upper().replace("-", "_") + "_RPC_URL"
        for candidate in (os.environ.get(env_name), os.environ.get("PRIVATE_RPC")):
            if candidate:
                return candidate
        return cls.get_network(network)["rpc"]

    @classmethod
    def _framework_address(cls, network: str, key: str) -> str:
        framework = cls.get_network(network).get("superfluid", {})
        if key not in framework:
            raise ValueError(f"Superfluid '{key}' address is not configured for network '{network}'")
        return Web3.to_checksum_address(framework[key])

    @classmethod
    def get_framework_address(cls, network: str, key: str) -> str:
        return cls._framework_address(network, key)

    @classmethod
    def get_host_address(cls, network: str) -> str:
        return cls._framework_address(network, "host")

    @classmethod
    def get_cfa_address(cls, network: str) -> str:
        return cls._framework_address(network, "cfaV1")

    @classmethod
    def get_super_tokens(cls, network: str) -> Dict[str, Dict[str, str]]:
        """Super tokens of a network keyed by symbol, with checksummed addresses"""
        tokens = cls.get_network(network).get("superTokens", {})
        return {
            symbol: {field: Web3.to_checksum_address(value) for field, value in entry.items()}
            for symbol, entry in tokens.items()
        }

    @classmethod
    def get_super_token(cls, network: str, symbol: str) -> Optional[Dict[str, str]]:
        return cls.get_super_tokens(network).get(symbol)

    @classmethod
    def get_explorer_url(cls, network: str) -> Optional[str]:
        explorer = cls.get_network(network).get("explorer")
        return explorer.rstrip("/") if explorer else None

    @classmethod
    def get_tx_url(cls, network: str, tx_hash: str) -> Optional[str]:
        explorer = cls.get_explorer_url(network)
        if not explorer:
            return None
        if not tx_hash.startswith("0x"):
            tx_hash = "0x" + tx_hash
        return f"{explorer}/tx/{tx_hash}"

    @classmethod
    def get_address_url(cls, network: str, address: str) -> Optional[str]:
        explorer = cls.get_explorer_url(network)
        return f"{explorer}/address/{address}" if explorer else None

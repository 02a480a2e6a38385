"""
Configuration helpers for the multichain MCP server.

This module centralizes per-network base URL selection, default timeouts,
logging and rate-limit settings. Everything is read from the environment;
nothing is hard-coded beyond local defaults for each node's usual port.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from multichain_mcp.errors import ConfigurationError
from multichain_mcp.networks import Network

ENV_PREFIX = "MULTICHAIN_MCP_"

# Default node endpoints (one local port per backend)
DEFAULT_BASE_URLS: Dict[Network, str] = {
    Network.FLUX: "http://localhost:16127",
    Network.KASPA: "http://localhost:8000",
    Network.ALEPHIUM: "http://localhost:9090",
    Network.ERGO: "http://localhost:8080",
}
DEFAULT_HTTP_TIMEOUT = 10.0

# Safety limits
WALLET_HISTORY_LIMIT = 10
MAX_IDENTIFIER_LENGTH = 128
DEFAULT_RATE_LIMIT_QPS = 5.0


def _parse_float(raw: Optional[str], default: float) -> float:
    if raw:
        try:
            value = float(raw)
        except ValueError:
            return default
        if value > 0:
            return value
    return default


def _load_timeout() -> float:
    return _parse_float(os.getenv(f"{ENV_PREFIX}HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT)


def _parse_networks(raw: Optional[str]) -> List[Network]:
    """Parse a comma-separated list of network names, preserving order."""
    if not raw or not raw.strip():
        return list(Network)
    networks: List[Network] = []
    for part in raw.split(","):
        name = part.strip().lower()
        if not name:
            continue
        try:
            network = Network(name)
        except ValueError:
            raise ConfigurationError(f"Unknown network in {ENV_PREFIX}NETWORKS: {name}") from None
        if network not in networks:
            networks.append(network)
    return networks


def _parse_tool_rate_limits(raw: Optional[str]) -> Dict[str, float]:
    """Parse ``tool=qps,tool=qps`` overrides; malformed entries are ignored."""
    limits: Dict[str, float] = {}
    if not raw:
        return limits
    for part in raw.split(","):
        name, sep, value = part.partition("=")
        if not sep or not name.strip():
            continue
        parsed = _parse_float(value.strip(), 0.0)
        if parsed > 0:
            limits[name.strip()] = parsed
    return limits


DEFAULT_TIMEOUT = _load_timeout()
LOG_LEVEL = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv(f"{ENV_PREFIX}LOG_FORMAT", "json")  # json or plain


@dataclass(slots=True)
class NetworkConfig:
    """Connection settings for a single backend node."""

    network: Network
    base_url: str
    timeout: float = DEFAULT_HTTP_TIMEOUT


def load_network_config(network: Network, *, default_timeout: float = DEFAULT_TIMEOUT) -> NetworkConfig:
    """Build a NetworkConfig from ``MULTICHAIN_MCP_<NETWORK>_URL`` / ``_TIMEOUT``."""
    key = network.value.upper()
    base_url = os.getenv(f"{ENV_PREFIX}{key}_URL") or DEFAULT_BASE_URLS[network]
    timeout = _parse_float(os.getenv(f"{ENV_PREFIX}{key}_TIMEOUT"), default_timeout)
    return NetworkConfig(network=network, base_url=base_url.rstrip("/"), timeout=timeout)


def _load_networks() -> Dict[Network, NetworkConfig]:
    enabled = _parse_networks(os.getenv(f"{ENV_PREFIX}NETWORKS"))
    return {network: load_network_config(network) for network in enabled}


@dataclass(slots=True)
class ServerConfig:
    """Runtime configuration for the gateway and its backends."""

    networks: Dict[Network, NetworkConfig] = field(default_factory=_load_networks)
    timeout: float = DEFAULT_TIMEOUT
    wallet_history_limit: int = WALLET_HISTORY_LIMIT
    rate_limit_qps: float = DEFAULT_RATE_LIMIT_QPS
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    per_tool_rate_limits: Dict[str, float] = field(
        default_factory=lambda: _parse_tool_rate_limits(os.getenv(f"{ENV_PREFIX}TOOL_RATE_LIMITS"))
    )

    def network_config(self, network: Network) -> NetworkConfig:
        try:
            return self.networks[network]
        except KeyError:
            raise ConfigurationError(f"Network {network.value} is not enabled") from None


default_config = ServerConfig(
    rate_limit_qps=_parse_float(os.getenv(f"{ENV_PREFIX}RATE_LIMIT_QPS"), DEFAULT_RATE_LIMIT_QPS),
)

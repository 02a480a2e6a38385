"""Backend adapters, one per supported network."""

from typing import Dict, Type

from multichain_mcp.networks import Network

from .base import BackendAdapter, HttpBackendAdapter, gather_or_cancel, most_recent
from .client import BackendHttpClient
from .alephium import AlephiumAdapter
from .ergo import ErgoAdapter
from .flux import FluxAdapter
from .kaspa import KaspaAdapter

ADAPTER_TYPES: Dict[Network, Type[HttpBackendAdapter]] = {
    Network.FLUX: FluxAdapter,
    Network.KASPA: KaspaAdapter,
    Network.ALEPHIUM: AlephiumAdapter,
    Network.ERGO: ErgoAdapter,
}

__all__ = [
    "ADAPTER_TYPES",
    "AlephiumAdapter",
    "BackendAdapter",
    "BackendHttpClient",
    "ErgoAdapter",
    "FluxAdapter",
    "HttpBackendAdapter",
    "KaspaAdapter",
    "gather_or_cancel",
    "most_recent",
]

"""Closed set of supported blockchain networks."""

from __future__ import annotations

from enum import Enum
from typing import Union

from multichain_mcp.errors import UnsupportedBackend


class Network(str, Enum):
    FLUX = "flux"
    KASPA = "kaspa"
    ALEPHIUM = "alephium"
    ERGO = "ergo"

    def __str__(self) -> str:
        return self.value


def parse_network(value: Union[str, Network, None]) -> Network:
    """Return the Network for ``value`` or raise UnsupportedBackend."""
    if isinstance(value, Network):
        return value
    if not isinstance(value, str) or not value.strip():
        raise UnsupportedBackend(f"Unsupported network: {value}", network=str(value))
    try:
        return Network(value.strip().lower())
    except ValueError:
        raise UnsupportedBackend(f"Unsupported network: {value}", network=value) from None

"""
Adapter registry: the single process-wide table of backends and operations.

Adapters are registered during startup, after which the registry is frozen
and only read. Operation lookup is keyed by tool name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from multichain_mcp.arguments import ToolArguments, input_schema, validate_arguments
from multichain_mcp.config import ServerConfig
from multichain_mcp.envelope import InvocationResult
from multichain_mcp.errors import (
    ConfigurationError,
    DuplicateBackend,
    RegistryFrozen,
    UnsupportedBackend,
)
from multichain_mcp.networks import Network, parse_network

if TYPE_CHECKING:
    from multichain_mcp.backends.base import BackendAdapter

logger = logging.getLogger(__name__)

OperationHandler = Callable[..., Awaitable[InvocationResult]]


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    name: str
    network: Network
    description: str
    arguments: Type[ToolArguments]
    handler: OperationHandler

    def validate(self, args: Any) -> Dict[str, Any]:
        return validate_arguments(self.arguments, args)

    def input_schema(self) -> Dict[str, Any]:
        return input_schema(self.arguments)

    def to_tool(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class AdapterRegistry:
    """Ordered mapping of network -> adapter, plus tool name -> descriptor."""

    def __init__(self) -> None:
        self._adapters: Dict[Network, "BackendAdapter"] = {}
        self._operations: Dict[str, OperationDescriptor] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, network_id: Union[str, Network], adapter: "BackendAdapter") -> None:
        if self._frozen:
            raise RegistryFrozen("Registry is frozen; adapters can only be registered at startup")
        network = parse_network(network_id)
        if network in self._adapters:
            raise DuplicateBackend(f"Network {network.value} is already registered", network=network.value)

        operations = list(adapter.operations())
        seen: Dict[str, OperationDescriptor] = {}
        for descriptor in operations:
            if descriptor.network is not network:
                raise ConfigurationError(
                    f"Operation {descriptor.name} belongs to {descriptor.network.value}, not {network.value}"
                )
            if descriptor.name in self._operations or descriptor.name in seen:
                raise DuplicateBackend(
                    f"Operation {descriptor.name} is already registered", network=network.value
                )
            seen[descriptor.name] = descriptor

        self._adapters[network] = adapter
        self._operations.update(seen)
        logger.debug("registered network=%s operations=%s", network.value, sorted(seen))

    def resolve(self, network_id: Union[str, Network, None]) -> "BackendAdapter":
        network = parse_network(network_id)
        adapter = self._adapters.get(network)
        if adapter is None:
            raise UnsupportedBackend(f"Unsupported network: {network.value}", network=network.value)
        return adapter

    def get_operation(self, name: str) -> Optional[OperationDescriptor]:
        return self._operations.get(name)

    def list_operations(self) -> List[OperationDescriptor]:
        return list(self._operations.values())

    def networks(self) -> List[Network]:
        return list(self._adapters)

    def adapters(self) -> List["BackendAdapter"]:
        return list(self._adapters.values())


def build_registry(config: ServerConfig) -> AdapterRegistry:
    """Register one adapter per enabled network and freeze the result."""
    from multichain_mcp.backends import ADAPTER_TYPES

    if not config.networks:
        raise ConfigurationError("No networks enabled")
    registry = AdapterRegistry()
    for network, network_config in config.networks.items():
        adapter_type = ADAPTER_TYPES[network]
        registry.register(
            network,
            adapter_type(network_config, history_limit=config.wallet_history_limit),
        )
    registry.freeze()
    logger.info("registry ready networks=%s", ",".join(n.value for n in registry.networks()))
    return registry

"""
Tool/resource/prompt router.

The router is the protocol-facing facade: it validates arguments, resolves
the owning adapter with a single registry lookup, and always answers with a
well-formed envelope. It never branches on network identity.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from multichain_mcp import prompts
from multichain_mcp.arguments import (
    AddressArguments,
    GenericWalletArguments,
    TransactionArguments,
    input_schema,
    validate_arguments,
)
from multichain_mcp.envelope import InvocationResult
from multichain_mcp.errors import (
    BackendUnavailable,
    RouterNotServing,
    UnsupportedBackend,
    ValidationError,
)
from multichain_mcp.metrics import InstrumentationSink, default_metrics
from multichain_mcp.registry import AdapterRegistry
from multichain_mcp.resources import ResourceKind, parse_resource_uri, resource_templates

logger = logging.getLogger(__name__)

GENERIC_WALLET_INFO_TOOL = "wallet-info"


class RouterState(str, Enum):
    INITIALIZING = "initializing"
    SERVING = "serving"


def _unsupported(network: Any) -> str:
    return f"Unsupported network: {network}"


def _log_outcome(name: str, network: str, result: InvocationResult) -> None:
    if result.is_error:
        logger.warning(
            "tool=%s network=%s outcome=error error=%s",
            name,
            network,
            result.error,
            extra={"tool": name, "network": network, "error": result.error},
        )
    else:
        logger.info(
            "tool=%s network=%s outcome=success",
            name,
            network,
            extra={"tool": name, "network": network},
        )


class Router:
    def __init__(
        self,
        registry: AdapterRegistry,
        *,
        metrics: InstrumentationSink = default_metrics,
    ) -> None:
        self.registry = registry
        self.metrics = metrics
        self._state = RouterState.INITIALIZING

    @property
    def state(self) -> RouterState:
        return self._state

    def start(self) -> None:
        """Freeze the registry and begin serving. Irreversible."""
        if self._state is RouterState.SERVING:
            return
        self.registry.freeze()
        self._state = RouterState.SERVING
        logger.info("router serving tools=%d", len(self.registry.list_operations()))

    def _require_serving(self) -> None:
        if self._state is not RouterState.SERVING:
            raise RouterNotServing("Router is still initializing")

    # -- listing -------------------------------------------------------------

    def list_tools(self) -> List[Dict[str, Any]]:
        tools = [descriptor.to_tool() for descriptor in self.registry.list_operations()]
        schema = input_schema(GenericWalletArguments)
        schema["properties"]["network"]["enum"] = [n.value for n in self.registry.networks()]
        tools.append(
            {
                "name": GENERIC_WALLET_INFO_TOOL,
                "description": "Return wallet info (balance and recent transactions) on any supported network.",
                "inputSchema": schema,
            }
        )
        return tools

    def list_resource_templates(self) -> List[Dict[str, str]]:
        return resource_templates(self.registry.networks())

    def list_prompts(self) -> List[Dict[str, Any]]:
        return prompts.list_prompts()

    # -- tools ---------------------------------------------------------------

    async def invoke_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> InvocationResult:
        self._require_serving()
        if name == GENERIC_WALLET_INFO_TOOL:
            try:
                parsed = validate_arguments(GenericWalletArguments, args)
            except ValidationError as exc:
                return InvocationResult.failure(str(exc), code=exc.code)
            return await self.invoke_generic_wallet_info(parsed["network"], parsed["address"])

        descriptor = self.registry.get_operation(name)
        if descriptor is None:
            return InvocationResult.failure(f"Unknown tool: {name}", code=ValidationError.code)

        network = descriptor.network.value
        try:
            kwargs = descriptor.validate(args)
        except ValidationError as exc:
            result = InvocationResult.failure(str(exc), code=exc.code)
        else:
            adapter = self.registry.resolve(descriptor.network)
            try:
                result = await descriptor.handler(adapter, **kwargs)
            except Exception:
                logger.exception("Unexpected error while calling tool %s", name)
                result = InvocationResult.failure(
                    "Unexpected error while calling tool.", code=BackendUnavailable.code
                )

        self.metrics.increment(network, name, success=not result.is_error)
        _log_outcome(name, network, result)
        return result

    async def invoke_generic_wallet_info(self, network_id: Any, address: str) -> InvocationResult:
        self._require_serving()
        try:
            adapter = self.registry.resolve(network_id)
        except UnsupportedBackend:
            logger.warning("tool=%s outcome=unsupported network=%s", GENERIC_WALLET_INFO_TOOL, network_id)
            return InvocationResult.failure(_unsupported(network_id), code=UnsupportedBackend.code)

        network = adapter.network.value
        try:
            parsed = validate_arguments(AddressArguments, {"address": address})
        except ValidationError as exc:
            result = InvocationResult.failure(str(exc), code=exc.code)
        else:
            result = await adapter.wallet_info(parsed["address"])
        if not result.is_error:
            result = InvocationResult.success({"network": network, "wallet": result.structured})
        self.metrics.increment(network, GENERIC_WALLET_INFO_TOOL, success=not result.is_error)
        _log_outcome(GENERIC_WALLET_INFO_TOOL, network, result)
        return result

    # -- resources -----------------------------------------------------------

    async def read_resource(self, uri: str) -> Dict[str, Any]:
        """
        Read a ``{network}://{kind}/{id}`` resource.

        Unknown networks degrade to a plain-text explanation rather than a
        protocol error. Malformed URIs and ids that fail the tool argument
        checks raise ValidationError.
        """
        self._require_serving()
        identifier = parse_resource_uri(uri)
        try:
            adapter = self.registry.resolve(identifier.network)
        except UnsupportedBackend:
            text = (
                f"{_unsupported(identifier.network)}. Supported networks: "
                + ", ".join(n.value for n in self.registry.networks())
            )
            return {"contents": [{"uri": uri, "mimeType": "text/plain", "text": text}]}

        if identifier.kind is ResourceKind.WALLET:
            address = validate_arguments(AddressArguments, {"address": identifier.entity_id})["address"]
            result = await adapter.wallet_info(address)
        else:
            tx_id = validate_arguments(TransactionArguments, {"txId": identifier.entity_id})["tx_id"]
            result = await adapter.transaction(tx_id)

        network = adapter.network.value
        self.metrics.increment(network, f"resource:{identifier.kind.value}", success=not result.is_error)
        if result.is_error:
            text = f"Error reading {uri}: {result.error}"
            return {"contents": [{"uri": uri, "mimeType": "text/plain", "text": text}]}
        return {
            "contents": [
                {
                    "uri": uri,
                    "mimeType": "application/json",
                    "text": json.dumps(result.structured, ensure_ascii=True),
                }
            ]
        }

    # -- prompts -------------------------------------------------------------

    def render_prompt(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return prompts.render_prompt(name, args)

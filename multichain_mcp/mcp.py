"""
Process-wide router wiring for MCP-style tooling.

Adapters are assembled from ``default_config`` at import; a misconfigured
network aborts startup here rather than on the first call.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from multichain_mcp.config import ServerConfig, default_config
from multichain_mcp.metrics import InstrumentationSink, default_metrics
from multichain_mcp.registry import build_registry
from multichain_mcp.router import Router


def build_router(
    config: ServerConfig = default_config,
    *,
    metrics: InstrumentationSink = default_metrics,
) -> Router:
    """Assemble every enabled adapter, freeze the registry and start serving."""
    router = Router(build_registry(config), metrics=metrics)
    router.start()
    return router


default_router = build_router()


def list_tools(router: Optional[Router] = None) -> List[Dict[str, Any]]:
    """Return the tool list advertised to MCP clients."""
    return (router or default_router).list_tools()


async def call_tool(
    tool_name: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    router: Optional[Router] = None,
) -> Dict[str, Any]:
    """Dispatch to a tool by name and return the MCP CallToolResult dict."""
    result = await (router or default_router).invoke_tool(tool_name, params or {})
    return result.to_dict()


async def aclose(router: Optional[Router] = None) -> None:
    for adapter in (router or default_router).registry.adapters():
        await adapter.aclose()

"""FastAPI application wiring the multichain router to HTTP routes."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from multichain_mcp import mcp
from multichain_mcp.config import ServerConfig, default_config
from multichain_mcp.envelope import InvocationResult
from multichain_mcp.errors import UnsupportedBackend, ValidationError
from multichain_mcp.metrics import default_metrics
from multichain_mcp.rate_limiter import PerKeyRateLimiter
from multichain_mcp.router import Router

logger = logging.getLogger(__name__)

LOG_EXTRA_FIELDS = ("tool", "network", "request_id", "error")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in LOG_EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: ServerConfig = default_config) -> None:
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    if config.log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level)


configure_logging()
rate_limiter = PerKeyRateLimiter(
    rate_per_sec=default_config.rate_limit_qps,
    per_tool=default_config.per_tool_rate_limits,
)
HEALTH_STATUS = {"status": "ok"}
APP_VERSION = "0.1.0"
MCP_SERVER_NAME = "multichain-mcp-server"
MCP_SERVER_VERSION = APP_VERSION
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup: adapters are already registered and the router is serving.
    yield
    # Shutdown
    await mcp.aclose()


app = FastAPI(
    title="Multichain MCP Server",
    description="Read-only multichain tool surface for LLM agents.",
    version=APP_VERSION,
    lifespan=lifespan,
)


def _router() -> Router:
    return mcp.default_router


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.time()
    default_metrics.incr_request()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000
    logger.debug(
        "request path=%s status=%s duration_ms=%.2f",
        request.url.path,
        response.status_code,
        duration_ms,
        extra={"request_id": request_id},
    )
    response.headers["X-Request-ID"] = request_id
    return response


async def _enforce_rate_limit(tool_name: str) -> Optional[JSONResponse]:
    allowed = await rate_limiter.allow(tool_name)
    if not allowed:
        logger.warning("tool=%s outcome=rate_limited", tool_name, extra={"tool": tool_name})
        default_metrics.incr_rate_limited()
        # Return a JSON-RPC style error envelope for MCP clients.
        return JSONResponse(
            status_code=429,
            content={"jsonrpc": "2.0", "error": {"code": 429, "message": "Rate limit exceeded"}},
        )
    return None


async def _tool_route(tool_name: str, arguments: Dict[str, Any]) -> JSONResponse:
    limited = await _enforce_rate_limit(tool_name)
    if limited:
        return limited
    result: InvocationResult = await _router().invoke_tool(tool_name, arguments)
    return JSONResponse(content=result.to_dict())


async def _network_tool_route(network: str, operation: str, arguments: Dict[str, Any]) -> JSONResponse:
    try:
        adapter = _router().registry.resolve(network)
    except UnsupportedBackend as exc:
        result = InvocationResult.failure(str(exc), code=exc.code)
        return JSONResponse(content=result.to_dict())
    return await _tool_route(f"{adapter.network.value}-{operation}", arguments)


@app.get("/health")
async def health() -> JSONResponse:
    """Lightweight health endpoint for monitoring."""
    router = _router()
    return JSONResponse(
        content={
            **HEALTH_STATUS,
            "state": router.state.value,
            "networks": [network.value for network in router.registry.networks()],
        }
    )


@app.get("/metrics")
async def metrics() -> PlainTextResponse:
    """Counters in the Prometheus text exposition format."""
    return PlainTextResponse(content=default_metrics.snapshot(), media_type=METRICS_CONTENT_TYPE)


@app.get("/tools/{network}/balance/{address}")
async def balance_route(network: str, address: str) -> JSONResponse:
    """Proxy for the {network}-balance tool."""
    return await _network_tool_route(network, "balance", {"address": address})


@app.get("/tools/{network}/transaction/{tx_id}")
async def transaction_route(network: str, tx_id: str) -> JSONResponse:
    """Proxy for the {network}-transaction tool."""
    return await _network_tool_route(network, "transaction", {"txId": tx_id})


@app.get("/tools/{network}/wallet/{address}")
async def wallet_route(network: str, address: str) -> JSONResponse:
    """Proxy for the cross-network wallet-info tool."""
    return await _tool_route("wallet-info", {"network": network, "address": address})


@app.post("/mcp")
async def mcp_gateway(request: Request) -> Response:
    """
    Minimal JSON-RPC gateway for MCP clients.

    Supported methods:
      - initialize, notifications/initialized
      - tools/list, tools/call (aliases list_tools, call_tool)
      - resources/list, resources/templates/list, resources/read
      - prompts/list, prompts/get
    """
    request_id = getattr(request.state, "request_id", None)
    start_time = time.time()

    def _respond(
        payload: Dict[str, Any],
        status_code: int = 200,
        *,
        outcome: str,
        method_label: Optional[str] = None,
        tool_label: Optional[str] = None,
        error_code: Optional[int] = None,
    ) -> JSONResponse:
        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "mcp outcome=%s method=%s tool=%s id=%s status=%s duration_ms=%.2f error_code=%s",
            outcome,
            method_label,
            tool_label,
            payload.get("id"),
            status_code,
            duration_ms,
            error_code,
            extra={"request_id": request_id, "tool": tool_label, "error": error_code},
        )
        return JSONResponse(status_code=status_code, content=payload)

    def _error(rpc_id: Any, code: int, message: str, method: Optional[str], status_code: int = 200) -> JSONResponse:
        return _respond(
            _jsonrpc_error_payload(rpc_id, code, message),
            status_code=status_code,
            outcome="error",
            method_label=method,
            error_code=code,
        )

    def _success(rpc_id: Any, result: Any, method: str, tool: Optional[str] = None) -> JSONResponse:
        return _respond(
            _jsonrpc_success_payload(rpc_id, result),
            outcome="success",
            method_label=method,
            tool_label=tool,
        )

    try:
        body = await request.json()
    except ValueError:
        return _error(None, -32700, "Parse error", None, status_code=400)

    if not isinstance(body, dict):
        return _error(None, -32600, "Invalid request", None, status_code=400)

    method = body.get("method")
    rpc_id = body.get("id")
    raw_params = body.get("params")
    if raw_params is None:
        params: Dict[str, Any] = {}
    elif isinstance(raw_params, dict):
        params = raw_params
    else:
        return _error(rpc_id, -32602, "Invalid params", method)

    if not method or not isinstance(method, str):
        return _error(rpc_id, -32600, "Invalid request", None)

    router = _router()

    if method == "initialize":
        protocol_version = params.get("protocolVersion")
        if not isinstance(protocol_version, str) or not protocol_version:
            return _error(rpc_id, -32602, "Invalid params", method)
        result = {
            "protocolVersion": protocol_version,
            "serverInfo": {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION},
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
                "prompts": {"listChanged": False},
            },
        }
        return _success(rpc_id, result, method)

    if method in ("notifications/initialized", "initialized"):
        # Notifications should not return a JSON-RPC response body.
        return Response(status_code=204)

    if method in ("list_tools", "tools/list"):
        limited = await _enforce_rate_limit("list_tools")
        if limited:
            return limited
        return _success(rpc_id, {"tools": router.list_tools()}, method)

    if method in ("call_tool", "tools/call"):
        tool_name = params.get("tool") or params.get("name")
        tool_params = params.get("params")
        if tool_params is None:
            tool_params = params.get("arguments") or {}
        if not isinstance(tool_name, str) or not tool_name.strip():
            return _error(rpc_id, -32602, "Invalid params", method)
        if not isinstance(tool_params, dict):
            return _error(rpc_id, -32602, "Invalid params", method)
        limited = await _enforce_rate_limit(tool_name)
        if limited:
            return limited
        tool_result = await router.invoke_tool(tool_name, tool_params)
        return _success(rpc_id, tool_result.to_dict(), method, tool=tool_name)

    if method == "resources/list":
        # Resources are parameterised; concrete URIs come from the templates.
        return _success(rpc_id, {"resources": []}, method)

    if method == "resources/templates/list":
        return _success(rpc_id, {"resourceTemplates": router.list_resource_templates()}, method)

    if method == "resources/read":
        uri = params.get("uri")
        limited = await _enforce_rate_limit("resources/read")
        if limited:
            return limited
        try:
            contents = await router.read_resource(uri)
        except ValidationError as exc:
            return _error(rpc_id, -32602, str(exc), method)
        return _success(rpc_id, contents, method)

    if method == "prompts/list":
        return _success(rpc_id, {"prompts": router.list_prompts()}, method)

    if method == "prompts/get":
        try:
            rendered = router.render_prompt(params.get("name"), params.get("arguments"))
        except ValidationError as exc:
            return _error(rpc_id, -32602, str(exc), method)
        return _success(rpc_id, rendered, method)

    return _error(rpc_id, -32601, "Method not found", method)


# Run with: uvicorn multichain_mcp.server:app --reload


def _jsonrpc_success_payload(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result}


def _jsonrpc_error_payload(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}

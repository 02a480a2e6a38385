"""Flux node adapter."""

from __future__ import annotations

from typing import Any

from multichain_mcp.backends.base import HttpBackendAdapter
from multichain_mcp.errors import BackendApiError
from multichain_mcp.networks import Network


class FluxAdapter(HttpBackendAdapter):
    """
    Flux daemon/explorer API (``/explorer/*`` and ``/daemon/*`` on port 16127).

    Every Flux response is wrapped as ``{"status": "success"|"error", "data": ...}``;
    an ``error`` status is a backend failure even when the HTTP status is 200.
    """

    network = Network.FLUX
    balance_path = "/explorer/balance/{address}"
    transaction_path = "/daemon/getrawtransaction"
    transaction_params = {"txid": "{tx_id}", "verbose": 1}
    history_path = "/explorer/transactions/{address}"
    history_sort_key = "height"

    def unwrap(self, payload: Any) -> Any:
        if not isinstance(payload, dict) or "status" not in payload:
            return payload
        data = payload.get("data")
        if payload.get("status") != "success":
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("name")
            elif isinstance(data, str):
                message = data
            raise BackendApiError(
                f"Flux API error. {message}" if message else "Flux API error.",
                network=self.network.value,
            )
        return data

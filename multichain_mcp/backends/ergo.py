"""Ergo explorer API adapter."""

from __future__ import annotations

from typing import Any, List

from multichain_mcp.backends.base import HttpBackendAdapter
from multichain_mcp.errors import BackendApiError
from multichain_mcp.networks import Network


class ErgoAdapter(HttpBackendAdapter):
    network = Network.ERGO
    balance_path = "/api/v1/addresses/{address}/balance/total"
    transaction_path = "/api/v1/transactions/{tx_id}"
    history_path = "/api/v1/addresses/{address}/transactions"
    history_params = {"offset": 0, "limit": 50}
    history_sort_key = "inclusionHeight"

    def extract_history(self, payload: Any) -> List[Any]:
        # Paged as {"items": [...], "total": n}
        if isinstance(payload, dict) and isinstance(payload.get("items"), list):
            return payload["items"]
        if isinstance(payload, list):
            return payload
        raise BackendApiError("Unexpected transaction history from node.", network=self.network.value)

"""Kaspa REST API adapter."""

from __future__ import annotations

from multichain_mcp.backends.base import HttpBackendAdapter
from multichain_mcp.networks import Network


class KaspaAdapter(HttpBackendAdapter):
    network = Network.KASPA
    balance_path = "/addresses/{address}/balance"
    transaction_path = "/transactions/{tx_id}"
    history_path = "/addresses/{address}/full-transactions"
    history_params = {"limit": 50, "resolve_previous_outpoints": "no"}
    history_sort_key = "block_time"

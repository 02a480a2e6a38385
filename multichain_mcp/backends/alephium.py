"""Alephium explorer backend adapter."""

from __future__ import annotations

from multichain_mcp.backends.base import HttpBackendAdapter
from multichain_mcp.networks import Network


class AlephiumAdapter(HttpBackendAdapter):
    network = Network.ALEPHIUM
    balance_path = "/addresses/{address}/balance"
    transaction_path = "/transactions/{tx_id}"
    history_path = "/addresses/{address}/transactions"
    history_params = {"page": 1, "limit": 50}
    history_sort_key = "timestamp"

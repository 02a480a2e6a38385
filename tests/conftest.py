import os
import sys

import pytest

# Ensure repository root is on sys.path before importing project modules.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from multichain_mcp.backends.base import BackendAdapter  # noqa: E402
from multichain_mcp.config import NetworkConfig  # noqa: E402
from multichain_mcp.metrics import InstrumentationSink  # noqa: E402
from multichain_mcp.registry import AdapterRegistry  # noqa: E402
from multichain_mcp.router import Router  # noqa: E402


class StubAdapter(BackendAdapter):
    """In-memory adapter that records every downstream read."""

    def __init__(
        self,
        network,
        *,
        balance="100",
        history=None,
        transaction=None,
        error=None,
        gate=None,
        timeout=1.0,
    ):
        self.network = network
        super().__init__(NetworkConfig(network=network, base_url="http://stub", timeout=timeout))
        self.balance_value = balance
        self.history = list(history or [])
        self.transaction_value = transaction if transaction is not None else {"txid": "tx"}
        self.error = error
        # Optional asyncio.Event every read waits on before answering.
        self.gate = gate
        self.calls = []

    async def _answer(self, kind, key, value):
        self.calls.append((kind, key))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return value

    async def fetch_balance(self, address):
        return await self._answer("balance", address, self.balance_value)

    async def fetch_transaction(self, tx_id):
        return await self._answer("transaction", tx_id, self.transaction_value)

    async def fetch_history(self, address):
        return await self._answer("history", address, self.history)


@pytest.fixture
def stub_adapter():
    return StubAdapter


@pytest.fixture
def make_router():
    def _make(*adapters, metrics=None):
        registry = AdapterRegistry()
        for adapter in adapters:
            registry.register(adapter.network, adapter)
        router = Router(registry, metrics=metrics if metrics is not None else InstrumentationSink())
        router.start()
        return router

    return _make

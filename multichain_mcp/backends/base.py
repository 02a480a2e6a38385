"""
Backend adapter contract and the templated HTTP implementation.

Every adapter exposes the same three operations (balance, transaction,
wallet info) and turns any downstream failure into an error envelope, so the
router never sees an exception from a backend.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from multichain_mcp.arguments import AddressArguments, TransactionArguments
from multichain_mcp.backends.client import BackendHttpClient
from multichain_mcp.config import WALLET_HISTORY_LIMIT, NetworkConfig
from multichain_mcp.envelope import InvocationResult
from multichain_mcp.errors import BackendApiError, BackendUnavailable
from multichain_mcp.networks import Network
from multichain_mcp.registry import OperationDescriptor

logger = logging.getLogger(__name__)


def most_recent(entries: List[Any], limit: int, sort_key: Optional[str] = None) -> List[Any]:
    """
    Return the ``limit`` most recent history entries.

    When every entry carries a numeric ``sort_key`` the list is ordered by it,
    newest first; otherwise the node's own order is taken as newest first.
    """
    if limit <= 0:
        return []
    if sort_key and entries and all(
        isinstance(entry, dict) and isinstance(entry.get(sort_key), (int, float)) for entry in entries
    ):
        entries = sorted(entries, key=lambda entry: entry[sort_key], reverse=True)
    return list(entries[:limit])


async def gather_or_cancel(*calls: Awaitable[Any]) -> List[Any]:
    """Await ``calls`` concurrently; the first failure cancels the rest and is raised."""
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    errors = [
        task.exception() for task in tasks if task in done and not task.cancelled() and task.exception() is not None
    ]
    if errors:
        raise errors[0]
    return [task.result() for task in tasks]


class BackendAdapter:
    """Uniform operation set every network implements."""

    network: Network
    history_sort_key: Optional[str] = None

    def __init__(
        self,
        config: NetworkConfig,
        *,
        history_limit: int = WALLET_HISTORY_LIMIT,
    ) -> None:
        self.config = config
        self.timeout = config.timeout
        self.history_limit = history_limit

    # -- downstream reads (overridden per network) --------------------------

    async def fetch_balance(self, address: str) -> Any:
        raise NotImplementedError

    async def fetch_transaction(self, tx_id: str) -> Any:
        raise NotImplementedError

    async def fetch_history(self, address: str) -> List[Any]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None

    # -- uniform operations -------------------------------------------------

    async def _bounded(self, call: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise BackendUnavailable(
                f"Node did not respond within {self.timeout:g}s", network=self.network.value
            ) from None

    async def _guard(self, label: str, operation: Callable[[], Awaitable[Any]]) -> InvocationResult:
        try:
            payload = await operation()
        except BackendUnavailable as exc:
            logger.warning(
                "backend call failed network=%s operation=%s error=%s",
                self.network.value,
                label,
                exc,
                extra={"network": self.network.value, "error": str(exc)},
            )
            return InvocationResult.failure(f"{self.network.value}: {exc}", code=BackendUnavailable.code)
        except Exception as exc:
            logger.exception("Unexpected error in %s for %s", label, self.network.value)
            return InvocationResult.failure(
                f"{self.network.value}: unexpected error: {exc}", code=BackendUnavailable.code
            )
        return InvocationResult.success(payload)

    async def balance(self, address: str) -> InvocationResult:
        async def run() -> Dict[str, Any]:
            raw = await self._bounded(self.fetch_balance(address))
            return {"network": self.network.value, "address": address, "balance": raw}

        return await self._guard("balance", run)

    async def transaction(self, tx_id: str) -> InvocationResult:
        return await self._guard("transaction", lambda: self._bounded(self.fetch_transaction(tx_id)))

    async def wallet_info(self, address: str) -> InvocationResult:
        async def run() -> Dict[str, Any]:
            # Both reads run concurrently; the first failure cancels the other.
            balance, history = await gather_or_cancel(
                self._bounded(self.fetch_balance(address)),
                self._bounded(self.fetch_history(address)),
            )
            return {
                "network": self.network.value,
                "address": address,
                "balance": balance,
                "transactions": most_recent(history, self.history_limit, self.history_sort_key),
                "transactionCount": len(history),
            }

        return await self._guard("wallet_info", run)

    def operations(self) -> Tuple[OperationDescriptor, ...]:
        name = self.network.value
        cls = type(self)
        return (
            OperationDescriptor(
                name=f"{name}-balance",
                network=self.network,
                description=f"Return the raw balance of an address on {name}.",
                arguments=AddressArguments,
                handler=cls.balance,
            ),
            OperationDescriptor(
                name=f"{name}-transaction",
                network=self.network,
                description=f"Return the raw transaction for a transaction id on {name}.",
                arguments=TransactionArguments,
                handler=cls.transaction,
            ),
            OperationDescriptor(
                name=f"{name}-wallet-info",
                network=self.network,
                description=(
                    f"Return balance and the {self.history_limit} most recent transactions "
                    f"for an address on {name}."
                ),
                arguments=AddressArguments,
                handler=cls.wallet_info,
            ),
        )


class HttpBackendAdapter(BackendAdapter):
    """
    Adapter for a node that serves plain JSON over HTTP GET.

    Subclasses set the endpoint templates; ``{address}`` and ``{tx_id}`` are
    URL-quoted (colons kept) before substitution. ``unwrap`` strips network-specific
    response wrappers and ``extract_history`` finds the transaction list.
    """

    balance_path: str = ""
    transaction_path: str = ""
    transaction_params: Optional[Dict[str, Any]] = None
    history_path: str = ""
    history_params: Optional[Dict[str, Any]] = None

    def __init__(
        self,
        config: NetworkConfig,
        *,
        history_limit: int = WALLET_HISTORY_LIMIT,
        client: Optional[BackendHttpClient] = None,
    ) -> None:
        super().__init__(config, history_limit=history_limit)
        self.client = client or BackendHttpClient(
            config.base_url, config.timeout, network=self.network.value
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        payload = await self.client.get_json(path, params=params)
        return self.unwrap(payload)

    def unwrap(self, payload: Any) -> Any:
        return payload

    def extract_history(self, payload: Any) -> List[Any]:
        if isinstance(payload, list):
            return payload
        raise BackendApiError("Unexpected transaction history from node.", network=self.network.value)

    def _params(self, template: Optional[Dict[str, Any]], **values: str) -> Optional[Dict[str, Any]]:
        if not template:
            return None
        return {
            key: value.format(**values) if isinstance(value, str) else value
            for key, value in template.items()
        }

    async def fetch_balance(self, address: str) -> Any:
        return await self._get(self.balance_path.format(address=quote(address, safe=":")))

    async def fetch_transaction(self, tx_id: str) -> Any:
        path = self.transaction_path.format(tx_id=quote(tx_id, safe=":"))
        return await self._get(path, self._params(self.transaction_params, tx_id=tx_id))

    async def fetch_history(self, address: str) -> List[Any]:
        path = self.history_path.format(address=quote(address, safe=":"))
        payload = await self._get(path, self._params(self.history_params, address=address))
        return self.extract_history(payload)

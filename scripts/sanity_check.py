"""Minimal sanity checks for the multichain MCP tools against configured nodes."""

from __future__ import annotations

import asyncio
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from multichain_mcp.mcp import aclose, default_router  # noqa: E402

# Per-network sample data comes from MULTICHAIN_SAMPLE_<NETWORK>_ADDRESS / _TX;
# networks without a sample address are skipped.


async def main() -> None:
    router = default_router
    print("Tools:", [tool["name"] for tool in router.list_tools()])
    for network in router.registry.networks():
        key = network.value.upper()
        address = os.getenv(f"MULTICHAIN_SAMPLE_{key}_ADDRESS")
        if not address:
            print(f"{network.value}: no sample address, skipped")
            continue
        balance = await router.invoke_tool(f"{network.value}-balance", {"address": address})
        print(f"{network.value} balance:", balance.to_dict())
        wallet = await router.invoke_generic_wallet_info(network.value, address)
        print(f"{network.value} wallet:", wallet.to_dict())
        tx_id = os.getenv(f"MULTICHAIN_SAMPLE_{key}_TX")
        if tx_id:
            tx = await router.invoke_tool(f"{network.value}-transaction", {"txId": tx_id})
            print(f"{network.value} transaction:", tx.to_dict())
    print(router.metrics.snapshot())
    await aclose(router)


if __name__ == "__main__":
    asyncio.run(main())

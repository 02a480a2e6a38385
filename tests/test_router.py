import asyncio
import json
import random

import pytest

from multichain_mcp.errors import BackendUnavailable, RouterNotServing, ValidationError
from multichain_mcp.metrics import InstrumentationSink
from multichain_mcp.networks import Network
from multichain_mcp.registry import AdapterRegistry
from multichain_mcp.router import GENERIC_WALLET_INFO_TOOL, Router, RouterState


@pytest.mark.asyncio
async def test_balance_success_round_trips_raw_balance(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX, balance=123456789))
    result = await router.invoke_tool("flux-balance", {"address": "addr1"})
    assert not result.is_error
    assert result.structured == {"network": "flux", "address": "addr1", "balance": 123456789}
    assert json.loads(result.content[0].body)["balance"] == 123456789


@pytest.mark.asyncio
async def test_balance_backend_failure_is_error_envelope(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX, error=BackendUnavailable("Node unreachable")))
    result = await router.invoke_tool("flux-balance", {"address": "addr1"})
    assert result.is_error
    assert result.content == []
    assert "Node unreachable" in result.error
    assert result.to_dict()["isError"] is True


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_is_contained(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX, error=RuntimeError("boom")))
    result = await router.invoke_tool("flux-balance", {"address": "addr1"})
    assert result.is_error
    assert "boom" in result.error


@pytest.mark.asyncio
async def test_type_mismatch_is_validation_error_without_backend_call(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX)
    router = make_router(adapter)
    result = await router.invoke_tool("flux-balance", {"address": 42})
    assert result.is_error
    assert result.error_code == "ValidationError"
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_missing_and_extra_arguments_are_rejected(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    missing = await router.invoke_tool("flux-transaction", {})
    assert missing.error_code == "ValidationError"
    assert "txId" in missing.error
    extra = await router.invoke_tool("flux-balance", {"address": "a", "unexpected": 1})
    assert extra.error_code == "ValidationError"


@pytest.mark.asyncio
async def test_unknown_tool_returns_error(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    result = await router.invoke_tool("dogecoin-balance", {"address": "a"})
    assert result.is_error
    assert "Unknown tool" in result.error


@pytest.mark.asyncio
async def test_transaction_uses_tx_id_alias(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX, transaction={"txid": "abc", "confirmations": 3})
    router = make_router(adapter)
    result = await router.invoke_tool("flux-transaction", {"txId": "abc"})
    assert result.structured == {"txid": "abc", "confirmations": 3}
    assert adapter.calls == [("transaction", "abc")]


@pytest.mark.asyncio
async def test_metric_counts_success_and_failure_once_each(stub_adapter, make_router):
    sink = InstrumentationSink()
    adapter = stub_adapter(Network.FLUX)
    router = make_router(adapter, metrics=sink)

    ok = await router.invoke_tool("flux-balance", {"address": "addr1"})
    adapter.error = BackendUnavailable("Node unreachable")
    failed = await router.invoke_tool("flux-balance", {"address": "addr1"})

    assert not ok.is_error and failed.is_error
    assert sink.value("flux", "flux-balance") == 2
    assert sink.error_value("flux", "flux-balance") == 1


@pytest.mark.asyncio
async def test_validation_failure_is_still_counted(stub_adapter, make_router):
    sink = InstrumentationSink()
    router = make_router(stub_adapter(Network.FLUX), metrics=sink)
    await router.invoke_tool("flux-balance", {})
    assert sink.value("flux", "flux-balance") == 1
    assert sink.error_value("flux", "flux-balance") == 1


@pytest.mark.asyncio
async def test_wallet_info_truncates_to_ten_most_recent(stub_adapter, make_router):
    history = [{"txid": f"tx{height}", "height": height} for height in range(1, 26)]
    random.Random(7).shuffle(history)
    router = make_router(stub_adapter(Network.FLUX, history=history))

    result = await router.invoke_tool("flux-wallet-info", {"address": "addr1"})
    payload = result.structured
    assert payload["address"] == "addr1"
    assert payload["balance"] == "100"
    assert payload["transactionCount"] == 25
    assert [tx["height"] for tx in payload["transactions"]] == list(range(25, 15, -1))


@pytest.mark.asyncio
async def test_wallet_info_issues_reads_concurrently(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX, history=[{"txid": "a"}])
    both_started = asyncio.Event()

    async def answer(kind, key, value):
        adapter.calls.append((kind, key))
        if len(adapter.calls) == 2:
            both_started.set()
        # Sequential reads would never see the second call start.
        await asyncio.wait_for(both_started.wait(), timeout=1.0)
        return value

    adapter._answer = answer
    router = make_router(adapter)
    result = await router.invoke_tool("flux-wallet-info", {"address": "addr1"})
    assert not result.is_error
    assert sorted(kind for kind, _ in adapter.calls) == ["balance", "history"]


@pytest.mark.asyncio
async def test_wallet_info_failure_in_one_read_is_error(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX, error=BackendUnavailable("Resource not found."))
    router = make_router(adapter)
    result = await router.invoke_tool("flux-wallet-info", {"address": "addr1"})
    assert result.is_error
    assert "Resource not found." in result.error


@pytest.mark.asyncio
async def test_slow_backend_times_out_to_error_envelope(stub_adapter, make_router):
    gate = asyncio.Event()  # never set
    router = make_router(stub_adapter(Network.FLUX, gate=gate, timeout=0.05))
    result = await router.invoke_tool("flux-balance", {"address": "addr1"})
    assert result.is_error
    assert "did not respond" in result.error


@pytest.mark.asyncio
async def test_delayed_backend_does_not_block_other_network(stub_adapter, make_router):
    gate = asyncio.Event()
    slow = stub_adapter(Network.KASPA, gate=gate, timeout=5.0)
    fast = stub_adapter(Network.FLUX)
    router = make_router(fast, slow)

    slow_task = asyncio.create_task(router.invoke_tool("kaspa-balance", {"address": "k1"}))
    await asyncio.sleep(0)
    fast_result = await asyncio.wait_for(
        router.invoke_tool("flux-balance", {"address": "f1"}), timeout=1.0
    )
    assert not fast_result.is_error
    assert not slow_task.done()

    gate.set()
    slow_result = await slow_task
    assert not slow_result.is_error


@pytest.mark.asyncio
async def test_generic_wallet_info_unsupported_network_touches_nothing(stub_adapter, make_router):
    sink = InstrumentationSink()
    adapter = stub_adapter(Network.FLUX)
    router = make_router(adapter, metrics=sink)

    result = await router.invoke_generic_wallet_info("dogecoin", "addr1")
    assert result.is_error
    assert result.error_code == "UnsupportedBackend"
    assert "Unsupported network: dogecoin" in result.error
    assert adapter.calls == []
    assert "dogecoin" not in sink.snapshot()


@pytest.mark.asyncio
async def test_generic_wallet_info_known_but_unregistered_network(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    result = await router.invoke_generic_wallet_info("kaspa", "addr1")
    assert result.is_error
    assert "Unsupported network: kaspa" in result.error


@pytest.mark.asyncio
async def test_generic_wallet_info_delegates_and_rewraps(stub_adapter, make_router):
    sink = InstrumentationSink()
    flux = stub_adapter(Network.FLUX, history=[{"txid": "a", "height": 1}])
    kaspa = stub_adapter(Network.KASPA, balance={"balance": 5})
    router = make_router(flux, kaspa, metrics=sink)

    result = await router.invoke_tool(GENERIC_WALLET_INFO_TOOL, {"network": "kaspa", "address": "k1"})
    assert result.structured["network"] == "kaspa"
    assert result.structured["wallet"]["balance"] == {"balance": 5}
    assert flux.calls == []
    assert sink.value("kaspa", GENERIC_WALLET_INFO_TOOL) == 1


@pytest.mark.asyncio
async def test_generic_wallet_info_validates_arguments(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    result = await router.invoke_tool(GENERIC_WALLET_INFO_TOOL, {"network": "flux"})
    assert result.error_code == "ValidationError"


@pytest.mark.asyncio
async def test_read_wallet_resource(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    resource = await router.read_resource("flux://wallet/addr1")
    contents = resource["contents"]
    assert len(contents) == 1
    assert contents[0]["uri"] == "flux://wallet/addr1"
    assert contents[0]["mimeType"] == "application/json"
    assert "addr1" in contents[0]["text"]


@pytest.mark.asyncio
async def test_read_transaction_resource(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX, transaction={"txid": "deadbeef"})
    router = make_router(adapter)
    resource = await router.read_resource("flux://transaction/deadbeef")
    assert json.loads(resource["contents"][0]["text"]) == {"txid": "deadbeef"}
    assert adapter.calls == [("transaction", "deadbeef")]


@pytest.mark.asyncio
async def test_read_resource_unknown_network_degrades_to_text(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    resource = await router.read_resource("unknownchain://wallet/addr1")
    content = resource["contents"][0]
    assert content["mimeType"] == "text/plain"
    assert "Unsupported network: unknownchain" in content["text"]


@pytest.mark.asyncio
async def test_read_resource_backend_failure_mentions_uri(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX, error=BackendUnavailable("Node unreachable")))
    resource = await router.read_resource("flux://wallet/addr1")
    text = resource["contents"][0]["text"]
    assert "flux://wallet/addr1" in text
    assert "Node unreachable" in text


@pytest.mark.asyncio
async def test_read_resource_malformed_uri_raises_validation_error(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    with pytest.raises(ValidationError):
        await router.read_resource("flux://block/1")
    with pytest.raises(ValidationError):
        await router.read_resource("not-a-uri")


def test_render_prompt_requires_arguments(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    with pytest.raises(ValidationError):
        router.render_prompt("analyze-wallet", {"network": "flux"})
    rendered = router.render_prompt("analyze-wallet", {"network": "flux", "address": "addr1"})
    message = rendered["messages"][0]
    assert message["role"] == "user"
    assert message["content"]["type"] == "text"
    assert "addr1" in message["content"]["text"]


def test_list_tools_includes_every_operation_and_generic_tool(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX), stub_adapter(Network.ERGO))
    names = [tool["name"] for tool in router.list_tools()]
    assert names == [
        "flux-balance",
        "flux-transaction",
        "flux-wallet-info",
        "ergo-balance",
        "ergo-transaction",
        "ergo-wallet-info",
        GENERIC_WALLET_INFO_TOOL,
    ]
    generic = router.list_tools()[-1]
    assert generic["inputSchema"]["properties"]["network"]["enum"] == ["flux", "ergo"]


@pytest.mark.asyncio
async def test_router_rejects_calls_until_started(stub_adapter):
    registry = AdapterRegistry()
    registry.register(Network.FLUX, stub_adapter(Network.FLUX))
    router = Router(registry, metrics=InstrumentationSink())
    assert router.state is RouterState.INITIALIZING
    with pytest.raises(RouterNotServing):
        await router.invoke_tool("flux-balance", {"address": "a"})

    router.start()
    assert router.state is RouterState.SERVING
    assert registry.frozen
    router.start()
    assert router.state is RouterState.SERVING


@pytest.mark.asyncio
async def test_dot_only_address_is_rejected_before_backend_call(stub_adapter, make_router):
    adapter = stub_adapter(Network.KASPA)
    router = make_router(adapter)
    for address in ("..", ".", "..."):
        result = await router.invoke_tool("kaspa-balance", {"address": address})
        assert result.error_code == "ValidationError"
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_read_resource_rejects_invalid_entity_ids(stub_adapter, make_router):
    adapter = stub_adapter(Network.FLUX)
    router = make_router(adapter)
    with pytest.raises(ValidationError):
        await router.read_resource("flux://transaction/" + "x" * 300)
    with pytest.raises(ValidationError):
        await router.read_resource("flux://transaction/abc&verbose=0?q")
    with pytest.raises(ValidationError):
        await router.read_resource("flux://wallet/..")
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_read_resource_unknown_network_wins_over_bad_id(stub_adapter, make_router):
    router = make_router(stub_adapter(Network.FLUX))
    resource = await router.read_resource("dogecoin://wallet/" + "x" * 300)
    assert resource["contents"][0]["text"].startswith("Unsupported network: dogecoin")


@pytest.mark.asyncio
async def test_wallet_info_failure_cancels_sibling_read(stub_adapter):
    class HistoryFailsAdapter(stub_adapter):
        balance_cancelled = False

        async def fetch_balance(self, address):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.balance_cancelled = True
                raise

        async def fetch_history(self, address):
            raise BackendUnavailable("Node unreachable")

    adapter = HistoryFailsAdapter(Network.FLUX, timeout=30.0)
    result = await asyncio.wait_for(adapter.wallet_info("t1abc"), timeout=2.0)
    assert result.is_error
    assert "Node unreachable" in result.error
    assert adapter.balance_cancelled

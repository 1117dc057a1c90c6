"""Tests for the agent-facing wallet tools and the tool registry."""

import asyncio

import pytest

from agent_cosmos_ai.config import PluginConfig, TransferConfig
from agent_cosmos_ai.tools.cosmos_tools import (
    INVALID_CONTENT_TEXT,
    is_transfer_content,
    set_current_agent,
    set_wallet_manager,
)
from agent_cosmos_ai.tools.rate_limiter import DAY_SECONDS, TRANSFERS_DAILY, RateLimiter
from agent_cosmos_ai.tools.registry import ActionResult, ToolRegistry, tool


def _tool(name):
    found = ToolRegistry.get().get_tool(name)
    assert found is not None
    return found


@pytest.fixture
def wallet(make_manager):
    mgr = make_manager()
    set_wallet_manager(mgr)
    set_current_agent("Ossie")
    return mgr


class TestRegistry:
    def test_simile_lookup_is_case_insensitive(self):
        assert _tool("transfer_tokens").name == "SEND_TOKEN"
        assert _tool("PAY").name == "SEND_TOKEN"
        assert _tool("wallet_portfolio").name == "get_wallet_portfolio"
        assert ToolRegistry.get().get_tool("launch_rocket") is None

    def test_definitions(self):
        definition = _tool("SEND_TOKEN").to_definition()
        assert definition.parameters["required"] == ["recipient", "amount"]

    def test_parameters_from_signature(self):
        registry = ToolRegistry()
        ToolRegistry._instance, saved = registry, ToolRegistry._instance
        try:
            @tool("echo", "Echo text")
            def echo(text: str, times: int = 1) -> str:
                return text * times
        finally:
            ToolRegistry._instance = saved

        schema = registry.get_tool("echo").parameters
        assert schema["properties"] == {"text": {"type": "string"}, "times": {"type": "integer"}}
        assert schema["required"] == ["text"]

    async def test_run_wraps_plain_results(self):
        registry = ToolRegistry()
        ToolRegistry._instance, saved = registry, ToolRegistry._instance
        try:
            @tool("ok", "ok")
            def ok() -> str:
                return "fine"

            @tool("bad", "bad")
            async def bad() -> str:
                return "Error: nope"
        finally:
            ToolRegistry._instance = saved

        assert await registry.get_tool("ok").run() == ActionResult(success=True, text="fine")
        assert (await registry.get_tool("bad").run()).success is False


@pytest.mark.parametrize(
    "recipient,amount,ok",
    [("osmo1x", "1", True), ("osmo1x", 1.5, True), ("osmo1x", None, False), (None, "1", False), ("osmo1x", True, False)],
)
def test_is_transfer_content(recipient, amount, ok):
    assert is_transfer_content(recipient, amount) is ok


class TestWalletTools:
    async def test_without_wallet(self):
        assert (await _tool("check_balance").execute()).startswith("Error: Wallet not configured")
        assert (await _tool("get_wallet_portfolio").execute()).startswith("Error:")

    async def test_check_balance(self, wallet):
        text = await _tool("GET_BALANCE").execute()
        assert text.startswith("Wallet balance on osmosis: 2.500000 OSMO")
        assert wallet.address in text

    async def test_address(self, wallet):
        assert await _tool("get_wallet_address").execute() == f"Wallet address on osmosis: {wallet.address}"

    async def test_portfolio_uses_agent_name(self, wallet):
        text = await _tool("get_wallet_portfolio").execute()
        assert text.startswith("Ossie\n")

    async def test_list_transfers(self, wallet, osmo_recipient):
        assert await _tool("list_transfers").execute() == "No transfers found."
        await wallet.transfer(osmo_recipient, "1")
        text = await _tool("list_transfers").execute(status="SENT")
        assert "1 OSMO" in text
        assert "| sent | tx TXHASH0001" in text


class TestSendToken:
    async def test_success(self, wallet, ledger, osmo_recipient):
        result = await _tool("SEND_TOKEN").run(recipient=osmo_recipient, amount="1.5")

        assert result.success
        assert result.text == (
            f"Successfully transferred 1.5 OSMO to {osmo_recipient}, Transaction: TXHASH0001"
        )
        assert result.content == {
            "success": True,
            "hash": "TXHASH0001",
            "amount": "1.5",
            "recipient": osmo_recipient,
        }
        (row,) = await wallet.list_transfers()
        assert row["requested_by"] == "Ossie"

    async def test_invalid_content(self, wallet, ledger):
        result = await _tool("SEND_TOKEN").run(recipient="osmo1x")
        assert not result.success
        assert result.text == INVALID_CONTENT_TEXT
        assert result.content == {"error": "Invalid transfer content"}
        assert ledger.sent == []

    async def test_bad_recipient(self, wallet, cosmos_recipient):
        result = await _tool("SEND_TOKEN").run(recipient=cosmos_recipient, amount="1")
        assert not result.success
        assert result.text.startswith("Error transferring tokens: Address")
        assert "expected 'osmo'" in result.content["error"]

    async def test_chain_failure(self, wallet, ledger, osmo_recipient):
        ledger.send_error = ConnectionError("node down")
        result = await _tool("SEND_TOKEN").run(recipient=osmo_recipient, amount=1)
        assert not result.success
        assert result.text == "Error transferring tokens: Transaction failed: node down"

    async def test_queued_when_approval_required(self, make_manager, ledger, osmo_recipient):
        mgr = make_manager(PluginConfig(transfer=TransferConfig(require_approval=True)))
        set_wallet_manager(mgr)

        result = await _tool("SEND_OSMO").run(recipient=osmo_recipient, amount="3")
        assert result.success
        assert result.text.startswith("Transfer request queued (ID: ")
        assert result.content["queued"] is True
        assert ledger.sent == []
        assert (await mgr.get_transfer(result.content["id"]))["status"] == "pending"

    async def test_daily_limit(self, wallet, ledger, osmo_recipient):
        RateLimiter.get().configure(TRANSFERS_DAILY, 1, DAY_SECONDS)
        send = _tool("SEND_TOKEN")

        assert (await send.run(recipient=osmo_recipient, amount="1")).success
        second = await send.run(recipient=osmo_recipient, amount="1")
        assert not second.success
        assert "daily transfer limit" in second.text
        assert len(ledger.sent) == 1
        assert RateLimiter.get().remaining(TRANSFERS_DAILY) == 0

    async def test_failed_send_does_not_count(self, wallet, ledger, osmo_recipient):
        RateLimiter.get().configure(TRANSFERS_DAILY, 1, DAY_SECONDS)
        ledger.send_error = ConnectionError("node down")
        await _tool("SEND_TOKEN").run(recipient=osmo_recipient, amount="1")
        assert RateLimiter.get().remaining(TRANSFERS_DAILY) == 1

    async def test_concurrent_sends_share_the_daily_limit(self, wallet, ledger, osmo_recipient):
        RateLimiter.get().configure(TRANSFERS_DAILY, 1, DAY_SECONDS)
        send = _tool("SEND_TOKEN")

        results = await asyncio.gather(
            send.run(recipient=osmo_recipient, amount="1"),
            send.run(recipient=osmo_recipient, amount="1"),
        )

        assert sorted(r.success for r in results) == [False, True]
        assert len(ledger.sent) == 1
        assert RateLimiter.get().remaining(TRANSFERS_DAILY) == 0


def test_rate_limiter_unlimited():
    limiter = RateLimiter.get()
    limiter.configure(TRANSFERS_DAILY, 0, DAY_SECONDS)
    assert limiter.check(TRANSFERS_DAILY)
    assert limiter.remaining(TRANSFERS_DAILY) is None

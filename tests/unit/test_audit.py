"""Tests for audit records, the audit service and the Anthropic provider."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from trade_ledger.audit import provider as provider_module
from trade_ledger.audit.models import AuditParameters, Strategy
from trade_ledger.audit.provider import AnthropicAuditProvider, AuditProvider, build_audit_prompt
from trade_ledger.audit.service import run_audit
from trade_ledger.core.errors import ExternalCallError

NOW = datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)


class TestRunAudit:
    @pytest.mark.asyncio
    async def test_builds_record(self, fake_provider, make_closed_trades):
        trades = make_closed_trades(["1", "-2"])
        audit = await run_audit(fake_provider, trades, None, AuditParameters(scope="last 2"), now=NOW)
        assert audit.id == audit.date == "2024-06-01T08:30:00.000Z"
        assert audit.result == "Looks disciplined."
        assert audit.parameters.strategy_name == "Default"
        assert audit.parameters.trade_count == 2
        assert audit.parameters.scope == "last 2"

    @pytest.mark.asyncio
    async def test_strategy_name_and_context(self, fake_provider, make_closed_trades):
        strategy = Strategy(name="Scalp")
        audit = await run_audit(fake_provider, make_closed_trades(["1"]), strategy)
        assert audit.parameters.strategy_name == "Scalp"
        assert fake_provider.calls[0][1] is strategy

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, failing_provider, make_closed_trades):
        with pytest.raises(ExternalCallError, match="provider down"):
            await run_audit(failing_provider, make_closed_trades(["1"]))

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, fake_provider, make_closed_trades):
        fake_provider.error = RuntimeError("boom")
        with pytest.raises(ExternalCallError, match="boom"):
            await run_audit(fake_provider, make_closed_trades(["1"]))


class TestPrompt:
    def test_includes_trades_and_strategy(self, make_closed_trades):
        strategy = Strategy(name="Breakout", description="Trade range breaks", rules=["Max 1% risk"])
        prompt = build_audit_prompt(make_closed_trades(["5", "-3"]), strategy)
        assert "Trades To Review (2)" in prompt
        assert "Strategy: Breakout" in prompt
        assert "- Max 1% risk" in prompt

    def test_without_strategy(self, make_closed_trades):
        assert "No strategy supplied" in build_audit_prompt(make_closed_trades(["1"]), None)


class _FakeMessages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


class TestAnthropicProvider:
    def test_satisfies_protocol(self):
        assert isinstance(AnthropicAuditProvider(), AuditProvider)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch, make_closed_trades):
        monkeypatch.delenv("LEDGER_TEST_KEY", raising=False)
        provider = AnthropicAuditProvider(api_key_env="LEDGER_TEST_KEY")
        with pytest.raises(ExternalCallError, match="LEDGER_TEST_KEY not set"):
            await provider.run_audit(make_closed_trades(["1"]), None)

    @pytest.mark.asyncio
    async def test_returns_text_blocks(self, monkeypatch, make_closed_trades):
        messages = _FakeMessages(SimpleNamespace(content=[SimpleNamespace(type="text", text="All good")]))
        monkeypatch.setenv("LEDGER_TEST_KEY", "sk-test")
        monkeypatch.setattr(
            provider_module.anthropic, "AsyncAnthropic",
            lambda api_key: SimpleNamespace(messages=messages),
        )
        provider = AnthropicAuditProvider(api_key_env="LEDGER_TEST_KEY", model="m", max_tokens=100)
        assert await provider.run_audit(make_closed_trades(["1"]), None) == "All good"
        assert messages.kwargs["model"] == "m"
        assert messages.kwargs["max_tokens"] == 100
        assert messages.kwargs["messages"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_external_call_error(self, monkeypatch, make_closed_trades):
        messages = _FakeMessages(error=provider_module.anthropic.AnthropicError("rate limited"))
        monkeypatch.setenv("LEDGER_TEST_KEY", "sk-test")
        monkeypatch.setattr(
            provider_module.anthropic, "AsyncAnthropic",
            lambda api_key: SimpleNamespace(messages=messages),
        )
        provider = AnthropicAuditProvider(api_key_env="LEDGER_TEST_KEY")
        with pytest.raises(ExternalCallError, match="rate limited"):
            await provider.run_audit(make_closed_trades(["1"]), None)

    @pytest.mark.asyncio
    async def test_empty_response(self, monkeypatch, make_closed_trades):
        messages = _FakeMessages(SimpleNamespace(content=[]))
        monkeypatch.setenv("LEDGER_TEST_KEY", "sk-test")
        monkeypatch.setattr(
            provider_module.anthropic, "AsyncAnthropic",
            lambda api_key: SimpleNamespace(messages=messages),
        )
        with pytest.raises(ExternalCallError, match="no text"):
            await AnthropicAuditProvider(api_key_env="LEDGER_TEST_KEY").run_audit(
                make_closed_trades(["1"]), None,
            )

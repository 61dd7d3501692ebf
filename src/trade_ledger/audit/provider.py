"""AI audit providers.

``AuditProvider`` is the protocol: one async call that turns a trade
set (plus the optional active strategy) into a written assessment.

``AnthropicAuditProvider`` implements it with the Claude Messages API.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import anthropic

from trade_ledger.core.errors import ExternalCallError
from trade_ledger.ledger.metrics import compute_metrics
from trade_ledger.ledger.record import Trade

from .models import Strategy

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """\
You are a trading performance coach reviewing a discretionary trader's \
journal.  Identify recurring mistakes, risk-management problems and \
behavioural patterns (revenge trading, overtrading, oversized positions, \
cutting winners early).  When a strategy is supplied, judge every trade \
against its rules and call out violations explicitly.

Answer in Markdown with these sections:
## Summary
## What Is Working
## Recurring Mistakes
## Rule Violations
## Action Items
"""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class AuditProvider(Protocol):
    """Produces a natural-language assessment of a trade set."""

    async def run_audit(
        self,
        trades: Sequence[Trade],
        strategy: Strategy | None,
    ) -> str:
        """Return the assessment text.  Raise on any failure."""
        ...


# ---------------------------------------------------------------------------
# Prompt construction
# ---------------------------------------------------------------------------


def build_audit_prompt(trades: Sequence[Trade], strategy: Strategy | None) -> str:
    """Serialise the trades, their summary metrics and the strategy."""
    metrics = compute_metrics(trades)
    sections: list[str] = [
        f"## Trades To Review ({len(trades)})",
        "```json\n" + json.dumps([t.to_dict() for t in trades], indent=1) + "\n```",
        "### Summary Metrics\n```json\n"
        + json.dumps(metrics.to_dict(), default=str)
        + "\n```",
    ]

    if strategy is not None:
        rules = "\n".join(f"- {rule}" for rule in strategy.rules) or "- (no explicit rules)"
        sections.append(
            f"### Strategy: {strategy.name}\n"
            f"{strategy.description}\n\n"
            f"Rules:\n{rules}"
        )
    else:
        sections.append(
            "### Strategy\nNo strategy supplied; assess general trading discipline."
        )

    return "\n\n".join(sections)


# ---------------------------------------------------------------------------
# Anthropic implementation
# ---------------------------------------------------------------------------


class AnthropicAuditProvider:
    """Audit provider backed by ``anthropic.AsyncAnthropic``.

    Parameters
    ----------
    api_key_env:
        Name of the environment variable holding the Anthropic API key.
    model:
        Claude model identifier.
    max_tokens:
        Response token cap.
    """

    def __init__(
        self,
        *,
        api_key_env: str = "ANTHROPIC_API_KEY",
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 4096,
    ) -> None:
        self._api_key_env = api_key_env
        self._model = model
        self._max_tokens = max_tokens

    async def run_audit(
        self,
        trades: Sequence[Trade],
        strategy: Strategy | None,
    ) -> str:
        """Call the Anthropic API and return the raw text response.

        Raises
        ------
        ExternalCallError
            If the API key is not set, the call fails or the response
            carries no text.
        """
        api_key = os.environ.get(self._api_key_env, "")
        if not api_key:
            raise ExternalCallError(
                f"{self._api_key_env} not set; cannot run the trade audit"
            )

        user_prompt = build_audit_prompt(trades, strategy)
        try:
            client = anthropic.AsyncAnthropic(api_key=api_key)
            response = await client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.AnthropicError as exc:
            raise ExternalCallError(f"Anthropic audit call failed: {exc}") from exc

        texts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        if not texts:
            raise ExternalCallError("Anthropic audit response contained no text")
        return "\n".join(texts)

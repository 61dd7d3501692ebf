"""Review-prompt state machine: when to suggest a trading audit.

Watches the size of the trade collection and suggests a self-review
in two situations:

* **Losing streak**: the most recent closed trades are ``streak_threshold``
  or more non-wins in a row.  The user may dismiss the suggestion for
  the next ``dismiss_window`` trades; the dismissal is remembered as a
  trade-count watermark.
* **Milestone**: the trade count just reached a multiple of the
  configured milestone frequency.

Only additions are considered: a deletion (count going down) never
prompts.  Reminders can be switched off entirely.

Usage::

    machine = ReviewPromptMachine(state, streak_threshold=3, dismiss_window=10)
    prompt = machine.observe(trades, reminder_settings)
    if prompt is not None:
        show(prompt.message)
        machine.respond(PromptResponse.DISMISS)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from trade_ledger.core.enums import PromptResponse, ReviewPhase
from trade_ledger.core.errors import ValidationError

from .metrics import current_losing_streak
from .record import Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderSettings:
    """User-editable reminder preferences (persisted)."""

    audit_reminders_enabled: bool = True
    audit_milestone_frequency: int = 10

    def to_dict(self) -> dict[str, Any]:
        return {
            "auditRemindersEnabled": self.audit_reminders_enabled,
            "auditMilestoneFrequency": self.audit_milestone_frequency,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], *, defaults: "ReminderSettings | None" = None) -> "ReminderSettings":
        """Merge stored values over *defaults*, ignoring malformed ones."""
        base = defaults or cls()
        enabled = d.get("auditRemindersEnabled", base.audit_reminders_enabled)
        frequency = d.get("auditMilestoneFrequency", base.audit_milestone_frequency)
        if not isinstance(enabled, bool):
            enabled = base.audit_reminders_enabled
        if isinstance(frequency, bool) or not isinstance(frequency, int):
            frequency = base.audit_milestone_frequency
        return cls(audit_reminders_enabled=enabled, audit_milestone_frequency=frequency)


@dataclass(frozen=True)
class ReviewPromptState:
    """Persisted memory of the state machine.

    ``dismissed_streak_audit_until``: streak prompts are suppressed
    while the trade count is at or below this watermark.
    ``previous_count``: trade count at the last observation; ``None``
    until the first observation.
    """

    dismissed_streak_audit_until: int | None = None
    previous_count: int | None = None


@dataclass(frozen=True)
class ReviewPrompt:
    kind: ReviewPhase  # STREAK_PROMPT_PENDING or MILESTONE_PROMPT_PENDING
    trade_count: int
    losing_streak: int = 0
    milestone_frequency: int = 0

    @property
    def title(self) -> str:
        return "AI Audit Suggestion"

    @property
    def can_dismiss(self) -> bool:
        """Only streak prompts support dismiss-with-memory."""
        return self.kind == ReviewPhase.STREAK_PROMPT_PENDING

    @property
    def message(self) -> str:
        if self.kind == ReviewPhase.STREAK_PROMPT_PENDING:
            return (
                f"You've had {self.losing_streak} consecutive losing trades. "
                "This could be a good time to run an audit to identify patterns. "
                "Would you like to go to the AI Audit tab?"
            )
        return (
            f"You've just logged your {_ordinal(self.trade_count)} trade. "
            f"This is a great time to analyze your last {self.milestone_frequency} trades. "
            "Would you like to go to the AI Audit tab?"
        )


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


# ------------------------------------------------------------------ #
# Pure transitions                                                     #
# ------------------------------------------------------------------ #

def evaluate(
    state: ReviewPromptState,
    trades: Sequence[Trade],
    settings: ReminderSettings,
    *,
    streak_threshold: int = 3,
) -> tuple[ReviewPromptState, ReviewPrompt | None]:
    """Observe the current trade collection.

    Returns the next state and the prompt to show, if any.
    """
    count = len(trades)
    previous = state.previous_count
    state = replace(state, previous_count=count)

    if not settings.audit_reminders_enabled:
        return state, None

    watermark = state.dismissed_streak_audit_until
    if watermark is not None and count > watermark:
        logger.debug("Streak dismissal expired at %d trades (watermark %d)", count, watermark)
        watermark = None
        state = replace(state, dismissed_streak_audit_until=None)

    if previous is None or count <= previous:
        return state, None

    streak = current_losing_streak(trades)
    if streak >= streak_threshold:
        if watermark is not None:
            logger.debug("Streak prompt suppressed (%d <= %d)", count, watermark)
            return state, None
        return state, ReviewPrompt(
            kind=ReviewPhase.STREAK_PROMPT_PENDING,
            trade_count=count,
            losing_streak=streak,
        )

    frequency = settings.audit_milestone_frequency
    if frequency > 0 and count > 0 and count % frequency == 0:
        return state, ReviewPrompt(
            kind=ReviewPhase.MILESTONE_PROMPT_PENDING,
            trade_count=count,
            milestone_frequency=frequency,
        )
    return state, None


def resolve(
    state: ReviewPromptState,
    prompt: ReviewPrompt,
    response: PromptResponse,
    *,
    dismiss_window: int = 10,
) -> tuple[ReviewPromptState, bool]:
    """Apply the user's answer to *prompt*.

    Returns the next state and whether the caller should open the audit
    view.  Dismissing a milestone prompt behaves like declining it.
    """
    if response == PromptResponse.ACCEPT:
        return state, True
    if response == PromptResponse.DISMISS and prompt.can_dismiss:
        until = prompt.trade_count + dismiss_window
        logger.info("Streak prompts dismissed until trade #%d", until)
        return replace(state, dismissed_streak_audit_until=until), False
    return state, False


# ------------------------------------------------------------------ #
# Stateful wrapper                                                     #
# ------------------------------------------------------------------ #

class ReviewPromptMachine:
    """Holds the review-prompt state and the currently pending prompt.

    Parameters
    ----------
    state : ReviewPromptState | None
        Restored state (watermark and last observed count).
    streak_threshold : int
        Losing-streak length that triggers a prompt.  Default 3.
    dismiss_window : int
        Trades for which a dismissed streak prompt stays quiet.  Default 10.
    """

    def __init__(
        self,
        state: ReviewPromptState | None = None,
        *,
        streak_threshold: int = 3,
        dismiss_window: int = 10,
    ) -> None:
        self._state = state or ReviewPromptState()
        self._streak_threshold = streak_threshold
        self._dismiss_window = dismiss_window
        self._pending: ReviewPrompt | None = None

    @property
    def state(self) -> ReviewPromptState:
        return self._state

    @property
    def phase(self) -> ReviewPhase:
        if self._pending is None:
            return ReviewPhase.IDLE
        return self._pending.kind

    @property
    def pending(self) -> ReviewPrompt | None:
        return self._pending

    def observe(
        self,
        trades: Sequence[Trade],
        settings: ReminderSettings,
    ) -> ReviewPrompt | None:
        """Feed the latest trade collection; returns a new prompt or None.

        A new prompt replaces any prompt still pending.
        """
        self._state, prompt = evaluate(
            self._state, trades, settings, streak_threshold=self._streak_threshold,
        )
        if prompt is not None:
            logger.info("Review prompt: %s at %d trades", prompt.kind.value, prompt.trade_count)
            self._pending = prompt
        return prompt

    def respond(self, response: PromptResponse) -> bool:
        """Answer the pending prompt and return to idle.

        Returns True when the caller should open the audit view.

        Raises
        ------
        ValidationError
            If no prompt is pending.
        """
        if self._pending is None:
            raise ValidationError("No review prompt is pending")
        prompt, self._pending = self._pending, None
        self._state, open_audit = resolve(
            self._state, prompt, response, dismiss_window=self._dismiss_window,
        )
        return open_audit

    def clear_watermark(self) -> None:
        self._state = replace(self._state, dismissed_streak_audit_until=None)

    def rebase(self, trades: Sequence[Trade]) -> None:
        """Accept *trades* as the new baseline without prompting.

        Used when the whole collection is replaced (restore, wipe); any
        pending prompt is dropped.
        """
        self._pending = None
        self._state = replace(self._state, previous_count=len(trades))

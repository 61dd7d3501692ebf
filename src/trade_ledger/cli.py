"""CLI entry point for the trade ledger."""

from __future__ import annotations

import locale
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any

import click

from .core.enums import PnlOutcome, PromptResponse, SortDirection, SortKey, TradeDirection, TradeStatus
from .core.errors import LedgerError, ValidationError
from .core.ids import utc_now

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


class DecimalType(click.ParamType):
    """Click parameter parsed into ``Decimal`` via its text form."""

    name = "decimal"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Decimal:
        from .ledger.record import to_decimal

        try:
            return to_decimal(value, param.name if param else "value")
        except ValidationError as exc:
            self.fail(str(exc), param, ctx)


DECIMAL = DecimalType()
DATETIME = click.DateTime(formats=_DATE_FORMATS)


@contextmanager
def _ledger_errors() -> Iterator[None]:
    """Report ledger errors as CLI usage failures instead of tracebacks."""
    try:
        yield
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc


# ------------------------------------------------------------------ #
# Group                                                                #
# ------------------------------------------------------------------ #


@click.group()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.option("--store", default=None, help="Ledger store file (overrides config)")
@click.option(
    "--respond",
    type=click.Choice([r.value for r in PromptResponse]),
    default=None,
    help="Answer any review prompt without asking",
)
@click.pass_context
def main(ctx: click.Context, config: str | None, store: str | None, respond: str | None) -> None:
    """Trade Ledger: journal, analytics and review prompts."""
    from .controller import LedgerController
    from .core.config import load_settings
    from .observability.logger import get_logger, setup_logging

    overrides: dict[str, Any] = {}
    if store:
        overrides["storage"] = {"path": store}

    with _ledger_errors():
        settings = load_settings(config_path=config, overrides=overrides)
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        get_logger(__name__).debug("collation_locale_unavailable", error=str(exc))
    get_logger(__name__).debug(
        "cli_started",
        command=ctx.invoked_subcommand,
        store=settings.storage.path,
        config=config,
    )

    ctx.obj = {
        "controller": LedgerController.from_settings(settings),
        "respond": PromptResponse(respond) if respond else None,
    }


def _controller(ctx: click.Context):
    return ctx.obj["controller"]


def _handle_prompt(ctx: click.Context, prompt) -> None:
    """Show a review prompt and apply the user's answer."""
    if prompt is None:
        return
    click.echo(f"\n*** {prompt.title} ***")
    click.echo(prompt.message)

    response = ctx.obj["respond"]
    if response is None:
        if not sys.stdin.isatty():
            click.echo("(No answer given; prompt skipped.)")
            _controller(ctx).respond_to_prompt(PromptResponse.DECLINE)
            return
        choices = [PromptResponse.ACCEPT.value, PromptResponse.DECLINE.value]
        if prompt.can_dismiss:
            choices.append(PromptResponse.DISMISS.value)
        answer = click.prompt(
            "Your answer",
            type=click.Choice(choices),
            default=PromptResponse.DECLINE.value,
        )
        response = PromptResponse(answer)

    if _controller(ctx).respond_to_prompt(response):
        click.echo("Run `trade-ledger audit` to review your recent trades.")
    elif response == PromptResponse.DISMISS and prompt.can_dismiss:
        until = _controller(ctx).review.state.dismissed_streak_audit_until
        click.echo(f"Streak reminders dismissed until trade #{until}.")


# ------------------------------------------------------------------ #
# Read-only views                                                      #
# ------------------------------------------------------------------ #


def _fmt_pf(value: float) -> str:
    return "inf" if value == float("inf") else f"{value:.2f}"


def _print_metrics(m, *, with_capital: bool = True) -> None:
    click.echo(f"  Trades:          {m.total_trades} ({m.closed_trades} closed, {m.open_trades} open)")
    click.echo(f"  Wins / Losses:   {m.wins} / {m.losses}")
    click.echo(f"  Win Rate:        {m.win_rate * 100:.1f}%")
    click.echo(f"  Total PnL:       {m.total_pnl:+.2f}")
    click.echo(f"  Profit Factor:   {_fmt_pf(m.profit_factor)}")
    click.echo(f"  Avg Win / Loss:  {m.average_win:.2f} / {m.average_loss:.2f}")
    click.echo(f"  Losing Streak:   {m.current_losing_streak} (longest {m.longest_losing_streak})")
    if with_capital:
        click.echo(f"  Initial Capital: {m.initial_capital:.2f}")
        click.echo(f"  Current Capital: {m.current_capital:.2f} ({m.return_pct * 100:+.2f}%)")


@main.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show dashboard totals for the whole ledger."""
    click.echo(f"\n{'=' * 50}")
    click.echo("Ledger Summary")
    click.echo(f"{'=' * 50}")
    _print_metrics(_controller(ctx).metrics())
    click.echo(f"{'=' * 50}\n")


def _trade_row(t) -> str:
    exit_price = f"{t.exit_price}" if t.exit_price is not None else "-"
    pnl = f"{t.pnl:+.2f}" if t.pnl is not None else "-"
    return (
        f"  {t.id:>4}  {t.date.strftime('%Y-%m-%d %H:%M'):16s}  {t.asset:10.10s}  "
        f"{t.direction.value:5s}  {t.entry_price!s:>12}  {exit_price:>12}  {t.size!s:>10}  "
        f"{(t.leverage or '-'):>5}  {t.status.value:6s}  {pnl:>12}"
    )


@main.command("list")
@click.option("--from", "start", type=DATETIME, default=None, help="Start date (YYYY-MM-DD)")
@click.option("--to", "end", type=DATETIME, default=None, help="End date (YYYY-MM-DD)")
@click.option("--asset", default="", help="Asset substring (case-insensitive)")
@click.option("--outcome", type=click.Choice([o.value for o in PnlOutcome]), default=PnlOutcome.ALL.value)
@click.option("--ids", default="", help="Trade id or range, e.g. 5 or 3-10")
@click.option("--sort", "sort_key", type=click.Choice([k.value for k in SortKey]), default=None)
@click.option("--asc/--desc", "ascending", default=None, help="Sort direction")
@click.option("--page", default=1, type=int, help="Page number (1-based)")
@click.pass_context
def list_trades(
    ctx: click.Context,
    start: datetime | None,
    end: datetime | None,
    asset: str,
    outcome: str,
    ids: str,
    sort_key: str | None,
    ascending: bool | None,
    page: int,
) -> None:
    """List trades with filters, sorting and pagination."""
    from .ledger.sorting import SortSpec

    controller = _controller(ctx)
    view = controller.view
    view.set_filters(
        start_date=start.date() if start else None,
        end_date=end.date() if end else None,
        asset=asset,
        outcome=PnlOutcome(outcome),
        trade_id=ids,
    )
    if sort_key is not None or ascending is not None:
        direction = view.sort.direction
        if ascending is not None:
            direction = SortDirection.ASCENDING if ascending else SortDirection.DESCENDING
        view.set_sort(SortSpec.parse(sort_key or view.sort.key.value, direction.value))
    view.go_to_page(page, controller.trades)

    result = controller.render()
    if not result.page.items:
        click.echo("No trades found.")
    else:
        click.echo(
            f"  {'ID':>4}  {'Date':16s}  {'Asset':10s}  {'Dir':5s}  {'Entry':>12}  {'Exit':>12}  "
            f"{'Size':>10}  {'Lev':>5}  {'Status':6s}  {'PnL':>12}"
        )
        click.echo(f"  {'-' * 110}")
        for trade in result.page.items:
            click.echo(_trade_row(trade))
        p = result.page
        click.echo(
            f"\nShowing {p.start_item} to {p.end_item} of {p.total_items} "
            f"(page {p.page} of {p.total_pages})"
        )

    if result.filtered_metrics is not None:
        click.echo(f"\nFiltered: {result.filtered_count} of {result.total_count} trades")
        _print_metrics(result.filtered_metrics, with_capital=False)


# ------------------------------------------------------------------ #
# Trade mutations                                                      #
# ------------------------------------------------------------------ #


def _trade_options(*, require_exit: bool):
    def decorator(f):
        f = click.option("--notes", default="", help="Free-text notes")(f)
        f = click.option("--leverage", default=None, help="Leverage label, e.g. 10x")(f)
        f = click.option("--size", type=DECIMAL, required=True, help="Position size")(f)
        if require_exit:
            f = click.option("--exit", "exit_price", type=DECIMAL, required=True, help="Exit price")(f)
        f = click.option("--entry", "entry_price", type=DECIMAL, required=True, help="Entry price")(f)
        f = click.option(
            "--direction",
            type=click.Choice([d.value for d in TradeDirection], case_sensitive=False),
            required=True,
        )(f)
        f = click.option("--asset", required=True, help="Asset symbol, e.g. BTC")(f)
        f = click.option("--date", "when", type=DATETIME, default=None, help="Trade time (UTC); default now")(f)
        return f
    return decorator


def _direction(text: str) -> TradeDirection:
    return next(d for d in TradeDirection if d.value.lower() == text.lower())


@main.command("open")
@_trade_options(require_exit=False)
@click.pass_context
def open_cmd(
    ctx: click.Context,
    when: datetime | None,
    asset: str,
    direction: str,
    entry_price: Decimal,
    size: Decimal,
    leverage: str | None,
    notes: str,
) -> None:
    """Record a position that is still open."""
    from .ledger.record import TradeDraft

    with _ledger_errors():
        draft = TradeDraft(
            date=when or utc_now(),
            asset=asset,
            direction=_direction(direction),
            entry_price=entry_price,
            size=size,
            leverage=leverage,
            notes=notes,
        )
        prompt = _controller(ctx).open_trade(draft)
    click.echo(f"Opened {draft.direction.value} {asset} @ {entry_price}.")
    _handle_prompt(ctx, prompt)


@main.command("complete")
@_trade_options(require_exit=True)
@click.pass_context
def complete_cmd(
    ctx: click.Context,
    when: datetime | None,
    asset: str,
    direction: str,
    entry_price: Decimal,
    exit_price: Decimal,
    size: Decimal,
    leverage: str | None,
    notes: str,
) -> None:
    """Record a finished trade; PnL is derived from entry, exit and size."""
    from .ledger.record import TradeDraft, compute_pnl

    with _ledger_errors():
        draft = TradeDraft(
            date=when or utc_now(),
            asset=asset,
            direction=_direction(direction),
            entry_price=entry_price,
            size=size,
            exit_price=exit_price,
            leverage=leverage,
            notes=notes,
        )
        prompt = _controller(ctx).complete_trade(draft)
    pnl = compute_pnl(draft.direction, entry_price, exit_price, size)
    click.echo(f"Logged {draft.direction.value} {asset}: PnL {pnl:+.2f}.")
    _handle_prompt(ctx, prompt)


@main.command()
@click.argument("trade_id", type=int)
@click.option("--date", "when", type=DATETIME, default=None)
@click.option("--asset", default=None)
@click.option("--direction", type=click.Choice([d.value for d in TradeDirection], case_sensitive=False), default=None)
@click.option("--entry", "entry_price", type=DECIMAL, default=None)
@click.option("--exit", "exit_price", type=DECIMAL, default=None)
@click.option("--size", type=DECIMAL, default=None)
@click.option("--leverage", default=None)
@click.option("--notes", default=None)
@click.option("--status", type=click.Choice([s.value for s in TradeStatus]), default=None)
@click.option("--pnl", type=DECIMAL, default=None, help="Explicit PnL (default: derived when closed)")
@click.pass_context
def update(
    ctx: click.Context,
    trade_id: int,
    when: datetime | None,
    asset: str | None,
    direction: str | None,
    entry_price: Decimal | None,
    exit_price: Decimal | None,
    size: Decimal | None,
    leverage: str | None,
    notes: str | None,
    status: str | None,
    pnl: Decimal | None,
) -> None:
    """Edit a trade.  Closing it derives PnL unless --pnl is given."""
    from .ledger.book import get_trade
    from .ledger.record import compute_pnl

    controller = _controller(ctx)
    with _ledger_errors():
        trade = get_trade(controller.trades, trade_id)
        changes: dict[str, Any] = {
            "date": when,
            "asset": asset,
            "direction": _direction(direction) if direction else None,
            "entry_price": entry_price,
            "exit_price": exit_price,
            "size": size,
            "leverage": leverage,
            "notes": notes,
            "status": TradeStatus(status) if status else None,
        }
        updated = replace(trade, **{k: v for k, v in changes.items() if v is not None})
        if pnl is not None:
            updated = replace(updated, pnl=pnl)
        elif updated.is_closed and updated.exit_price is not None:
            updated = replace(updated, pnl=compute_pnl(
                updated.direction, updated.entry_price, updated.exit_price, updated.size,
            ))
        prompt = controller.update_trade(updated)
    click.echo(f"Updated trade #{trade_id}.")
    _handle_prompt(ctx, prompt)


@main.command()
@click.argument("trade_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete(ctx: click.Context, trade_id: int, yes: bool) -> None:
    """Permanently delete a trade; later trades are renumbered."""
    if not yes:
        click.confirm(
            "Are you sure you want to permanently delete this trade? This action cannot be undone.",
            abort=True,
        )
    with _ledger_errors():
        prompt = _controller(ctx).delete_trade(trade_id)
    click.echo(f"Deleted trade #{trade_id}.")
    _handle_prompt(ctx, prompt)


# ------------------------------------------------------------------ #
# Capital & settings                                                   #
# ------------------------------------------------------------------ #


@main.command()
@click.argument("amount", type=DECIMAL, required=False)
@click.pass_context
def capital(ctx: click.Context, amount: Decimal | None) -> None:
    """Show or set the initial capital."""
    controller = _controller(ctx)
    if amount is not None:
        with _ledger_errors():
            controller.set_initial_capital(amount)
    click.echo(f"Initial capital: {controller.state.initial_capital}")


@main.command()
@click.option("--reminders/--no-reminders", default=None, help="Enable or disable audit reminders")
@click.option("--milestone", type=int, default=None, help="Milestone frequency (values below 1 become 1)")
@click.pass_context
def settings(ctx: click.Context, reminders: bool | None, milestone: int | None) -> None:
    """Show or edit review-reminder settings."""
    controller = _controller(ctx)
    current = controller.state.settings
    if reminders is not None or milestone is not None:
        current = controller.update_settings(
            audit_reminders_enabled=reminders,
            audit_milestone_frequency=milestone,
        )
    click.echo(f"Audit reminders:     {'on' if current.audit_reminders_enabled else 'off'}")
    click.echo(f"Milestone frequency: every {current.audit_milestone_frequency} trades")


# ------------------------------------------------------------------ #
# Strategies                                                           #
# ------------------------------------------------------------------ #


@main.group()
def strategy() -> None:
    """Manage trading strategies."""


@strategy.command("list")
@click.pass_context
def strategy_list(ctx: click.Context) -> None:
    state = _controller(ctx).state
    if not state.strategies:
        click.echo("No strategies saved.")
        return
    for s in state.strategies:
        marker = "*" if s.id == state.active_strategy_id else " "
        click.echo(f" {marker} {s.id}  {s.name}  ({len(s.rules)} rules)")


@strategy.command("save")
@click.option("--id", "strategy_id", default=None, help="Existing strategy id to replace")
@click.option("--name", required=True)
@click.option("--description", default="")
@click.option("--rule", "rules", multiple=True, help="Strategy rule (repeatable)")
@click.pass_context
def strategy_save(
    ctx: click.Context,
    strategy_id: str | None,
    name: str,
    description: str,
    rules: tuple[str, ...],
) -> None:
    """Create or replace a strategy and make it active."""
    from .audit.models import Strategy

    fields: dict[str, Any] = {"name": name, "description": description, "rules": list(rules)}
    if strategy_id:
        fields["id"] = strategy_id
    saved = _controller(ctx).save_strategy(Strategy(**fields))
    click.echo(f"Saved strategy {saved.name!r} ({saved.id}); now active.")


@strategy.command("delete")
@click.argument("strategy_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def strategy_delete(ctx: click.Context, strategy_id: str, yes: bool) -> None:
    if not yes:
        click.confirm("Are you sure you want to permanently delete this strategy?", abort=True)
    with _ledger_errors():
        _controller(ctx).delete_strategy(strategy_id)
    click.echo(f"Deleted strategy {strategy_id}.")


@strategy.command("use")
@click.argument("strategy_id", required=False)
@click.pass_context
def strategy_use(ctx: click.Context, strategy_id: str | None) -> None:
    """Select the active strategy (omit the id to clear it)."""
    with _ledger_errors():
        selected = _controller(ctx).set_active_strategy(strategy_id)
    click.echo(f"Active strategy: {selected.name if selected else 'none'}")


# ------------------------------------------------------------------ #
# Audits                                                               #
# ------------------------------------------------------------------ #


@main.command()
@click.option("--last", "last_n", type=int, default=None, help="Audit only the last N trades")
@click.option("--ids", default="", help="Audit a trade id or range, e.g. 3-10")
@click.option("--history", is_flag=True, help="Show past audits instead of running one")
@click.pass_context
def audit(ctx: click.Context, last_n: int | None, ids: str, history: bool) -> None:
    """Run an AI audit of your trades against the active strategy."""
    import asyncio

    from .audit.models import AuditParameters
    from .ledger.filters import FilterSpec, apply_filters

    controller = _controller(ctx)
    if history:
        if not controller.state.audits:
            click.echo("No audits yet.")
        for past in controller.state.audits:
            p = past.parameters
            click.echo(f"\n--- {past.date}  [{p.strategy_name}] {p.scope}, {p.trade_count} trades ---")
            click.echo(past.result)
        return

    trades = controller.trades
    params = AuditParameters(scope="all")
    if ids:
        trades = tuple(apply_filters(trades, FilterSpec(trade_id=ids)))
        params = AuditParameters(scope=f"ids {ids}")
        if trades:
            params = params.model_copy(update={"start_id": trades[0].id, "end_id": trades[-1].id})
    elif last_n is not None:
        trades = trades[-last_n:] if last_n > 0 else ()
        params = AuditParameters(scope=f"last {last_n}")
    if not trades:
        raise click.ClickException("No trades to audit.")

    click.echo(f"Auditing {len(trades)} trades...")
    with _ledger_errors():
        result = asyncio.run(controller.run_audit(trades, params))
    click.echo(result.result)


# ------------------------------------------------------------------ #
# Backup, export & reset                                               #
# ------------------------------------------------------------------ #


@main.group()
def backup() -> None:
    """Export or restore a full ledger backup."""


@backup.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default=None)
@click.pass_context
def backup_export(ctx: click.Context, output: str | None) -> None:
    """Write a backup bundle (default: crypto-trades-backup-<date>.json)."""
    import json

    now = utc_now()
    path = output or f"crypto-trades-backup-{now.strftime('%Y-%m-%d')}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_controller(ctx).export_backup(now), f, indent=2)
    click.echo(f"Backup written to {path}")


@backup.command("restore")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def backup_restore(ctx: click.Context, path: str, yes: bool) -> None:
    """Overwrite trades, capital and strategies from a backup file."""
    from .backup import parse_backup

    with open(path, "rb") as f:
        raw = f.read()
    with _ledger_errors():
        bundle = parse_backup(raw)
    if not yes:
        click.confirm(
            f"Are you sure you want to restore from this backup created on {bundle.timestamp}? "
            "All current data will be overwritten.",
            abort=True,
        )
    with _ledger_errors():
        _controller(ctx).restore_backup(bundle)
    click.echo("Data restored successfully.")


@main.command("export")
@click.argument("fmt", type=click.Choice(["csv", "json", "report"]))
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), default=None)
@click.option("--period", type=click.Choice(["daily", "weekly", "monthly"]), default="monthly")
@click.pass_context
def export_cmd(ctx: click.Context, fmt: str, output: str | None, period: str) -> None:
    """Export trades as CSV, JSON or a per-period report."""
    import json

    from .ledger.export import TradeExporter

    trades = _controller(ctx).trades
    exporter = TradeExporter()
    if fmt == "csv":
        text = exporter.to_csv(trades)
    elif fmt == "json":
        text = exporter.to_json(trades)
    else:
        text = json.dumps(exporter.periodic_report(trades, period=period), indent=2)

    if output:
        with open(output, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        click.echo(f"Exported {len(trades)} trades to {output}")
    else:
        click.echo(text)


@main.command()
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def wipe(ctx: click.Context, yes: bool) -> None:
    """Delete all trades, audits, strategies and capital."""
    if not yes:
        click.confirm(
            "Are you sure you want to delete ALL records? This cannot be undone.",
            abort=True,
        )
    _controller(ctx).delete_all_data()
    click.echo("All records have been deleted.")


if __name__ == "__main__":
    main()

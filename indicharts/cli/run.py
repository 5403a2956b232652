"""Evaluation command for Indicharts CLI.

Fetches bars for one symbol/timeframe and feeds them through the alert
engine, once or on a polling loop.
"""

import time
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from indicharts.cli.main import error_panel, get_app
from indicharts.models import TIMEFRAMES

console = Console()

OUTCOME_STYLES = {
    "fired": "bold green",
    "cold_start": "cyan",
    "cooldown": "yellow",
    "spent": "dim",
    "no_signal": "dim",
    "stale": "dim",
}


def _print_evaluations(evaluations) -> None:
    if not evaluations:
        console.print("[dim]No rules evaluated (no new bar, or indicator still warming up)[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Alert", justify="right")
    table.add_column("Bar", style="dim")
    table.add_column("Value", justify="right")
    table.add_column("Zone")
    table.add_column("Outcome")

    for evaluation in evaluations:
        state = evaluation.state
        style = OUTCOME_STYLES.get(evaluation.outcome, "white")
        table.add_row(
            str(state.rule_id),
            state.last_bar_ts.strftime("%Y-%m-%d %H:%M") if state.last_bar_ts else "-",
            f"{state.last_value:.2f}" if state.last_value is not None else "-",
            state.last_side or "-",
            f"[{style}]{evaluation.outcome}[/{style}]",
        )
    console.print(table)


@click.command("run")
@click.argument("symbol")
@click.argument("timeframe", type=click.Choice(TIMEFRAMES))
@click.option("--limit", type=int, default=200, show_default=True, help="Bars of history to load.")
@click.option("--every", "interval", type=int, default=None,
              help="Keep polling every N seconds.")
@click.pass_context
def run(ctx: click.Context, symbol: str, timeframe: str, limit: int, interval: Optional[int]) -> None:
    """Evaluate alerts for SYMBOL on the latest TIMEFRAME bars.

    History warms the indicators without firing; only the newest bar is
    evaluated. With --every, new bars are evaluated as they arrive.

    \b
    Examples:
      indicharts run BTC-USD 1h
      indicharts run AAPL 5m --every 60
    """
    from indicharts.alerts import ConsoleNotifier

    symbol = symbol.upper()
    ctx.ensure_object(dict).setdefault("notifier", ConsoleNotifier(console))

    try:
        app = get_app(ctx)
        if not app.store.get_rules_for(symbol, timeframe):
            console.print(f"[yellow]No active alerts for {symbol} {timeframe}[/yellow]")
            return

        bars = app.market_data.get_bars(symbol, timeframe, limit)
        if not bars:
            console.print(f"[yellow]No bars returned for {symbol} {timeframe}[/yellow]")
            return

        app.engine.prime(symbol, timeframe, bars[:-1])
        _print_evaluations(app.engine.process_bar(symbol, timeframe, bars[-1]))

        while interval:
            time.sleep(interval)
            bars = app.market_data.get_bars(symbol, timeframe, limit)
            evaluations = [
                e for e in app.engine.process_bars(symbol, timeframe, bars) if e.changed
            ]
            if evaluations:
                _print_evaluations(evaluations)

    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")
    except Exception as e:
        console.print(error_panel(f"Failed to evaluate {symbol} {timeframe}:", e))
        raise SystemExit(1)

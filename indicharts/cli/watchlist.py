"""Watchlist management commands for Indicharts CLI.

Handles watchlist add, remove and list, and bulk creation of alerts for
every watchlist symbol.
"""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indicharts.cli.alerts import build_rule_fields, rule_options
from indicharts.cli.main import error_panel, get_app
from indicharts.models import WATCHLIST_ALERT_PREFIX

console = Console()


@click.group()
def watch() -> None:
    """Manage the watchlist.

    \b
    Examples:
      indicharts watch add BTC-USD          # Add a symbol
      indicharts watch list                 # Show the watchlist
      indicharts watch alerts -t 4h         # RSI alerts for every symbol
      indicharts watch alerts --remove      # Drop all watchlist alerts
    """
    pass


@watch.command("add")
@click.argument("symbol")
@click.pass_context
def add_symbol(ctx: click.Context, symbol: str) -> None:
    """Add a symbol to the watchlist."""
    symbol = symbol.upper()

    try:
        store = get_app(ctx).store
        if not store.add_to_watchlist(symbol):
            console.print(f"[yellow]{symbol} is already in the watchlist[/yellow]")
            return
        console.print(f"[green]✓ Added {symbol} to the watchlist[/green]")

    except Exception as e:
        console.print(error_panel("Failed to add symbol:", e))
        raise SystemExit(1)


@watch.command("remove")
@click.argument("symbol")
@click.pass_context
def remove_symbol(ctx: click.Context, symbol: str) -> None:
    """Remove a symbol from the watchlist."""
    symbol = symbol.upper()

    try:
        store = get_app(ctx).store
        if not store.remove_from_watchlist(symbol):
            console.print(f"[yellow]{symbol} is not in the watchlist[/yellow]")
            return
        console.print(f"[green]✓ Removed {symbol} from the watchlist[/green]")

    except Exception as e:
        console.print(error_panel("Failed to remove symbol:", e))
        raise SystemExit(1)


@watch.command("list")
@click.pass_context
def list_watchlist(ctx: click.Context) -> None:
    """Display watchlist symbols."""
    try:
        items = get_app(ctx).store.get_watchlist()

        if not items:
            console.print(Panel(
                "[dim]Watchlist is empty. Use 'indicharts watch add SYMBOL'.[/dim]",
                title="[bold]Watchlist[/bold]",
                border_style="dim",
            ))
            return

        table = Table(title="Watchlist", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("Symbol", style="bold")
        table.add_column("Added", style="dim")

        for i, item in enumerate(items, 1):
            table.add_row(str(i), item.symbol, item.created_at.strftime("%Y-%m-%d"))

        console.print(table)
        console.print(f"\n[dim]Total: {len(items)} symbols[/dim]")

    except Exception as e:
        console.print(error_panel("Failed to list watchlist:", e))
        raise SystemExit(1)


@watch.command("alerts")
@rule_options
@click.option("--remove", "remove_all", is_flag=True, help="Delete all watchlist alerts instead.")
@click.pass_context
def watchlist_alerts(
    ctx: click.Context,
    timeframe: str,
    indicator: str,
    period: Optional[int],
    levels_text: Optional[str],
    mode: str,
    direction: str,
    cooldown: Optional[int],
    hysteresis: Optional[float],
    remove_all: bool,
) -> None:
    """Create the same alert for every watchlist symbol.

    Symbols that already have an equivalent alert are skipped.
    """
    from indicharts.alerts.validation import make_rule
    from indicharts.errors import InvalidConfigurationError

    try:
        app = get_app(ctx)
        store = app.store

        if remove_all:
            ids = [rule.id for rule in store.get_watchlist_rules()]
            removed = store.delete_rules_cascade(ids)
            console.print(f"[green]✓ Removed {removed} watchlist alerts[/green]")
            return

        items = store.get_watchlist()
        if not items:
            console.print("[yellow]Watchlist is empty[/yellow]")
            return

        rules = []
        skipped = 0
        for item in items:
            fields = build_rule_fields(
                app, item.symbol, timeframe, indicator, period, levels_text,
                mode, direction, cooldown, hysteresis,
            )
            rule = make_rule(
                **fields,
                description=f"{WATCHLIST_ALERT_PREFIX} {indicator.upper()} {timeframe}",
                source="watchlist",
            )
            if store.find_duplicate(rule) is not None:
                skipped += 1
                continue
            rules.append(rule)

        store.save_rules(rules)
        console.print(f"[green]✓ Created {len(rules)} watchlist alerts[/green]")
        if skipped:
            console.print(f"[dim]Skipped {skipped} symbols with an equivalent alert[/dim]")

    except InvalidConfigurationError as e:
        console.print(error_panel(
            "Invalid alert:",
            "\n".join(f"  • {problem}" for problem in e.problems),
        ))
        raise SystemExit(1)
    except Exception as e:
        console.print(error_panel("Failed to create watchlist alerts:", e))
        raise SystemExit(1)

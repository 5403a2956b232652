"""Alert management commands for Indicharts CLI.

Handles creating, listing and removing indicator alerts, and browsing the
events they produced.
"""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indicharts.cli.main import error_panel, get_app
from indicharts.models import TIMEFRAMES

console = Console()

INDICATOR_CHOICES = ["rsi", "stoch", "stochastic", "williams", "wpr"]


def parse_levels(text: Optional[str]) -> Optional[list[float]]:
    """Parse a comma-separated level list such as "30,70".

    Raises:
        click.BadParameter: If a level is not a number.
    """
    if text is None:
        return None
    try:
        return [float(part) for part in text.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter(f"levels must be numbers separated by commas, got {text!r}")


def _levels_text(levels: list[float]) -> str:
    return "/".join(f"{level:g}" for level in levels)


def rule_options(func):
    """Options shared by commands that build rules."""
    options = [
        click.option("--timeframe", "-t", type=click.Choice(TIMEFRAMES), default="1h",
                     show_default=True, help="Bar timeframe."),
        click.option("--indicator", "-i", type=click.Choice(INDICATOR_CHOICES, case_sensitive=False),
                     default="rsi", show_default=True, help="Indicator kind."),
        click.option("--period", "-p", type=int, default=None,
                     help="Indicator period (default depends on indicator)."),
        click.option("--levels", "-l", "levels_text", default=None,
                     help="Comma-separated levels, e.g. 30,70."),
        click.option("--mode", "-m", type=click.Choice(["cross", "enter", "exit"]),
                     default="cross", show_default=True, help="When the alert fires."),
        click.option("--direction", type=click.Choice(["both", "up", "down"]),
                     default="both", show_default=True, help="Crossing direction (cross mode)."),
        click.option("--cooldown", type=int, default=None, help="Seconds between fires."),
        click.option("--hysteresis", type=float, default=None, help="Hysteresis margin."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_rule_fields(
    app,
    symbol: str,
    timeframe: str,
    indicator: str,
    period: Optional[int],
    levels_text: Optional[str],
    mode: str,
    direction: str,
    cooldown: Optional[int],
    hysteresis: Optional[float],
) -> dict:
    """Collect rule fields from CLI options, filling config defaults."""
    defaults = app.config.get("alerts", {})
    fields = {
        "symbol": symbol,
        "timeframe": timeframe,
        "indicator": indicator,
        "mode": mode,
        "direction": direction,
        "cooldown_sec": cooldown if cooldown is not None else defaults.get("default_cooldown_sec", 600),
        "hysteresis": hysteresis if hysteresis is not None else defaults.get("default_hysteresis", 0.5),
    }
    if period is not None:
        fields["period"] = period
    elif indicator.lower() == "rsi":
        fields["period"] = defaults.get("default_period", 14)
    levels = parse_levels(levels_text)
    if levels is not None:
        fields["levels"] = levels
    return fields


@click.command("alert")
@click.argument("symbol")
@rule_options
@click.option("--once", is_flag=True, help="Fire only once.")
@click.option("--description", "-d", default=None, help="Free-form note.")
@click.pass_context
def create_alert(
    ctx: click.Context,
    symbol: str,
    timeframe: str,
    indicator: str,
    period: Optional[int],
    levels_text: Optional[str],
    mode: str,
    direction: str,
    cooldown: Optional[int],
    hysteresis: Optional[float],
    once: bool,
    description: Optional[str],
) -> None:
    """Create an indicator alert.

    SYMBOL is the trading symbol (e.g., BTC-USD, AAPL, EURUSD=X).

    \b
    Examples:
      indicharts alert BTC-USD -t 1h                  # RSI 14, 30/70 crossings
      indicharts alert AAPL -t 1d -l 25,75 -m exit    # RSI leaves 25..75
      indicharts alert ETH-USD -i stoch -l 20,80      # Stochastic 20/80
      indicharts alert TSLA -i wpr --direction up     # Williams %R up-crosses
    """
    from indicharts.alerts.validation import make_rule
    from indicharts.errors import InvalidConfigurationError

    try:
        app = get_app(ctx)
        fields = build_rule_fields(
            app, symbol, timeframe, indicator, period, levels_text,
            mode, direction, cooldown, hysteresis,
        )
        rule = make_rule(**fields, repeatable=not once, description=description)
    except InvalidConfigurationError as e:
        console.print(error_panel(
            "Invalid alert:",
            "\n".join(f"  • {problem}" for problem in e.problems),
        ))
        raise SystemExit(1)

    try:
        duplicate = app.store.find_duplicate(rule)
        if duplicate is not None:
            console.print(
                f"[yellow]An equivalent alert already exists (ID {duplicate.id}: "
                f"{duplicate.symbol} {duplicate.timeframe} {duplicate.indicator.spec.name} "
                f"{_levels_text(duplicate.levels)})[/yellow]"
            )
            return

        rule_id = app.store.save_rule(rule)
        console.print(Panel(
            f"[bold green]Alert Created[/bold green]\n\n"
            f"ID:         {rule_id}\n"
            f"Symbol:     {rule.symbol}\n"
            f"Timeframe:  {rule.timeframe}\n"
            f"Indicator:  {rule.indicator.spec.name}({rule.indicator.period})\n"
            f"Levels:     {_levels_text(rule.levels)}\n"
            f"Mode:       {rule.mode} ({rule.direction})\n"
            f"Cooldown:   {rule.cooldown_sec}s",
            title="[bold]New Alert[/bold]",
            border_style="green",
        ))
    except Exception as e:
        console.print(error_panel("Failed to create alert:", e))
        raise SystemExit(1)


@click.command("alerts")
@click.option("--custom", "only_custom", is_flag=True, help="Only user-created alerts.")
@click.option("--watchlist", "only_watchlist", is_flag=True, help="Only watchlist alerts.")
@click.option("--remove", "remove_id", type=int, default=None,
              help="Remove alert with specified ID (with its state and events).")
@click.option("--pause", "pause_id", type=int, default=None, help="Stop evaluating alert ID.")
@click.option("--resume", "resume_id", type=int, default=None, help="Evaluate alert ID again.")
@click.pass_context
def list_alerts(
    ctx: click.Context,
    only_custom: bool,
    only_watchlist: bool,
    remove_id: Optional[int],
    pause_id: Optional[int],
    resume_id: Optional[int],
) -> None:
    """Display or manage alerts.

    \b
    Examples:
      indicharts alerts               # List all alerts
      indicharts alerts --custom      # Only alerts you created
      indicharts alerts --remove 5    # Remove alert with ID 5
      indicharts alerts --pause 5     # Keep alert 5 but stop evaluating it
    """
    try:
        store = get_app(ctx).store

        for rule_id, active in ((pause_id, False), (resume_id, True)):
            if rule_id is None:
                continue
            if not store.set_rule_active(rule_id, active):
                console.print(f"[yellow]Alert with ID {rule_id} not found[/yellow]")
            else:
                console.print(f"[green]✓ {'Resumed' if active else 'Paused'} alert {rule_id}[/green]")
            return

        if remove_id is not None:
            rule = store.get_rule(remove_id)
            if rule is None or not store.delete_rule_cascade(remove_id):
                console.print(f"[yellow]Alert with ID {remove_id} not found[/yellow]")
                return
            console.print(f"[green]✓ Removed alert {remove_id} ({rule.symbol} {rule.timeframe})[/green]")
            return

        if only_custom:
            rules, title = store.get_custom_rules(), "Custom Alerts"
        elif only_watchlist:
            rules, title = store.get_watchlist_rules(), "Watchlist Alerts"
        else:
            rules, title = store.get_rules(), "Alerts"

        if not rules:
            console.print(Panel(
                "[dim]No alerts set. Use 'indicharts alert SYMBOL' to create one.[/dim]",
                title=f"[bold]{title}[/bold]",
                border_style="dim",
            ))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Symbol", style="bold")
        table.add_column("TF")
        table.add_column("Indicator")
        table.add_column("Levels")
        table.add_column("Mode")
        table.add_column("Last", justify="right")
        table.add_column("Last Fired", style="dim")
        table.add_column("Status", justify="center")

        for rule in rules:
            state = store.get_state(rule.id)
            last = f"{state.last_value:.1f}" if state and state.last_value is not None else "-"
            fired = (
                state.last_fire_ts.strftime("%Y-%m-%d %H:%M")
                if state and state.last_fire_ts else "-"
            )
            if not rule.active:
                status = "[dim]off[/dim]"
            elif rule.is_pending:
                status = "[green]●[/green] [dim]local[/dim]"
            else:
                status = "[green]●[/green]"
            table.add_row(
                str(rule.id),
                rule.symbol,
                rule.timeframe,
                f"{rule.indicator.spec.name}({rule.indicator.period})",
                _levels_text(rule.levels),
                rule.mode if rule.direction == "both" else f"{rule.mode} {rule.direction}",
                last,
                fired,
                status,
            )

        console.print(table)
        console.print(f"\n[dim]Total: {len(rules)} alerts[/dim]")
        console.print("[dim]Use 'indicharts alerts --remove ID' to delete an alert[/dim]")

    except Exception as e:
        console.print(error_panel("Failed to list alerts:", e))
        raise SystemExit(1)


@click.command("events")
@click.option("--unread", is_flag=True, help="Only unread events.")
@click.option("--rule", "rule_id", type=int, default=None, help="Only events of this alert.")
@click.option("--mark-read", "mark_read_id", type=int, default=None, help="Mark event ID as read.")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum events shown.")
@click.pass_context
def list_events(
    ctx: click.Context,
    unread: bool,
    rule_id: Optional[int],
    mark_read_id: Optional[int],
    limit: int,
) -> None:
    """Display fired alert events.

    \b
    Examples:
      indicharts events              # Latest events
      indicharts events --unread     # Unread only
      indicharts events --mark-read 12
    """
    try:
        store = get_app(ctx).store

        if mark_read_id is not None:
            if store.mark_event_read(mark_read_id):
                console.print(f"[green]✓ Marked event {mark_read_id} as read[/green]")
            else:
                console.print(f"[yellow]Event with ID {mark_read_id} not found[/yellow]")
            return

        events = store.get_events(rule_id=rule_id, unread_only=unread)
        if not events:
            console.print("[dim]No events[/dim]")
            return

        table = Table(title="Alert Events", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", width=6)
        table.add_column("Time", style="dim")
        table.add_column("Alert", justify="right")
        table.add_column("Symbol", style="bold")
        table.add_column("Type")
        table.add_column("Value", justify="right")
        table.add_column("Message")

        for event in events[:limit]:
            marker = "" if event.is_read else "[bold]•[/bold] "
            table.add_row(
                str(event.id),
                event.ts.strftime("%Y-%m-%d %H:%M"),
                str(event.rule_id),
                event.symbol,
                event.side,
                f"{event.value:.1f}",
                f"{marker}{event.message}",
            )

        console.print(table)
        if len(events) > limit:
            console.print(f"\n[dim]Showing {limit} of {len(events)} events[/dim]")

    except Exception as e:
        console.print(error_panel("Failed to list events:", e))
        raise SystemExit(1)

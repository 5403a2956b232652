"""Main CLI entry point for Indicharts.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    This improves CLI startup time by only importing
    command modules when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        # Commands are looked up by their click name, not the function name
        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    # Rules and events
    "alert": "indicharts.cli.alerts",
    "alerts": "indicharts.cli.alerts",
    "events": "indicharts.cli.alerts",
    # Watchlist
    "watch": "indicharts.cli.watchlist",
    # Evaluation
    "run": "indicharts.cli.run",
    # Account
    "sync": "indicharts.cli.sync",
    "register": "indicharts.cli.sync",
    # Setup
    "init": "indicharts.cli.init",
    "status": "indicharts.cli.init",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def configure_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def error_panel(message: str, detail: object = None) -> Panel:
    """Red panel used by every command to report a failure."""
    body = f"[red]{message}[/red]"
    if detail is not None:
        body += f"\n\n{detail}"
    return Panel(body, title="[bold red]Error[/bold red]", border_style="red")


def get_app(ctx: click.Context):
    """Get the AppContext for this invocation, building it on first use."""
    from indicharts.context import AppContext

    obj = ctx.ensure_object(dict)
    if "app" not in obj:
        obj["app"] = AppContext.from_config(obj.get("config"), notifier=obj.get("notifier"))
    return obj["app"]


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="indicharts")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: ~/.config/indicharts/config.toml).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Indicharts - indicator threshold alerts for your terminal.

    Define RSI, Stochastic and Williams %R alerts, evaluate them on
    fresh market data and keep them in sync with your account.

    \b
    Quick Start:
      indicharts init                         # Write a template config
      indicharts alert BTC-USD -t 1h          # RSI 30/70 cross alert
      indicharts run BTC-USD 1h               # Evaluate on latest bars
      indicharts events                       # Show what fired
    """
    from pathlib import Path

    from indicharts.config import load_config
    from indicharts.errors import InvalidConfigurationError

    obj = ctx.ensure_object(dict)
    try:
        config = load_config(Path(config_path) if config_path else None)
    except InvalidConfigurationError as e:
        console.print(error_panel("Could not read configuration:", e))
        raise SystemExit(1)

    obj["config"] = config
    obj["config_path"] = config_path
    configure_logging("DEBUG" if verbose else config.get("logging", {}).get("level", "INFO"))


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

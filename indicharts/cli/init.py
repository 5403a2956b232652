"""Setup commands for Indicharts CLI."""

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indicharts.cli.main import error_panel, get_app

console = Console()


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a template configuration file."""
    from pathlib import Path

    from indicharts.config import create_template_config, get_config_path

    config_path = ctx.obj.get("config_path")
    path = Path(config_path) if config_path else get_config_path()

    if path.exists() and not force:
        console.print(f"[yellow]Config already exists at {path} (use --force to overwrite)[/yellow]")
        return

    try:
        written = create_template_config(path)
    except OSError as e:
        console.print(error_panel("Failed to write config:", e))
        raise SystemExit(1)

    console.print(Panel(
        f"[bold green]Config written[/bold green]\n\n"
        f"{written}\n\n"
        "[dim]Set backend.base_url and backend.user_id to enable sync.[/dim]",
        title="[bold]Indicharts[/bold]",
        border_style="green",
    ))


@click.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show database location and record counts."""
    try:
        app = get_app(ctx)
        stats = app.store.get_stats()
    except Exception as e:
        console.print(error_panel("Failed to read database:", e))
        raise SystemExit(1)

    table = Table(title=str(app.store.db_path), show_header=True, header_style="bold cyan")
    table.add_column("Records")
    table.add_column("Count", justify="right")
    for name, count in stats.items():
        table.add_row(name.replace("_", " "), str(count))
    console.print(table)

    backend = app.config.get("backend", {}).get("base_url") or "[dim]not configured[/dim]"
    console.print(f"\nBackend: {backend}")

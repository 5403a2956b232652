"""Account sync commands for Indicharts CLI.

Handles sign-in reconciliation with the backend, recovery of replaced local
data and device registration.
"""

from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from indicharts.cli.main import error_panel, get_app

console = Console()


def _require_reconciler(app):
    if app.reconciler is None:
        console.print(error_panel(
            "No backend configured.",
            "Set [bold]backend.base_url[/bold] in the config file (see 'indicharts init').",
        ))
        raise SystemExit(1)
    return app.reconciler


def _resolve_user(app, user_id: Optional[str]) -> str:
    user_id = user_id or app.config.get("backend", {}).get("user_id")
    if not user_id:
        console.print(error_panel("No user ID given and none configured."))
        raise SystemExit(1)
    return user_id


@click.command("sync")
@click.argument("user_id", required=False)
@click.option("--push-only", is_flag=True, help="Only push local alerts the backend does not know.")
@click.option("--restore", is_flag=True, help="Bring back data replaced by the last sync.")
@click.pass_context
def sync(ctx: click.Context, user_id: Optional[str], push_only: bool, restore: bool) -> None:
    """Sync alerts and watchlist with your account.

    Local alerts and watchlist are saved to a recovery file and then
    replaced by the account's copy. Alerts created offline are pushed
    afterwards. Use --restore to bring back what was replaced.

    \b
    Examples:
      indicharts sync user-123
      indicharts sync --push-only
      indicharts sync --restore
    """
    try:
        app = get_app(ctx)

        if restore:
            restored = app.recovery.restore(app.store)
            if restored:
                console.print(f"[green]✓ Restored {restored} alerts from {app.recovery.path}[/green]")
            else:
                console.print("[yellow]No recovery snapshot to restore[/yellow]")
            return

        reconciler = _require_reconciler(app)
        user_id = _resolve_user(app, user_id)

        if push_only:
            pushed = reconciler.push_pending(user_id)
            console.print(f"[green]✓ Pushed {pushed} alerts[/green]")
            return

        with console.status(f"Syncing account {user_id}..."):
            report = reconciler.on_sign_in(user_id)

        lines = [
            f"Snapshot:   {'saved' if report.snapshot_saved else '[red]failed[/red]'}",
            f"Alerts:     {report.rules_replaced if report.rules_replaced is not None else '[red]not replaced[/red]'}",
            f"Watchlist:  {report.watchlist_replaced if report.watchlist_replaced is not None else '[red]not replaced[/red]'}",
            f"Pushed:     {report.pushed}",
        ]
        if report.errors:
            lines.append("\n[yellow]Some steps failed; run sync again to retry:[/yellow]")
            lines.extend(f"  • {error}" for error in report.errors)

        console.print(Panel(
            "\n".join(lines),
            title="[bold]Sync[/bold]",
            border_style="green" if report.ok else "yellow",
        ))

    except SystemExit:
        raise
    except Exception as e:
        console.print(error_panel("Sync failed:", e))
        raise SystemExit(1)


@click.command("register")
@click.argument("device_id")
@click.argument("fcm_token")
@click.option("--platform", type=click.Choice(["ios", "android", "unknown"]), default="unknown",
              show_default=True, help="Device platform.")
@click.option("--user", "user_id", default=None, help="Account (default: backend.user_id).")
@click.pass_context
def register(
    ctx: click.Context, device_id: str, fcm_token: str, platform: str, user_id: Optional[str]
) -> None:
    """Register a device for push notifications."""
    from indicharts.models import DeviceInfo

    try:
        app = get_app(ctx)
        reconciler = _require_reconciler(app)
        device = DeviceInfo(
            device_id=device_id,
            fcm_token=fcm_token,
            platform=platform,
            user_id=_resolve_user(app, user_id),
        )
        if reconciler.register_device(device):
            console.print(f"[green]✓ Registered device {device_id}[/green]")
        else:
            console.print(
                f"[yellow]Saved device {device_id} locally; backend registration failed "
                f"(see log). Run register again to retry.[/yellow]"
            )

    except SystemExit:
        raise
    except Exception as e:
        console.print(error_panel("Failed to register device:", e))
        raise SystemExit(1)

"""Command-line interface for LinkBrain invite administration."""

from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from linkbrain.api.main import create_app
from linkbrain.invites.errors import InviteError
from linkbrain.invites.service import InviteService, to_iso
from linkbrain.logging_config import configure_logging, get_logger
from linkbrain.storage.db import Database

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="linkbrain",
    help="LinkBrain - invite codes and trial referrals",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", envvar="DATABASE_URL", help="Database URL (defaults to settings)"),
    ] = None,
) -> None:
    """Bind a database to every command."""
    ctx.obj = Database(database_url)


def _service(ctx: typer.Context) -> InviteService:
    return InviteService(ctx.obj)


def _fail(error: InviteError) -> None:
    console.print(f"[bold red]✗[/bold red] {error.message} ({error.error_code})")
    raise typer.Exit(1)


@app.command("init")
def init_database(ctx: typer.Context) -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    ctx.obj.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("provision")
def provision_user(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User ID")],
    referred_by: Annotated[str | None, typer.Option("--referred-by", help="Inviter's user ID")] = None,
) -> None:
    """Create a starter trial subscription with fresh invite codes."""
    try:
        status = _service(ctx).provision(user_id, referred_by=referred_by)
    except InviteError as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Subscription created for [bold]{user_id}[/bold]")
    console.print(f"  Trial ends: {to_iso(status.trial_end_date)}")
    for invite in status.invite_codes:
        console.print(f"  {invite.code}")


@app.command("status")
def show_status(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="User ID")],
) -> None:
    """Show a user's trial status and invite code ledger."""
    try:
        status = _service(ctx).get_status(user_id)
    except InviteError as e:
        _fail(e)

    console.print(f"[bold]User:[/bold] {status.user_id}")
    console.print(f"[bold]Plan:[/bold] {status.plan}")
    console.print(f"[bold]Trial ends:[/bold] {to_iso(status.trial_end_date)}")
    if status.is_trial_expired:
        console.print("[bold]Remaining:[/bold] [red]expired[/red]")
    else:
        console.print(f"[bold]Remaining:[/bold] {status.remaining_trial_days} days")
    console.print(f"[bold]Referred by:[/bold] {status.referred_by or 'None'}")
    console.print(f"[bold]Referrals:[/bold] {status.referral_count}")

    table = Table(title="Invite Codes")
    table.add_column("Code", style="cyan")
    table.add_column("Used By", style="green")
    table.add_column("Used At")
    table.add_column("Created At")

    for invite in status.invite_codes:
        table.add_row(
            invite.code,
            invite.used_by or "-",
            invite.used_at.strftime("%Y-%m-%d %H:%M") if invite.used_at else "-",
            invite.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("lookup")
def lookup_code(
    ctx: typer.Context,
    code: Annotated[str, typer.Argument(help="Invite code")],
) -> None:
    """Show which user issued a code."""
    try:
        owner = _service(ctx).find_owner(code)
    except InviteError as e:
        _fail(e)

    if owner is None:
        console.print(f"[yellow]Code {code.upper()} not found[/yellow]")
        raise typer.Exit(1)

    console.print(f"{code.upper()} belongs to [bold]{owner}[/bold]")


@app.command("redeem")
def redeem_code(
    ctx: typer.Context,
    code: Annotated[str, typer.Argument(help="Invite code")],
    new_user_uid: Annotated[str, typer.Argument(help="Redeeming user's ID")],
) -> None:
    """Redeem a code on behalf of a new user."""
    try:
        result = _service(ctx).redeem(code, new_user_uid)
    except InviteError as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Redeemed {code.upper()} for [bold]{new_user_uid}[/bold]")
    console.print(f"  Inviter: {result.inviter_uid} (trial now ends {to_iso(result.inviter_trial_end_date)})")
    console.print(f"  New trial ends: {to_iso(result.trial_end_date)}")


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
) -> None:
    """Run the invite API server."""
    console.print(f"[bold blue]Serving LinkBrain API on {host}:{port}[/bold blue]")
    uvicorn.run(create_app(database=ctx.obj), host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()

"""CLI commands for wip-bot."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from wipbot import __version__, __logo__

app = typer.Typer(
    name="wipbot",
    help=f"{__logo__} wip-bot - Matrix client stress-testing bot",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} wip-bot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """wip-bot - Matrix client stress-testing bot."""
    pass


def _setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


# ============================================================================
# Onboard
# ============================================================================


@app.command()
def onboard(config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json")):
    """Write a default configuration file."""
    from wipbot.config.loader import get_config_path, save_config
    from wipbot.config.schema import Config

    path = config_path or get_config_path()

    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), path)
    console.print(f"[green]✓[/green] Created config at {path}")
    console.print("\nNext steps:")
    console.print("  1. Fill in [cyan]login.homeserverUrl[/cyan], [cyan]login.username[/cyan] and [cyan]login.password[/cyan]")
    console.print("  2. Add yourself to [cyan]users.vip[/cyan] or [cyan]users.trusted[/cyan]")
    console.print("  3. Start: [cyan]wipbot run[/cyan]")


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Log in and serve commands until interrupted."""
    from wipbot.channels.base import ChannelStartError
    from wipbot.channels.matrix import MatrixChannel
    from wipbot.config.loader import load_config

    _setup_logging(verbose)
    config = load_config(config_path)

    console.print(f"{__logo__} Starting wip-bot as {config.login.username or '(unset)'}...")
    if not (config.users.vip or config.users.trusted):
        console.print("[yellow]Warning: no VIP or trusted users, every sender is anonymous[/yellow]")

    channel = MatrixChannel(config)

    async def serve():
        try:
            await channel.start()
        finally:
            await channel.stop()

    try:
        asyncio.run(serve())
    except ChannelStartError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Inspection
# ============================================================================


@app.command()
def status(config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json")):
    """Show limits and allow-lists."""
    from wipbot.config.loader import load_config

    config = load_config(config_path)
    limits = config.limits

    console.print(f"{__logo__} wip-bot status\n")
    console.print(f"Homeserver: {config.login.homeserver_url or '[dim]not set[/dim]'}")
    console.print(f"User: {config.login.username or '[dim]not set[/dim]'}")
    console.print(f"Mention aliases: {', '.join(config.bot.mention_aliases) or '[dim]none[/dim]'}")
    console.print(f"Media account: {'[green]✓[/green]' if config.media_login.enabled else '[dim]none[/dim]'}\n")

    table = Table(title="Burst limits")
    table.add_column("Tier", style="cyan")
    table.add_column("Text")
    table.add_column("Sticker")
    table.add_column("Image")
    for name, tier_limits in (("vip", limits.vip), ("trusted", limits.trusted)):
        table.add_row(name, str(tier_limits.text), str(tier_limits.sticker), str(tier_limits.image))
    table.add_row("anonymous", "canned", "canned", "canned")
    console.print(table)

    console.print(f"\nMax delay: {limits.max_delay_seconds}s, max typing: {limits.max_typing_seconds}s, "
                  f"max image size: {limits.max_image_size}px")
    console.print(f"VIP: {', '.join(config.users.vip) or '[dim]none[/dim]'}")
    console.print(f"Trusted: {', '.join(config.users.trusted) or '[dim]none[/dim]'}")


@app.command("check-user")
def check_user(
    user_id: str = typer.Argument(..., help="Matrix user id, e.g. @alice:example.org"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config.json"),
):
    """Show which trust tier a user falls into."""
    from wipbot.config.loader import load_config
    from wipbot.security.trust import classify_with_config

    config = load_config(config_path)
    tier = classify_with_config(user_id, config)
    color = {"VIP": "green", "TRUSTED": "cyan"}.get(tier.name, "dim")
    console.print(f"{user_id}: [{color}]{tier.name.lower()}[/{color}]")


if __name__ == "__main__":
    app()

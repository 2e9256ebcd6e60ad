"""Main entry point for the dircache CLI.

Provides a Typer-based CLI for planning build directory cache steps and
managing the cache configuration.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from dircache import __version__
from dircache.commands import plan as plan_commands

console = Console()

# Create the main Typer app
app = typer.Typer(
    name="dircache",
    help="Build directory caching for CI jobs",
    rich_markup_mode="rich",
)

# Add subcommand groups
app.add_typer(plan_commands.app, name="plan", help="Cache plan operations")


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"dircache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """dircache: build directory caching for CI jobs.

    Prints the shell steps a job runs to restore and store its cached
    directories, with signed object-storage URLs.

    ## Commands

    * [bold cyan]plan[/bold cyan] - Print cache plans (setup, push, urls)
    * [bold cyan]config[/bold cyan] - Show or change configuration

    ## Getting Started

    1. Point the cache at a bucket:
       [dim]$ dircache config set s3.bucket my-cache-bucket[/dim]

    2. Export credentials:
       [dim]$ export DIRCACHE_ACCESS_KEY_ID=... DIRCACHE_SECRET_ACCESS_KEY=...[/dim]

    3. Print the setup script:
       [dim]$ dircache plan setup --repo 42 --branch main[/dim]
    """
    pass


@app.command()
def config(
    action: str = typer.Argument(
        ...,
        help="Action to perform (show, set, path)",
    ),
    key: str = typer.Argument(
        None,
        help="Configuration key (for set action)",
    ),
    value: str = typer.Argument(
        None,
        help="Configuration value (for set action)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Manage configuration.

    Show, set, or display the path to the configuration file.

    Examples:
        dircache config show              # Show all configuration
        dircache config set s3.bucket my-bucket
        dircache config path              # Show config file path
    """
    from dircache.config import ensure_config_exists, get_config_path

    path = config_path or get_config_path()

    if action == "show":
        try:
            cfg = ensure_config_exists(path)
        except Exception as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

        directories = ", ".join(cfg.directories) or "(not set)"
        client_branch = cfg.branch or ("master (edge)" if cfg.edge else "production")
        table = Panel.fit(
            f"[cyan]Store:[/cyan] {cfg.store}\n"
            f"[cyan]Signature Version:[/cyan] {cfg.signature_version}\n"
            f"[cyan]Request Headers:[/cyan] {cfg.request_headers}\n"
            f"[cyan]Bucket:[/cyan] {cfg.bucket or '(not set)'}\n"
            f"[cyan]Region:[/cyan] {cfg.region}\n"
            f"[cyan]Scheme:[/cyan] {cfg.scheme}\n"
            f"[cyan]Access Key Id:[/cyan] {cfg.access_key_id or '(not set)'}\n"
            f"[cyan]Secret Access Key:[/cyan] {'(set)' if cfg.secret_access_key else '(not set)'}\n"
            f"[cyan]Fetch Timeout:[/cyan] {cfg.fetch_timeout}s\n"
            f"[cyan]Push Timeout:[/cyan] {cfg.push_timeout}s\n"
            f"[cyan]Client Branch:[/cyan] {client_branch}\n"
            f"[cyan]Edge:[/cyan] {cfg.edge}\n"
            f"[cyan]Debug:[/cyan] {cfg.debug}\n"
            f"[cyan]Directories:[/cyan] {directories}",
            title="Configuration",
            border_style="green",
        )
        console.print(table)

    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage: dircache config set <key> <value>[/red]")
            raise typer.Exit(1)

        try:
            cfg = ensure_config_exists(path)
            cfg.set(key, value)
            cfg.save(path)
            console.print(f"[green]Set {key} = {value}[/green]")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    elif action == "path":
        typer.echo(str(path))

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: show, set, path")
        raise typer.Exit(1)


# Entry point for the CLI
def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()

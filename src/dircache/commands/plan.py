"""Plan commands for dircache.

Provides CLI commands that print the shell plan for setting up or pushing
the build cache, and the signed fetch candidates of a job.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from dircache.cache import DirectoryCache
from dircache.config import CacheConfig, get_config_path
from dircache.logging_config import get_logger, setup_logging
from dircache.models import JobIdentity
from dircache.shell import ShellScript
from dircache.signatures import SigningError
from dircache.stores import UnknownStoreError

console = Console()
app = typer.Typer(help="Cache plan operations")

logger = get_logger(__name__)

REPO_OPTION = typer.Option(..., "--repo", "-r", envvar="DIRCACHE_REPOSITORY_ID", help="Repository id")
BRANCH_OPTION = typer.Option(..., "--branch", "-b", envvar="DIRCACHE_BRANCH", help="Branch (PR target branch for pull requests)")
PULL_REQUEST_OPTION = typer.Option(None, "--pull-request", "-p", envvar="DIRCACHE_PULL_REQUEST", help="Pull request number")
DEFAULT_BRANCH_OPTION = typer.Option("master", "--default-branch", help="Repository default branch")
SLUG_OPTION = typer.Option(None, "--slug", "-s", help="Cache slug")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to config file")
LOG_DIR_OPTION = typer.Option(None, "--log-dir", help="Write a session log to this directory")
VERBOSE_OPTION = typer.Option(False, "--verbose", help="Log debug details")


def _load_config(config_path: Optional[Path]) -> CacheConfig:
    """Load config, exiting with an error message when it is missing."""
    try:
        return CacheConfig.load(config_path or get_config_path())
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("[dim]Run 'dircache config show' to create a default one.[/dim]")
        raise typer.Exit(1)


def build_cache(
    sh: ShellScript,
    repo: str,
    branch: str,
    pull_request: Optional[str],
    default_branch: str,
    slug: Optional[str],
    config_path: Optional[Path],
) -> DirectoryCache:
    """Create the cache planner for a job from CLI arguments.

    Args:
        sh: Shell receiving the plan
        repo: Repository id
        branch: Branch being built
        pull_request: Pull request number or None
        default_branch: Repository default branch
        slug: Cache slug
        config_path: Config file path

    Returns:
        DirectoryCache instance
    """
    config = _load_config(config_path)
    job = JobIdentity(
        repository_id=repo,
        branch=branch,
        pull_request=pull_request or None,
        default_branch=default_branch,
    )
    try:
        return DirectoryCache(sh, config, job, slug=slug)
    except (UnknownStoreError, SigningError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command("setup")
def plan_setup(
    repo: str = REPO_OPTION,
    branch: str = BRANCH_OPTION,
    pull_request: Optional[str] = PULL_REQUEST_OPTION,
    default_branch: str = DEFAULT_BRANCH_OPTION,
    slug: Optional[str] = SLUG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    log_dir: Optional[Path] = LOG_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the script that installs the client and fetches the cache."""
    setup_logging(log_dir, verbose)
    sh = ShellScript()
    cache = build_cache(sh, repo, branch, pull_request, default_branch, slug, config_path)

    try:
        cache.setup()
    except SigningError as e:
        console.print(f"[red]Error signing cache URLs: {e}[/red]")
        raise typer.Exit(1)

    logger.info("Planned cache setup for %s (%s)", repo, cache.job.group)
    typer.echo(sh.to_bash(), nl=False)


@app.command("push")
def plan_push(
    repo: str = REPO_OPTION,
    branch: str = BRANCH_OPTION,
    pull_request: Optional[str] = PULL_REQUEST_OPTION,
    default_branch: str = DEFAULT_BRANCH_OPTION,
    slug: Optional[str] = SLUG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    log_dir: Optional[Path] = LOG_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the script that uploads the job's cache archive."""
    setup_logging(log_dir, verbose)
    sh = ShellScript()
    cache = build_cache(sh, repo, branch, pull_request, default_branch, slug, config_path)

    try:
        if cache.valid():
            with cache.fold("Storing build cache"):
                cache.push()
    except SigningError as e:
        console.print(f"[red]Error signing cache URLs: {e}[/red]")
        raise typer.Exit(1)

    logger.info("Planned cache push for %s (%s)", repo, cache.job.group)
    typer.echo(sh.to_bash(), nl=False)


@app.command("urls")
def plan_urls(
    repo: str = REPO_OPTION,
    branch: str = BRANCH_OPTION,
    pull_request: Optional[str] = PULL_REQUEST_OPTION,
    default_branch: str = DEFAULT_BRANCH_OPTION,
    slug: Optional[str] = SLUG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    log_dir: Optional[Path] = LOG_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the signed fetch candidates, most specific first."""
    setup_logging(log_dir, verbose)
    sh = ShellScript()
    cache = build_cache(sh, repo, branch, pull_request, default_branch, slug, config_path)

    if not cache.valid():
        console.print(f"[red]Store configuration incomplete: {', '.join(cache.msgs)}[/red]")
        raise typer.Exit(1)

    try:
        urls = cache.fetch_urls()
    except SigningError as e:
        console.print(f"[red]Error signing cache URLs: {e}[/red]")
        raise typer.Exit(1)

    for url in urls:
        typer.echo(url)

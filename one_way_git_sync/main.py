"""
CLI entry point for one_way_git_sync.

Provides the command-line interface for syncing a destination repository
with the repository in the current (or given) directory.
"""

import functools
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from .config import SyncOptions, load_options
from .logger import setup_logging
from .syncer import RepoSyncer, SyncResult, SyncStage

console = Console()

_FLAGS = ("tag_hash", "tag_version", "dry", "force", "verbose")

_SUMMARIES = {
    SyncStage.PUSHED: "[green]✓ Synced {commits} commit(s): {title}[/green]",
    SyncStage.DRY_RUN_STOPPED: "[yellow]✓ [DRY RUN] Committed without pushing: {title}[/yellow]",
    SyncStage.NOTHING_TO_SYNC: "[green]✓ Nothing to synchronize[/green]",
}


def sync_options(func):
    """Options shared by every command."""

    @click.option("--dest", "-d", type=str, default=None, help="URL of the destination git repository")
    @click.option(
        "--source",
        "-s",
        type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
        default=None,
        help="Path to the source git repository (defaults to the current directory)",
    )
    @click.option(
        "--prefix",
        "-p",
        type=str,
        default=None,
        help='Prefix of the commit hash in the commit title, e.g. "https://github.com/org/repo/commits/"',
    )
    @click.option("--branch", "-b", type=str, default=None, help="Branch of the destination repository")
    @click.option("--tag", "-t", type=str, default=None, help="Tag created in the destination repository")
    @click.option(
        "--tag-hash",
        is_flag=True,
        help="Create a version+hash tag (e.g. v1.31.5-2-gcdde507). It should be a unique tag.",
    )
    @click.option(
        "--tag-version",
        is_flag=True,
        help="Create a version tag (e.g. v1.31.5). It may be a non-unique tag.",
    )
    @click.option(
        "--ignore-patterns",
        "-i",
        "ignore_patterns",
        multiple=True,
        help="Glob pattern of top-level entries not to mirror (can be specified multiple times)",
    )
    @click.option("--dry", is_flag=True, help="Enable dry-run mode (no push)")
    @click.option(
        "--force",
        is_flag=True,
        help="Overwrite the destination even if it has no sync commit",
    )
    @click.option("--verbose", "-v", is_flag=True, help="Show detailed logs")
    @click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="YAML file providing any of these options",
    )
    @click.option(
        "--token",
        envvar="ONE_WAY_GIT_SYNC_TOKEN",
        default=None,
        help="Access token for the destination repository (or set ONE_WAY_GIT_SYNC_TOKEN)",
    )
    @functools.wraps(func)
    def wrapper(config_path: Path | None, ignore_patterns: tuple[str, ...], **kwargs):
        # An unset flag must not override a value from the config file
        for flag in _FLAGS:
            kwargs[flag] = kwargs[flag] or None
        try:
            options = load_options(
                config_path,
                ignore_patterns=list(ignore_patterns) or None,
                **kwargs,
            )
        except ValidationError as e:
            console.print(f"[red]Invalid options: {escape(str(e))}[/red]")
            raise SystemExit(1)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
            raise SystemExit(1)

        setup_logging(options.verbose)
        return func(options)

    return wrapper


def print_summary(result: SyncResult) -> None:
    """Print the single line describing how the run ended."""
    if not result.success:
        console.print(f"[red]✗ Sync failed: {escape('; '.join(result.errors))}[/red]")
        return
    template = _SUMMARIES.get(result.stage, "[green]✓ Sync finished ({stage})[/green]")
    console.print(
        template.format(
            commits=result.commits_synced,
            title=escape(result.commit_title or ""),
            stage=result.stage.value,
        ),
        markup=True,
        highlight=False,
    )


@click.group()
@click.version_option(package_name="one-way-git-sync")
def cli():
    """One-way git sync - mirror this repository into another one."""
    pass


@cli.command()
@sync_options
def sync(options: SyncOptions):
    """Synchronize a destination git repository with a source git repository."""
    result = RepoSyncer(options).sync()
    print_summary(result)
    if not result.success:
        raise SystemExit(1)


@cli.command()
@sync_options
def init(options: SyncOptions):
    """Initialize a destination git repository by replacing all of its files."""
    result = RepoSyncer(options).sync(initialize=True)
    print_summary(result)
    if not result.success:
        raise SystemExit(1)


@cli.command()
@sync_options
def preview(options: SyncOptions):
    """Preview pending commits to sync."""
    if not RepoSyncer(options).preview():
        raise SystemExit(1)


if __name__ == "__main__":
    cli()

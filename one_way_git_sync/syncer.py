"""
Main syncer logic for one-way synchronization between repositories.

A sync run is a fixed sequence of stages. Each stage either advances the
run or fails it; only tag creation (and the describe call that feeds it) is
allowed to fail without failing the run:

    INIT -> CLONED -> RESUME_DETERMINED -> CHANGE_SET_COMPUTED -> MIRRORED
         -> COMMITTED -> TAGGED -> PUSHED | DRY_RUN_STOPPED

plus the terminal NOTHING_TO_SYNC (no source commit in range) and FAILED.
"""

import logging
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from git.exc import GitCommandError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import SyncOptions
from .describe import describe_revision, is_tag_descriptor
from .git_ops import GitRepository, clone_repo
from .github import get_github_commits_url
from .marker import (
    ChangeSet,
    CommitPlan,
    ResumePoint,
    build_body,
    build_title,
    classify,
)
from .mirror import mirror_tree

logger = logging.getLogger(__name__)
console = Console()


class SyncStage(str, Enum):
    """Stages of a sync run, in order."""

    INIT = "init"
    CLONED = "cloned"
    RESUME_DETERMINED = "resume-determined"
    CHANGE_SET_COMPUTED = "change-set-computed"
    MIRRORED = "mirrored"
    COMMITTED = "committed"
    TAGGED = "tagged"
    PUSHED = "pushed"
    DRY_RUN_STOPPED = "dry-run-stopped"
    NOTHING_TO_SYNC = "nothing-to-sync"
    FAILED = "failed"


class SyncError(Exception):
    """A fatal failure of one sync stage."""

    def __init__(self, operation: str, detail: object):
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


class MissingMarkerError(SyncError):
    """The destination has no sync commit and the run is not forced."""

    def __init__(self, detail: object = "No valid sync commit in destination repository"):
        super().__init__("determine resume point", detail)


@dataclass
class SyncResult:
    """Result of a sync operation."""

    success: bool = True
    stage: SyncStage = SyncStage.INIT
    marker: str | None = None
    commit_title: str | None = None
    tag_name: str | None = None
    commits_synced: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.success = False
        self.stage = SyncStage.FAILED
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


class RepoSyncer:
    """Synchronizes a destination repository with a source repository."""

    def __init__(self, options: SyncOptions):
        """Initialize the syncer with its options."""
        self.options = options

    def sync(self, work_dir: Path | None = None, initialize: bool = False) -> SyncResult:
        """
        Perform the synchronization.

        Args:
            work_dir: Empty directory to clone the destination into. A fresh
                temporary directory is used (and removed) when omitted.
            initialize: Replace the destination content without looking for
                a previous sync commit

        Returns:
            SyncResult; never raises for sync failures
        """
        if work_dir is not None:
            return self._run(Path(work_dir), initialize)
        with tempfile.TemporaryDirectory(prefix="one-way-git-sync-") as tmp:
            return self._run(Path(tmp) / "repo", initialize)

    def _run(self, work_dir: Path, initialize: bool) -> SyncResult:
        result = SyncResult()
        try:
            self._sync_core(work_dir, result, initialize)
        except SyncError as e:
            logger.debug("Failed to %s", e)
            result.fail(str(e))
        except Exception as e:
            logger.debug(
                "Unexpected error after stage %s: %s", result.stage.value, e, exc_info=True
            )
            result.fail(f"unexpected error after {result.stage.value}: {e}")
        return result

    def _sync_core(self, work_dir: Path, result: SyncResult, initialize: bool) -> None:
        dest_repo = self._clone_destination(work_dir)
        result.stage = SyncStage.CLONED

        resume = self._determine_resume_point(dest_repo, initialize)
        result.marker = resume.marker_revision
        result.stage = SyncStage.RESUME_DETERMINED

        source_repo, change_set = self._compute_change_set(resume)
        result.stage = SyncStage.CHANGE_SET_COMPUTED
        if change_set.latest_revision is None:
            logger.info("No synchronizable commit")
            result.stage = SyncStage.NOTHING_TO_SYNC
            return

        self._mirror(dest_repo)
        result.stage = SyncStage.MIRRORED

        plan = self._plan_commit(source_repo, change_set, resume, result, initialize)
        try:
            commit_hash = dest_repo.commit(plan.message)
        except GitCommandError as e:
            raise SyncError("commit changes", e) from e
        logger.debug("Created a commit %s: %s", commit_hash[:7], plan.title)
        logger.debug("  with body: %s", plan.body)
        result.commit_title = plan.title
        result.commits_synced = len(change_set.entries)
        result.stage = SyncStage.COMMITTED

        if plan.tag_name and self._create_tag(dest_repo, plan.tag_name, result):
            result.tag_name = plan.tag_name
        result.stage = SyncStage.TAGGED

        if self.options.dry:
            logger.debug("Finished dry run")
            result.stage = SyncStage.DRY_RUN_STOPPED
            return

        self._push(dest_repo, result.tag_name)
        logger.debug("Pushed the commit")
        result.stage = SyncStage.PUSHED

    def _clone_destination(self, work_dir: Path) -> GitRepository:
        """Clone the destination; full history only when forced."""
        try:
            dest_repo = clone_repo(
                url=self.options.clone_url,
                path=work_dir,
                branch=self.options.branch,
                shallow=not self.options.force,
            )
        except (GitCommandError, ValueError) as e:
            raise SyncError("clone destination repository", e) from e
        logger.debug("Cloned destination repo on %s", dest_repo.path)
        return dest_repo

    def _determine_resume_point(self, dest_repo: GitRepository, initialize: bool) -> ResumePoint:
        if initialize:
            return ResumePoint()

        resume = classify(dest_repo.get_history())
        if resume.found:
            logger.debug("Extracted a valid commit: %s", resume.marker_revision)
            logger.debug("(%s)", resume.marker_commit_subject)
        elif not self.options.force:
            raise MissingMarkerError()
        return resume

    def _compute_change_set(self, resume: ResumePoint) -> tuple[GitRepository, ChangeSet]:
        """Read source commits after the marker, following first parents only."""
        try:
            source_repo = GitRepository(self.options.source)
            entries = source_repo.get_commits_since(resume.marker_revision)
        except (GitCommandError, ValueError) as e:
            raise SyncError("get source commit history", e) from e

        latest = entries[0].hash if entries else None
        return source_repo, ChangeSet(latest_revision=latest, entries=entries)

    def _mirror(self, dest_repo: GitRepository) -> None:
        """Mirror the source directory, which may sit below its repository root."""
        try:
            mirror_tree(self.options.source, dest_repo.working_tree, self.options.ignore_patterns)
        except OSError as e:
            raise SyncError("mirror files", e) from e
        dest_repo.stage_all()
        if not dest_repo.has_staged_changes():
            logger.debug("Mirroring produced no file changes")

    def _plan_commit(
        self,
        source_repo: GitRepository,
        change_set: ChangeSet,
        resume: ResumePoint,
        result: SyncResult,
        initialize: bool,
    ) -> CommitPlan:
        """Resolve descriptor, link prefix and tag, and build the commit text."""
        revision = change_set.latest_revision or ""

        descriptor = ""
        try:
            descriptor = describe_revision(source_repo, self.options.tag_mode)
        except GitCommandError as e:
            message = f"Failed to describe source revision: {e}"
            logger.warning(message)
            result.warn(message)

        prefix = self.options.prefix
        if prefix is None:
            prefix = get_github_commits_url(source_repo) or ""

        tag_name = descriptor if is_tag_descriptor(descriptor, revision) else self.options.tag
        return CommitPlan(
            title=build_title(descriptor, prefix, revision),
            body=build_body(change_set, resume, self.options.dest, initialize=initialize),
            tag_name=tag_name or None,
        )

    def _create_tag(self, dest_repo: GitRepository, tag_name: str, result: SyncResult) -> bool:
        """Tag the sync commit. A failure only produces a warning."""
        try:
            dest_repo.create_tag(tag_name)
        except GitCommandError as e:
            message = f"Failed to create tag {tag_name}: {e}"
            logger.warning(message)
            result.warn(message)
            return False
        logger.debug("Created a tag: %s", tag_name)
        return True

    def _push(self, dest_repo: GitRepository, tag_name: str | None) -> None:
        try:
            dest_repo.push("origin", self.options.branch)
            if tag_name:
                dest_repo.push_tag(tag_name)
        except GitCommandError as e:
            raise SyncError("push the commit", e) from e

    def preview(self, work_dir: Path | None = None) -> bool:
        """Show the resume point and the pending source commits without changing anything."""
        if work_dir is not None:
            return self._preview(Path(work_dir))
        with tempfile.TemporaryDirectory(prefix="one-way-git-sync-") as tmp:
            return self._preview(Path(tmp) / "repo")

    def _preview(self, work_dir: Path) -> bool:
        try:
            dest_repo = self._clone_destination(work_dir)
            resume = self._determine_resume_point(dest_repo, initialize=False)
            _, change_set = self._compute_change_set(resume)
        except SyncError as e:
            console.print(f"[red]Failed to {escape(str(e))}[/red]")
            return False

        if resume.found:
            console.print(f"Last synced commit: [cyan]{resume.marker_revision}[/cyan]")
        else:
            console.print("[yellow]No previous sync found - all files will be replaced[/yellow]")

        if not change_set.entries:
            console.print("[green]No commits to sync.[/green]")
            return True

        table = Table(title=f"Pending Commits ({len(change_set.entries)})")
        table.add_column("Hash", style="cyan", width=10)
        table.add_column("Date", style="green", width=20)
        table.add_column("Author", style="yellow", width=25)
        table.add_column("Message", style="white")

        for commit in change_set.entries[:20]:
            message = commit.subject[:60]
            if len(commit.subject) > 60:
                message += "..."
            table.add_row(
                commit.short_hash,
                commit.author_date.strftime("%Y-%m-%d %H:%M"),
                commit.author_name,
                message,
            )

        if len(change_set.entries) > 20:
            table.add_row("...", "...", "...", f"[dim]({len(change_set.entries) - 20} more commits)[/dim]")

        console.print(table)
        return True

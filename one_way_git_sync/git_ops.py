"""
Git operations for the syncer.

Provides a wrapper around git operations using GitPython, handling cloning,
history traversal, staging, commits, tags and pushes.
"""

import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from git import Commit, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

logger = logging.getLogger(__name__)


def clone_repo(
    url: str,
    path: Path,
    branch: str | None = None,
    shallow: bool = True,
) -> "GitRepository":
    """
    Clone a repository from a URL into a fresh local path.

    The first attempt clones only the requested branch. If that fails and a
    branch was requested (typically because it does not exist on the remote
    yet), a second attempt clones the default branch without the
    branch/single-branch restriction and creates the branch locally from its
    tip. A failure of the second attempt propagates.

    Args:
        url: Git remote URL (e.g., git@github.com:org/repo.git)
        path: Local path to clone into (must not contain a repository)
        branch: Branch to check out
        shallow: Clone with --depth 1

    Returns:
        GitRepository wrapper for the cloned repo
    """
    path = Path(path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    clone_args: dict[str, object] = {"single_branch": True}
    if shallow:
        clone_args["depth"] = 1
    if branch:
        clone_args["branch"] = branch

    try:
        Repo.clone_from(url, path, **clone_args)
        return GitRepository(path)
    except GitCommandError as e:
        if not branch:
            raise
        logger.debug("Clone of branch %s failed, retrying without it: %s", branch, e)

    # Git leaves the target behind when it did not create it
    shutil.rmtree(path, ignore_errors=True)
    del clone_args["branch"]
    del clone_args["single_branch"]
    Repo.clone_from(url, path, **clone_args)

    repository = GitRepository(path)
    repository.create_branch(branch)
    return repository


@dataclass
class CommitInfo:
    """Information about a git commit."""

    hash: str
    short_hash: str
    subject: str
    author_name: str
    author_date: datetime

    @classmethod
    def from_commit(cls, commit: Commit) -> "CommitInfo":
        """Create CommitInfo from a GitPython Commit object."""
        message = commit.message
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        return cls(
            hash=commit.hexsha,
            short_hash=commit.hexsha[:7],
            subject=message.split("\n", 1)[0].strip(),
            author_name=commit.author.name or "",
            author_date=datetime.fromtimestamp(commit.authored_date, tz=timezone.utc),
        )


class GitRepository:
    """Wrapper around a git repository for sync operations."""

    def __init__(self, path: Path):
        """
        Initialize repository wrapper.

        path may be any directory inside the working tree; the enclosing
        repository is used.
        """
        self.path = Path(path).resolve()
        try:
            self.repo = Repo(self.path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise ValueError(f"Not a valid git repository: {self.path}") from e

    @property
    def working_tree(self) -> Path:
        """Root of the working tree."""
        return Path(self.repo.working_tree_dir or self.path)

    def has_commits(self) -> bool:
        """Check whether HEAD points at a commit."""
        return self.repo.head.is_valid()

    def get_history(self) -> list[CommitInfo]:
        """Get the commits reachable from HEAD, newest first. Empty if there are none."""
        if not self.has_commits():
            return []
        return [CommitInfo.from_commit(c) for c in self.repo.iter_commits("HEAD")]

    def get_commits_since(self, since_commit: str | None = None) -> list[CommitInfo]:
        """
        Get first-parent commits after since_commit up to HEAD, newest first.

        Commits merged in by merge commits are not listed individually.
        Without since_commit, all first-parent commits of HEAD are returned.
        An unknown since_commit raises GitCommandError.
        """
        if not self.has_commits():
            return []

        range_spec = f"{since_commit}..HEAD" if since_commit else "HEAD"
        commits = self.repo.iter_commits(range_spec, first_parent=True)
        return [CommitInfo.from_commit(c) for c in commits]

    def create_branch(self, branch: str) -> None:
        """Create a branch from the current HEAD and check it out."""
        self.repo.git.checkout("-b", branch)

    def stage_all(self) -> None:
        """Stage every addition, modification and deletion in the working tree."""
        self.repo.git.add("-A")

    def has_staged_changes(self) -> bool:
        """Check if there are staged changes."""
        status = self.repo.git.status("--porcelain")
        for line in status.splitlines():
            # A, M, D, R, C in the index column indicate staged changes
            if len(line) >= 2 and line[0] in "AMDRC":
                return True
        return False

    def commit(self, message: str) -> str:
        """Create a commit with the staged changes and return its hash."""
        self.repo.git.commit("-m", message)
        return self.repo.head.commit.hexsha

    def create_tag(self, name: str) -> None:
        """Create a lightweight tag on HEAD. Raises if it already exists."""
        self.repo.create_tag(name)

    def describe(self, abbrev_zero: bool = False) -> str:
        """
        Describe HEAD relative to the nearest tag.

        Falls back to the (abbreviated) commit hash when no tag is
        reachable. abbrev_zero drops the distance and hash suffix.
        """
        args = ["--tags", "--always"]
        if abbrev_zero:
            # e.g. `--abbrev=0` changes `v1.31.5-2-gcdde507` to `v1.31.5`
            args.append("--abbrev=0")
        return self.repo.git.describe(*args).strip()

    def get_remote_urls(self, name: str = "origin") -> tuple[str | None, str | None]:
        """Get the (fetch, push) URLs of a remote. Missing values are None."""
        remote = next((r for r in self.repo.remotes if r.name == name), None)
        if remote is None:
            return None, None

        fetch_url = None
        try:
            fetch_url = next(iter(remote.urls), None)
        except GitCommandError:
            pass

        push_url = None
        try:
            push_url = self.repo.git.remote("get-url", "--push", name) or None
        except GitCommandError:
            pass

        return fetch_url, push_url

    def push(self, remote: str = "origin", branch: str | None = None) -> None:
        """Push the current branch, or the given branch, to remote."""
        self.repo.git.push(remote, branch or "HEAD")

    def push_tag(self, tag: str, remote: str = "origin") -> None:
        """Push a single tag to remote."""
        self.repo.git.push(remote, f"refs/tags/{tag}")

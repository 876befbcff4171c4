"""Pytest configuration and fixtures for one_way_git_sync tests."""

import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest
from git import Repo

from one_way_git_sync.config import SyncOptions


@pytest.fixture(autouse=True)
def git_env(monkeypatch):
    """Give git a fixed identity and a predictable default branch."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    settings = {
        "init.defaultBranch": "main",
        "commit.gpgSign": "false",
        "tag.gpgSign": "false",
        "advice.detachedHead": "false",
    }
    monkeypatch.setenv("GIT_CONFIG_COUNT", str(len(settings)))
    for index, (key, value) in enumerate(settings.items()):
        monkeypatch.setenv(f"GIT_CONFIG_KEY_{index}", key)
        monkeypatch.setenv(f"GIT_CONFIG_VALUE_{index}", value)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _commit_all(repo_path: Path, message: str) -> str:
    repo = Repo(repo_path)
    repo.git.add("-A")
    repo.git.commit("-m", message)
    return repo.head.commit.hexsha


@pytest.fixture
def commit_all():
    """Stage everything in a working tree and commit it; returns the new hash."""
    return _commit_all


@pytest.fixture
def empty_remote_dest(temp_dir: Path) -> Path:
    """A bare destination repository without any commit."""
    path = temp_dir / "remote-dest"
    Repo.init(path, bare=True)
    return path


@pytest.fixture
def remote_dest(temp_dir: Path, empty_remote_dest: Path) -> Path:
    """A bare destination repository holding an unrelated commit with dest.txt."""
    seed = temp_dir / "local-dest"
    repo = Repo.init(seed)
    (seed / "dest.txt").write_text("Dest Repository")
    _commit_all(seed, "Initial commit")
    repo.create_remote("origin", str(empty_remote_dest))
    repo.git.push("-u", "origin", "main")
    return empty_remote_dest


@pytest.fixture
def source_repo(temp_dir: Path) -> Path:
    """A source repository with a single commit adding src.txt."""
    path = temp_dir / "local-src"
    Repo.init(path)
    (path / "src.txt").write_text("Src Repository")
    _commit_all(path, "Initial commit")
    return path


@pytest.fixture
def options(remote_dest: Path, source_repo: Path) -> SyncOptions:
    """Default options syncing source_repo into remote_dest."""
    return SyncOptions(dest=str(remote_dest), source=source_repo, verbose=True)


@pytest.fixture
def make_work_dir(temp_dir: Path):
    """Factory for fresh, empty working directories."""

    def factory() -> Path:
        return Path(tempfile.mkdtemp(prefix="repo-", dir=temp_dir))

    return factory


@dataclass
class RemoteState:
    """Snapshot of one branch of a bare repository."""

    files: dict[str, str]
    subject: str
    body: str
    hexsha: str
    tags: list[str]


@pytest.fixture
def read_remote():
    """Read files, latest message and tags of a branch in a bare repository."""

    def reader(path: Path, ref: str = "main") -> RemoteState:
        repo = Repo(path)
        commit = repo.commit(ref)
        files = {
            item.path: item.data_stream.read().decode()
            for item in commit.tree.traverse()
            if item.type == "blob"
        }
        subject, _, body = commit.message.partition("\n\n")
        return RemoteState(
            files=files,
            subject=subject.strip(),
            body=body,
            hexsha=commit.hexsha,
            tags=sorted(tag.name for tag in repo.tags),
        )

    return reader

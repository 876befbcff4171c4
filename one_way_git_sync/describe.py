"""Human-readable labels for source revisions, derived from the nearest tag."""

from .config import TagMode
from .git_ops import GitRepository


def describe_revision(repo: GitRepository, mode: TagMode) -> str:
    """
    Describe the source HEAD for the given tag mode.

    HASH gives ``v1.31.5-2-gcdde507`` style output, VERSION gives the
    nearest tag alone (``v1.31.5``). Without any reachable tag git falls
    back to the commit hash. Other modes return an empty string.

    Raises:
        git.exc.GitCommandError: If describe fails, e.g. without any commit
    """
    if mode not in (TagMode.HASH, TagMode.VERSION):
        return ""
    return repo.describe(abbrev_zero=mode is TagMode.VERSION)


def is_tag_descriptor(descriptor: str, revision: str) -> bool:
    """False when describe only fell back to (a prefix of) the bare revision hash."""
    return bool(descriptor) and not revision.startswith(descriptor)

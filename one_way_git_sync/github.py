"""Commit link prefixes for repositories hosted on GitHub."""

import logging
import re

from .git_ops import GitRepository

logger = logging.getLogger(__name__)


def commits_url_from_remote_url(remote_url: str | None) -> str | None:
    """
    Turn a GitHub remote URL into its commits page URL.

    The URL is split on ``/`` (and on ``:`` so that scp-style
    ``git@github.com:org/repo.git`` works too): the organization is the
    second-to-last segment and the repository the last one without ``.git``.
    """
    if not isinstance(remote_url, str) or "github.com" not in remote_url:
        return None
    words = re.split(r"[/:]", remote_url.rstrip("/"))
    org = words[-2] if len(words) >= 2 else ""
    name = words[-1].removesuffix(".git")
    if org and name:
        return f"https://github.com/{org}/{name}/commits"
    return None


def get_github_commits_url(repo: GitRepository) -> str | None:
    """
    Derive the commits URL from the ``origin`` remote of repo.

    Uses the fetch URL, falling back to the push URL. Any failure yields
    None, since the URL only decorates commit titles.
    """
    try:
        fetch_url, push_url = repo.get_remote_urls("origin")
    except Exception as e:
        logger.debug("Could not read remotes of %s: %s", repo.path, e)
        return None
    return commits_url_from_remote_url(fetch_url or push_url)

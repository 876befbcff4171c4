"""
Sync marker encoding and decoding.

The destination repository is the only place sync state lives: every sync
commit title starts with ``sync`` and ends with the source revision it was
made from, e.g.::

    sync 3f2c9a1d...
    sync v1.2.0-3-g3f2c9a1 (https://github.com/org/repo/commits/3f2c9a1d...)

The title is re-parsed on the next run to find where to resume. The
tokenization below (strip parentheses, split on whitespace and ``/``, first
token ``sync``, last token is the revision) is a wire format shared with
repositories synced by other implementations and must not change.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from .git_ops import CommitInfo

logger = logging.getLogger(__name__)

MARKER_TOKEN = "sync"

_SEPARATORS = re.compile(r"[\s/]")


@dataclass(frozen=True)
class ResumePoint:
    """Where the previous sync left off, as found in the destination history."""

    found: bool = False
    marker_revision: str | None = None
    marker_commit_subject: str | None = None


@dataclass
class ChangeSet:
    """Source commits to replay, newest first."""

    latest_revision: str | None = None
    entries: list[CommitInfo] = field(default_factory=list)


@dataclass(frozen=True)
class CommitPlan:
    """Title, body and optional tag of the sync commit."""

    title: str
    body: str
    tag_name: str | None = None

    @property
    def message(self) -> str:
        return f"{self.title}\n\n{self.body}"


def parse_marker(subject: str) -> str | None:
    """Extract the marker revision from a commit subject, or None."""
    head, *words = _SEPARATORS.split(subject.replace("(", "").replace(")", ""))
    if head == MARKER_TOKEN and words:
        return words[-1]
    return None


def classify(history: Sequence[CommitInfo]) -> ResumePoint:
    """
    Find the most recent sync marker in the destination history.

    History is expected newest first; the first matching commit wins.
    """
    if not history:
        logger.debug("No commit history in destination repository")
        return ResumePoint()

    for entry in history:
        revision = parse_marker(entry.subject)
        if revision is not None:
            return ResumePoint(
                found=True,
                marker_revision=revision,
                marker_commit_subject=entry.subject,
            )

    logger.debug("No sync commit: %s", history[0].subject)
    return ResumePoint()


def build_title(tag_descriptor: str | None, link_prefix: str | None, revision: str) -> str:
    """Build the sync commit title that classify() reads back."""
    if link_prefix:
        link_prefix = link_prefix.rstrip("/") + "/"
    link = f"{link_prefix or ''}{revision}"
    if tag_descriptor:
        return f"{MARKER_TOKEN} {tag_descriptor} ({link})"
    return f"{MARKER_TOKEN} {link}"


def replace_notice(dest: str) -> str:
    return f"Replace all the files with those of {dest} due to missing sync commit."


def initialize_notice(dest: str) -> str:
    return f"Initialize one-way-git-sync by replacing all the files with those of {dest}"


def build_body(
    change_set: ChangeSet,
    resume: ResumePoint,
    dest: str,
    initialize: bool = False,
) -> str:
    """
    Build the sync commit body.

    A bullet per replayed source commit when resuming from a marker,
    otherwise a single sentence saying every file was replaced.
    """
    if initialize:
        return initialize_notice(dest)
    if not resume.found:
        return replace_notice(dest)
    return "\n\n".join(f"* {entry.subject}" for entry in change_set.entries)

"""
Tree mirroring between a source working tree and a destination working tree.

Only the top-level entries of both trees are compared. Every destination
entry that is not ignored is removed, then every source entry that is not
ignored is copied in, so the non-ignored content of the destination ends up
identical to the source. Ignored destination entries are left untouched,
which is what keeps the destination's ``.git`` directory alive.
"""

import fnmatch
import logging
import os
import re
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Always excluded regardless of the user's patterns
VCS_METADATA_DIR = ".git"

_BRACE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, e.g. ``*.{yml,yaml}`` -> ``*.yml``, ``*.yaml``."""
    match = _BRACE.search(pattern)
    if match is None or "," not in match.group(1):
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded = []
    for alternative in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{alternative}{tail}"))
    return expanded


def _normalize_pattern(pattern: str) -> str:
    clean = pattern.strip().rstrip("/")
    while clean.startswith("./"):
        clean = clean[2:]
    while clean.startswith("**/"):
        clean = clean[3:]
    return clean


def is_ignored(name: str, patterns: Iterable[str]) -> bool:
    """Check whether a top-level entry name matches any ignore pattern."""
    for pattern in patterns:
        for candidate in expand_braces(_normalize_pattern(pattern)):
            # "docs/README.md" names a nested path, never a top-level entry
            if not candidate or "/" in candidate:
                continue
            if fnmatch.fnmatch(name, candidate):
                return True
    return False


def effective_patterns(patterns: Iterable[str]) -> list[str]:
    """User patterns plus the VCS metadata directory, without duplicates."""
    result = list(dict.fromkeys(patterns))
    if VCS_METADATA_DIR not in result:
        result.append(VCS_METADATA_DIR)
    return result


@dataclass
class MirrorPlan:
    """Entries to remove from the destination and copy from the source."""

    source_entries: set[str] = field(default_factory=set)
    destination_entries: set[str] = field(default_factory=set)
    ignore_patterns: set[str] = field(default_factory=set)


def _list_entries(directory: Path, patterns: list[str]) -> set[str]:
    return {name for name in os.listdir(directory) if not is_ignored(name, patterns)}


def plan_mirror(source_dir: Path, dest_dir: Path, patterns: Iterable[str]) -> MirrorPlan:
    """Compute the filtered entry sets of both trees."""
    ignore = effective_patterns(patterns)
    return MirrorPlan(
        source_entries=_list_entries(Path(source_dir), ignore),
        destination_entries=_list_entries(Path(dest_dir), ignore),
        ignore_patterns=set(ignore),
    )


def _remove_entry(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _copy_entry(source: Path, dest: Path) -> None:
    if source.is_dir() and not source.is_symlink():
        shutil.copytree(source, dest, symlinks=True, dirs_exist_ok=True)
    elif source.is_symlink():
        if dest.is_symlink() or dest.exists():
            _remove_entry(dest)
        os.symlink(os.readlink(source), dest)
    else:
        shutil.copy2(source, dest)


def mirror_tree(source_dir: Path, dest_dir: Path, patterns: Iterable[str]) -> MirrorPlan:
    """
    Make the non-ignored top-level content of dest_dir equal to source_dir.

    Any OSError aborts the operation and propagates to the caller.

    Returns:
        The MirrorPlan that was applied
    """
    source_dir = Path(source_dir)
    dest_dir = Path(dest_dir)
    plan = plan_mirror(source_dir, dest_dir, patterns)

    for name in sorted(plan.destination_entries):
        _remove_entry(dest_dir / name)
    for name in sorted(plan.source_entries):
        _copy_entry(source_dir / name, dest_dir / name)

    logger.debug(
        "Mirrored %d entries (removed %d) from %s",
        len(plan.source_entries),
        len(plan.destination_entries),
        source_dir,
    )
    return plan

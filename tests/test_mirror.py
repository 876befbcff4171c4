"""Tests for tree mirroring."""

import os
from pathlib import Path

import pytest

from one_way_git_sync.mirror import (
    effective_patterns,
    expand_braces,
    is_ignored,
    mirror_tree,
    plan_mirror,
)


def make_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files (with parent directories) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def read_tree(root: Path) -> dict[str, str]:
    """Read every file under root, keyed by POSIX relative path."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


class TestIsIgnored:
    """Tests for ignore pattern matching."""

    @pytest.mark.parametrize(
        "name, pattern",
        [
            ("node_modules", "node_modules"),
            ("b.secret", "*.secret"),
            (".renovaterc.json", ".renovaterc.*"),
            ("dist", "dist/"),
            ("dist", "**/dist"),
            ("dist", "./dist"),
            ("ci.yml", "ci.{yml,yaml}"),
            ("ci.yaml", "ci.{yml,yaml}"),
            ("a1", "a[0-9]"),
        ],
    )
    def test_matches(self, name, pattern):
        """Test the supported pattern forms."""
        assert is_ignored(name, [pattern])

    @pytest.mark.parametrize(
        "name, pattern",
        [
            ("a.txt", "*.secret"),
            ("ci.json", "ci.{yml,yaml}"),
            ("distribution", "dist"),
            ("anything", ""),
        ],
    )
    def test_does_not_match(self, name, pattern):
        """Test names outside the patterns."""
        assert not is_ignored(name, [pattern])

    @pytest.mark.parametrize(
        "name, pattern",
        [
            ("README.md", "docs/README.md"),
            ("build.log", "build/*.log"),
            ("dist", "**/packages/dist"),
        ],
    )
    def test_nested_path_patterns_skip_top_level(self, name, pattern):
        """Test that a pattern naming a nested path leaves top-level entries alone."""
        assert not is_ignored(name, [pattern])

    def test_expand_braces(self):
        """Test nested alternatives expansion."""
        assert expand_braces("*.{a,b}.{c,d}") == ["*.a.c", "*.a.d", "*.b.c", "*.b.d"]
        assert expand_braces("{single}") == ["{single}"]

    def test_effective_patterns_adds_git(self):
        """Test that .git is always part of the effective patterns."""
        assert effective_patterns(["*.secret", "*.secret"]) == ["*.secret", ".git"]
        assert effective_patterns([".git"]) == [".git"]


class TestMirrorTree:
    """Tests for mirror_tree."""

    def test_replaces_destination_content(self, temp_dir: Path):
        """Test that the destination ends up equal to the source."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", "lib/b.txt": "b", "lib/deep/c.txt": "c"})
        dest = make_tree(temp_dir / "dest", {"old.txt": "old", "lib/stale.txt": "stale"})

        mirror_tree(source, dest, [])

        assert read_tree(dest) == read_tree(source)

    def test_git_directory_is_preserved(self, temp_dir: Path):
        """Test that .git survives even when the user's patterns omit it."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", ".git/HEAD": "source head"})
        dest = make_tree(temp_dir / "dest", {".git/HEAD": "dest head"})

        mirror_tree(source, dest, ["*.secret"])

        assert (dest / ".git" / "HEAD").read_text() == "dest head"
        assert (dest / "a.txt").read_text() == "a"

    def test_ignored_source_entries_are_not_copied(self, temp_dir: Path):
        """Test that a.txt is copied and b.secret is not."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", "b.secret": "s"})
        dest = make_tree(temp_dir / "dest", {})

        mirror_tree(source, dest, ["*.secret"])

        assert read_tree(dest) == {"a.txt": "a"}

    def test_ignored_destination_entries_are_kept(self, temp_dir: Path):
        """Test that ignored destination entries are neither deleted nor overwritten."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", "b.secret": "source"})
        dest = make_tree(temp_dir / "dest", {"b.secret": "dest", "c.txt": "c"})

        mirror_tree(source, dest, ["*.secret"])

        assert read_tree(dest) == {"a.txt": "a", "b.secret": "dest"}

    def test_nested_pattern_keeps_top_level_file_in_sync(self, temp_dir: Path):
        """Test that ignoring docs/README.md still replaces the root README.md."""
        source = make_tree(temp_dir / "src", {"README.md": "new", "docs/README.md": "docs"})
        dest = make_tree(temp_dir / "dest", {"README.md": "stale"})

        mirror_tree(source, dest, ["docs/README.md"])

        assert (dest / "README.md").read_text() == "new"
        assert (dest / "docs" / "README.md").read_text() == "docs"

    def test_default_patterns(self, temp_dir: Path):
        """Test the usual tooling directories stay out of the mirror."""
        source = make_tree(
            temp_dir / "src",
            {
                "a.txt": "a",
                ".github/workflows/ci.yml": "ci",
                "node_modules/x/index.js": "x",
                ".renovaterc.json": "{}",
            },
        )
        dest = make_tree(temp_dir / "dest", {})

        mirror_tree(source, dest, [".git", ".github", "node_modules", ".renovaterc.*"])

        assert read_tree(dest) == {"a.txt": "a"}

    def test_idempotent(self, temp_dir: Path):
        """Test that mirroring twice gives the same result."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", "lib/b.txt": "b"})
        dest = make_tree(temp_dir / "dest", {"old.txt": "old"})

        mirror_tree(source, dest, [])
        first = read_tree(dest)
        mirror_tree(source, dest, [])

        assert read_tree(dest) == first

    def test_symlinks_are_copied_as_links(self, temp_dir: Path):
        """Test that symbolic links are recreated rather than followed."""
        source = make_tree(temp_dir / "src", {"a.txt": "a"})
        os.symlink("a.txt", source / "link.txt")
        dest = make_tree(temp_dir / "dest", {})

        mirror_tree(source, dest, [])

        assert (dest / "link.txt").is_symlink()
        assert os.readlink(dest / "link.txt") == "a.txt"

    def test_missing_source_raises(self, temp_dir: Path):
        """Test that an unreadable source propagates OSError."""
        dest = make_tree(temp_dir / "dest", {})
        with pytest.raises(OSError):
            mirror_tree(temp_dir / "missing", dest, [])

    def test_plan_mirror(self, temp_dir: Path):
        """Test the filtered entry sets."""
        source = make_tree(temp_dir / "src", {"a.txt": "a", "b.secret": "s", ".git/HEAD": ""})
        dest = make_tree(temp_dir / "dest", {"c.txt": "c", ".git/HEAD": ""})

        plan = plan_mirror(source, dest, ["*.secret"])

        assert plan.source_entries == {"a.txt"}
        assert plan.destination_entries == {"c.txt"}
        assert plan.ignore_patterns == {"*.secret", ".git"}

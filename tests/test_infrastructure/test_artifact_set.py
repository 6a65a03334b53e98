"""
Tests for dualbuild.infrastructure.artifact_set
=================================================

What's Being Tested:
    - ArtifactSet construction (normalization, de-duplication, ordering)
    - find() discovery (globs, ignores, missing directories, regular files)
    - merge() and filter()
    - copy() with rename and the three overwrite modes

All tests work on real files below pytest's tmp_path.
"""

from pathlib import Path

import pytest

from dualbuild.core.exceptions import BuildFailure
from dualbuild.infrastructure.artifact_set import ArtifactSet, find


# =============================================================================
# Helpers
# =============================================================================
def _touch(root: Path, *relatives: str) -> None:
    for relative in relatives:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(relative)


# =============================================================================
# Tests: Construction
# =============================================================================
class TestArtifactSet:

    def test_paths_are_relative_and_deduplicated(self, tmp_path: Path) -> None:
        files = ArtifactSet(tmp_path, ["b.ts", "a.ts", "b.ts", str(tmp_path / "c.ts")])
        assert list(files) == ["b.ts", "a.ts", "c.ts"]
        assert len(files) == 3
        assert "a.ts" in files

    def test_directory_is_absolute(self, tmp_path: Path) -> None:
        assert ArtifactSet(tmp_path).directory.is_absolute()

    def test_empty_set_is_falsy(self, tmp_path: Path) -> None:
        assert not ArtifactSet.empty(tmp_path)

    def test_absolute_paths(self, tmp_path: Path) -> None:
        files = ArtifactSet(tmp_path, ["x/y.ts"])
        assert list(files.absolute_paths()) == [tmp_path.resolve() / "x" / "y.ts"]

    def test_equality(self, tmp_path: Path) -> None:
        assert ArtifactSet(tmp_path, ["a"]) == ArtifactSet(str(tmp_path), ["a"])
        assert ArtifactSet(tmp_path, ["a", "b"]) != ArtifactSet(tmp_path, ["b", "a"])


# =============================================================================
# Tests: Discovery
# =============================================================================
class TestFind:

    async def test_finds_recursively_sorted(self, tmp_path: Path) -> None:
        _touch(tmp_path, "b.ts", "a.ts", "sub/c.ts", "sub/d.js")
        files = await find("**/*.ts", directory=tmp_path)
        assert list(files) == ["a.ts", "b.ts", "sub/c.ts"]

    async def test_first_glob_first(self, tmp_path: Path) -> None:
        _touch(tmp_path, "a.ts", "b.cts")
        files = await find("**/*.cts", "**/*.ts", directory=tmp_path)
        assert list(files) == ["b.cts", "a.ts"]

    async def test_ignore(self, tmp_path: Path) -> None:
        _touch(tmp_path, "a.ts", "a.d.ts")
        files = await find("**/*.ts", directory=tmp_path, ignore=["**/*.d.ts"])
        assert list(files) == ["a.ts"]

    async def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        files = await find("**/*", directory=tmp_path / "absent")
        assert list(files) == []

    async def test_directories_are_not_members(self, tmp_path: Path) -> None:
        _touch(tmp_path, "dir.ts/inner.txt")
        files = await find("**/*", directory=tmp_path)
        assert list(files) == ["dir.ts/inner.txt"]


# =============================================================================
# Tests: Merge and Filter
# =============================================================================
class TestMergeAndFilter:

    def test_merge_first_occurrence_wins(self, tmp_path: Path) -> None:
        first = ArtifactSet(tmp_path, ["a", "b"])
        second = ArtifactSet(tmp_path, ["b", "c"])
        assert list(ArtifactSet.merge([first, second])) == ["a", "b", "c"]

    def test_merge_uses_common_directory(self, tmp_path: Path) -> None:
        merged = ArtifactSet.merge(
            [ArtifactSet(tmp_path / "src", ["a.ts"]), ArtifactSet(tmp_path / "test", ["b.ts"])]
        )
        assert merged.directory == tmp_path.resolve()
        assert list(merged) == ["src/a.ts", "test/b.ts"]

    def test_merge_empty_with_directory(self, tmp_path: Path) -> None:
        assert list(ArtifactSet.merge([], directory=tmp_path)) == []

    def test_merge_empty_without_directory(self) -> None:
        with pytest.raises(ValueError):
            ArtifactSet.merge([])

    def test_filter_keeps_matching_existing_files(self, tmp_path: Path) -> None:
        _touch(tmp_path, "index.cjs", "index.cjs.map", "other.cjs")
        files = ArtifactSet(tmp_path, ["other.cjs", "index.cjs", "index.cjs.map", "ghost.cjs"])
        kept = files.filter("index.*", "ghost.*", ignore=["**/*.map"])
        assert list(kept) == ["index.cjs"]

    def test_filter_rebases_to_directory(self, tmp_path: Path) -> None:
        _touch(tmp_path, "dist/index.cjs", "src/index.ts")
        files = ArtifactSet(tmp_path, ["dist/index.cjs", "src/index.ts"])
        kept = files.filter("**/*", directory=tmp_path / "dist")
        assert kept.directory == (tmp_path / "dist").resolve()
        assert list(kept) == ["index.cjs"]


# =============================================================================
# Tests: Copy
# =============================================================================
class TestCopy:

    async def test_copy_keeps_relative_paths(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "a.json", "sub/b.txt")
        sources = await find("**/*", directory=tmp_path / "src")
        copied = await sources.copy(tmp_path / "dist")

        assert list(copied) == ["a.json", "sub/b.txt"]
        assert (tmp_path / "dist" / "sub" / "b.txt").read_text() == "sub/b.txt"

    async def test_copy_with_rename(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "__dot_gitignore")
        sources = await find("**/*", directory=tmp_path / "src")
        copied = await sources.copy(tmp_path / "out", rename=lambda p: p.replace("__dot_", "."))
        assert list(copied) == [".gitignore"]
        assert (tmp_path / "out" / ".gitignore").exists()

    async def test_copy_skip_existing(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "a.txt", "b.txt")
        (tmp_path / "out").mkdir()
        (tmp_path / "out" / "a.txt").write_text("keep me")

        sources = await find("**/*", directory=tmp_path / "src")
        copied = await sources.copy(tmp_path / "out", overwrite="skip")

        assert list(copied) == ["b.txt"]
        assert (tmp_path / "out" / "a.txt").read_text() == "keep me"

    async def test_copy_overwrite_existing(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "a.txt")
        (tmp_path / "out").mkdir()
        (tmp_path / "out" / "a.txt").write_text("old")

        sources = await find("**/*", directory=tmp_path / "src")
        await sources.copy(tmp_path / "out")
        assert (tmp_path / "out" / "a.txt").read_text() == "a.txt"

    async def test_copy_fail_on_existing(self, tmp_path: Path) -> None:
        _touch(tmp_path / "src", "a.txt")
        (tmp_path / "out").mkdir()
        (tmp_path / "out" / "a.txt").write_text("old")

        sources = await find("**/*", directory=tmp_path / "src")
        with pytest.raises(BuildFailure) as exc_info:
            await sources.copy(tmp_path / "out", overwrite="fail")
        assert exc_info.value.error_code == "TARGET_EXISTS"

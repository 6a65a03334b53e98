"""
dualbuild.infrastructure.artifact_set - File Discovery and Artifact Sets
==========================================================================

Every build step consumes and produces an ``ArtifactSet``: an ordered,
deduplicated collection of relative file paths rooted at one directory.

Architecture Context:
    Discovery feeds the toolchain; the toolchain's outputs are merged back
    into a single set that the export synthesizer reads.

    find("**/*.ts", directory=src) ──→ ArtifactSet(src, [...])
                                            │ Toolchain.compile()
                                            ↓
                                       ArtifactSet(dist, [...]) ──┐
    find("**/*", directory=src).copy(dist) ──→ ArtifactSet ───────┤
                                                                  ↓
                                               ArtifactSet.merge([...])

Ordering Rules:
    - Within one glob, matches are sorted so repeated runs agree.
    - Across globs (and across merged sets) the first occurrence wins;
      iteration order is insertion order, never re-sorted.
    - Only regular files are members; directories never are.

Usage:
    >>> sources = await find("**/*.ts", directory="src", ignore=["**/*.d.ts"])
    >>> copied = await sources.copy("dist")
    >>> [*copied.filter("index.*")]
    ['index.ts']
"""

from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, Iterator, Literal, Optional, Sequence, Union

import structlog

from dualbuild.core.exceptions import BuildFailure


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

PathLike = Union[str, os.PathLike]
OverwriteMode = Literal["overwrite", "skip", "fail"]


# =============================================================================
# Glob Helpers
# =============================================================================
def _glob_files(directory: Path, pattern: str) -> list[str]:
    """Relative POSIX paths of regular files matching ``pattern``, sorted."""
    if not directory.is_dir():
        return []
    return sorted(
        path.relative_to(directory).as_posix()
        for path in directory.glob(pattern)
        if path.is_file()
    )


def _glob_all(directory: Path, patterns: Iterable[str]) -> dict[str, None]:
    matches: dict[str, None] = {}
    for pattern in patterns:
        for relative in _glob_files(directory, pattern):
            matches.setdefault(relative, None)
    return matches


class ArtifactSet:
    """An immutable, ordered set of files below one base directory.

    Attributes:
        directory: Absolute base directory.

    Example:
        >>> files = ArtifactSet("/project/dist", ["index.cjs", "index.mjs"])
        >>> list(files.absolute_paths())
        [PosixPath('/project/dist/index.cjs'), PosixPath('/project/dist/index.mjs')]
    """

    __slots__ = ("_directory", "_paths")

    def __init__(self, directory: PathLike, paths: Iterable[str] = ()) -> None:
        self._directory = Path(directory).resolve()
        ordered: dict[str, None] = {}
        for path in paths:
            ordered.setdefault(self._relative(path), None)
        self._paths: tuple[str, ...] = tuple(ordered)

    def _relative(self, path: str) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            candidate = candidate.resolve().relative_to(self._directory)
        return candidate.as_posix()

    # =========================================================================
    # Properties and Protocols
    # =========================================================================

    @property
    def directory(self) -> Path:
        return self._directory

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __bool__(self) -> bool:
        return bool(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArtifactSet):
            return NotImplemented
        return self._directory == other._directory and self._paths == other._paths

    def __repr__(self) -> str:
        return f"ArtifactSet(directory={str(self._directory)!r}, paths={list(self._paths)!r})"

    def absolute_paths(self) -> Iterator[Path]:
        """Yield the absolute path of every member, in order."""
        for path in self._paths:
            yield self._directory / path

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def empty(cls, directory: PathLike) -> "ArtifactSet":
        return cls(directory, ())

    @classmethod
    def merge(
        cls,
        sets: Sequence["ArtifactSet"],
        directory: Optional[PathLike] = None,
    ) -> "ArtifactSet":
        """Concatenate several sets, first occurrence wins.

        Args:
            sets: Sets to merge, in order.
            directory: Base directory of the result. Defaults to the
                deepest directory common to all sets.

        Returns:
            A set containing every member of every input set.

        Raises:
            ValueError: If neither ``sets`` nor ``directory`` is given, or a
                member lies outside ``directory``.
        """
        if directory is None:
            if not sets:
                raise ValueError("merge() needs at least one set or a directory")
            directory = os.path.commonpath([str(s.directory) for s in sets])

        base = Path(directory).resolve()
        paths: list[str] = []
        for artifact_set in sets:
            for absolute in artifact_set.absolute_paths():
                paths.append(absolute.relative_to(base).as_posix())
        return cls(base, paths)

    # =========================================================================
    # Filtering
    # =========================================================================

    def filter(
        self,
        *globs: str,
        directory: Optional[PathLike] = None,
        ignore: Iterable[str] = (),
    ) -> "ArtifactSet":
        """Keep members matching any glob and no ignore glob.

        Globs are evaluated against the filesystem below ``directory``, so
        members must exist on disk to be kept.

        Args:
            *globs: Patterns relative to ``directory``.
            directory: Base of the globs and of the result (default: own
                directory). Members outside it are dropped.
            ignore: Patterns to exclude.

        Returns:
            A new set rooted at ``directory``, in this set's order.
        """
        base = Path(directory).resolve() if directory is not None else self._directory
        matched = _glob_all(base, globs)
        ignored = _glob_all(base, ignore)

        kept: list[str] = []
        for absolute in self.absolute_paths():
            try:
                relative = absolute.relative_to(base).as_posix()
            except ValueError:
                continue
            if relative in matched and relative not in ignored:
                kept.append(relative)
        return ArtifactSet(base, kept)

    # =========================================================================
    # Copying
    # =========================================================================

    async def copy(
        self,
        dest: PathLike,
        *,
        rename: Optional[Callable[[str], str]] = None,
        overwrite: OverwriteMode = "overwrite",
    ) -> "ArtifactSet":
        """Copy every member below ``dest``, keeping relative paths.

        Args:
            dest: Target directory (created as needed).
            rename: Optional mapping applied to each relative target path.
            overwrite: "overwrite" replaces existing files, "skip" leaves
                them alone (and omits them from the result), "fail" raises.

        Returns:
            The set of files written, rooted at ``dest``.

        Raises:
            BuildFailure: If ``overwrite`` is "fail" and a target exists.
        """
        return await asyncio.to_thread(self._copy_sync, Path(dest).resolve(), rename, overwrite)

    def _copy_sync(
        self,
        dest: Path,
        rename: Optional[Callable[[str], str]],
        overwrite: OverwriteMode,
    ) -> "ArtifactSet":
        written: list[str] = []
        for relative in self._paths:
            target_relative = rename(relative) if rename else relative
            target = dest / target_relative

            if target.exists():
                if overwrite == "skip":
                    logger.debug("copy_skipped_existing", target=str(target))
                    continue
                if overwrite == "fail":
                    raise BuildFailure(
                        message=f"Refusing to overwrite {target}",
                        error_code="TARGET_EXISTS",
                        details={"target": str(target)},
                    )

            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self._directory / relative, target)
            written.append(target_relative)

        logger.debug(
            "artifacts_copied",
            source=str(self._directory),
            dest=str(dest),
            count=len(written),
        )
        return ArtifactSet(dest, written)


# =============================================================================
# Discovery
# =============================================================================
async def find(
    *globs: str,
    directory: PathLike,
    ignore: Iterable[str] = (),
) -> ArtifactSet:
    """Discover regular files matching any of ``globs`` below ``directory``.

    A directory that does not exist yields an empty set: absence is not an
    error at this level.

    Args:
        *globs: Patterns relative to ``directory`` (``**`` recurses).
        directory: Base directory of the search and of the result.
        ignore: Patterns whose matches are excluded.

    Returns:
        The discovered files, sorted per glob, first glob first.
    """
    base = Path(directory).resolve()
    ignore = tuple(ignore)

    def _find_sync() -> ArtifactSet:
        matched = _glob_all(base, globs)
        ignored = _glob_all(base, ignore)
        return ArtifactSet(base, [path for path in matched if path not in ignored])

    result = await asyncio.to_thread(_find_sync)
    logger.debug(
        "artifacts_found",
        directory=str(base),
        globs=list(globs),
        count=len(result),
    )
    return result

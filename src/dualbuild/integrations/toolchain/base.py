"""
dualbuild.integrations.toolchain.base - Abstract Toolchain Interface
======================================================================

The build layer never runs esbuild, tsc, the test runner, the coverage
reporter or the linter directly. It calls them through this interface, which
gives us:

    1. **Swappability**: the Node toolchain in production, the mock in tests.
    2. **One failure type**: every tool failure surfaces as BuildFailure.
    3. **A narrow seam**: tasks only know *what* a tool does, never *how*.

    ┌──────────────┐  compile() / check_types()  ┌──────────────────┐
    │  BuildTasks  │ ──────────────────────────→ │    Toolchain     │
    │              │  run_tests() / lint()       │    (abstract)    │
    │              │ ←──── ArtifactSet ───────── │                  │
    └──────────────┘                             └────────┬─────────┘
                                                          │
                                               ┌──────────┴─────────┐
                                          ┌────▼────┐        ┌──────▼──────┐
                                          │  Mock   │        │    Node     │
                                          │Toolchain│        │  (npx ...)  │
                                          └─────────┘        └─────────────┘
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from dualbuild.core.enums import ModuleFormat
from dualbuild.core.models import CoverageThresholds
from dualbuild.infrastructure.artifact_set import ArtifactSet


# =============================================================================
# Naming Conventions
# =============================================================================
# TypeScript source suffix → declaration suffix emitted for it.
# =============================================================================
DECLARATION_SUFFIXES: dict[str, str] = {
    ".ts": ".d.ts",
    ".cts": ".d.cts",
    ".mts": ".d.mts",
}


def is_declaration(relative: str) -> bool:
    return any(relative.endswith(suffix) for suffix in DECLARATION_SUFFIXES.values())


def _split_source_suffix(relative: str) -> tuple[str, str]:
    for suffix in (".cts", ".mts", ".ts"):
        if relative.endswith(suffix):
            return relative[: -len(suffix)], suffix
    stem, dot, extension = relative.rpartition(".")
    if not dot:
        return relative, ""
    return stem, f".{extension}"


def compiled_name(relative: str, out_extension: str) -> str:
    """Name of the compiled file for a source (``a/b.cts`` → ``a/b.cjs``)."""
    stem, _ = _split_source_suffix(relative)
    return f"{stem}{out_extension}"


def declaration_name(relative: str) -> str:
    """Name of the declaration emitted for a source (``a.mts`` → ``a.d.mts``)."""
    stem, suffix = _split_source_suffix(relative)
    return f"{stem}{DECLARATION_SUFFIXES.get(suffix, '.d.ts')}"


def emits_source_map(options: dict[str, Any]) -> bool:
    return options.get("sourcemap") in (True, "linked", "external", "both")


# =============================================================================
# Abstract Toolchain
# =============================================================================
class Toolchain(ABC):
    """Abstract base class for the external build tools.

    Every method either completes or raises ``BuildFailure`` with ``tool``
    set. No method retries.
    """

    name: str = "abstract"

    @abstractmethod
    async def compile(
        self,
        sources: ArtifactSet,
        *,
        module_format: ModuleFormat,
        out_dir: Path,
        out_extension: str,
        options: dict[str, Any],
    ) -> ArtifactSet:
        """Transpile sources into one module format.

        Args:
            sources: Files to compile; output paths mirror their relative
                paths below ``out_dir``.
            module_format: Target format.
            out_dir: Output directory.
            out_extension: Extension of the emitted runtime files.
            options: Transpiler options (sourcemap, platform, ...).

        Returns:
            Emitted files (runtime files and source maps), rooted at out_dir.
        """
        ...

    @abstractmethod
    async def check_types(
        self,
        files: ArtifactSet,
        *,
        tsconfig: Path,
        out_dir: Optional[Path] = None,
        root_dir: Optional[Path] = None,
        extra_types_dir: Optional[Path] = None,
    ) -> ArtifactSet:
        """Type-check files, emitting declarations when ``out_dir`` is set.

        Args:
            files: Sources plus any hand-written declarations they need.
            tsconfig: Base type-checker configuration.
            out_dir: Declaration output directory; None checks only.
            root_dir: Root the declaration paths are relative to.
            extra_types_dir: Additional declarations visible to the checker.

        Returns:
            Emitted declarations rooted at ``out_dir`` (empty when checking only).
        """
        ...

    @abstractmethod
    async def run_tests(
        self,
        tests: ArtifactSet,
        *,
        module_format: ModuleFormat,
        coverage_dir: Optional[Path] = None,
    ) -> None:
        """Run the test files under one module-loading convention.

        Args:
            tests: Test files.
            module_format: Module convention the tests are loaded with.
            coverage_dir: Where raw coverage data goes; None disables it.
        """
        ...

    @abstractmethod
    async def report_coverage(
        self,
        sources: ArtifactSet,
        *,
        data_dir: Path,
        report_dir: Path,
        thresholds: CoverageThresholds,
    ) -> ArtifactSet:
        """Produce a coverage report and enforce the thresholds.

        The report is written before thresholds are checked, so it exists
        even when this method raises.

        Returns:
            Report files rooted at ``report_dir``.
        """
        ...

    @abstractmethod
    async def lint(self, files: ArtifactSet) -> None:
        """Lint files, failing on any rule violation."""
        ...

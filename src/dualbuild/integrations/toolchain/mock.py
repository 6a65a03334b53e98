"""
dualbuild.integrations.toolchain.mock - Simulated Toolchain for Testing
=========================================================================

A deterministic, in-process stand-in for the Node.js tools. It writes the
same *shape* of output the real tools write, so every task can be exercised
without Node.js installed.

Why a Mock Toolchain?
    1. **No Node.js required**: the test suite runs anywhere Python does.
    2. **Deterministic output**: same sources, same files.
    3. **Call tracking**: every invocation is recorded for assertions.
    4. **Failure simulation**: markers in fixture files trigger failures.

Simulated Behaviour:
    compile          writes ``<stem><ext>`` (and ``<stem><ext>.map`` when
                     source maps are on) for every source.
    check_types      fails when a source contains ``// @needs-type NAME``
                     and no ``NAME.d.ts`` is visible; otherwise emits one
                     declaration per non-declaration source when asked to.
    run_tests        writes ``coverage-<format>-<n>.json`` into the coverage
                     directory, then fails if any test file is ``*.fail.*``.
    report_coverage  writes index.html, report.js and report.json, then
                     fails if ``coverage_percent`` is below a minimum.
    lint             fails when any file contains ``@lint-error``.

Usage:
    >>> toolchain = MockToolchain(coverage_percent=80.0)
    >>> tasks = create_tasks(toolchain=toolchain, project_dir="sample")
    >>> await tasks.transpile()
    >>> [call.tool for call in toolchain.calls]
    ['compile', 'compile', 'check_types']
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

import structlog

from dualbuild.core.enums import ModuleFormat
from dualbuild.core.exceptions import BuildFailure
from dualbuild.core.models import CoverageThresholds, ToolCall
from dualbuild.infrastructure.artifact_set import ArtifactSet
from dualbuild.integrations.toolchain.base import (
    DECLARATION_SUFFIXES,
    Toolchain,
    compiled_name,
    declaration_name,
    emits_source_map,
    is_declaration,
)


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

NEEDS_TYPE = re.compile(r"@needs-type\s+([\w.-]+)")
LINT_ERROR_MARKER = "@lint-error"
REPORT_FILES = ("index.html", "report.js", "report.json")


def _declared_name(relative: str) -> str:
    name = PurePosixPath(relative).name
    for suffix in DECLARATION_SUFFIXES.values():
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


class MockToolchain(Toolchain):
    """Simulated toolchain for tests and dry runs.

    Attributes:
        coverage_percent: Coverage the simulated reporter measures when
            coverage data exists (0 when it does not).
        _fail_on: Operations forced to fail ("compile", "lint", ...).
        _calls: Every recorded invocation, in order.
    """

    name = "mock"

    def __init__(
        self,
        coverage_percent: float = 100.0,
        fail_on: Iterable[str] = (),
    ) -> None:
        self.coverage_percent = coverage_percent
        self._fail_on = set(fail_on)
        self._calls: list[ToolCall] = []
        self._test_runs = 0
        self._logger = logger.bind(component="mock_toolchain")

    # =========================================================================
    # Call Tracking
    # =========================================================================

    @property
    def calls(self) -> list[ToolCall]:
        return self._calls

    def calls_for(self, tool: str) -> list[ToolCall]:
        return [call for call in self._calls if call.tool == tool]

    def fail_on(self, tool: str) -> None:
        """Force every later call of ``tool`` to fail."""
        self._fail_on.add(tool)

    def reset(self) -> None:
        self._calls.clear()
        self._fail_on.clear()
        self._test_runs = 0

    async def _record(self, tool: str, files: ArtifactSet, **options: Any) -> None:
        self._calls.append(ToolCall(tool=tool, files=list(files), options=options))
        self._logger.debug("mock_tool_called", tool=tool, count=len(files))

        # Yield once so concurrently started steps interleave like real I/O.
        await asyncio.sleep(0)

        if tool in self._fail_on:
            raise BuildFailure(
                message=f"Simulated {tool} failure",
                tool=tool,
                error_code="SIMULATED_FAILURE",
            )

    @staticmethod
    def _write(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    # =========================================================================
    # Toolchain Operations
    # =========================================================================

    async def compile(
        self,
        sources: ArtifactSet,
        *,
        module_format: ModuleFormat,
        out_dir: Path,
        out_extension: str,
        options: dict[str, Any],
    ) -> ArtifactSet:
        await self._record(
            "compile",
            sources,
            module_format=module_format.value,
            out_dir=str(out_dir),
            out_extension=out_extension,
        )

        emitted: list[str] = []
        for relative, source in zip(sources, sources.absolute_paths()):
            output = compiled_name(relative, out_extension)
            body = f"// {module_format.value}: {relative}\n{source.read_text(encoding='utf-8')}"
            if emits_source_map(options):
                map_name = f"{output}.map"
                body += f"\n//# sourceMappingURL={PurePosixPath(map_name).name}\n"
                self._write(out_dir / output, body)
                self._write(
                    out_dir / map_name,
                    json.dumps({"version": 3, "sources": [relative], "mappings": ""}),
                )
                emitted.extend([output, map_name])
            else:
                self._write(out_dir / output, body)
                emitted.append(output)

        return ArtifactSet(out_dir, emitted)

    async def check_types(
        self,
        files: ArtifactSet,
        *,
        tsconfig: Path,
        out_dir: Optional[Path] = None,
        root_dir: Optional[Path] = None,
        extra_types_dir: Optional[Path] = None,
    ) -> ArtifactSet:
        await self._record(
            "check_types",
            files,
            tsconfig=str(tsconfig),
            out_dir=str(out_dir) if out_dir else None,
            extra_types_dir=str(extra_types_dir) if extra_types_dir else None,
        )

        available = {_declared_name(relative) for relative in files if is_declaration(relative)}
        if extra_types_dir is not None and extra_types_dir.is_dir():
            available.update(_declared_name(path.name) for path in extra_types_dir.glob("**/*.d.ts"))

        unresolved: list[str] = []
        for relative, path in zip(files, files.absolute_paths()):
            if is_declaration(relative):
                continue
            for needed in NEEDS_TYPE.findall(path.read_text(encoding="utf-8")):
                if needed not in available:
                    unresolved.append(f"{relative}: cannot find type '{needed}'")

        if unresolved:
            raise BuildFailure(
                message=f"Type checking failed with {len(unresolved)} error(s)",
                tool="tsc",
                error_code="TYPE_ERROR",
                details={"errors": unresolved},
            )

        if out_dir is None:
            return ArtifactSet.empty(files.directory)

        base = root_dir or files.directory
        emitted: list[str] = []
        for path in files.absolute_paths():
            relative = path.relative_to(base).as_posix()
            if is_declaration(relative):
                continue
            output = declaration_name(relative)
            self._write(out_dir / output, f"// declarations for {relative}\nexport {{}};\n")
            emitted.append(output)

        return ArtifactSet(out_dir, emitted)

    async def run_tests(
        self,
        tests: ArtifactSet,
        *,
        module_format: ModuleFormat,
        coverage_dir: Optional[Path] = None,
    ) -> None:
        await self._record(
            "run_tests",
            tests,
            module_format=module_format.value,
            coverage_dir=str(coverage_dir) if coverage_dir else None,
        )

        self._test_runs += 1
        if coverage_dir is not None:
            self._write(
                coverage_dir / f"coverage-{module_format.value}-{self._test_runs}.json",
                json.dumps({"format": module_format.value, "tests": list(tests)}),
            )

        failed = [relative for relative in tests if ".fail." in PurePosixPath(relative).name]
        if failed:
            raise BuildFailure(
                message=f"{len(failed)} test file(s) failed ({module_format.label})",
                tool="test",
                error_code="TEST_FAILURE",
                details={"failed": failed, "module_format": module_format.value},
            )

    async def report_coverage(
        self,
        sources: ArtifactSet,
        *,
        data_dir: Path,
        report_dir: Path,
        thresholds: CoverageThresholds,
    ) -> ArtifactSet:
        await self._record(
            "report_coverage",
            sources,
            data_dir=str(data_dir),
            report_dir=str(report_dir),
            thresholds=thresholds.model_dump(),
        )

        data_files = sorted(data_dir.glob("coverage-*.json")) if data_dir.is_dir() else []
        percent = self.coverage_percent if data_files else 0.0

        summary = {
            "coverage": percent,
            "data_files": len(data_files),
            "sources": list(sources),
            "thresholds": thresholds.model_dump(),
        }
        self._write(report_dir / "index.html", f"<html><body>Coverage: {percent}%</body></html>\n")
        self._write(report_dir / "report.js", f"window.__coverage__ = {json.dumps(summary)};\n")
        self._write(report_dir / "report.json", json.dumps(summary, indent=2))

        if percent < thresholds.minimum or percent < thresholds.minimum_file:
            raise BuildFailure(
                message=f"Coverage {percent}% below the configured minimum",
                tool="coverage",
                error_code="COVERAGE_THRESHOLD",
                details=summary,
            )

        return ArtifactSet(report_dir, REPORT_FILES)

    async def lint(self, files: ArtifactSet) -> None:
        await self._record("lint", files)

        offending = [
            relative
            for relative, path in zip(files, files.absolute_paths())
            if LINT_ERROR_MARKER in path.read_text(encoding="utf-8")
        ]
        if offending:
            raise BuildFailure(
                message=f"Lint errors in {len(offending)} file(s)",
                tool="eslint",
                error_code="LINT_ERROR",
                details={"files": offending},
            )

"""
dualbuild.tasks.build - Build Tasks for Dual-Format Packages
==============================================================

``BuildTasks`` is the task registry a project builds with. Every public
``@task`` method is a named build step; the ``find_*`` helpers discover the
files the steps feed to the toolchain.

Task Graph:
    default ──→ all ──┬──→ transpile ──┬──→ transpile_cjs     (if cjs)
                      │                ├──→ transpile_esm     (if esm)
                      │                ├──→ transpile_types
                      │                └──→ copy_resources
                      ├──→ test_types
                      ├──→ coverage ──→ test ──→ test_cjs, test_esm
                      │    (or test when coverage is off)
                      └──→ lint

    exports ──→ transpile, then package.json

``all`` runs its four steps one after the other, or concurrently when
``parallelize`` is set. ``transpile`` always removes ``dest_dir`` before its
(concurrent) compile steps start.

Usage:
    >>> tasks = BuildTasks(BuildConfig(), NodeToolchain())
    >>> await tasks.transpile()
    >>> await tasks.exports(exports_glob="**/*")
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from dualbuild.core.config import BuildConfig
from dualbuild.core.enums import ModuleFormat
from dualbuild.exports.classifier import ArtifactClassifier
from dualbuild.exports.manifest import write_exports
from dualbuild.infrastructure.artifact_set import ArtifactSet, find
from dualbuild.integrations.toolchain.base import Toolchain
from dualbuild.orchestration.outcome import Outcome
from dualbuild.orchestration.registry import (
    TaskRegistry,
    run_concurrently,
    run_sequentially,
    task,
)


# =============================================================================
# Glob Patterns
# =============================================================================
DECLARATION_GLOBS = ("**/*.d.ts", "**/*.d.cts", "**/*.d.mts")
TYPESCRIPT_GLOBS = ("**/*.ts", "**/*.cts", "**/*.mts")
SCRIPT_GLOBS = TYPESCRIPT_GLOBS + ("**/*.js", "**/*.cjs", "**/*.mjs")


async def _remove_tree(directory: Path) -> None:
    if directory.is_dir():
        await asyncio.to_thread(shutil.rmtree, directory)


class BuildTasks(TaskRegistry):
    """Transpile, test, cover, lint and export a dual-format package.

    Attributes:
        _toolchain: The external tools every step delegates to.
    """

    component = "build_tasks"

    def __init__(self, config: BuildConfig, toolchain: Toolchain) -> None:
        super().__init__(config)
        self._toolchain = toolchain

    @property
    def config(self) -> BuildConfig:
        return self._config

    @property
    def toolchain(self) -> Toolchain:
        return self._toolchain

    @property
    def classifier(self) -> ArtifactClassifier:
        return ArtifactClassifier(
            cjs_extension=self._config.cjs_extension,
            esm_extension=self._config.esm_extension,
            index_name=self._config.index_name,
        )

    # =========================================================================
    # Discovery
    # =========================================================================

    async def find_sources_cjs(self) -> ArtifactSet:
        """Sources compiled to CommonJS: ``*.ts`` and ``*.cts``."""
        return await find(
            *ModuleFormat.CJS.source_globs,
            directory=self._config.path("source_dir"),
            ignore=DECLARATION_GLOBS,
        )

    async def find_sources_esm(self) -> ArtifactSet:
        """Sources compiled to ES modules: ``*.ts`` and ``*.mts``."""
        return await find(
            *ModuleFormat.ESM.source_globs,
            directory=self._config.path("source_dir"),
            ignore=DECLARATION_GLOBS,
        )

    async def find_sources(self) -> ArtifactSet:
        """Sources of every enabled format."""
        sets = []
        if self._config.cjs:
            sets.append(await self.find_sources_cjs())
        if self._config.esm:
            sets.append(await self.find_sources_esm())
        return ArtifactSet.merge(sets, directory=self._config.path("source_dir"))

    async def find_types(self) -> ArtifactSet:
        """Hand-written declarations living among the sources."""
        return await find(*DECLARATION_GLOBS, directory=self._config.path("source_dir"))

    async def find_extra_types(self) -> ArtifactSet:
        """Declarations in ``extra_types_dir``; empty when it is absent."""
        return await find(*DECLARATION_GLOBS, directory=self._config.path("extra_types_dir"))

    async def find_resources(self) -> ArtifactSet:
        """Every non-TypeScript file among the sources."""
        return await find(
            "**/*",
            directory=self._config.path("source_dir"),
            ignore=TYPESCRIPT_GLOBS,
        )

    async def find_tests(self) -> ArtifactSet:
        return await find(
            *self._config.test_globs,
            directory=self._config.path("test_dir"),
            ignore=DECLARATION_GLOBS,
        )

    async def find_lint_sources(self) -> ArtifactSet:
        """Scripts in the source and test directories, the extra
        declarations, plus every ``extra_lint`` spec."""
        directories = [self._config.path("source_dir"), self._config.path("test_dir")]

        sets = [await find(*SCRIPT_GLOBS, directory=directory) for directory in directories]
        sets.append(await self.find_extra_types())
        for spec in self._config.extra_lint:
            sets.append(
                await find(
                    *spec.globs,
                    directory=self._config.resolve_path(spec.directory),
                    ignore=spec.ignore,
                )
            )
        return ArtifactSet.merge(sets)

    async def find_coverage_sources(self) -> ArtifactSet:
        sets = [
            await find(
                *SCRIPT_GLOBS,
                directory=self._config.path("source_dir"),
                ignore=DECLARATION_GLOBS,
            )
        ]
        for spec in self._config.extra_coverage:
            sets.append(
                await find(
                    *spec.globs,
                    directory=self._config.resolve_path(spec.directory),
                    ignore=spec.ignore,
                )
            )
        return ArtifactSet.merge(sets)

    def _extra_types_dir(self) -> Path | None:
        directory = self._config.path("extra_types_dir")
        return directory if directory.is_dir() else None

    # =========================================================================
    # Transpile
    # =========================================================================

    async def _compile(self, module_format: ModuleFormat) -> ArtifactSet:
        if module_format is ModuleFormat.CJS:
            sources = await self.find_sources_cjs()
        else:
            sources = await self.find_sources_esm()

        return await self._toolchain.compile(
            sources,
            module_format=module_format,
            out_dir=self._config.path("dest_dir"),
            out_extension=self._config.extension(module_format),
            options=self._config.merged_esbuild_options,
        )

    @task
    async def transpile_cjs(self) -> ArtifactSet:
        """Transpile to CommonJS."""
        return await self._compile(ModuleFormat.CJS)

    @task
    async def transpile_esm(self) -> ArtifactSet:
        """Transpile to ES modules."""
        return await self._compile(ModuleFormat.ESM)

    @task
    async def transpile_types(self) -> ArtifactSet:
        """Emit declarations for every source."""
        source_dir = self._config.path("source_dir")
        files = ArtifactSet.merge(
            [await self.find_sources(), await self.find_types()],
            directory=source_dir,
        )
        return await self._toolchain.check_types(
            files,
            tsconfig=self._config.path("tsconfig_json"),
            out_dir=self._config.path("dest_dir"),
            root_dir=source_dir,
            extra_types_dir=self._extra_types_dir(),
        )

    @task
    async def copy_resources(self) -> ArtifactSet:
        """Copy resources and hand-written declarations next to the output."""
        files = ArtifactSet.merge(
            [await self.find_resources(), await self.find_types()],
            directory=self._config.path("source_dir"),
        )
        return await files.copy(self._config.path("dest_dir"))

    @task
    async def transpile(self) -> ArtifactSet:
        """Clean ``dest_dir`` and rebuild everything into it."""
        self.banner("Transpiling source files")

        dest_dir = self._config.path("dest_dir")
        await _remove_tree(dest_dir)

        steps = []
        if self._config.cjs:
            steps.append(self.transpile_cjs())
        if self._config.esm:
            steps.append(self.transpile_esm())
        steps.append(self.transpile_types())
        steps.append(self.copy_resources())

        results = await run_concurrently(*steps)
        files = ArtifactSet.merge(results, directory=dest_dir)

        self._logger.info("transpile_completed", dest_dir=str(dest_dir), files=len(files))
        return files

    # =========================================================================
    # Test & Coverage
    # =========================================================================

    @task
    async def test_types(self) -> None:
        """Type-check the tests without emitting anything."""
        self.banner("Checking test types")

        await self._toolchain.check_types(
            await self.find_tests(),
            tsconfig=self._config.path("test_dir") / "tsconfig.json",
            extra_types_dir=self._extra_types_dir(),
        )

    async def _run_tests(self, module_format: ModuleFormat) -> None:
        self.banner(f"Running tests ({module_format.label})")

        coverage_dir = self._config.path("coverage_data_dir") if self._config.coverage else None
        await self._toolchain.run_tests(
            await self.find_tests(),
            module_format=module_format,
            coverage_dir=coverage_dir,
        )

    @task
    async def test_cjs(self) -> None:
        await self._run_tests(ModuleFormat.CJS)

    @task
    async def test_esm(self) -> None:
        await self._run_tests(ModuleFormat.ESM)

    @task
    async def test(self) -> None:
        """Run the tests once per enabled format, CommonJS first."""
        if self._config.coverage:
            await _remove_tree(self._config.path("coverage_data_dir"))

        if self._config.cjs:
            await self.test_cjs()
        if self._config.esm:
            await self.test_esm()

    @task
    async def coverage(self) -> ArtifactSet:
        """Run the tests, then always produce the coverage report.

        A test failure is raised after the report is written. When both the
        tests and the reporter fail, the test failure is raised and the
        reporter's failure is logged.
        """
        tested = await Outcome.capture(self.test())

        self.banner("Preparing coverage report")
        reported = await Outcome.capture(self._report_coverage())

        if not tested.ok:
            if not reported.ok:
                self._logger.error(
                    "coverage_report_failed",
                    error=str(reported.error),
                    error_type=type(reported.error).__name__,
                )
            tested.unwrap()

        return reported.unwrap()

    async def _report_coverage(self) -> ArtifactSet:
        return await self._toolchain.report_coverage(
            await self.find_coverage_sources(),
            data_dir=self._config.path("coverage_data_dir"),
            report_dir=self._config.path("coverage_dir"),
            thresholds=self._config.thresholds,
        )

    # =========================================================================
    # Lint
    # =========================================================================

    @task
    async def lint(self) -> None:
        self.banner("Linting sources")
        await self._toolchain.lint(await self.find_lint_sources())

    # =========================================================================
    # Package Exports
    # =========================================================================

    @task
    async def exports(self) -> ArtifactSet:
        """Transpile, then write the export map into the manifest."""
        files = await self.transpile()

        self.banner('Updating exports in "package.json"')

        selected = files.filter(
            self._config.exports_glob,
            *self._config.exports_globs,
            directory=self._config.path("dest_dir"),
            ignore=["**/*.map"],
        )
        return await write_exports(
            selected,
            classifier=self.classifier,
            package_json=self._config.manifest_input,
            output_package_json=self._config.manifest_output,
        )

    # =========================================================================
    # Everything
    # =========================================================================

    @task
    async def all(self) -> None:
        """Transpile, check test types, test with coverage, and lint."""
        steps = [
            self.transpile,
            self.test_types,
            self.coverage if self._config.coverage else self.test,
            self.lint,
        ]
        if self._config.parallelize:
            await run_concurrently(*(step() for step in steps))
        else:
            await run_sequentially(*steps)

    @task
    async def default(self) -> None:
        """Run ``all``. Subclasses override this to wrap the build."""
        await self.all()

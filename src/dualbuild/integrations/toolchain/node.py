"""
dualbuild.integrations.toolchain.node - Node.js Toolchain
===========================================================

Drives the usual Node.js tools as asyncio subprocesses:

    compile          → esbuild  (one process per module format, then the
                                 relative import specifiers are rewritten)
    check_types      → tsc      (through a generated, temporary tsconfig)
    run_tests        → tsx --test
    report_coverage  → c8 report / c8 check-coverage
    lint             → eslint

Every tool is launched through ``launcher`` (``npx`` by default) so the
project's locally installed versions are used. A non-zero exit status becomes
a ``BuildFailure`` carrying the exit code and the tail of the tool's output.
"""

from __future__ import annotations

import asyncio
import json
import os
import posixpath
import re
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import structlog

from dualbuild.core.enums import ModuleFormat
from dualbuild.core.exceptions import BuildFailure
from dualbuild.core.models import CoverageThresholds
from dualbuild.infrastructure.artifact_set import ArtifactSet, find
from dualbuild.integrations.toolchain.base import (
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

OUTPUT_TAIL_LINES = 40


def _kebab(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()


def esbuild_flags(options: Mapping[str, Any]) -> list[str]:
    """Translate esbuild options into command line flags.

    ``{"sourcesContent": False}`` becomes ``--sources-content=false``.
    Options without a command line form (plugins, objects) are skipped.
    """
    flags: list[str] = []
    for key, value in options.items():
        flag = f"--{_kebab(key)}"
        if value is True:
            flags.append(flag)
        elif value is False:
            flags.append(f"{flag}=false")
        elif isinstance(value, (str, int, float)):
            flags.append(f"{flag}={value}")
        else:
            logger.debug("esbuild_option_skipped", option=key)
    return flags


# =============================================================================
# Import Specifiers
# =============================================================================
# esbuild keeps relative specifiers as written ("./util"). Node.js needs the
# emitted file's real name, so they are rewritten to the output extension.
# =============================================================================
SPECIFIER_PATTERN = re.compile(
    r"""(?P<lead>\bfrom\s*|\bimport\s*\(?\s*|\brequire\s*\(\s*)"""
    r"""(?P<quote>["'])(?P<specifier>\.\.?/[^"'\n]*)(?P=quote)"""
)
SOURCE_SUFFIXES = (".ts", ".cts", ".mts", ".js")


def rewrite_specifier(specifier: str, *, base: Path, out_extension: str) -> str:
    """Point a relative specifier at the file emitted with ``out_extension``.

    ``base`` is the directory of the importing output file. Specifiers
    naming a non-script file (``./data.json``) are returned unchanged.

    Example:
        >>> rewrite_specifier("./util", base=out_dir, out_extension=".mjs")
        './util.mjs'
        >>> rewrite_specifier("./sub", base=out_dir, out_extension=".mjs")
        './sub/index.mjs'    # when only sub/index.mjs exists
    """
    if specifier.endswith("/"):
        return f"{specifier}index{out_extension}"

    stem, suffix = posixpath.splitext(specifier)
    if suffix in SOURCE_SUFFIXES:
        return f"{stem}{out_extension}"
    if suffix:
        return specifier

    if (base / f"{specifier}{out_extension}").is_file():
        return f"{specifier}{out_extension}"
    if (base / specifier / f"index{out_extension}").is_file():
        return f"{specifier}/index{out_extension}"
    return f"{specifier}{out_extension}"


def fix_extensions(text: str, *, base: Path, out_extension: str) -> str:
    """Rewrite every relative ``import``, ``export ... from`` and ``require``."""

    def replace(match: re.Match[str]) -> str:
        specifier = rewrite_specifier(
            match.group("specifier"), base=base, out_extension=out_extension
        )
        quote = match.group("quote")
        return f"{match.group('lead')}{quote}{specifier}{quote}"

    return SPECIFIER_PATTERN.sub(replace, text)


def _fix_extensions(out_dir: Path, outputs: Sequence[str], out_extension: str) -> None:
    for output in outputs:
        path = out_dir / output
        original = path.read_text(encoding="utf-8")
        fixed = fix_extensions(original, base=path.parent, out_extension=out_extension)
        if fixed != original:
            path.write_text(fixed, encoding="utf-8")
            logger.debug("import_specifiers_rewritten", file=output)


class NodeToolchain(Toolchain):
    """Toolchain backed by Node.js command line tools.

    Attributes:
        _launcher: Command prefix used to start every tool.
        _env: Extra environment variables for every tool.
    """

    name = "node"

    def __init__(
        self,
        launcher: Sequence[str] = ("npx",),
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._launcher = list(launcher)
        self._env = dict(env or {})
        self._logger = logger.bind(component="node_toolchain")

    # =========================================================================
    # Process Execution
    # =========================================================================

    async def _spawn(
        self,
        tool: str,
        *args: str,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Run one tool to completion and return its combined output.

        Raises:
            BuildFailure: If the tool cannot be started or exits non-zero.
        """
        command = [*self._launcher, tool, *args]
        process_env = {**os.environ, **self._env, **(env or {})}

        self._logger.debug("tool_starting", tool=tool, argc=len(args), cwd=str(cwd or "."))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd else None,
                env=process_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise BuildFailure(
                message=f"Unable to start {tool}: {self._launcher[0]} not found",
                tool=tool,
                error_code="TOOL_NOT_FOUND",
                details={"launcher": self._launcher},
            ) from e

        stdout, _ = await process.communicate()
        output = stdout.decode(errors="replace") if stdout else ""

        if process.returncode != 0:
            tail = output.splitlines()[-OUTPUT_TAIL_LINES:]
            self._logger.error("tool_failed", tool=tool, exit_code=process.returncode)
            raise BuildFailure(
                message=f"{tool} failed with exit code {process.returncode}",
                tool=tool,
                error_code="TOOL_FAILED",
                details={"exit_code": process.returncode, "output": "\n".join(tail)},
            )

        self._logger.debug("tool_completed", tool=tool)
        return output

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
        if not sources:
            return ArtifactSet.empty(out_dir)

        await self._spawn(
            "esbuild",
            *(str(path) for path in sources.absolute_paths()),
            f"--outdir={out_dir}",
            f"--outbase={sources.directory}",
            f"--format={module_format.esbuild_format}",
            f"--out-extension:.js={out_extension}",
            *esbuild_flags(options),
        )

        outputs = [compiled_name(relative, out_extension) for relative in sources]
        outputs = [output for output in outputs if (out_dir / output).is_file()]
        await asyncio.to_thread(_fix_extensions, out_dir, outputs, out_extension)

        emitted: list[str] = []
        for output in outputs:
            emitted.append(output)
            if emits_source_map(options) and (out_dir / f"{output}.map").is_file():
                emitted.append(f"{output}.map")
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
        compiler_options: dict[str, Any] = {"noEmit": out_dir is None}
        if out_dir is not None:
            compiler_options.update(
                declaration=True,
                emitDeclarationOnly=True,
                outDir=str(out_dir),
                rootDir=str(root_dir or files.directory),
            )

        generated: dict[str, Any] = {
            "extends": str(tsconfig),
            "compilerOptions": compiler_options,
            "files": [str(path) for path in files.absolute_paths()],
        }
        if extra_types_dir is not None:
            generated["include"] = [str(extra_types_dir / "**" / "*.d.ts")]

        # tsc cannot mix "-p" with explicit files, so the file list goes
        # into a throwaway config extending the real one.
        handle, temp_name = tempfile.mkstemp(
            prefix=".tsconfig-dualbuild-", suffix=".json", dir=tsconfig.parent
        )
        try:
            with os.fdopen(handle, "w") as f:
                json.dump(generated, f, indent=2)
            await self._spawn("tsc", "-p", temp_name, cwd=tsconfig.parent)
        finally:
            os.unlink(temp_name)

        if out_dir is None:
            return ArtifactSet.empty(files.directory)

        emitted = [declaration_name(relative) for relative in files if not is_declaration(relative)]
        return ArtifactSet(out_dir, [name for name in emitted if (out_dir / name).is_file()])

    async def run_tests(
        self,
        tests: ArtifactSet,
        *,
        module_format: ModuleFormat,
        coverage_dir: Optional[Path] = None,
    ) -> None:
        if not tests:
            self._logger.warning("no_test_files", directory=str(tests.directory))
            return

        # .ts files follow the nearest package.json "type"; each pass forces
        # its own convention instead.
        inherited = self._env.get("NODE_OPTIONS", os.environ.get("NODE_OPTIONS", ""))
        forced = f"--experimental-default-type={module_format.package_type}"
        env = {"NODE_OPTIONS": f"{inherited} {forced}".strip()}
        if coverage_dir is not None:
            env["NODE_V8_COVERAGE"] = str(coverage_dir)

        await self._spawn(
            "tsx",
            "--test",
            *(str(path) for path in tests.absolute_paths()),
            cwd=tests.directory,
            env=env,
        )

    async def report_coverage(
        self,
        sources: ArtifactSet,
        *,
        data_dir: Path,
        report_dir: Path,
        thresholds: CoverageThresholds,
    ) -> ArtifactSet:
        includes = [f"--include={relative}" for relative in sources]
        common = [f"--temp-directory={data_dir}", f"--reports-dir={report_dir}", *includes]

        self._logger.info(
            "coverage_thresholds",
            minimum=thresholds.minimum,
            minimum_file=thresholds.minimum_file,
            optimal=thresholds.optimal,
            optimal_file=thresholds.optimal_file,
        )

        # The report is written before any threshold check runs.
        await self._spawn(
            "c8",
            "report",
            "--reporter=html",
            "--reporter=json",
            *common,
            cwd=sources.directory,
        )
        try:
            await self._spawn(
                "c8",
                "check-coverage",
                f"--lines={thresholds.minimum}",
                f"--statements={thresholds.minimum}",
                *common,
                cwd=sources.directory,
            )
            await self._spawn(
                "c8",
                "check-coverage",
                "--per-file",
                f"--lines={thresholds.minimum_file}",
                *common,
                cwd=sources.directory,
            )
        except BuildFailure as e:
            raise BuildFailure(
                message="Coverage below the configured minimum",
                tool="c8",
                error_code="COVERAGE_THRESHOLD",
                details=e.details,
            ) from e

        return await find("**/*", directory=report_dir)

    async def lint(self, files: ArtifactSet) -> None:
        if not files:
            return
        await self._spawn("eslint", *(str(path) for path in files.absolute_paths()))

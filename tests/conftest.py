"""
Shared Test Fixtures for dualbuild
====================================

This module provides reusable pytest fixtures used across the entire
test suite. Fixtures are organized by layer:

    1. Sample project (a small dual-format TypeScript package on disk)
    2. Configuration fixtures
    3. Integration fixtures (MockToolchain)
    4. Task fixtures (BuildTasks)

The sample project mirrors a real package: dual sources (``.ts``), single
format sources (``.cts`` / ``.mts``), a hand-written declaration, a subpath
module, a resource file and an extra types directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dualbuild.core.config import BuildConfig
from dualbuild.integrations.toolchain.mock import MockToolchain
from dualbuild.tasks.build import BuildTasks


# =============================================================================
# Sample Project
# =============================================================================
SAMPLE_FILES: dict[str, str] = {
    "src/index.ts": "// @needs-type extra\nexport const index = 'index'\n",
    "src/my_cts.cts": "export const cts = 'cts'\n",
    "src/my_mts.mts": "export const mts = 'mts'\n",
    "src/my_ts.ts": "export const ts = 'ts'\n",
    "src/my_dts.d.ts": "export declare const dts: string\n",
    "src/my_xts.cts": "export const xts = 'cjs flavour'\n",
    "src/my_xts.mts": "export const xts = 'esm flavour'\n",
    "src/my_subpath/index.ts": "export const subpath = 'subpath'\n",
    "src/data.json": '{ "resource": true }\n',
    "types/extra.d.ts": "declare module 'extra' {}\n",
    "test/sample.test.ts": "import { index } from '../src/index'\n",
    "test/tsconfig.json": '{ "extends": "../tsconfig.json" }\n',
    "tsconfig.json": '{ "compilerOptions": { "strict": true } }\n',
}

SAMPLE_MANIFEST = {
    "name": "a-test-project",
    "version": "1.2.3",
    "private": True,
}


def write_files(root: Path, files: dict[str, str]) -> None:
    """Write ``{relative: text}`` below ``root``."""
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """A dual-format TypeScript project in a temporary directory."""
    root = tmp_path / "project"
    write_files(root, SAMPLE_FILES)
    (root / "package.json").write_text(json.dumps(SAMPLE_MANIFEST, indent=2) + "\n")
    return root


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def build_config(sample_project: Path) -> BuildConfig:
    """BuildConfig rooted at the sample project, using the mock toolchain."""
    return BuildConfig(project_dir=str(sample_project), toolchain="mock")


# =============================================================================
# Toolchain
# =============================================================================

@pytest.fixture
def mock_toolchain() -> MockToolchain:
    """Fresh MockToolchain reporting full coverage."""
    return MockToolchain()


# =============================================================================
# Tasks
# =============================================================================

@pytest.fixture
def tasks(build_config: BuildConfig, mock_toolchain: MockToolchain) -> BuildTasks:
    """BuildTasks over the sample project and the mock toolchain."""
    return BuildTasks(build_config, mock_toolchain)

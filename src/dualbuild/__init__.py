"""
dualbuild - Build Tasks for Dual-Format TypeScript Packages
=============================================================

dualbuild builds packages published at the same time as CommonJS and as
ES modules, with type declarations, coverage-gated tests and linting:

    transpile  →  test_types  →  coverage (tests)  →  lint
    (cjs + esm + .d.ts)                              exports → package.json

Architecture Layers (top to bottom):
    1. Tasks Layer          - BuildTasks, BootstrapTasks
    2. Orchestration Layer  - Task registry, per-call overrides, Outcome
    3. Exports Layer        - Artifact classification, export map synthesis
    4. Infrastructure Layer - ArtifactSet, file discovery
    5. Integration Layer    - Toolchain (esbuild, tsc, tsx, c8, eslint)

Quick Start:
    >>> from dualbuild import create_tasks
    >>> tasks = create_tasks()
    >>> await tasks.default()
"""

# =============================================================================
# Package Version
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# create_tasks is the main entry point. For specific components, import from
# submodules directly:
#   from dualbuild.core.config import BuildConfig
#   from dualbuild.exports import ArtifactClassifier
# =============================================================================
from dualbuild.facade import create_bootstrap_tasks, create_tasks
from dualbuild.tasks.build import BuildTasks

__all__ = ["BuildTasks", "create_bootstrap_tasks", "create_tasks", "__version__"]

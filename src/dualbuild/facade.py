"""
dualbuild.facade - dualbuild Top-Level Facade
===============================================

The single entry point that assembles a ready-to-run task registry from a
configuration and a toolchain.

Architecture Context:

    ┌──────────────────────────────────────────────────┐
    │            create_tasks() (Facade)                │
    │                                                   │
    │  ┌─────────────────────────────────────────────┐ │
    │  │         Tasks Layer                           │ │
    │  │  BuildTasks, BootstrapTasks                   │ │
    │  └─────────────────────┬───────────────────────┘ │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │         Orchestration / Exports               │ │
    │  │  TaskRegistry, Outcome, export synthesis      │ │
    │  └─────────────────────┬───────────────────────┘ │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │         Infrastructure / Integrations         │ │
    │  │  ArtifactSet, Toolchain (node, mock)          │ │
    │  └─────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────┘

Usage:
    >>> from dualbuild import create_tasks
    >>> tasks = create_tasks(esm=False)
    >>> await tasks.transpile()
    >>> await tasks.exports(exports_glob="**/*")
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from dualbuild.core.config import BootstrapConfig, BuildConfig, resolve_config
from dualbuild.integrations.toolchain.base import Toolchain
from dualbuild.integrations.toolchain.factory import create_toolchain
from dualbuild.tasks.bootstrap import BootstrapTasks
from dualbuild.tasks.build import BuildTasks


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def create_tasks(
    config: Optional[BuildConfig] = None,
    *,
    toolchain: Optional[Toolchain] = None,
    **options: Any,
) -> BuildTasks:
    """Create the build task registry.

    Args:
        config: Base configuration. Defaults to ``BuildConfig()`` (which
            reads ``DUALBUILD_*`` environment variables).
        toolchain: External tools. Defaults to the one named by
            ``config.toolchain``.
        **options: Configuration fields overriding ``config``.

    Returns:
        A ``BuildTasks`` bound to the resolved configuration.

    Raises:
        ConfigurationError: If an option does not validate or the toolchain
            name is unknown.
    """
    resolved = resolve_config(config if config is not None else BuildConfig(), options)
    if toolchain is None:
        toolchain = create_toolchain(resolved.toolchain)

    logger.debug(
        "tasks_created",
        project_dir=resolved.project_dir,
        toolchain=toolchain.name,
        formats=[module_format.value for module_format in resolved.enabled_formats],
    )
    return BuildTasks(resolved, toolchain)


def create_bootstrap_tasks(
    config: Optional[BootstrapConfig] = None,
    **options: Any,
) -> BootstrapTasks:
    """Create the project bootstrap registry."""
    resolved = resolve_config(config if config is not None else BootstrapConfig(), options)
    return BootstrapTasks(resolved)

"""
dualbuild.core - Foundation Layer
===================================

Plain data structures and configuration that every other dualbuild module
depends on:

    - config:      BuildConfig, BootstrapConfig, resolve_config, load_config
    - enums:       ModuleFormat, ArtifactKind
    - models:      FindSpec, CoverageThresholds, ExportBranch, ExportEntry, ...
    - exceptions:  DualBuildError, ConfigurationError, BuildFailure

Dependency Rule:
    core/ depends on nothing else in the dualbuild package.
"""

from dualbuild.core.config import (
    BootstrapConfig,
    BuildConfig,
    load_config,
    resolve_config,
)
from dualbuild.core.enums import ArtifactKind, ModuleFormat
from dualbuild.core.exceptions import BuildFailure, ConfigurationError, DualBuildError
from dualbuild.core.models import (
    CoverageThresholds,
    ExportBranch,
    ExportEntry,
    FindSpec,
    ModuleGroup,
    ToolCall,
)

__all__ = [
    # Config
    "BuildConfig",
    "BootstrapConfig",
    "load_config",
    "resolve_config",
    # Enums
    "ArtifactKind",
    "ModuleFormat",
    # Models
    "CoverageThresholds",
    "ExportBranch",
    "ExportEntry",
    "FindSpec",
    "ModuleGroup",
    "ToolCall",
    # Exceptions
    "DualBuildError",
    "ConfigurationError",
    "BuildFailure",
]

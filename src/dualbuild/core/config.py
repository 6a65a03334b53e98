"""
dualbuild.core.config - Build Configuration
=============================================

This module provides the configuration system for the build layer.
Configuration is loaded from several sources (highest priority first):

    1. Explicit keyword arguments / per-call task overrides
    2. YAML configuration file (dualbuild.yaml)
    3. Environment variables (prefixed with DUALBUILD_)
    4. Default values defined on the models below

``load_config`` hands the YAML values to the model as keyword arguments,
which pydantic-settings ranks above the environment.

Architecture Context:
    One BuildConfig is created per ``create_tasks()`` call and shared by
    every task of that registry. A task invoked with overrides runs against
    a *new* BuildConfig produced by ``resolve_config()``; the shared instance
    is frozen and never changes:

        BuildConfig (shared, frozen)
            ├── transpile()                 → reads base config
            └── transpile(dest_dir="/tmp")  → resolve_config(base, {...})

Usage:
    # Load from environment variables:
    config = BuildConfig()

    # Load from YAML file:
    config = load_config("dualbuild.yaml")

    # Per-call override, base untouched:
    derived = resolve_config(config, {"dest_dir": "out"})

Environment Variables:
    DUALBUILD_DEST_DIR=out
    DUALBUILD_ESM=false
    DUALBUILD_PARALLELIZE=true
    DUALBUILD_TEST_GLOBS='["**/*.spec.ts"]'
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping, Optional

import yaml
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dualbuild.core.enums import ModuleFormat
from dualbuild.core.exceptions import ConfigurationError
from dualbuild.core.models import CoverageThresholds, FindSpec


# =============================================================================
# Defaults
# =============================================================================
DEFAULT_CONFIG_FILE = "dualbuild.yaml"

ESBUILD_DEFAULTS: dict[str, Any] = {
    "platform": "node",
    "sourcemap": "linked",
    "sourcesContent": False,
}


# =============================================================================
# Build Configuration
# =============================================================================
class BuildConfig(BaseSettings):
    """Options shared by every task of one registry.

    Directory fields are relative to ``project_dir`` unless absolute; use
    ``path()`` to resolve them.

    Attributes:
        project_dir: Root every relative directory is resolved against.
        source_dir: Original sources.
        dest_dir: Transpiled output.
        test_dir: Test files.
        coverage_dir: Coverage report output.
        coverage_data_dir: Raw coverage data written by test passes.
        extra_types_dir: Optional extra declarations (feature off if absent).
        tsconfig_json: Type-checker configuration for the sources.
        package_json: Manifest read by ``exports``.
        output_package_json: Manifest written by ``exports``
            (None means overwrite ``package_json``).
        cjs_extension: Runtime extension of format A.
        esm_extension: Runtime extension of format B.
        cjs: Build, test and export format A.
        esm: Build, test and export format B.
        parallelize: Run the sub-tasks of ``all`` concurrently.
        banners: Log a banner per task (None means ``not parallelize``).
        test_globs: Test files, relative to ``test_dir``.
        exports_glob: Emitted files considered for the export map.
        exports_globs: Additional globs considered for the export map.
        index_name: Basename collapsed to its parent directory in exports.
        coverage: Collect coverage data while testing.
        minimum_coverage: Overall coverage the reporter enforces.
        minimum_file_coverage: Per-file coverage the reporter enforces.
        optimal_coverage: Overall coverage shown as optimal in reports.
        optimal_file_coverage: Per-file coverage shown as optimal in reports.
        extra_lint: Additional lint inputs.
        extra_coverage: Additional coverage sources.
        esbuild_options: Merged over ESBUILD_DEFAULTS for both compiles.
        toolchain: Toolchain backend created by ``create_toolchain``.
        log_level: structlog level used by the CLI.
    """

    # -------------------------------------------------------------------------
    # Directories
    # -------------------------------------------------------------------------
    project_dir: str = Field(default=".", description="Project root directory")
    source_dir: str = Field(default="src", description="Original sources")
    dest_dir: str = Field(default="dist", description="Transpiled output")
    test_dir: str = Field(default="test", description="Test files")
    coverage_dir: str = Field(default="coverage", description="Coverage report")
    coverage_data_dir: str = Field(default=".coverage-data", description="Raw coverage data")
    extra_types_dir: str = Field(default="types", description="Extra declarations")
    tsconfig_json: str = Field(default="tsconfig.json", description="Sources tsconfig")

    # -------------------------------------------------------------------------
    # Manifest
    # -------------------------------------------------------------------------
    package_json: str = Field(default="package.json", description="Input manifest")
    output_package_json: Optional[str] = Field(
        default=None,
        description="Output manifest (defaults to package_json)",
    )

    # -------------------------------------------------------------------------
    # Formats
    # -------------------------------------------------------------------------
    cjs_extension: str = Field(default=".cjs", description="CommonJS extension")
    esm_extension: str = Field(default=".mjs", description="ES module extension")
    cjs: bool = Field(default=True, description="Enable CommonJS output")
    esm: bool = Field(default=True, description="Enable ES module output")

    # -------------------------------------------------------------------------
    # Task Behaviour
    # -------------------------------------------------------------------------
    parallelize: bool = Field(default=False, description="Run 'all' concurrently")
    banners: Optional[bool] = Field(default=None, description="Log task banners")
    test_globs: list[str] = Field(
        default_factory=lambda: ["**/*.test.ts", "**/*.test.cts", "**/*.test.mts"],
        min_length=1,
    )
    exports_glob: str = Field(default="index.*", description="Exported files glob")
    exports_globs: list[str] = Field(default_factory=list)
    index_name: str = Field(default="index", min_length=1)

    # -------------------------------------------------------------------------
    # Coverage
    # -------------------------------------------------------------------------
    coverage: bool = Field(default=True, description="Collect coverage data")
    minimum_coverage: float = Field(default=100, ge=0, le=100)
    minimum_file_coverage: float = Field(default=100, ge=0, le=100)
    optimal_coverage: Optional[float] = Field(default=None, ge=0, le=100)
    optimal_file_coverage: Optional[float] = Field(default=None, ge=0, le=100)

    # -------------------------------------------------------------------------
    # Extra Inputs
    # -------------------------------------------------------------------------
    extra_lint: list[FindSpec] = Field(default_factory=list)
    extra_coverage: list[FindSpec] = Field(default_factory=list)
    esbuild_options: dict[str, Any] = Field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------
    toolchain: str = Field(default="node", description="Toolchain backend name")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_prefix="DUALBUILD_",
        case_sensitive=False,
        extra="forbid",
        frozen=True,
    )

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------
    @field_validator("cjs_extension", "esm_extension")
    @classmethod
    def _extension_has_dot(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError(f"extension must start with '.': {value!r}")
        return value

    @model_validator(mode="after")
    def _extensions_differ(self) -> "BuildConfig":
        if self.cjs_extension == self.esm_extension:
            raise ValueError(
                f"cjs_extension and esm_extension must differ "
                f"(both are {self.cjs_extension!r})"
            )
        return self

    # -------------------------------------------------------------------------
    # Derived Values
    # -------------------------------------------------------------------------
    def path(self, field: str) -> Path:
        """Resolve a directory/file field against ``project_dir``.

        Args:
            field: Name of a path field (e.g. "dest_dir").

        Returns:
            Absolute path. Absolute field values are returned unchanged.
        """
        value = getattr(self, field)
        return (Path(self.project_dir) / value).resolve()

    def resolve_path(self, value: str) -> Path:
        return (Path(self.project_dir) / value).resolve()

    @property
    def manifest_input(self) -> Path:
        return self.resolve_path(self.package_json)

    @property
    def manifest_output(self) -> Path:
        return self.resolve_path(self.output_package_json or self.package_json)

    @property
    def banners_enabled(self) -> bool:
        return (not self.parallelize) if self.banners is None else self.banners

    @property
    def thresholds(self) -> CoverageThresholds:
        return CoverageThresholds(
            minimum=self.minimum_coverage,
            minimum_file=self.minimum_file_coverage,
            optimal=self.optimal_coverage,
            optimal_file=self.optimal_file_coverage,
        )

    @property
    def merged_esbuild_options(self) -> dict[str, Any]:
        return {**ESBUILD_DEFAULTS, **self.esbuild_options}

    @property
    def enabled_formats(self) -> list[ModuleFormat]:
        formats = []
        if self.cjs:
            formats.append(ModuleFormat.CJS)
        if self.esm:
            formats.append(ModuleFormat.ESM)
        return formats

    def extension(self, module_format: ModuleFormat) -> str:
        return self.cjs_extension if module_format is ModuleFormat.CJS else self.esm_extension


# =============================================================================
# Bootstrap Configuration
# =============================================================================
class BootstrapConfig(BaseSettings):
    """Options for bootstrapping a new project.

    Attributes:
        project_dir: The project being bootstrapped.
        overwrite: "skip" keeps existing files, "overwrite" replaces them.
        package_json: Manifest updated with scripts and files.
    """

    project_dir: str = Field(default=".")
    overwrite: Literal["skip", "overwrite"] = Field(default="skip")
    package_json: str = Field(default="package.json")

    model_config = SettingsConfigDict(
        env_prefix="DUALBUILD_BOOTSTRAP_",
        case_sensitive=False,
        extra="forbid",
        frozen=True,
    )

    def path(self, field: str) -> Path:
        return (Path(self.project_dir) / getattr(self, field)).resolve()


# =============================================================================
# Override Resolution
# =============================================================================
def resolve_config(base: BaseSettings, overrides: Mapping[str, Any]) -> Any:
    """Merge per-call overrides over a configuration.

    Pure function: ``base`` is never modified. The merged values are
    validated again so an override cannot smuggle in an invalid state
    (e.g. identical extensions for both formats).

    Args:
        base: The shared configuration.
        overrides: Keys to replace for the duration of one call.

    Returns:
        A new configuration instance of the same type as ``base``.

    Raises:
        ConfigurationError: If a key is unknown or a value does not validate.
    """
    if not overrides:
        return base

    data = base.model_dump()
    data.update(overrides)
    try:
        # model_validate skips the settings sources: environment variables
        # were already applied when ``base`` was created.
        return type(base).model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid configuration override: {e.error_count()} error(s)",
            error_code="INVALID_OVERRIDE",
            details={
                "overrides": sorted(overrides),
                "errors": [err["msg"] for err in e.errors()],
            },
        ) from e


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None, **overrides: Any) -> BuildConfig:
    """Load a BuildConfig from YAML, environment variables and overrides.

    Args:
        path: YAML file. If None, ``dualbuild.yaml`` in the current
            directory is used when it exists; otherwise only defaults and
            environment variables apply.
        **overrides: Explicit values, applied last.

    Returns:
        A validated BuildConfig.

    Raises:
        FileNotFoundError: If an explicit ``path`` does not exist.
        ConfigurationError: If the YAML is malformed or values are invalid.
    """
    if path is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(config_path) as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                message=f"Malformed configuration file: {path}",
                error_code="MALFORMED_CONFIG",
                details={"path": str(config_path)},
            ) from e

        if raw_data is not None and not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file must contain a mapping: {path}",
                error_code="MALFORMED_CONFIG",
                details={"path": str(config_path)},
            )
        yaml_data = raw_data or {}

    try:
        return BuildConfig(**{**yaml_data, **overrides})
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid configuration: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e

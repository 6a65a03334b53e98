"""
Tests for dualbuild.core.config
=================================

These tests verify that the configuration system works correctly:
    - Default values match the documented defaults
    - Environment variables override defaults
    - YAML files are parsed correctly
    - Validation catches invalid values
    - Per-call overrides produce new configurations and never mutate

All tests are unit tests; none of them touches a toolchain.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from dualbuild.core.config import (
    ESBUILD_DEFAULTS,
    BootstrapConfig,
    BuildConfig,
    load_config,
    resolve_config,
)
from dualbuild.core.enums import ModuleFormat
from dualbuild.core.exceptions import ConfigurationError
from dualbuild.core.models import FindSpec


# =============================================================================
# Test: Default Configuration
# =============================================================================
# A project laid out conventionally (src/, test/, dist/) must build with no
# configuration at all.
# =============================================================================
class TestDefaultConfig:
    """Tests for default configuration values."""

    def test_default_directories(self) -> None:
        """Directories default to the conventional layout."""
        config = BuildConfig()
        assert config.source_dir == "src"
        assert config.dest_dir == "dist"
        assert config.test_dir == "test"
        assert config.coverage_dir == "coverage"
        assert config.coverage_data_dir == ".coverage-data"
        assert config.extra_types_dir == "types"

    def test_default_formats(self) -> None:
        """Both formats are enabled with .cjs / .mjs extensions."""
        config = BuildConfig()
        assert config.cjs is True
        assert config.esm is True
        assert config.cjs_extension == ".cjs"
        assert config.esm_extension == ".mjs"
        assert config.enabled_formats == [ModuleFormat.CJS, ModuleFormat.ESM]

    def test_default_coverage_is_strict(self) -> None:
        """Coverage is on and requires 100% overall and per file."""
        config = BuildConfig()
        assert config.coverage is True
        assert config.minimum_coverage == 100
        assert config.minimum_file_coverage == 100
        assert config.optimal_coverage is None

    def test_default_exports_glob(self) -> None:
        """Only the root entry file is exported by default."""
        config = BuildConfig()
        assert config.exports_glob == "index.*"
        assert config.exports_globs == []
        assert config.index_name == "index"

    def test_default_test_globs(self) -> None:
        config = BuildConfig()
        assert config.test_globs == ["**/*.test.ts", "**/*.test.cts", "**/*.test.mts"]

    def test_config_is_frozen(self) -> None:
        """Configuration cannot be mutated after creation."""
        config = BuildConfig()
        with pytest.raises(ValidationError):
            config.dest_dir = "elsewhere"  # type: ignore[misc]


# =============================================================================
# Test: Derived Values
# =============================================================================
class TestDerivedValues:
    """Tests for helpers computed from the configuration."""

    def test_path_resolves_against_project_dir(self, tmp_path: Path) -> None:
        config = BuildConfig(project_dir=str(tmp_path))
        assert config.path("dest_dir") == (tmp_path / "dist").resolve()

    def test_absolute_path_is_kept(self, tmp_path: Path) -> None:
        elsewhere = tmp_path / "elsewhere"
        config = BuildConfig(project_dir=str(tmp_path / "project"), dest_dir=str(elsewhere))
        assert config.path("dest_dir") == elsewhere.resolve()

    def test_output_manifest_defaults_to_input(self, tmp_path: Path) -> None:
        config = BuildConfig(project_dir=str(tmp_path))
        assert config.manifest_output == config.manifest_input

    def test_output_manifest_override(self, tmp_path: Path) -> None:
        config = BuildConfig(project_dir=str(tmp_path), output_package_json="dist/package.json")
        assert config.manifest_output == (tmp_path / "dist" / "package.json").resolve()
        assert config.manifest_input == (tmp_path / "package.json").resolve()

    def test_banners_follow_parallelize(self) -> None:
        """Banners default to on, and off when running in parallel."""
        assert BuildConfig().banners_enabled is True
        assert BuildConfig(parallelize=True).banners_enabled is False
        assert BuildConfig(parallelize=True, banners=True).banners_enabled is True
        assert BuildConfig(banners=False).banners_enabled is False

    def test_thresholds(self) -> None:
        config = BuildConfig(minimum_coverage=80, minimum_file_coverage=70, optimal_coverage=95)
        thresholds = config.thresholds
        assert thresholds.minimum == 80
        assert thresholds.minimum_file == 70
        assert thresholds.optimal == 95
        assert thresholds.optimal_file is None

    def test_esbuild_options_merge_over_defaults(self) -> None:
        config = BuildConfig(esbuild_options={"sourcemap": False, "target": "node18"})
        merged = config.merged_esbuild_options
        assert merged["sourcemap"] is False
        assert merged["target"] == "node18"
        assert merged["platform"] == ESBUILD_DEFAULTS["platform"]

    def test_enabled_formats_without_esm(self) -> None:
        assert BuildConfig(esm=False).enabled_formats == [ModuleFormat.CJS]

    def test_extension_per_format(self) -> None:
        config = BuildConfig(cjs_extension=".js", esm_extension=".mjs")
        assert config.extension(ModuleFormat.CJS) == ".js"
        assert config.extension(ModuleFormat.ESM) == ".mjs"


# =============================================================================
# Test: Validation
# =============================================================================
class TestValidation:
    """Invalid values are rejected at construction time."""

    def test_extension_needs_leading_dot(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(cjs_extension="cjs")

    def test_extensions_must_differ(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(cjs_extension=".js", esm_extension=".js")

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(not_a_field=True)

    def test_coverage_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            BuildConfig(minimum_coverage=101)

    def test_extra_lint_parses_find_specs(self) -> None:
        config = BuildConfig(extra_lint=[{"globs": ["*.mjs"], "directory": "."}])
        assert config.extra_lint == [FindSpec(globs=["*.mjs"], directory=".")]

    def test_find_spec_needs_globs(self) -> None:
        with pytest.raises(ValidationError):
            FindSpec(globs=[], directory=".")


# =============================================================================
# Test: Environment Variables
# =============================================================================
class TestEnvironmentOverrides:
    """DUALBUILD_* variables override defaults."""

    def test_env_overrides_bool(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DUALBUILD_ESM", "false")
        assert BuildConfig().esm is False

    def test_env_overrides_string(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DUALBUILD_DEST_DIR", "out")
        assert BuildConfig().dest_dir == "out"

    def test_explicit_value_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DUALBUILD_DEST_DIR", "out")
        assert BuildConfig(dest_dir="build").dest_dir == "build"


# =============================================================================
# Test: Per-Call Overrides
# =============================================================================
class TestResolveConfig:
    """resolve_config() is pure: new instance, base untouched."""

    def test_no_overrides_returns_base(self) -> None:
        base = BuildConfig()
        assert resolve_config(base, {}) is base

    def test_overrides_produce_new_config(self) -> None:
        base = BuildConfig()
        derived = resolve_config(base, {"dest_dir": "out", "esm": False})
        assert derived is not base
        assert derived.dest_dir == "out"
        assert derived.esm is False
        assert base.dest_dir == "dist"
        assert base.esm is True

    def test_untouched_fields_carry_over(self) -> None:
        base = BuildConfig(source_dir="lib", extra_lint=[{"globs": ["*.js"], "directory": "."}])
        derived = resolve_config(base, {"dest_dir": "out"})
        assert derived.source_dir == "lib"
        assert derived.extra_lint == base.extra_lint

    def test_invalid_override_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_config(BuildConfig(), {"esm_extension": ".cjs"})
        assert exc_info.value.error_code == "INVALID_OVERRIDE"
        assert exc_info.value.details["overrides"] == ["esm_extension"]

    def test_unknown_override_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_config(BuildConfig(), {"dset_dir": "typo"})

    def test_works_for_bootstrap_config(self) -> None:
        derived = resolve_config(BootstrapConfig(), {"overwrite": "overwrite"})
        assert isinstance(derived, BootstrapConfig)
        assert derived.overwrite == "overwrite"


# =============================================================================
# Test: YAML Loading
# =============================================================================
class TestLoadConfig:
    """Tests for load_config()."""

    def _write_yaml(self, path: Path, data: object) -> Path:
        path.write_text(yaml.dump(data))
        return path

    def test_loads_yaml_values(self, tmp_path: Path) -> None:
        config_file = self._write_yaml(
            tmp_path / "dualbuild.yaml",
            {"dest_dir": "out", "esm": False, "exports_globs": ["lib/*"]},
        )
        config = load_config(str(config_file))
        assert config.dest_dir == "out"
        assert config.esm is False
        assert config.exports_globs == ["lib/*"]

    def test_overrides_beat_yaml(self, tmp_path: Path) -> None:
        config_file = self._write_yaml(tmp_path / "dualbuild.yaml", {"dest_dir": "out"})
        assert load_config(str(config_file), dest_dir="build").dest_dir == "build"

    def test_yaml_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DUALBUILD_DEST_DIR", "from-env")
        monkeypatch.setenv("DUALBUILD_SOURCE_DIR", "lib")
        config_file = self._write_yaml(tmp_path / "dualbuild.yaml", {"dest_dir": "out"})

        config = load_config(str(config_file))
        assert config.dest_dir == "out"
        assert config.source_dir == "lib"

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "dualbuild.yaml"
        config_file.write_text("")
        assert load_config(str(config_file)).dest_dir == "dist"

    def test_default_file_is_optional(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config().source_dir == "src"

    def test_default_file_is_picked_up(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        self._write_yaml(tmp_path / "dualbuild.yaml", {"source_dir": "lib"})
        assert load_config().source_dir == "lib"

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "dualbuild.yaml"
        config_file.write_text("dest_dir: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(config_file))
        assert exc_info.value.error_code == "MALFORMED_CONFIG"

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        config_file = self._write_yaml(tmp_path / "dualbuild.yaml", ["a", "b"])
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(config_file))
        assert exc_info.value.error_code == "MALFORMED_CONFIG"

    def test_invalid_values(self, tmp_path: Path) -> None:
        config_file = self._write_yaml(tmp_path / "dualbuild.yaml", {"cjs_extension": "cjs"})
        with pytest.raises(ConfigurationError):
            load_config(str(config_file))


# =============================================================================
# Test: Bootstrap Configuration
# =============================================================================
class TestBootstrapConfig:

    def test_defaults(self) -> None:
        config = BootstrapConfig()
        assert config.overwrite == "skip"
        assert config.package_json == "package.json"

    def test_rejects_unknown_overwrite_mode(self) -> None:
        with pytest.raises(ValidationError):
            BootstrapConfig(overwrite="fail")

"""
Tests for dualbuild.core.models and dualbuild.core.enums
==========================================================

What's Being Tested:
    - ModuleFormat / ArtifactKind helpers
    - ExportBranch / ExportEntry rendering and the one-branch invariant
    - ModuleGroup declaration fallback
"""

import pytest
from pydantic import ValidationError

from dualbuild.core.enums import ArtifactKind, ModuleFormat
from dualbuild.core.models import ExportBranch, ExportEntry, ModuleGroup


# =============================================================================
# Tests: Enums
# =============================================================================
class TestModuleFormat:

    def test_conditions_and_fields(self) -> None:
        assert ModuleFormat.CJS.condition == "require"
        assert ModuleFormat.ESM.condition == "import"
        assert ModuleFormat.CJS.manifest_field == "main"
        assert ModuleFormat.ESM.manifest_field == "module"

    def test_source_globs(self) -> None:
        assert ModuleFormat.CJS.source_globs == ("**/*.ts", "**/*.cts")
        assert ModuleFormat.ESM.source_globs == ("**/*.ts", "**/*.mts")

    def test_string_value(self) -> None:
        assert ModuleFormat("esm") is ModuleFormat.ESM
        assert ModuleFormat.ESM.esbuild_format == "esm"

    def test_package_type(self) -> None:
        assert ModuleFormat.CJS.package_type == "commonjs"
        assert ModuleFormat.ESM.package_type == "module"


class TestArtifactKind:

    def test_declaration_lookup(self) -> None:
        assert ArtifactKind.declaration(ModuleFormat.CJS) is ArtifactKind.DECL_CJS
        assert ArtifactKind.declaration(ModuleFormat.ESM) is ArtifactKind.DECL_ESM

    def test_is_runtime(self) -> None:
        assert ArtifactKind.RUNTIME_ESM.is_runtime
        assert not ArtifactKind.DECL_GENERIC.is_runtime
        assert not ArtifactKind.NONE.is_runtime

    def test_module_format(self) -> None:
        assert ArtifactKind.DECL_CJS.module_format is ModuleFormat.CJS
        assert ArtifactKind.RUNTIME_ESM.module_format is ModuleFormat.ESM
        assert ArtifactKind.DECL_GENERIC.module_format is None


# =============================================================================
# Tests: Export Entries
# =============================================================================
class TestExportEntry:

    def test_branch_omits_missing_types(self) -> None:
        assert ExportBranch(default="./a.cjs").to_manifest() == {"default": "./a.cjs"}

    def test_branch_types_first(self) -> None:
        rendered = ExportBranch(types="./a.d.ts", default="./a.cjs").to_manifest()
        assert list(rendered) == ["types", "default"]

    def test_entry_needs_a_branch(self) -> None:
        with pytest.raises(ValidationError):
            ExportEntry()

    def test_entry_accepts_import_alias(self) -> None:
        entry = ExportEntry.model_validate({"import": {"default": "./a.mjs"}})
        assert entry.import_ == ExportBranch(default="./a.mjs")
        assert entry.require is None

    def test_entry_renders_require_before_import(self) -> None:
        entry = ExportEntry(
            import_=ExportBranch(default="./a.mjs"),
            require=ExportBranch(default="./a.cjs"),
        )
        assert list(entry.to_manifest()) == ["require", "import"]


# =============================================================================
# Tests: Module Group
# =============================================================================
class TestModuleGroup:

    def test_specific_declaration_wins(self) -> None:
        group = ModuleGroup(
            name="mod",
            declarations={
                ArtifactKind.DECL_CJS: "mod.d.cts",
                ArtifactKind.DECL_GENERIC: "mod.d.ts",
            },
        )
        assert group.declaration_for(ModuleFormat.CJS) == "mod.d.cts"
        assert group.declaration_for(ModuleFormat.ESM) == "mod.d.ts"

    def test_no_declaration(self) -> None:
        assert ModuleGroup(name="mod").declaration_for(ModuleFormat.CJS) is None

"""
dualbuild.core.models - Core Data Models
==========================================

Pydantic models shared by the task registry, the toolchain layer and the
export map synthesizer.

Model Overview:
    FindSpec            → an extra discovery input (globs under a directory)
    CoverageThresholds  → what the coverage reporter must enforce
    ExportBranch        → one condition branch: {types?, default}
    ExportEntry         → one export specifier: {require?, import?}
    ModuleGroup         → files sharing a logical module name
    ToolCall            → a recorded toolchain invocation (mock toolchain)

Data Flow:
    transpile ──→ ArtifactSet ──→ classifier ──→ ModuleGroup
                                                    │
                                                    ↓
                         package.json ←── ExportEntry / ExportBranch
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dualbuild.core.enums import ArtifactKind, ModuleFormat


# =============================================================================
# Discovery Input
# =============================================================================
class FindSpec(BaseModel):
    """Extra files to discover, used for ``extra_lint`` / ``extra_coverage``.

    Attributes:
        globs: Glob patterns relative to ``directory``.
        directory: Base directory (relative to the project directory).
        ignore: Glob patterns excluded from the result.

    Example:
        >>> FindSpec(globs=["**/*.ts"], directory="scripts")
    """

    model_config = ConfigDict(frozen=True)

    globs: list[str] = Field(min_length=1, description="Glob patterns to match")
    directory: str = Field(description="Directory the globs are relative to")
    ignore: list[str] = Field(default_factory=list, description="Globs to exclude")


# =============================================================================
# Coverage Thresholds
# =============================================================================
class CoverageThresholds(BaseModel):
    """Coverage percentages the reporter checks.

    ``minimum`` values fail the build when not met; ``optimal`` values are
    informational and only change how the report is rendered.
    """

    model_config = ConfigDict(frozen=True)

    minimum: float = Field(default=100, ge=0, le=100)
    minimum_file: float = Field(default=100, ge=0, le=100)
    optimal: Optional[float] = Field(default=None, ge=0, le=100)
    optimal_file: Optional[float] = Field(default=None, ge=0, le=100)


# =============================================================================
# Export Map Entries
# =============================================================================
# A branch always references a runtime file; the declaration reference is
# optional. An entry holds at most one branch per format and at least one.
# =============================================================================
class ExportBranch(BaseModel):
    """One condition branch of an export entry."""

    model_config = ConfigDict(frozen=True)

    types: Optional[str] = Field(default=None, description="Declaration file reference")
    default: str = Field(description="Runtime file reference")

    def to_manifest(self) -> dict[str, str]:
        data: dict[str, str] = {}
        if self.types is not None:
            data["types"] = self.types
        data["default"] = self.default
        return data


class ExportEntry(BaseModel):
    """Export map entry for one specifier (``"."`` or ``"./name"``)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    require: Optional[ExportBranch] = None
    import_: Optional[ExportBranch] = Field(default=None, alias="import")

    @model_validator(mode="after")
    def _require_one_branch(self) -> "ExportEntry":
        if self.require is None and self.import_ is None:
            raise ValueError("An export entry needs at least one branch")
        return self

    def to_manifest(self) -> dict[str, dict[str, str]]:
        """Render as the manifest's condition object (require before import)."""
        data: dict[str, dict[str, str]] = {}
        if self.require is not None:
            data["require"] = self.require.to_manifest()
        if self.import_ is not None:
            data["import"] = self.import_.to_manifest()
        return data


# =============================================================================
# Module Group
# =============================================================================
class ModuleGroup(BaseModel):
    """Artifacts sharing one logical module name.

    Holds at most one runtime file per format and at most one declaration
    per declaration kind (format-specific or generic). Paths are relative to
    the artifact set's directory.

    Attributes:
        name: Logical module name ("" for the package root).
        runtime: Runtime file per format.
        declarations: Declaration file per declaration kind.
    """

    name: str
    runtime: dict[ModuleFormat, str] = Field(default_factory=dict)
    declarations: dict[ArtifactKind, str] = Field(default_factory=dict)

    def declaration_for(self, module_format: ModuleFormat) -> Optional[str]:
        """Format-specific declaration, falling back to the generic one."""
        specific = self.declarations.get(ArtifactKind.declaration(module_format))
        if specific is not None:
            return specific
        return self.declarations.get(ArtifactKind.DECL_GENERIC)


# =============================================================================
# Tool Call Record
# =============================================================================
class ToolCall(BaseModel):
    """A recorded toolchain invocation.

    Attributes:
        tool: Toolchain operation ("compile", "check_types", ...).
        files: Relative paths handed to the tool.
        options: Operation arguments (format, directories, thresholds).
    """

    tool: str
    files: list[str] = Field(default_factory=list)
    options: dict[str, Any] = Field(default_factory=dict)

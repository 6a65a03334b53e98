"""
dualbuild.core.enums - Module Formats and Artifact Kinds
==========================================================

All enums inherit from both ``str`` and ``Enum`` so they serialize to plain
strings and compare equal to their values.

    ModuleFormat:  the two module-loading conventions a package ships
    ArtifactKind:  what role an emitted file plays in the export map
"""

from enum import Enum


# =============================================================================
# Module Format
# =============================================================================
# Format A is the synchronous "require" convention (CommonJS), format B the
# asynchronous "import" convention (ES modules).
# =============================================================================
class ModuleFormat(str, Enum):
    """The two module formats a dual package is published as.

    Usage:
        >>> ModuleFormat.CJS.condition
        'require'
        >>> ModuleFormat.ESM.manifest_field
        'module'
    """

    CJS = "cjs"
    ESM = "esm"

    @property
    def condition(self) -> str:
        """Export map condition name for this format."""
        return "require" if self is ModuleFormat.CJS else "import"

    @property
    def manifest_field(self) -> str:
        """Top-level manifest field pointing at the root entry."""
        return "main" if self is ModuleFormat.CJS else "module"

    @property
    def source_suffixes(self) -> tuple[str, ...]:
        """Source suffixes compiled into this format (``.ts`` is dual)."""
        return (".ts", ".cts") if self is ModuleFormat.CJS else (".ts", ".mts")

    @property
    def source_globs(self) -> tuple[str, ...]:
        return tuple(f"**/*{suffix}" for suffix in self.source_suffixes)

    @property
    def esbuild_format(self) -> str:
        """Value of esbuild's ``--format`` flag."""
        return self.value

    @property
    def package_type(self) -> str:
        """Node.js module type (``"type"`` in package.json) of this format."""
        return "commonjs" if self is ModuleFormat.CJS else "module"

    @property
    def label(self) -> str:
        return "CommonJS" if self is ModuleFormat.CJS else "ES Modules"


# =============================================================================
# Artifact Kind
# =============================================================================
# The classifier maps a file suffix to one of these variants. NONE covers
# source maps, resources and anything else that never gets an export.
# =============================================================================
class ArtifactKind(str, Enum):
    """Role of an emitted artifact, inferred from its suffix."""

    NONE = "none"
    RUNTIME_CJS = "runtime_cjs"
    RUNTIME_ESM = "runtime_esm"
    DECL_CJS = "decl_cjs"
    DECL_ESM = "decl_esm"
    DECL_GENERIC = "decl_generic"

    @property
    def is_runtime(self) -> bool:
        return self in (ArtifactKind.RUNTIME_CJS, ArtifactKind.RUNTIME_ESM)

    @property
    def module_format(self) -> "ModuleFormat | None":
        """The format this kind belongs to, None for generic or NONE."""
        if self in (ArtifactKind.RUNTIME_CJS, ArtifactKind.DECL_CJS):
            return ModuleFormat.CJS
        if self in (ArtifactKind.RUNTIME_ESM, ArtifactKind.DECL_ESM):
            return ModuleFormat.ESM
        return None

    @classmethod
    def declaration(cls, module_format: ModuleFormat) -> "ArtifactKind":
        return cls.DECL_CJS if module_format is ModuleFormat.CJS else cls.DECL_ESM

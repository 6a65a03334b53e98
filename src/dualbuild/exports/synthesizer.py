"""
dualbuild.exports.synthesizer - Export Map Synthesis
======================================================

Derives a package export map from a flat list of artifact paths.

Algorithm:
    1. Classify every path; NONE artifacts (source maps, resources) are
       dropped.
    2. Group by logical module name, first seen order. A directory index
       and a same-named file clash; the index files win.
    3. Key each group: "." for the root ("" name), "./<name>" otherwise.
    4. Per format, emit a branch only when that format's runtime file
       exists. The branch's ``types`` is the format's own declaration, or
       the generic one when the format has none.
    5. Groups without any branch produce no key.

Example:
    index.cjs index.mjs index.d.ts mod.cjs mod.d.ts
        ──→ {".":     {require: {types, default}, import: {types, default}},
             "./mod": {require: {types, default}}}
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

import structlog

from dualbuild.core.enums import ArtifactKind, ModuleFormat
from dualbuild.core.models import ExportBranch, ExportEntry, ModuleGroup
from dualbuild.exports.classifier import ArtifactClassifier


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

ExportMap = dict[str, ExportEntry]
Reference = Callable[[str], str]

ROOT_KEY = "."


def export_key(name: str) -> str:
    return ROOT_KEY if name == "" else f"./{name}"


# =============================================================================
# Grouping
# =============================================================================
def group_artifacts(
    paths: Iterable[str],
    classifier: ArtifactClassifier,
) -> dict[str, ModuleGroup]:
    """Group artifact paths by logical module name.

    A directory index and a plain file can share a name (``mod/index.cjs``
    and ``mod.cjs``). Files are collected per origin first; when both
    origins are present the index files win as a whole, so a group never
    pairs a declaration of one module with the runtime file of the other.
    Every clash is logged.
    """
    origins: dict[str, dict[bool, ModuleGroup]] = {}
    for path in paths:
        kind, name = classifier.classify(path)
        if kind is ArtifactKind.NONE or name is None:
            continue

        by_origin = origins.setdefault(name, {})
        group = by_origin.setdefault(classifier.is_index(path), ModuleGroup(name=name))
        slots = group.runtime if kind.is_runtime else group.declarations
        slot = kind.module_format if kind.is_runtime else kind

        existing = slots.get(slot)
        if existing is None:
            slots[slot] = path
        elif existing != path:
            logger.warning("export_artifact_conflict", module=name, kept=existing, ignored=path)

    groups: dict[str, ModuleGroup] = {}
    for name, by_origin in origins.items():
        index, plain = by_origin.get(True), by_origin.get(False)
        if index is not None and plain is not None:
            logger.warning(
                "export_artifact_conflict",
                module=name,
                kept=_paths(index),
                ignored=_paths(plain),
            )
        groups[name] = index if index is not None else plain
    return groups


def _paths(group: ModuleGroup) -> list[str]:
    return [*group.runtime.values(), *group.declarations.values()]


# =============================================================================
# Synthesis
# =============================================================================
def build_entry(group: ModuleGroup, reference: Reference) -> Optional[ExportEntry]:
    branches: dict[str, ExportBranch] = {}
    for module_format in ModuleFormat:
        runtime = group.runtime.get(module_format)
        if runtime is None:
            continue
        declaration = group.declaration_for(module_format)
        branches[module_format.condition] = ExportBranch(
            types=reference(declaration) if declaration is not None else None,
            default=reference(runtime),
        )

    if not branches:
        return None
    return ExportEntry.model_validate(branches)


def synthesize_exports(
    groups: dict[str, ModuleGroup],
    reference: Reference,
) -> ExportMap:
    """Build the export map for grouped artifacts.

    Args:
        groups: Output of ``group_artifacts``.
        reference: Renders an artifact path as a manifest reference
            (``"./index.cjs"``).

    Returns:
        Export entries keyed by specifier, in group order.
    """
    exports: ExportMap = {}
    for name, group in groups.items():
        entry = build_entry(group, reference)
        if entry is None:
            logger.debug("export_group_skipped", module=name)
            continue
        exports[export_key(name)] = entry
    return exports


def root_fields(
    groups: dict[str, ModuleGroup],
    reference: Reference,
) -> dict[str, Optional[str]]:
    """Values of the ``main``, ``module`` and ``types`` manifest fields.

    A field is None when the root group lacks the matching file. ``types``
    prefers the generic declaration, then the CommonJS one, then the ES one.
    """
    fields: dict[str, Optional[str]] = {
        module_format.manifest_field: None for module_format in ModuleFormat
    }
    fields["types"] = None

    root = groups.get("")
    if root is None:
        return fields

    for module_format in ModuleFormat:
        runtime = root.runtime.get(module_format)
        if runtime is not None:
            fields[module_format.manifest_field] = reference(runtime)

    for kind in (ArtifactKind.DECL_GENERIC, ArtifactKind.DECL_CJS, ArtifactKind.DECL_ESM):
        declaration = root.declarations.get(kind)
        if declaration is not None:
            fields["types"] = reference(declaration)
            break
    return fields

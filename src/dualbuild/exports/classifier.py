"""
dualbuild.exports.classifier - Artifact Classification
========================================================

Maps an emitted file path to its ``ArtifactKind`` and logical module name.

One suffix table drives the whole classification. It is built from the
configured runtime extensions, and longer suffixes are tried first so
``.d.cts`` is never mistaken for a runtime ``.cts``-like match:

    suffix      kind            (default extensions)
    --------    -------------
    .d.cts      DECL_CJS
    .d.mts      DECL_ESM
    .d.ts       DECL_GENERIC
    .cjs        RUNTIME_CJS
    .mjs        RUNTIME_ESM

Logical Names:
    The suffix is stripped, then a basename equal to the index name collapses
    to its parent directory:

    index.cjs                → ""           (package root)
    my_subpath/index.d.ts    → "my_subpath"
    utils/strings.mjs        → "utils/strings"
    index.cjs.map            → NONE (no export)
"""

from __future__ import annotations

from typing import Optional

from dualbuild.core.enums import ArtifactKind

GENERIC_DECLARATION_SUFFIX = ".d.ts"


def declaration_suffix(runtime_extension: str) -> str:
    """Declaration suffix paired with a runtime extension.

    A trailing ``js`` becomes ``ts``: ``.cjs`` → ``.d.cts``, ``.js`` → ``.d.ts``.
    """
    if runtime_extension.endswith("js"):
        return ".d" + runtime_extension[:-2] + "ts"
    return ".d" + runtime_extension


class ArtifactClassifier:
    """Classifies artifact paths for export map synthesis.

    Args:
        cjs_extension: Runtime extension of CommonJS output.
        esm_extension: Runtime extension of ES module output.
        index_name: Basename (without suffix) that names a directory's
            entry module.

    Example:
        >>> classifier = ArtifactClassifier(".cjs", ".mjs", "index")
        >>> classifier.classify("lib/index.d.mts")
        (<ArtifactKind.DECL_ESM: 'decl_esm'>, 'lib')
    """

    def __init__(
        self,
        cjs_extension: str = ".cjs",
        esm_extension: str = ".mjs",
        index_name: str = "index",
    ) -> None:
        table: dict[str, ArtifactKind] = {
            cjs_extension: ArtifactKind.RUNTIME_CJS,
            esm_extension: ArtifactKind.RUNTIME_ESM,
            declaration_suffix(cjs_extension): ArtifactKind.DECL_CJS,
            declaration_suffix(esm_extension): ArtifactKind.DECL_ESM,
        }
        table.setdefault(GENERIC_DECLARATION_SUFFIX, ArtifactKind.DECL_GENERIC)

        self._suffixes = sorted(table.items(), key=lambda item: len(item[0]), reverse=True)
        self._index_name = index_name

    @property
    def suffixes(self) -> list[tuple[str, ArtifactKind]]:
        return list(self._suffixes)

    def classify(self, path: str) -> tuple[ArtifactKind, Optional[str]]:
        """Return ``(kind, logical_name)``; the name is None for NONE."""
        for suffix, kind in self._suffixes:
            if path.endswith(suffix) and len(path) > len(suffix):
                return kind, self.logical_name(path[: -len(suffix)])
        return ArtifactKind.NONE, None

    def logical_name(self, stem: str) -> str:
        parent, _, base = stem.rpartition("/")
        if base == self._index_name:
            return parent
        return stem

    def is_index(self, path: str) -> bool:
        """True when ``path`` is a directory's index file (``mod/index.cjs``)."""
        for suffix, _ in self._suffixes:
            if path.endswith(suffix) and len(path) > len(suffix):
                return path[: -len(suffix)].rpartition("/")[2] == self._index_name
        return False

"""
dualbuild.exports - Export Map Synthesis
==========================================

    classifier:   ArtifactClassifier (path → kind, logical name)
    synthesizer:  group_artifacts, synthesize_exports, root_fields
    manifest:     write_exports (merge into package.json)
"""

from dualbuild.exports.classifier import ArtifactClassifier
from dualbuild.exports.manifest import write_exports
from dualbuild.exports.synthesizer import (
    ExportMap,
    export_key,
    group_artifacts,
    root_fields,
    synthesize_exports,
)

__all__ = [
    "ArtifactClassifier",
    "ExportMap",
    "export_key",
    "group_artifacts",
    "root_fields",
    "synthesize_exports",
    "write_exports",
]

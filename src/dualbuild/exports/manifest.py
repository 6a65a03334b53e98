"""
dualbuild.exports.manifest - Package Manifest Writer
======================================================

Merges a synthesized export map into ``package.json``.

Only ``main``, ``module``, ``types`` and ``exports`` are touched. The first
three are set from the root entry and removed when it lacks the matching
file; ``exports`` is replaced as a whole. Every other field keeps its value
and position.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog

from dualbuild.core.exceptions import ConfigurationError
from dualbuild.exports.classifier import ArtifactClassifier
from dualbuild.exports.synthesizer import group_artifacts, root_fields, synthesize_exports
from dualbuild.infrastructure.artifact_set import ArtifactSet


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def _read_manifest(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            message=f"Malformed manifest {path}: {e}",
            error_code="MALFORMED_MANIFEST",
            details={"path": str(path)},
        ) from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Manifest {path} must contain a JSON object",
            error_code="MALFORMED_MANIFEST",
            details={"path": str(path)},
        )
    return data


def _write_sync(
    files: ArtifactSet,
    classifier: ArtifactClassifier,
    package_json: Path,
    output_package_json: Path,
) -> ArtifactSet:
    base = output_package_json.parent

    def reference(path: str) -> str:
        absolute = files.directory / path
        try:
            return "./" + absolute.relative_to(base).as_posix()
        except ValueError:
            raise ConfigurationError(
                message=f"Artifact {absolute} is outside the manifest directory {base}",
                error_code="ARTIFACT_OUTSIDE_MANIFEST",
                details={"artifact": str(absolute), "manifest": str(output_package_json)},
            ) from None

    groups = group_artifacts(files, classifier)
    exports = synthesize_exports(groups, reference)
    fields = root_fields(groups, reference)

    manifest = _read_manifest(package_json)
    for field, value in fields.items():
        if value is None:
            manifest.pop(field, None)
        else:
            manifest[field] = value
    manifest["exports"] = {key: entry.to_manifest() for key, entry in exports.items()}

    base.mkdir(parents=True, exist_ok=True)
    output_package_json.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")

    logger.info(
        "exports_written",
        manifest=str(output_package_json),
        entries=list(exports),
    )
    return ArtifactSet(base, [output_package_json.name])


async def write_exports(
    files: ArtifactSet,
    *,
    classifier: ArtifactClassifier,
    package_json: Path,
    output_package_json: Path,
) -> ArtifactSet:
    """Synthesize exports for ``files`` and write them into the manifest.

    Args:
        files: Artifacts to export.
        classifier: Artifact classifier built from the configuration.
        package_json: Manifest to read (missing means an empty object).
        output_package_json: Manifest to write; references are relative to
            its directory.

    Returns:
        A set containing only the written manifest.

    Raises:
        ConfigurationError: If an artifact lies outside the output
            manifest's directory, or the input manifest is malformed.
    """
    return await asyncio.to_thread(
        _write_sync,
        files,
        classifier,
        Path(package_json).resolve(),
        Path(output_package_json).resolve(),
    )

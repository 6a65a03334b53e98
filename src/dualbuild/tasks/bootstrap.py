"""
dualbuild.tasks.bootstrap - Project Bootstrapping
===================================================

Sets up a new project to build with dualbuild:

    resources  → copies the bundled templates (tsconfig, eslint config,
                 .gitignore, dualbuild.yaml) into the project
    packages   → adds the default npm scripts and published files to the
                 project's package.json
    bootstrap  → both of the above

Template files whose name starts with ``__dot_`` are installed as dotfiles
(``__dot_gitignore`` → ``.gitignore``); npm drops some dotfiles when packing,
so they cannot ship under their real name.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any

from dualbuild.core.config import BootstrapConfig
from dualbuild.core.exceptions import ConfigurationError
from dualbuild.infrastructure.artifact_set import ArtifactSet, find
from dualbuild.orchestration.registry import TaskRegistry, task

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"

DEFAULT_SCRIPTS: dict[str, str] = {
    "build": "dualbuild",
    "coverage": "dualbuild coverage",
    "exports": "dualbuild exports",
    "lint": "dualbuild lint",
    "test": "dualbuild test",
    "transpile": "dualbuild transpile",
}

DEFAULT_FILES = ("*.md", "dist/", "src/")

_DOT_PREFIX = re.compile(r"(^|/)__dot_")


def dotfile_name(relative: str) -> str:
    """Map a template path to its installed name."""
    return _DOT_PREFIX.sub(r"\1.", relative)


def merge_package(manifest: dict[str, Any]) -> dict[str, Any]:
    """Return ``manifest`` with default scripts and files merged in.

    Existing scripts win over the defaults; scripts are sorted by name and
    ``files`` is the sorted union of both lists.
    """
    merged = dict(manifest)
    scripts = {**DEFAULT_SCRIPTS, **manifest.get("scripts", {})}
    merged["scripts"] = dict(sorted(scripts.items()))
    merged["files"] = sorted(set(manifest.get("files", [])) | set(DEFAULT_FILES))
    return merged


class BootstrapTasks(TaskRegistry):
    """Tasks that prepare a project for dualbuild."""

    component = "bootstrap_tasks"

    def __init__(self, config: BootstrapConfig, resources_dir: Path = RESOURCES_DIR) -> None:
        super().__init__(config)
        self._resources_dir = resources_dir

    @property
    def config(self) -> BootstrapConfig:
        return self._config

    @task
    async def resources(self) -> ArtifactSet:
        """Copy the bundled templates into the project directory."""
        templates = await find("**/*", directory=self._resources_dir)
        installed = await templates.copy(
            Path(self._config.project_dir).resolve(),
            rename=dotfile_name,
            overwrite=self._config.overwrite,
        )

        self._logger.info(
            "resources_installed",
            installed=len(installed),
            available=len(templates),
            files=[str(path) for path in installed.absolute_paths()],
        )
        return installed

    @task
    async def packages(self) -> ArtifactSet:
        """Merge default scripts and files into the project's package.json."""
        manifest_path = self._config.path("package_json")
        await asyncio.to_thread(self._update_manifest, manifest_path)
        return ArtifactSet(manifest_path.parent, [manifest_path.name])

    def _update_manifest(self, manifest_path: Path) -> None:
        manifest: dict[str, Any] = {}
        if manifest_path.is_file():
            self._logger.debug("manifest_reading", path=str(manifest_path))
            try:
                manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    message=f"Malformed manifest {manifest_path}: {e}",
                    error_code="MALFORMED_MANIFEST",
                    details={"path": str(manifest_path)},
                ) from e
            if not isinstance(manifest, dict):
                raise ConfigurationError(
                    message=f"Manifest {manifest_path} must contain a JSON object",
                    error_code="MALFORMED_MANIFEST",
                    details={"path": str(manifest_path)},
                )

        manifest_path.parent.mkdir(parents=True, exist_ok=True)
        manifest_path.write_text(
            json.dumps(merge_package(manifest), indent=2) + "\n",
            encoding="utf-8",
        )
        self._logger.info("manifest_updated", path=str(manifest_path))

    @task
    async def bootstrap(self) -> None:
        """Install the templates, then update package.json."""
        self._logger.info("bootstrap_starting", resources=str(self._resources_dir))
        await self.resources()
        await self.packages()

"""
Custom Build Example: Extending BuildTasks
==========================================

This example shows how a project customizes its build by subclassing
BuildTasks. Every ``@task`` method can be called directly, by name through
``run()``, or with per-call overrides that apply to that call only:

    await tasks.transpile(dest_dir="out")     # this call only
    await tasks.run("exports", esm=False)     # same, by name

Here the project's ``default`` build also publishes every module as a
subpath export, and a new ``release`` task builds the package into a
separate directory with its own manifest.

The MockToolchain is used so the example runs without Node.js; drop the
``toolchain=`` argument to use the real tools.

Usage:
    python examples/custom_build.py PROJECT_DIR
"""

from __future__ import annotations

import asyncio
import sys

from dualbuild import BuildTasks, create_tasks
from dualbuild.cli import configure_logging
from dualbuild.integrations.toolchain.mock import MockToolchain
from dualbuild.orchestration.registry import task


# =============================================================================
# Custom Registry: ProjectTasks
# =============================================================================
class ProjectTasks(BuildTasks):
    """The project's build: everything, then the export map."""

    @task
    async def default(self) -> None:
        await self.all()
        await self.exports(exports_glob="**/*")

    @task
    async def release(self) -> None:
        """Build into ``release/`` with a manifest next to the output."""
        await self.exports(
            dest_dir="release",
            output_package_json="release/package.json",
            exports_glob="**/*",
        )


async def main(project_dir: str) -> None:
    configure_logging("INFO")

    base = create_tasks(toolchain=MockToolchain(), project_dir=project_dir)
    tasks = ProjectTasks(base.config, base.toolchain)

    print(f"Available tasks: {', '.join(tasks.task_names())}")
    await tasks.default()
    await tasks.release()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "."))

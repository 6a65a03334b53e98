"""
dualbuild.tasks - Task Registries
===================================

    build:      BuildTasks (transpile, test, coverage, lint, exports, all)
    bootstrap:  BootstrapTasks (resources, packages, bootstrap)
"""

from dualbuild.tasks.bootstrap import BootstrapTasks
from dualbuild.tasks.build import BuildTasks

__all__ = [
    "BootstrapTasks",
    "BuildTasks",
]

"""
dualbuild.integrations.toolchain - External Build Tools
=========================================================

    base:     Toolchain interface and file naming conventions
    node:     NodeToolchain (esbuild, tsc, tsx, c8, eslint through npx)
    mock:     MockToolchain (deterministic simulation for tests)
    factory:  create_toolchain(name)
"""

from dualbuild.integrations.toolchain.base import Toolchain
from dualbuild.integrations.toolchain.factory import create_toolchain
from dualbuild.integrations.toolchain.mock import MockToolchain
from dualbuild.integrations.toolchain.node import NodeToolchain

__all__ = [
    "Toolchain",
    "MockToolchain",
    "NodeToolchain",
    "create_toolchain",
]

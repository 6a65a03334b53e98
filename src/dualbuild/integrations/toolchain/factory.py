"""
dualbuild.integrations.toolchain.factory - Toolchain Factory
==============================================================

Maps the ``toolchain`` configuration value to a concrete implementation.

Usage:
    >>> toolchain = create_toolchain("mock")
    >>> type(toolchain)  # MockToolchain
"""

from __future__ import annotations

from dualbuild.core.exceptions import ConfigurationError
from dualbuild.integrations.toolchain.base import Toolchain


def create_toolchain(name: str) -> Toolchain:
    """Create a toolchain instance by name.

    Args:
        name: "node" for the Node.js tools, "mock" for the simulation.

    Returns:
        A ready-to-use Toolchain.

    Raises:
        ConfigurationError: If the name is not recognized.
    """
    toolchain_name = name.lower()

    if toolchain_name == "node":
        from dualbuild.integrations.toolchain.node import NodeToolchain
        return NodeToolchain()

    if toolchain_name == "mock":
        from dualbuild.integrations.toolchain.mock import MockToolchain
        return MockToolchain()

    raise ConfigurationError(
        message=f"Unknown toolchain: '{name}'. Available toolchains: 'node', 'mock'.",
        error_code="UNKNOWN_TOOLCHAIN",
        details={"toolchain": name},
    )

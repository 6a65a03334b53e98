"""
dualbuild.integrations - External Tool Integration Layer
==========================================================

Adapters for the external collaborators the build layer orchestrates. Each
is abstracted behind an interface so implementations can be swapped
(Node.js tools in production, the simulation in tests).

Sub-packages:
    toolchain/  - transpiler, type-checker, test runner, coverage, linter
"""

__all__: list[str] = []

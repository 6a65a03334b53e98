"""
dualbuild Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → Tests for dualbuild.core (config, models, exceptions)
    ├── test_orchestration/ → Tests for dualbuild.orchestration (registry, outcome)
    ├── test_exports/       → Tests for dualbuild.exports (classifier, export map)
    ├── test_infrastructure/→ Tests for dualbuild.infrastructure (artifact sets)
    ├── test_integrations/  → Tests for dualbuild.integrations (toolchains)
    ├── test_tasks/         → Tests for dualbuild.tasks (build, bootstrap)
    ├── test_integration/   → End-to-end integration tests
    └── conftest.py         → Shared pytest fixtures (sample project)

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_tasks/        # Run only task tests
    pytest --cov=dualbuild          # Run with coverage report

No Node.js tools are needed: every task test runs on the MockToolchain.
"""

"""
dualbuild.cli - Command Line Entry Points
===========================================

    dualbuild [TASK ...] [-c CONFIG] [-D key=value ...] [--log-level LEVEL]
    dualbuild-bootstrap [--overwrite] [--project-dir DIR]

Tasks run one after the other, in the order given (default: ``default``).
``-D`` values are parsed as YAML scalars or lists, so ``-D esm=false`` and
``-D exports_globs=[lib/*]`` work as expected.

Exit status is 0 on success, 1 when any task fails, 2 on usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional, Sequence

import structlog
import yaml

from dualbuild.core.config import load_config
from dualbuild.core.exceptions import DualBuildError
from dualbuild.facade import create_bootstrap_tasks, create_tasks


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: str) -> None:
    """Configure structlog for console output at ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def parse_defines(defines: Sequence[str]) -> dict[str, Any]:
    """Turn ``key=value`` strings into configuration overrides.

    Raises:
        ValueError: If an item has no ``=`` or an empty key.
    """
    overrides: dict[str, Any] = {}
    for item in defines:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected key=value, got {item!r}")
        overrides[key.strip()] = _parse_value(value)
    return overrides


def _parse_value(value: str) -> Any:
    if not value:
        return ""
    try:
        return yaml.safe_load(value)
    except yaml.YAMLError:
        # Globs such as "**/*" read as YAML aliases.
        return value


# =============================================================================
# dualbuild
# =============================================================================
def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dualbuild",
        description="Build, test and publish dual CommonJS / ES module packages.",
    )
    parser.add_argument(
        "tasks",
        nargs="*",
        metavar="TASK",
        help="Tasks to run in order (default: default).",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="YAML configuration file (default: dualbuild.yaml if present).",
    )
    parser.add_argument(
        "-D",
        "--define",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a configuration field; may be repeated.",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: the configured log_level).",
    )
    return parser


async def _run_tasks(names: Sequence[str], **options: Any) -> None:
    tasks = create_tasks(**options)
    for name in names:
        await tasks.run(name)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or "INFO")

    try:
        overrides = parse_defines(args.define)
    except ValueError as e:
        parser.error(str(e))

    names = args.tasks or ["default"]
    try:
        config = load_config(args.config, **overrides)
        if args.log_level is None:
            configure_logging(config.log_level)
        asyncio.run(_run_tasks(names, config=config))
    except FileNotFoundError as e:
        logger.error("config_not_found", error=str(e))
        return 1
    except DualBuildError as e:
        logger.error("build_failed", tasks=names, **e.to_dict())
        return 1

    logger.info("build_succeeded", tasks=names)
    return 0


# =============================================================================
# dualbuild-bootstrap
# =============================================================================
def bootstrap_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dualbuild-bootstrap",
        description="Install dualbuild templates and scripts into a project.",
    )
    parser.add_argument("--project-dir", default=".", help="Project to bootstrap.")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing files instead of skipping them.",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, type=str.upper, default="INFO")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        tasks = create_bootstrap_tasks(
            project_dir=args.project_dir,
            overwrite="overwrite" if args.overwrite else "skip",
        )
        asyncio.run(tasks.bootstrap())
    except DualBuildError as e:
        logger.error("bootstrap_failed", **e.to_dict())
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

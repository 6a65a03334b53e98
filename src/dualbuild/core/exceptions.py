"""
dualbuild.core.exceptions - Build Error Hierarchy
===================================================

Structured exceptions raised by the build layer. Components raise and catch
these types instead of bare ``Exception`` so that composite tasks (and tests)
can assert on failure without knowing which external tool produced it.

Exception Hierarchy:
    DualBuildError (base)
        ├── ConfigurationError  - invalid configuration, unknown task names
        └── BuildFailure        - any failure of a build step or tool

Error Flow:
    Toolchain raises BuildFailure(tool="tsc")
        → the task propagates it unchanged
        → composite tasks stop (sequential) or collect it (parallel)
        → the CLI logs ``to_dict()`` and exits with status 1

Usage:
    >>> raise BuildFailure(
    ...     message="Type checking failed",
    ...     tool="tsc",
    ...     details={"exit_code": 2},
    ... )
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


# =============================================================================
# Base Exception
# =============================================================================
class DualBuildError(Exception):
    """Base exception for all dualbuild errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable code, UPPER_SNAKE_CASE.
        details: Arbitrary debugging context (paths, exit codes, output).
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception for structured logging.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
# Raised when a configuration value (or a per-call override) does not
# validate, or when a caller asks for a task that does not exist. A missing
# optional directory is NOT a configuration error: it disables the feature.
# =============================================================================
class ConfigurationError(DualBuildError):
    """Raised when build configuration is invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="Extensions for both formats must differ",
        ...     details={"cjs_extension": ".js", "esm_extension": ".js"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Build Failure
# =============================================================================
# The one distinguishable failure value every task surfaces. Tools raise it
# directly; the task boundary wraps anything else into it.
# =============================================================================
class BuildFailure(DualBuildError):
    """Raised when a build step fails.

    A failure either comes straight from one tool (``tool`` is set) or is an
    aggregate of several failures collected by a parallel composite task
    (``causes`` lists them).

    Attributes:
        tool: Name of the external tool that failed, if any.
        causes: Underlying failures for aggregated failures.
    """

    def __init__(
        self,
        message: str = "Build failed",
        tool: Optional[str] = None,
        error_code: str = "BUILD_FAILURE",
        details: Optional[dict[str, Any]] = None,
        causes: Optional[Iterable[BaseException]] = None,
    ) -> None:
        enriched_details = dict(details or {})
        if tool:
            enriched_details["tool"] = tool

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.tool = tool
        self.causes: list[BaseException] = list(causes or [])

    @classmethod
    def aggregate(cls, errors: Iterable[BaseException]) -> BaseException:
        """Combine the failures of concurrently settled branches.

        A single failure is returned as-is so callers see the original
        class and message. Several failures become one ``BuildFailure``
        listing every cause.

        Args:
            errors: Failures collected after all branches settled.

        Returns:
            The exception to raise.

        Raises:
            ValueError: If ``errors`` is empty.
        """
        collected = list(errors)
        if not collected:
            raise ValueError("Cannot aggregate an empty list of failures")
        if len(collected) == 1:
            return collected[0]

        return cls(
            message=f"{len(collected)} build steps failed",
            error_code="MULTIPLE_FAILURES",
            details={"failures": [str(error) for error in collected]},
            causes=collected,
        )

"""
dualbuild.orchestration - Orchestration Layer
===============================================

    registry:  TaskRegistry, @task, run_concurrently, run_sequentially
    outcome:   Outcome, the captured result of an awaited step
"""

from dualbuild.orchestration.outcome import Outcome
from dualbuild.orchestration.registry import (
    TaskRegistry,
    run_concurrently,
    run_sequentially,
    task,
)

__all__ = [
    "Outcome",
    "TaskRegistry",
    "run_concurrently",
    "run_sequentially",
    "task",
]

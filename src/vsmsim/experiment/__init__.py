"""Experimentation layer: tick runner, replications, scenario comparison."""

from vsmsim.experiment.runner import (
    SimulationRunner,
    run_to_completion,
    multiple_replications,
)
from vsmsim.experiment.comparison import (
    ComparisonEngine,
    ComparisonResult,
    Improvements,
    calculate_percentage_change,
    compare_scenarios,
    create_comparison_engine,
)
from vsmsim.experiment.analysis import ConfidenceInterval, compute_ci

__all__ = [
    "SimulationRunner",
    "run_to_completion",
    "multiple_replications",
    "ComparisonEngine",
    "ComparisonResult",
    "Improvements",
    "calculate_percentage_change",
    "compare_scenarios",
    "create_comparison_engine",
    "ConfidenceInterval",
    "compute_ci",
]

"""Simulation model layer: work items, state, tick engine."""

from vsmsim.model.log import AppendOnlyLog
from vsmsim.model.work_item import WorkItem, HistoryEntry
from vsmsim.model.state import SimulationState, QueueRecord
from vsmsim.model.engine import (
    init_simulation,
    generate_work_items,
    process_tick,
    route_work_item,
    should_rework,
    detect_bottlenecks,
    calculate_results,
    run_simulation_to_completion,
)

__all__ = [
    "AppendOnlyLog",
    "WorkItem",
    "HistoryEntry",
    "SimulationState",
    "QueueRecord",
    "init_simulation",
    "generate_work_items",
    "process_tick",
    "route_work_item",
    "should_rework",
    "detect_bottlenecks",
    "calculate_results",
    "run_simulation_to_completion",
]

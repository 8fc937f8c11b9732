"""Core foundation layer: process graph, scenario configuration."""

from vsmsim.core.entities import ConnectionType, MetricStatus
from vsmsim.core.graph import (
    Step,
    Connection,
    ProcessGraph,
    validate_vsm_data,
    sanitize_vsm_data,
)
from vsmsim.core.scenario import SimulationConfig, Scenario, create_scenario

__all__ = [
    "ConnectionType",
    "MetricStatus",
    "Step",
    "Connection",
    "ProcessGraph",
    "validate_vsm_data",
    "sanitize_vsm_data",
    "SimulationConfig",
    "Scenario",
    "create_scenario",
]

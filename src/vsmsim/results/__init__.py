"""Results and metrics layer: run aggregation, static value stream KPIs."""

from vsmsim.results.collector import (
    BottleneckRecord,
    SimulationResults,
    calculate_results,
    peak_queue_sizes,
    queue_history_frame,
)
from vsmsim.results.metrics import (
    MetricResult,
    calculate_total_lead_time,
    calculate_total_process_time,
    calculate_flow_efficiency,
    calculate_first_pass_yield,
    calculate_all_metrics,
    format_duration,
)

__all__ = [
    "BottleneckRecord",
    "SimulationResults",
    "calculate_results",
    "peak_queue_sizes",
    "queue_history_frame",
    "MetricResult",
    "calculate_total_lead_time",
    "calculate_total_process_time",
    "calculate_flow_efficiency",
    "calculate_first_pass_yield",
    "calculate_all_metrics",
    "format_duration",
]

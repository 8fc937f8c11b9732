"""Static value stream metrics computed from the map itself.

These do not run the simulation: they summarise the step figures the
user entered (lead time, process time, %C&A) the way a value stream
map's timeline and summary box do.

Key metrics:
- Total lead time and total process time
- Flow efficiency (process time / lead time)
- First pass yield (product of every step's %C&A)
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Union

from vsmsim.core.entities import MetricStatus
from vsmsim.core.graph import Step


# Rating thresholds (percent)
FLOW_EFFICIENCY_GOOD = 25.0
FLOW_EFFICIENCY_WARNING = 15.0
FIRST_PASS_YIELD_GOOD = 80.0
FIRST_PASS_YIELD_WARNING = 60.0

# A working day, for duration formatting
MINUTES_PER_DAY = 480


@dataclass(frozen=True)
class MetricResult:
    """A rated ratio metric.

    Attributes:
        value: Ratio (0-1).
        percentage: value * 100.
        status: Traffic-light rating.
        display_value: Formatted percentage, or "N/A".
    """
    value: float
    percentage: float
    status: MetricStatus
    display_value: str

    @classmethod
    def not_available(cls) -> "MetricResult":
        return cls(0.0, 0.0, MetricStatus.NEUTRAL, "N/A")


def _rate(percentage: float, good: float, warning: float) -> MetricStatus:
    if percentage >= good:
        return MetricStatus.GOOD
    elif percentage >= warning:
        return MetricStatus.WARNING
    return MetricStatus.CRITICAL


def calculate_total_lead_time(steps: Sequence[Step]) -> float:
    """Sum of step lead times (minutes)."""
    return sum(step.lead_time for step in steps)


def calculate_total_process_time(steps: Sequence[Step]) -> float:
    """Sum of step process times (minutes)."""
    return sum(step.process_time for step in steps)


def calculate_flow_efficiency(steps: Sequence[Step]) -> MetricResult:
    """Share of total lead time spent doing hands-on work.

    Rated good at 25% or more and warning at 15% or more.
    """
    lead_time = calculate_total_lead_time(steps)
    if lead_time == 0:
        return MetricResult.not_available()

    value = calculate_total_process_time(steps) / lead_time
    percentage = value * 100
    return MetricResult(
        value=value,
        percentage=percentage,
        status=_rate(percentage, FLOW_EFFICIENCY_GOOD, FLOW_EFFICIENCY_WARNING),
        display_value=f"{percentage:.1f}%",
    )


def calculate_first_pass_yield(steps: Sequence[Step]) -> MetricResult:
    """Probability that work passes every step without rework.

    Rated good at 80% or more and warning at 60% or more.
    """
    if not steps:
        return MetricResult.not_available()

    value = 1.0
    for step in steps:
        value *= step.percent_complete_accurate / 100
    percentage = value * 100
    return MetricResult(
        value=value,
        percentage=percentage,
        status=_rate(percentage, FIRST_PASS_YIELD_GOOD, FIRST_PASS_YIELD_WARNING),
        display_value=f"{percentage:.1f}%",
    )


def calculate_all_metrics(steps: Sequence[Step]) -> Dict[str, Any]:
    """All static metrics for a value stream."""
    return {
        "total_lead_time": calculate_total_lead_time(steps),
        "total_process_time": calculate_total_process_time(steps),
        "flow_efficiency": calculate_flow_efficiency(steps),
        "first_pass_yield": calculate_first_pass_yield(steps),
        "step_count": len(steps),
    }


def _num(value: float) -> str:
    return f"{value:g}"


def format_duration(minutes: Union[int, float]) -> str:
    """Format minutes for display, using 8-hour working days.

    Args:
        minutes: Duration in minutes.

    Returns:
        e.g. "45m", "2h 30m", "3h", "2d 1h", "1d".
    """
    if minutes == 0:
        return "0m"
    if minutes < 60:
        return f"{_num(minutes)}m"
    if minutes < MINUTES_PER_DAY:
        hours = int(minutes // 60)
        rest = minutes % 60
        return f"{hours}h {_num(rest)}m" if rest > 0 else f"{hours}h"
    days = int(minutes // MINUTES_PER_DAY)
    hours = int((minutes % MINUTES_PER_DAY) // 60)
    return f"{days}d {hours}h" if hours > 0 else f"{days}d"

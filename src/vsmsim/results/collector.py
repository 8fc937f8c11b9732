"""Result aggregation for completed (or abandoned) simulation runs."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, TYPE_CHECKING

import numpy as np
import pandas as pd

from vsmsim.core.graph import Step
from vsmsim.core.scenario import DEFAULT_BOTTLENECK_THRESHOLD

if TYPE_CHECKING:
    from vsmsim.model.state import QueueRecord, SimulationState


@dataclass(frozen=True)
class BottleneckRecord:
    """A step whose queue peaked above the bottleneck threshold.

    Attributes:
        step_id: Step identifier.
        step_name: Step display name.
        peak_queue_size: Largest queue size seen during the run.
    """
    step_id: str
    step_name: str
    peak_queue_size: int


@dataclass
class SimulationResults:
    """Summary of one simulation run.

    Attributes:
        avg_lead_time: Mean total lead time of completed items.
        throughput: Completed items per unit of elapsed time.
        bottlenecks: Steps whose peak queue exceeded the threshold.
        completed_count: Items that finished.
        work_item_count: Items requested.
        elapsed_time: Simulated time at the end of the run.
    """
    avg_lead_time: float = 0.0
    throughput: float = 0.0
    bottlenecks: List[BottleneckRecord] = field(default_factory=list)
    completed_count: int = 0
    work_item_count: int = 0
    elapsed_time: float = 0.0

    @property
    def converged(self) -> bool:
        """False when the run stopped before every item completed.

        Callers should report this as a modelling problem (typically a
        rework loop with no exit, or a graph with no terminal step).
        """
        return self.completed_count >= self.work_item_count

    def to_dict(self) -> Dict[str, Any]:
        """Results as a camelCase dict for the UI layer."""
        return {
            "avgLeadTime": self.avg_lead_time,
            "throughput": self.throughput,
            "bottlenecks": [
                {
                    "stepId": b.step_id,
                    "stepName": b.step_name,
                    "peakQueueSize": b.peak_queue_size,
                }
                for b in self.bottlenecks
            ],
            "completedCount": self.completed_count,
            "workItemCount": self.work_item_count,
            "elapsedTime": self.elapsed_time,
            "converged": self.converged,
        }


def peak_queue_sizes(queue_history: Iterable["QueueRecord"]) -> Dict[str, int]:
    """Largest queue size seen per step, in order of first appearance."""
    peaks: Dict[str, int] = {}
    for record in queue_history:
        if record.step_id not in peaks or record.queue_size > peaks[record.step_id]:
            peaks[record.step_id] = record.queue_size
    return peaks


def queue_history_frame(queue_history: Iterable["QueueRecord"]) -> pd.DataFrame:
    """Queue history as a long-format DataFrame (tick, step_id, queue_size).

    Pivot on step_id for a queue-size-over-time chart.
    """
    return pd.DataFrame(
        [(r.tick, r.step_id, r.queue_size) for r in queue_history],
        columns=["tick", "step_id", "queue_size"],
    )


def calculate_results(
    state: "SimulationState",
    steps: Sequence[Step],
    threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
) -> SimulationResults:
    """Compute summary results from a finished state.

    Pure: calling it twice on the same state gives identical results.

    Args:
        state: Final simulation state.
        steps: Process steps (for bottleneck display names).
        threshold: Peak queue size a step must exceed to be reported.

    Returns:
        SimulationResults for the run.
    """
    lead_times = [item.lead_time for item in state.work_items if item.is_complete]
    avg_lead_time = float(np.mean(lead_times)) if lead_times else 0.0

    if state.elapsed_time > 0:
        throughput = state.completed_count / state.elapsed_time
    else:
        throughput = 0.0

    names = {step.id: step.name for step in steps}
    bottlenecks = [
        BottleneckRecord(
            step_id=step_id,
            step_name=names.get(step_id, step_id),
            peak_queue_size=peak,
        )
        for step_id, peak in peak_queue_sizes(state.queue_history).items()
        if peak > threshold
    ]

    return SimulationResults(
        avg_lead_time=avg_lead_time,
        throughput=throughput,
        bottlenecks=bottlenecks,
        completed_count=state.completed_count,
        work_item_count=state.work_item_count,
        elapsed_time=state.elapsed_time,
    )

"""Simulation state aggregate advanced by each tick."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, TYPE_CHECKING

from vsmsim.core.scenario import clamp_speed
from vsmsim.model.log import AppendOnlyLog
from vsmsim.model.work_item import WorkItem

if TYPE_CHECKING:
    from vsmsim.results.collector import SimulationResults


@dataclass(frozen=True)
class QueueRecord:
    """Queue size of one step at the end of one tick."""
    tick: int
    step_id: str
    queue_size: int


@dataclass
class SimulationState:
    """The single mutable aggregate of a simulation run.

    A state is owned by exactly one driver at a time (a
    SimulationRunner or a run-to-completion loop). process_tick never
    mutates its input; it returns a fresh copy.

    Attributes:
        is_running: Ticks only advance while True.
        is_paused: Ticks are no-ops while True.
        speed: Time dilation factor, clamped to [0.25, 4.0].
        work_item_count: Items requested for the run.
        work_items: All items, including completed ones.
        completed_count: Items that left the last step.
        elapsed_time: Simulated time, advanced by 1 / speed per tick.
        queue_sizes_by_step_id: Items currently owned by each step.
        queue_history: One record per step per tick.
        detected_bottlenecks: Step ids over the bottleneck threshold
            as of the last tick.
        results: Final results once the run has finished.
        tick_count: Ticks processed so far.
    """
    is_running: bool = False
    is_paused: bool = False
    speed: float = 1.0
    work_item_count: int = 0
    work_items: List[WorkItem] = field(default_factory=list)
    completed_count: int = 0
    elapsed_time: float = 0.0
    queue_sizes_by_step_id: Dict[str, int] = field(default_factory=dict)
    queue_history: AppendOnlyLog = field(default_factory=AppendOnlyLog)
    detected_bottlenecks: List[str] = field(default_factory=list)
    results: Optional["SimulationResults"] = None
    tick_count: int = 0

    def __post_init__(self) -> None:
        self.speed = clamp_speed(self.speed)
        if not isinstance(self.queue_history, AppendOnlyLog):
            self.queue_history = AppendOnlyLog(self.queue_history)

    @property
    def is_complete(self) -> bool:
        return self.completed_count >= self.work_item_count

    def with_speed(self, speed: float) -> "SimulationState":
        """Copy of this state with a new (clamped) speed."""
        new_state = self.copy()
        new_state.speed = clamp_speed(speed)
        return new_state

    def copy(self) -> "SimulationState":
        """Fresh state sharing only immutable records and history with this one."""
        return SimulationState(
            is_running=self.is_running,
            is_paused=self.is_paused,
            speed=self.speed,
            work_item_count=self.work_item_count,
            work_items=[item.copy() for item in self.work_items],
            completed_count=self.completed_count,
            elapsed_time=self.elapsed_time,
            queue_sizes_by_step_id=dict(self.queue_sizes_by_step_id),
            queue_history=self.queue_history,
            detected_bottlenecks=list(self.detected_bottlenecks),
            results=self.results,
            tick_count=self.tick_count,
        )

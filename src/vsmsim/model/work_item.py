"""Work item entity and its per-step audit trail."""

from dataclasses import dataclass, field
from typing import Optional

from vsmsim.model.log import AppendOnlyLog


@dataclass(frozen=True)
class HistoryEntry:
    """Time a work item spent at one step.

    Attributes:
        step_id: Step the item was owned by.
        entered_at: Simulation time the item entered the step.
        exited_at: Simulation time the item left the step.
    """
    step_id: str
    entered_at: float
    exited_at: float

    @property
    def duration(self) -> float:
        return self.exited_at - self.entered_at


@dataclass
class WorkItem:
    """A synthetic unit of work flowing through the value stream.

    Items are never removed from a run: a completed item keeps its full
    history as an audit trail.

    Attributes:
        id: Unique identifier.
        current_step_id: Step that owns the item. None once complete.
        progress: Work units accumulated at the current step.
        entered_at: Simulation time the item entered the current step.
        history: One entry per completed step visit, in order. Extend
            it with history.appended(), never in place.
        is_rework: True if the item arrived at its step via rework.
    """
    id: str
    current_step_id: Optional[str]
    progress: float = 0.0
    entered_at: float = 0.0
    history: AppendOnlyLog = field(default_factory=AppendOnlyLog)
    is_rework: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.history, AppendOnlyLog):
            self.history = AppendOnlyLog(self.history)

    @property
    def is_complete(self) -> bool:
        return self.current_step_id is None

    @property
    def lead_time(self) -> float:
        """Total time across all recorded step visits."""
        return sum(entry.duration for entry in self.history)

    def copy(self) -> "WorkItem":
        """Independent copy. The history log is shared, not copied."""
        return WorkItem(
            id=self.id,
            current_step_id=self.current_step_id,
            progress=self.progress,
            entered_at=self.entered_at,
            history=self.history,
            is_rework=self.is_rework,
        )

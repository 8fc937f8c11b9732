"""Simulation configuration and what-if scenarios."""

import uuid
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

import numpy as np

from vsmsim.core.graph import ProcessGraph

if TYPE_CHECKING:
    from vsmsim.results.collector import SimulationResults


MIN_SPEED = 0.25
MAX_SPEED = 4.0
DEFAULT_MAX_TICKS = 10000
DEFAULT_BOTTLENECK_THRESHOLD = 3


def clamp_speed(speed: float) -> float:
    """Clamp a speed multiplier to the supported range [0.25, 4.0]."""
    return min(MAX_SPEED, max(MIN_SPEED, speed))


@dataclass
class SimulationConfig:
    """Run parameters shared by the runner and comparison engine.

    Attributes:
        work_item_count: Synthetic work items released at the start.
        max_ticks: Tick budget for run-to-completion loops. Guards
            against graphs that never finish (e.g. rework loops).
        speed: Time dilation factor, clamped to [0.25, 4.0].
        bottleneck_threshold: Queue size above which a step is flagged.
        random_seed: Seed for the rework stream. None draws fresh
            entropy, so runs are not reproducible.
    """
    work_item_count: int = 10
    max_ticks: int = DEFAULT_MAX_TICKS
    speed: float = 1.0
    bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD
    random_seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.work_item_count < 0:
            raise ValueError(
                f"work_item_count must be >= 0, got {self.work_item_count}"
            )
        if self.max_ticks < 1:
            raise ValueError(f"max_ticks must be >= 1, got {self.max_ticks}")
        if self.bottleneck_threshold < 0:
            raise ValueError("bottleneck_threshold must be >= 0")
        self.speed = clamp_speed(self.speed)
        self.rng = np.random.default_rng(self.random_seed)

    def clone_with_seed(self, new_seed: int) -> "SimulationConfig":
        """Create a copy of this config with a different seed.

        Args:
            new_seed: The new random seed to use.

        Returns:
            A new SimulationConfig with a fresh RNG.
        """
        return SimulationConfig(
            work_item_count=self.work_item_count,
            max_ticks=self.max_ticks,
            speed=self.speed,
            bottleneck_threshold=self.bottleneck_threshold,
            random_seed=new_seed,
        )


@dataclass
class Scenario:
    """An isolated, editable copy of a process graph for what-if runs.

    Attributes:
        id: Unique scenario identifier.
        name: Display name ("Scenario 1", ...).
        graph: The scenario's own graph. Never shared with the baseline.
        results: Results of the last run, if any.
    """
    id: str
    name: str
    graph: ProcessGraph = field(default_factory=ProcessGraph)
    results: Optional["SimulationResults"] = None


def create_scenario(
    graph: ProcessGraph,
    existing_count: int = 0,
    name: Optional[str] = None,
) -> Scenario:
    """Create a scenario from the current graph.

    Args:
        graph: Baseline graph to copy.
        existing_count: Number of scenarios that already exist, used
            for default naming.
        name: Explicit name. Defaults to "Scenario {existing_count + 1}".

    Returns:
        Scenario holding a deep copy of the graph.
    """
    return Scenario(
        id=str(uuid.uuid4()),
        name=name or f"Scenario {existing_count + 1}",
        graph=graph.clone(),
    )

"""Tick-based simulation engine for value stream flow.

Pure functions: no I/O and no timers. The runner and the comparison
engine sequence them.

Time model:
    Each tick advances elapsed_time by 1 / speed and adds one unit of
    progress to every active work item. An item leaves its step on the
    first tick where progress exceeds the step's process_time, so a step
    with process_time 30 holds an item for 31 ticks.
"""

import logging
import uuid
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from vsmsim.core.entities import ConnectionType
from vsmsim.core.graph import Connection, Step
from vsmsim.core.scenario import DEFAULT_BOTTLENECK_THRESHOLD, DEFAULT_MAX_TICKS
from vsmsim.model.state import QueueRecord, SimulationState
from vsmsim.model.work_item import HistoryEntry, WorkItem
from vsmsim.results.collector import calculate_results

logger = logging.getLogger(__name__)

RandomSource = Callable[[], float]

# Work units added to an active item each tick
PROGRESS_PER_TICK = 1


def init_simulation(
    steps: Sequence[Step],
    connections: Sequence[Connection],
    work_item_count: int,
) -> SimulationState:
    """Create the initial state for a run.

    Args:
        steps: Process steps.
        connections: Step connections (unused; kept for a uniform
            engine signature).
        work_item_count: Number of items the run should complete.

    Returns:
        Stopped state with a zero queue counter per step and no items.
    """
    return SimulationState(
        is_running=False,
        is_paused=False,
        speed=1.0,
        work_item_count=work_item_count,
        work_items=[],
        completed_count=0,
        elapsed_time=0.0,
        queue_sizes_by_step_id={step.id: 0 for step in steps},
    )


def generate_work_items(count: int, first_step_id: Optional[str]) -> List[WorkItem]:
    """Create `count` fresh work items at the entry step."""
    return [
        WorkItem(id=str(uuid.uuid4()), current_step_id=first_step_id)
        for _ in range(count)
    ]


def route_work_item(
    step: Step,
    connections: Sequence[Connection],
    is_reworked: bool = False,
) -> Optional[str]:
    """Next step id for work leaving `step`.

    Args:
        step: Step the item is leaving.
        connections: All connections in the graph.
        is_reworked: Follow the rework link instead of the forward link.

    Returns:
        Target step id, or None if the step has no such connection
        (a terminal step when routing forward).
    """
    wanted = ConnectionType.REWORK if is_reworked else ConnectionType.FORWARD
    for conn in connections:
        if conn.source == step.id and conn.type == wanted:
            return conn.target
    return None


def should_rework(
    step: Step,
    connections: Sequence[Connection],
    random_source: Optional[RandomSource] = None,
) -> bool:
    """Decide whether work leaving `step` is sent back for rework.

    The probability is the complement of the step's %C&A. The rework
    connection's rework_rate does not scale it.

    Args:
        step: Step the item is leaving.
        connections: All connections in the graph.
        random_source: Zero-argument callable returning a float in
            [0, 1). Defaults to a freshly seeded NumPy generator.

    Returns:
        True if the item should follow the step's rework connection.
    """
    has_rework = any(
        conn.source == step.id and conn.type == ConnectionType.REWORK
        for conn in connections
    )
    if not has_rework:
        return False

    if random_source is None:
        random_source = np.random.default_rng().random

    return random_source() < (100 - step.percent_complete_accurate) / 100


def detect_bottlenecks(
    steps: Sequence[Step],
    queue_sizes_by_step_id: Mapping[str, int],
    threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
) -> List[str]:
    """Ids of steps whose current queue is strictly above `threshold`.

    Results follow step order. Queue entries for unknown steps are ignored.
    """
    return [
        step.id for step in steps
        if queue_sizes_by_step_id.get(step.id, 0) > threshold
    ]


def process_tick(
    state: SimulationState,
    steps: Sequence[Step],
    connections: Sequence[Connection],
    random_source: Optional[RandomSource] = None,
    bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
) -> SimulationState:
    """Advance the simulation by one tick.

    The input state is not modified.

    Args:
        state: Current state.
        steps: Process steps.
        connections: Step connections.
        random_source: Rework draw source, see should_rework().
        bottleneck_threshold: Threshold for detected_bottlenecks.

    Returns:
        The same state object if the run is stopped or paused,
        otherwise a new state one tick later.
    """
    if not state.is_running or state.is_paused:
        return state

    if random_source is None:
        random_source = np.random.default_rng().random

    new_state = state.copy()
    new_state.elapsed_time += 1 / new_state.speed
    new_state.tick_count += 1
    now = new_state.elapsed_time
    queues = new_state.queue_sizes_by_step_id
    steps_by_id: Dict[str, Step] = {step.id: step for step in steps}

    for item in new_state.work_items:
        if item.current_step_id is None:
            continue

        step = steps_by_id.get(item.current_step_id)
        if step is None:
            # Unknown step: leave the item where it is
            continue

        item.progress += PROGRESS_PER_TICK
        if item.progress <= step.process_time:
            continue

        item.history = item.history.appended(
            HistoryEntry(step_id=step.id, entered_at=item.entered_at, exited_at=now)
        )
        queues[step.id] = max(0, queues.get(step.id, 0) - 1)

        reworked = should_rework(step, connections, random_source)
        next_step_id = route_work_item(step, connections, reworked)

        if next_step_id is not None:
            item.current_step_id = next_step_id
            item.progress = 0
            item.entered_at = now
            item.is_rework = reworked
            queues[next_step_id] = queues.get(next_step_id, 0) + 1
        else:
            item.current_step_id = None
            new_state.completed_count += 1

    new_state.queue_history = new_state.queue_history.extended(
        QueueRecord(
            tick=new_state.tick_count,
            step_id=step.id,
            queue_size=queues.get(step.id, 0),
        )
        for step in steps
    )
    new_state.detected_bottlenecks = detect_bottlenecks(
        steps, queues, bottleneck_threshold
    )

    return new_state


def run_simulation_to_completion(
    state: SimulationState,
    steps: Sequence[Step],
    connections: Sequence[Connection],
    max_ticks: int = DEFAULT_MAX_TICKS,
    random_source: Optional[RandomSource] = None,
    bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
) -> SimulationState:
    """Tick synchronously until every item completes or the budget runs out.

    Bypasses any runner cadence, so it marks the state running itself.
    The final state carries its results.

    Args:
        state: Initial state with work items in place.
        steps: Process steps.
        connections: Step connections.
        max_ticks: Tick budget; the only timeout mechanism.
        random_source: Rework draw source, see should_rework().
        bottleneck_threshold: Queue size above which a step is flagged.

    Returns:
        Final state, stopped, with results set. Check
        results.converged: a run that exhausted max_ticks is not an
        error but must be reported as a modelling problem.
    """
    if random_source is None:
        random_source = np.random.default_rng().random

    current = state.copy()
    current.is_running = True
    current.is_paused = False

    ticks = 0
    while current.completed_count < current.work_item_count and ticks < max_ticks:
        current = process_tick(
            current, steps, connections, random_source, bottleneck_threshold
        )
        ticks += 1

    current.is_running = False
    current.results = calculate_results(current, steps, bottleneck_threshold)

    if not current.results.converged:
        logger.warning(
            f"Simulation hit max_ticks limit ({max_ticks}). Only "
            f"{current.completed_count}/{current.work_item_count} items completed; "
            f"simulation did not complete - check for rework loops with no exit"
        )
    else:
        logger.debug(
            f"Simulation completed {current.completed_count} items in {ticks} ticks"
        )

    return current

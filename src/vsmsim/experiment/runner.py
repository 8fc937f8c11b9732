"""Single and batch simulation runners.

SimulationRunner drives the engine on a SimPy clock so the tick cadence
is independent of any UI render loop. Pass a
simpy.rt.RealtimeEnvironment to tie ticks to wall-clock time.

Example:
    >>> runner = SimulationRunner(tick_interval=1.0)
    >>> state = init_simulation(graph.steps, graph.connections, 10)
    >>> state.work_items = generate_work_items(10, graph.first_step_id)
    >>> runner.start(state, graph.steps, graph.connections,
    ...              on_tick=render, on_complete=show_results)
    >>> runner.run()
"""

import logging
from typing import Callable, Dict, Generator, List, Optional, Sequence

import numpy as np
import simpy

from vsmsim.core.graph import Connection, ProcessGraph, Step
from vsmsim.core.scenario import (
    DEFAULT_BOTTLENECK_THRESHOLD,
    DEFAULT_MAX_TICKS,
    SimulationConfig,
    clamp_speed,
)
from vsmsim.model.engine import (
    RandomSource,
    generate_work_items,
    init_simulation,
    process_tick,
    run_simulation_to_completion,
)
from vsmsim.model.state import SimulationState
from vsmsim.results.collector import SimulationResults, calculate_results

logger = logging.getLogger(__name__)

TickCallback = Callable[[SimulationState], None]
CompleteCallback = Callable[[SimulationResults], None]


class SimulationRunner:
    """Schedules engine ticks on a SimPy environment.

    Lifecycle: start() -> [pause() -> resume()]* -> completion or stop().

    The runner owns the state it is given for the duration of a run.
    Exceptions raised by the engine or by callbacks are not caught;
    they propagate out of run() / env.run().

    Attributes:
        env: SimPy environment providing the clock.
        tick_interval: Environment time between ticks at speed 1.0.
        bottleneck_threshold: Passed through to the engine.
    """

    def __init__(
        self,
        env: Optional[simpy.Environment] = None,
        tick_interval: float = 1.0,
        bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
    ):
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be > 0, got {tick_interval}")
        self.env = env if env is not None else simpy.Environment()
        self.tick_interval = tick_interval
        self.bottleneck_threshold = bottleneck_threshold

        self._state: Optional[SimulationState] = None
        self._steps: Sequence[Step] = []
        self._connections: Sequence[Connection] = []
        self._on_tick: Optional[TickCallback] = None
        self._on_complete: Optional[CompleteCallback] = None
        self._random_source: Optional[RandomSource] = None

        self._running = False
        self._paused = False
        self._process: Optional[simpy.Process] = None
        self._waiting = False
        # Bumped on every start/stop so a stale loop never ticks
        self._epoch = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def state(self) -> Optional[SimulationState]:
        """Latest state produced by the runner."""
        return self._state

    def start(
        self,
        initial_state: SimulationState,
        steps: Sequence[Step],
        connections: Sequence[Connection],
        on_tick: Optional[TickCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        random_source: Optional[RandomSource] = None,
    ) -> None:
        """Begin a run and schedule the first tick.

        Any run already in progress is stopped first.

        Args:
            initial_state: State to advance, usually from init_simulation()
                with work items in place.
            steps: Process steps.
            connections: Step connections.
            on_tick: Called with each new state.
            on_complete: Called once with the final results.
            random_source: Rework draw source, see should_rework(). When
                omitted, one NumPy generator is created for the whole run.
        """
        self.stop()

        if random_source is None:
            random_source = np.random.default_rng().random

        state = initial_state.copy()
        state.is_running = True
        state.is_paused = False

        self._state = state
        self._steps = steps
        self._connections = connections
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._random_source = random_source
        self._running = True
        self._paused = False

        logger.info(
            f"Runner started: {state.work_item_count} work items, "
            f"{len(steps)} steps, speed {state.speed}x"
        )
        self._arm()

    def pause(self) -> None:
        """Pause the run. The pending tick becomes a no-op."""
        self._paused = True

    def resume(self) -> None:
        """Clear the pause and re-arm the scheduler if needed."""
        if not self._running:
            return
        self._paused = False
        if self._process is None or not self._process.is_alive:
            self._arm()

    def stop(self) -> None:
        """Cancel any pending tick and clear running state. Idempotent."""
        self._running = False
        self._paused = False
        self._epoch += 1

        process = self._process
        self._process = None
        if (
            process is not None
            and process.is_alive
            and self._waiting
            and process is not self.env.active_process
        ):
            process.interrupt("stop")

    def run(self, until: Optional[float] = None) -> None:
        """Drive the environment until `until` or until no ticks remain."""
        self.env.run(until=until)

    def _arm(self) -> None:
        self._process = self.env.process(self._tick_loop(self._epoch))

    def _tick_loop(self, epoch: int) -> Generator[simpy.Event, None, None]:
        try:
            while epoch == self._epoch:
                self._waiting = True
                yield self.env.timeout(self.tick_interval / self._state.speed)
                self._waiting = False
                if epoch != self._epoch or not self._tick():
                    return
        except simpy.Interrupt:
            self._waiting = False
            logger.debug("Runner tick cancelled")

    def _tick(self) -> bool:
        """Run one scheduled tick. Returns False when the loop should end."""
        if not self._running or self._paused:
            return False

        new_state = process_tick(
            self._state,
            self._steps,
            self._connections,
            self._random_source,
            self.bottleneck_threshold,
        )
        self._state = new_state

        if self._on_tick is not None:
            self._on_tick(new_state)

        if new_state.completed_count >= new_state.work_item_count:
            self._finish(new_state)
            return False

        return self._running

    def _finish(self, state: SimulationState) -> None:
        self._running = False
        final_state = state.copy()
        final_state.is_running = False
        final_state.results = calculate_results(
            final_state, self._steps, self.bottleneck_threshold
        )
        self._state = final_state

        logger.info(
            f"Runner completed {final_state.completed_count} items "
            f"at t={final_state.elapsed_time:.2f}"
        )
        if self._on_complete is not None:
            self._on_complete(final_state.results)


def run_to_completion(
    steps: Sequence[Step],
    connections: Sequence[Connection],
    work_item_count: int,
    max_ticks: int = DEFAULT_MAX_TICKS,
    random_source: Optional[RandomSource] = None,
    bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD,
    speed: float = 1.0,
) -> SimulationResults:
    """Initialise, populate and synchronously run one simulation.

    Works on its own state; the given steps and connections are only read.

    Args:
        steps: Process steps. The first is the entry step.
        connections: Step connections.
        work_item_count: Items to release.
        max_ticks: Tick budget.
        random_source: Rework draw source.
        bottleneck_threshold: Queue size above which a step is flagged.
        speed: Time dilation factor.

    Returns:
        SimulationResults. results.converged is False if the tick
        budget ran out first.
    """
    state = init_simulation(steps, connections, work_item_count)
    state.speed = clamp_speed(speed)
    if steps:
        state.work_items = generate_work_items(work_item_count, steps[0].id)
    else:
        logger.warning("Cannot run a simulation with no steps")
        return calculate_results(state, steps, bottleneck_threshold)

    final_state = run_simulation_to_completion(
        state,
        steps,
        connections,
        max_ticks=max_ticks,
        random_source=random_source,
        bottleneck_threshold=bottleneck_threshold,
    )
    return final_state.results


def multiple_replications(
    graph: ProcessGraph,
    config: SimulationConfig,
    n_reps: int = 30,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Dict[str, List[float]]:
    """Run a graph to completion several times and collect metrics.

    Each replication uses a different random seed (base_seed + rep_number)
    to ensure independent samples. A config without a seed uses 0 as base.

    Args:
        graph: Process graph to simulate.
        config: Run parameters.
        n_reps: Number of replications to run.
        progress_callback: Optional callback(current_rep, total_reps) for
            progress reporting.

    Returns:
        Dictionary mapping metric names (avg_lead_time, throughput,
        completed_count, elapsed_time) to lists of values.
    """
    results: Dict[str, List[float]] = {
        "avg_lead_time": [],
        "throughput": [],
        "completed_count": [],
        "elapsed_time": [],
    }
    base_seed = config.random_seed if config.random_seed is not None else 0

    for rep in range(n_reps):
        rep_config = config.clone_with_seed(base_seed + rep)
        run_results = run_to_completion(
            graph.steps,
            graph.connections,
            rep_config.work_item_count,
            max_ticks=rep_config.max_ticks,
            random_source=rep_config.rng.random,
            bottleneck_threshold=rep_config.bottleneck_threshold,
            speed=rep_config.speed,
        )

        for name in results:
            results[name].append(getattr(run_results, name))

        if progress_callback is not None:
            progress_callback(rep + 1, n_reps)

    return results

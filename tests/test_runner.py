"""Tests for the SimPy-scheduled simulation runner."""

import numpy as np
import pytest
import simpy

from vsmsim.experiment.runner import SimulationRunner, run_to_completion
from vsmsim.model.engine import generate_work_items, init_simulation


@pytest.fixture
def initial_state(linear_steps, linear_connections):
    """One item at step-1 of the 30/60/30 line (completes after 123 ticks)."""
    state = init_simulation(linear_steps, linear_connections, work_item_count=1)
    state.work_items = generate_work_items(1, "step-1")
    return state


class Recorder:
    """Collects runner callbacks."""

    def __init__(self):
        self.states = []
        self.results = []

    def on_tick(self, state):
        self.states.append(state)

    def on_complete(self, results):
        self.results.append(results)


@pytest.fixture
def recorder():
    return Recorder()


def start(runner, state, graph, recorder):
    runner.start(
        state, graph.steps, graph.connections,
        on_tick=recorder.on_tick, on_complete=recorder.on_complete,
    )


class TestRunnerLifecycle:
    """Start, tick and complete."""

    def test_runs_to_completion(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)

        runner.run()

        assert len(recorder.states) == 123
        assert len(recorder.results) == 1
        assert recorder.results[0].avg_lead_time == 123.0
        assert runner.env.now == 123.0
        assert runner.is_running is False
        assert runner.state.results == recorder.results[0]
        assert runner.state.is_running is False

    def test_first_tick_is_scheduled(self, linear_graph, initial_state, recorder):
        """start() does not tick synchronously."""
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)

        assert recorder.states == []
        assert runner.is_running

    def test_initial_state_untouched(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=10.5)

        assert initial_state.is_running is False
        assert initial_state.work_items[0].progress == 0
        assert runner.state.work_items[0].progress == 10

    def test_tick_interval_scaled_by_speed(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner(tick_interval=1.0)
        start(runner, initial_state.with_speed(2.0), linear_graph, recorder)

        runner.run()

        assert runner.env.now == 61.5
        assert recorder.results[0].elapsed_time == 61.5

    def test_callbacks_optional(self, linear_graph, initial_state):
        runner = SimulationRunner()
        runner.start(initial_state, linear_graph.steps, linear_graph.connections)

        runner.run()

        assert runner.state.completed_count == 1

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            SimulationRunner(tick_interval=0)

    def test_custom_environment(self, linear_graph, initial_state, recorder):
        env = simpy.Environment(initial_time=100)
        runner = SimulationRunner(env=env)
        start(runner, initial_state, linear_graph, recorder)

        env.run()

        assert env.now == 223.0
        assert len(recorder.results) == 1


class TestPauseResume:
    """Cooperative pause and resume."""

    def test_pause_halts_ticks(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=10.5)

        runner.pause()
        runner.run(until=50)

        assert len(recorder.states) == 10
        assert runner.is_paused
        assert runner.is_running

    def test_resume_continues(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=10.5)
        runner.pause()
        runner.run(until=50)

        runner.resume()
        runner.run()

        assert len(recorder.states) == 123
        assert len(recorder.results) == 1
        assert recorder.results[0].avg_lead_time == 123.0

    def test_quick_pause_resume_single_loop(self, linear_graph, initial_state, recorder):
        """Resuming before the pending tick fires does not double the cadence."""
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=5.5)

        runner.pause()
        runner.resume()
        runner.run(until=10.5)

        assert len(recorder.states) == 10

    def test_resume_after_stop_is_noop(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.stop()

        runner.resume()
        runner.run()

        assert recorder.states == []


class TestStop:
    """Hard cancellation."""

    def test_stop_cancels_pending_tick(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=5.5)

        runner.stop()
        runner.run()

        assert len(recorder.states) == 5
        assert recorder.results == []
        assert runner.is_running is False

    def test_stop_before_first_tick(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)

        runner.stop()
        runner.run()

        assert recorder.states == []

    def test_stop_idempotent(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        runner.stop()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=2.5)

        runner.stop()
        runner.stop()
        runner.run()

        assert len(recorder.states) == 2

    def test_stop_from_tick_callback(self, linear_graph, initial_state):
        runner = SimulationRunner()
        ticks = []

        def on_tick(state):
            ticks.append(state)
            if len(ticks) == 3:
                runner.stop()

        runner.start(initial_state, linear_graph.steps, linear_graph.connections,
                     on_tick=on_tick)
        runner.run()

        assert len(ticks) == 3

    def test_restart_replaces_previous_run(self, linear_graph, initial_state, recorder):
        runner = SimulationRunner()
        start(runner, initial_state, linear_graph, recorder)
        runner.run(until=5.5)

        start(runner, initial_state, linear_graph, recorder)
        runner.run()

        # 5 ticks of the first run, 123 of the second
        assert len(recorder.states) == 128
        assert len(recorder.results) == 1


class TestFailureSemantics:
    """Errors propagate to the caller driving the environment."""

    def test_callback_error_propagates(self, linear_graph, initial_state):
        def on_tick(state):
            raise RuntimeError("render failed")

        runner = SimulationRunner()
        runner.start(initial_state, linear_graph.steps, linear_graph.connections,
                     on_tick=on_tick)

        with pytest.raises(RuntimeError, match="render failed"):
            runner.run()

    def test_random_source_error_propagates(self, rework_graph):
        def broken_source():
            raise ValueError("no entropy")

        state = init_simulation(rework_graph.steps, rework_graph.connections, 1)
        state.work_items = generate_work_items(1, "dev")
        runner = SimulationRunner()
        runner.start(state, rework_graph.steps, rework_graph.connections,
                     random_source=broken_source)

        with pytest.raises(ValueError, match="no entropy"):
            runner.run()



class TestRandomSource:
    """Rework draws under the runner."""

    def test_one_generator_per_run(self, rework_graph, monkeypatch):
        """Without a random source the runner seeds one generator, not one per tick."""
        created = []
        real_default_rng = np.random.default_rng

        def counting_default_rng(*args, **kwargs):
            created.append(args)
            return real_default_rng(*args, **kwargs)

        monkeypatch.setattr(np.random, "default_rng", counting_default_rng)
        state = init_simulation(rework_graph.steps, rework_graph.connections, 3)
        state.work_items = generate_work_items(3, "dev")
        runner = SimulationRunner()
        runner.start(state, rework_graph.steps, rework_graph.connections)

        runner.run()

        assert runner.state.completed_count == 3
        assert len(created) == 1
        assert runner.state.tick_count > 1

    def test_given_source_used(self, rework_graph):
        draws = []

        def never_rework():
            draws.append(1)
            return 0.99

        state = init_simulation(rework_graph.steps, rework_graph.connections, 1)
        state.work_items = generate_work_items(1, "dev")
        runner = SimulationRunner()
        runner.start(state, rework_graph.steps, rework_graph.connections,
                     random_source=never_rework)

        runner.run()

        # One draw when leaving Test, which has the only rework link
        assert draws == [1]
        assert runner.state.results.avg_lead_time == 17.0

class TestRunToCompletion:
    """Synchronous helper used by the comparison engine."""

    def test_linear(self, linear_graph):
        results = run_to_completion(linear_graph.steps, linear_graph.connections, 5)

        assert results.converged
        assert results.completed_count == 5
        assert results.avg_lead_time == 123.0
        assert results.throughput == pytest.approx(5 / 123)

    def test_empty_graph(self):
        results = run_to_completion([], [], 5)

        assert results.completed_count == 0
        assert not results.converged

    def test_speed(self, linear_graph):
        results = run_to_completion(
            linear_graph.steps, linear_graph.connections, 1, speed=0.5
        )

        assert results.elapsed_time == 246.0

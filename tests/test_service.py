"""Tests for the application-level simulation service."""

import logging

import pytest

from vsmsim.core.graph import ProcessGraph
from vsmsim.core.scenario import SimulationConfig
from vsmsim.experiment.comparison import Improvements
from vsmsim.service import SimulationService


@pytest.fixture
def service(linear_graph):
    return SimulationService(linear_graph, SimulationConfig(work_item_count=2, random_seed=7))


class TestInteractiveRun:
    """Start, pause, reset through the service."""

    def test_run_produces_results(self, service):
        ticks = []
        completed = []
        service.add_tick_hook(ticks.append)
        service.add_complete_hook(completed.append)

        service.start_simulation()
        service.runner.run()

        assert len(ticks) == 123
        assert completed == [service.results]
        assert service.results.completed_count == 2
        assert service.state.is_running is False
        assert service.state.results == service.results

    def test_empty_graph_is_noop(self, caplog):
        service = SimulationService(ProcessGraph())

        with caplog.at_level(logging.INFO):
            service.start_simulation()

        assert service.state is None
        assert service.runner.is_running is False
        assert "No steps to simulate" in caplog.text

    def test_speed_from_config(self, linear_graph):
        service = SimulationService(
            linear_graph, SimulationConfig(work_item_count=1, speed=2.0)
        )

        service.start_simulation()
        service.runner.run()

        assert service.results.elapsed_time == 61.5

    def test_pause_and_resume(self, service):
        service.start_simulation()
        service.runner.run(until=10.5)

        service.pause_simulation()
        service.runner.run(until=40)
        assert service.state.tick_count == 10

        service.resume_simulation()
        service.runner.run()
        assert service.results is not None

    def test_reset(self, service):
        service.start_simulation()
        service.runner.run(until=5.5)

        service.reset_simulation()
        service.runner.run()

        assert service.state is None
        assert service.results is None
        assert service.runner.is_running is False

    def test_cleanup_stops_runner(self, service):
        service.start_simulation()

        service.cleanup()

        assert service.runner.is_running is False


class TestScenarios:
    """Scenario management and comparison."""

    def test_default_names(self, service):
        first = service.create_scenario()
        second = service.create_scenario()

        assert first.name == "Scenario 1"
        assert second.name == "Scenario 2"
        assert first.id != second.id

    def test_explicit_name(self, service):
        assert service.create_scenario("Faster review").name == "Faster review"

    def test_scenario_graph_isolated(self, service, linear_graph):
        scenario = service.create_scenario()

        scenario.graph.steps[0].process_time = 1

        assert linear_graph.steps[0].process_time == 30

    def test_get_and_remove(self, service):
        scenario = service.create_scenario()

        assert service.get_scenario(scenario.id) is scenario

        service.remove_scenario(scenario.id)
        service.remove_scenario("missing")

        assert service.get_scenario(scenario.id) is None
        assert service.scenarios == []

    def test_run_comparison(self, service):
        scenario = service.create_scenario()
        scenario.graph.steps[1].process_time = 30

        comparison = service.run_comparison(scenario.id)

        assert comparison is service.comparison_results
        assert comparison["baseline"].avg_lead_time == 123.0
        assert comparison["scenario"].avg_lead_time == 93.0
        assert isinstance(comparison["improvements"], Improvements)
        assert comparison["improvements"].lead_time > 0
        assert scenario.results is comparison["scenario"]

    def test_unchanged_scenario_no_improvement(self, service):
        scenario = service.create_scenario()

        comparison = service.run_comparison(scenario.id)

        assert comparison["improvements"] == Improvements(0.0, 0.0)

    def test_unknown_scenario(self, service, caplog):
        with caplog.at_level(logging.WARNING):
            assert service.run_comparison("nope") is None

        assert "Unknown scenario" in caplog.text
        assert service.comparison_results is None

"""Simulation service: coordinates a value stream, its runs and scenarios.

The service is the single owner of the live simulation state. UI code
reads `state`, `scenarios` and `comparison_results` from it instead of
sharing global stores.
"""

import logging
from typing import Any, Dict, List, Optional

from vsmsim.core.graph import ProcessGraph
from vsmsim.core.scenario import Scenario, SimulationConfig, create_scenario
from vsmsim.experiment.comparison import create_comparison_engine
from vsmsim.experiment.runner import (
    CompleteCallback,
    SimulationRunner,
    TickCallback,
)
from vsmsim.model.engine import generate_work_items, init_simulation
from vsmsim.model.state import SimulationState
from vsmsim.results.collector import SimulationResults

logger = logging.getLogger(__name__)


class SimulationService:
    """Application-level entry point for running and comparing simulations.

    Attributes:
        graph: The baseline value stream.
        config: Run parameters.
        runner: Tick scheduler for interactive runs.
        state: Latest state of the interactive run, if any.
        scenarios: What-if scenarios derived from the graph.
        comparison_results: Output of the last run_comparison() call.
    """

    def __init__(
        self,
        graph: ProcessGraph,
        config: Optional[SimulationConfig] = None,
        runner: Optional[SimulationRunner] = None,
    ):
        self.graph = graph
        self.config = config or SimulationConfig()
        self.runner = runner or SimulationRunner(
            bottleneck_threshold=self.config.bottleneck_threshold
        )
        self.state: Optional[SimulationState] = None
        self.results: Optional[SimulationResults] = None
        self.scenarios: List[Scenario] = []
        self.comparison_results: Optional[Dict[str, Any]] = None

        self._on_tick_hooks: List[TickCallback] = []
        self._on_complete_hooks: List[CompleteCallback] = []

    def add_tick_hook(self, hook: TickCallback) -> None:
        """Call `hook` with every new state of the interactive run."""
        self._on_tick_hooks.append(hook)

    def add_complete_hook(self, hook: CompleteCallback) -> None:
        """Call `hook` with the results when the interactive run finishes."""
        self._on_complete_hooks.append(hook)

    def start_simulation(self) -> None:
        """Start an interactive run of the baseline graph.

        Does nothing for a graph with no steps.
        """
        steps = self.graph.steps
        if not steps:
            logger.info("No steps to simulate")
            return

        initial_state = init_simulation(
            steps, self.graph.connections, self.config.work_item_count
        )
        initial_state.speed = self.config.speed
        initial_state.work_items = generate_work_items(
            self.config.work_item_count, self.graph.first_step_id
        )
        self.state = initial_state
        self.results = None

        self.runner.start(
            initial_state,
            steps,
            self.graph.connections,
            on_tick=self._handle_tick,
            on_complete=self._handle_complete,
            random_source=self.config.rng.random,
        )

    def _handle_tick(self, new_state: SimulationState) -> None:
        self.state = new_state
        for hook in self._on_tick_hooks:
            hook(new_state)

    def _handle_complete(self, results: SimulationResults) -> None:
        self.state = self.runner.state
        self.results = results
        for hook in self._on_complete_hooks:
            hook(results)

    def pause_simulation(self) -> None:
        self.runner.pause()

    def resume_simulation(self) -> None:
        self.runner.resume()

    def reset_simulation(self) -> None:
        """Stop the run and discard its state."""
        self.runner.stop()
        self.state = None
        self.results = None

    def create_scenario(self, name: Optional[str] = None) -> Scenario:
        """Snapshot the current graph as a new editable scenario."""
        scenario = create_scenario(self.graph, len(self.scenarios), name)
        self.scenarios.append(scenario)
        return scenario

    def get_scenario(self, scenario_id: str) -> Optional[Scenario]:
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    def remove_scenario(self, scenario_id: str) -> None:
        """Remove a scenario. Silently succeeds if it does not exist."""
        self.scenarios = [s for s in self.scenarios if s.id != scenario_id]

    def run_comparison(self, scenario_id: str) -> Optional[Dict[str, Any]]:
        """Run the baseline and a scenario and compare them.

        Args:
            scenario_id: Scenario to compare against the baseline.

        Returns:
            Dict with keys baseline, scenario (SimulationResults) and
            improvements (Improvements), or None for an unknown scenario.
        """
        scenario = self.get_scenario(scenario_id)
        if scenario is None:
            logger.warning(f"Unknown scenario: {scenario_id}")
            return None

        engine = create_comparison_engine(
            self.config.work_item_count,
            max_ticks=self.config.max_ticks,
            random_source=self.config.rng.random,
        )
        baseline_results = engine.run_baseline(self.graph.steps, self.graph.connections)
        scenario_results = engine.run_scenario(
            scenario.graph.steps, scenario.graph.connections
        )
        scenario.results = scenario_results

        self.comparison_results = {
            "baseline": baseline_results,
            "scenario": scenario_results,
            "improvements": engine.calculate_improvements(
                baseline_results, scenario_results
            ),
        }
        return self.comparison_results

    def cleanup(self) -> None:
        self.runner.stop()

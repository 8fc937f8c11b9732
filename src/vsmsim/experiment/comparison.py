"""What-if comparison of a baseline value stream against a scenario.

Two levels are provided:
- ComparisonEngine: single run of each graph and relative improvement
  in lead time and throughput.
- compare_scenarios(): replicated runs with statistical testing to
  tell real differences from rework randomness.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from vsmsim.core.graph import Connection, ProcessGraph, Step
from vsmsim.core.scenario import DEFAULT_MAX_TICKS, SimulationConfig
from vsmsim.experiment.analysis import compute_ci
from vsmsim.experiment.runner import multiple_replications, run_to_completion
from vsmsim.model.engine import RandomSource
from vsmsim.results.collector import SimulationResults

logger = logging.getLogger(__name__)

# Metrics where a decrease is an improvement
LOWER_IS_BETTER = {"avg_lead_time", "elapsed_time"}


@dataclass(frozen=True)
class Improvements:
    """Relative change from baseline to scenario (percent).

    Positive values are improvements for both fields.

    Attributes:
        lead_time: Percentage decrease in average lead time.
        throughput: Percentage increase in throughput.
    """
    lead_time: float
    throughput: float


def calculate_percentage_change(
    baseline: float, scenario: float, direction: str = "increase"
) -> float:
    """Percentage change from baseline to scenario.

    Args:
        baseline: Baseline value.
        scenario: Scenario value.
        direction: "increase" if a rise is an improvement, "decrease"
            if a fall is.

    Returns:
        Signed percentage, positive meaning improvement. 0 when the
        baseline is 0.
    """
    if baseline == 0:
        return 0.0

    pct = (scenario - baseline) / baseline * 100
    return -pct if direction == "decrease" else pct


class ComparisonEngine:
    """Runs a baseline and a scenario to completion and compares them.

    Each run builds its own state; the steps and connections passed in
    are never modified.

    Attributes:
        work_item_count: Items released in every run.
        max_ticks: Tick budget per run.
    """

    def __init__(
        self,
        work_item_count: int,
        max_ticks: int = DEFAULT_MAX_TICKS,
        random_source: Optional[RandomSource] = None,
    ):
        self.work_item_count = work_item_count
        self.max_ticks = max_ticks
        self.random_source = random_source

    def _run(
        self, label: str, steps: Sequence[Step], connections: Sequence[Connection]
    ) -> SimulationResults:
        logger.info(f"Running {label}: {len(steps)} steps, {self.work_item_count} items")
        results = run_to_completion(
            steps,
            connections,
            self.work_item_count,
            max_ticks=self.max_ticks,
            random_source=self.random_source,
        )
        if not results.converged:
            logger.warning(
                f"{label.capitalize()} did not converge: "
                f"{results.completed_count}/{results.work_item_count} items completed"
            )
        return results

    def run_baseline(
        self, steps: Sequence[Step], connections: Sequence[Connection]
    ) -> SimulationResults:
        """Run the current value stream configuration."""
        return self._run("baseline", steps, connections)

    def run_scenario(
        self, steps: Sequence[Step], connections: Sequence[Connection]
    ) -> SimulationResults:
        """Run a modified (what-if) configuration."""
        return self._run("scenario", steps, connections)

    def calculate_improvements(
        self,
        baseline_results: SimulationResults,
        scenario_results: SimulationResults,
    ) -> Improvements:
        """Relative lead time and throughput improvement of the scenario."""
        return Improvements(
            lead_time=calculate_percentage_change(
                baseline_results.avg_lead_time,
                scenario_results.avg_lead_time,
                "decrease",
            ),
            throughput=calculate_percentage_change(
                baseline_results.throughput,
                scenario_results.throughput,
                "increase",
            ),
        )


def create_comparison_engine(
    work_item_count: int,
    max_ticks: int = DEFAULT_MAX_TICKS,
    random_source: Optional[RandomSource] = None,
) -> ComparisonEngine:
    """Create a ComparisonEngine for the given run size."""
    return ComparisonEngine(work_item_count, max_ticks, random_source)


@dataclass
class ComparisonResult:
    """Result of a replicated baseline vs scenario comparison.

    Attributes:
        baseline_name: Display name for the baseline.
        scenario_name: Display name for the scenario.
        metrics: DataFrame with detailed comparison for each metric.
        summary: Plain language summary of the comparison.
    """
    baseline_name: str
    scenario_name: str
    metrics: pd.DataFrame
    summary: str

    def significant_differences(self, alpha: float = 0.05) -> pd.DataFrame:
        """Return only metrics with significant differences.

        Args:
            alpha: Significance level (default 0.05).

        Returns:
            DataFrame containing only rows where p_value < alpha.
        """
        return self.metrics[self.metrics["p_value"] < alpha]


def _effect_magnitude(d: float) -> str:
    """Interpret Cohen's d effect size."""
    d = abs(d)
    if d < 0.2:
        return "negligible"
    elif d < 0.5:
        return "small"
    elif d < 0.8:
        return "medium"
    else:
        return "large"


def _generate_summary(df: pd.DataFrame, baseline_name: str, scenario_name: str) -> str:
    """Markdown summary of a comparison DataFrame."""
    lines = [f"## Comparison: {baseline_name} vs {scenario_name}\n"]

    if df.empty:
        lines.append("\nNo metrics could be compared.\n")
        return "".join(lines)

    better = df[df["significant"] & (df["improvement_pct"] > 0)]
    worse = df[df["significant"] & (df["improvement_pct"] < 0)]
    unchanged = df[~df["significant"]]

    if len(better) > 0:
        lines.append(f"### Significant Improvements ({scenario_name} is better):\n")
        for _, row in better.iterrows():
            lines.append(
                f"- **{row['metric']}**: {row['improvement_pct']:.1f}% better "
                f"({row['effect_magnitude']} effect)\n"
            )

    if len(worse) > 0:
        lines.append(f"\n### Significant Degradations ({scenario_name} is worse):\n")
        for _, row in worse.iterrows():
            lines.append(
                f"- **{row['metric']}**: {abs(row['improvement_pct']):.1f}% worse "
                f"({row['effect_magnitude']} effect)\n"
            )

    if len(unchanged) > 0:
        lines.append("\n### No Significant Change:\n")
        for _, row in unchanged.iterrows():
            lines.append(f"- {row['metric']}\n")

    return "".join(lines)


def compare_scenarios(
    baseline: ProcessGraph,
    scenario: ProcessGraph,
    config: SimulationConfig,
    n_reps: int = 30,
    metrics: Optional[List[str]] = None,
    baseline_name: str = "Baseline",
    scenario_name: str = "Scenario",
    alpha: float = 0.05,
) -> ComparisonResult:
    """Compare two graphs over replicated runs with statistical testing.

    Both graphs are run with the same seeds (common random numbers) and
    each metric is tested with a two-sided Mann-Whitney U test.
    Per-graph means come with t-based confidence intervals at level
    1 - alpha.

    Args:
        baseline: Current value stream.
        scenario: Proposed value stream.
        config: Run parameters; random_seed sets the base seed.
        n_reps: Replications per graph.
        metrics: Metrics to compare. Defaults to avg_lead_time and throughput.
        baseline_name: Display name for the baseline.
        scenario_name: Display name for the scenario.
        alpha: Significance level.

    Returns:
        ComparisonResult with a per-metric DataFrame and a summary.
    """
    if metrics is None:
        metrics = ["avg_lead_time", "throughput"]

    results_a = multiple_replications(baseline, config, n_reps)
    results_b = multiple_replications(scenario, config, n_reps)

    rows: List[Dict] = []
    for metric in metrics:
        values_a = results_a.get(metric, [])
        values_b = results_b.get(metric, [])
        if not values_a or not values_b:
            continue

        ci_a = compute_ci(values_a, 1 - alpha)
        ci_b = compute_ci(values_b, 1 - alpha)
        mean_a, std_a = ci_a.mean, ci_a.std
        mean_b, std_b = ci_b.mean, ci_b.std

        try:
            _, p_value = stats.mannwhitneyu(values_a, values_b, alternative="two-sided")
            p_value = float(p_value)
        except ValueError:
            p_value = 1.0
        if np.isnan(p_value):
            # Identical constant samples
            p_value = 1.0

        # Cohen's d approximation
        pooled_std = np.sqrt((std_a**2 + std_b**2) / 2) if (std_a > 0 or std_b > 0) else 1.0
        effect_size = float((mean_b - mean_a) / pooled_std)

        direction = "decrease" if metric in LOWER_IS_BETTER else "increase"
        rows.append({
            "metric": metric,
            f"{baseline_name}_mean": mean_a,
            f"{baseline_name}_std": std_a,
            f"{baseline_name}_ci_lower": ci_a.lower,
            f"{baseline_name}_ci_upper": ci_a.upper,
            f"{scenario_name}_mean": mean_b,
            f"{scenario_name}_std": std_b,
            f"{scenario_name}_ci_lower": ci_b.lower,
            f"{scenario_name}_ci_upper": ci_b.upper,
            "difference": mean_b - mean_a,
            "improvement_pct": calculate_percentage_change(mean_a, mean_b, direction),
            "p_value": p_value,
            "significant": p_value < alpha,
            "effect_size": effect_size,
            "effect_magnitude": _effect_magnitude(effect_size),
        })

    columns = [
        "metric",
        f"{baseline_name}_mean", f"{baseline_name}_std",
        f"{baseline_name}_ci_lower", f"{baseline_name}_ci_upper",
        f"{scenario_name}_mean", f"{scenario_name}_std",
        f"{scenario_name}_ci_lower", f"{scenario_name}_ci_upper",
        "difference", "improvement_pct", "p_value", "significant",
        "effect_size", "effect_magnitude",
    ]
    df = pd.DataFrame(rows, columns=columns)

    return ComparisonResult(
        baseline_name=baseline_name,
        scenario_name=scenario_name,
        metrics=df,
        summary=_generate_summary(df, baseline_name, scenario_name),
    )

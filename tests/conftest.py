"""Pytest fixtures for VSM Sim tests."""

from typing import List

import numpy as np
import pytest

from vsmsim.core.graph import Connection, ProcessGraph, Step


@pytest.fixture
def default_seed() -> int:
    """Default random seed for reproducible tests."""
    return 42


@pytest.fixture
def linear_steps() -> List[Step]:
    """Three steps with process times 30 / 60 / 30 minutes."""
    return [
        Step(id="step-1", name="Step 1", process_time=30, lead_time=60),
        Step(id="step-2", name="Step 2", process_time=60, lead_time=120),
        Step(id="step-3", name="Step 3", process_time=30, lead_time=60),
    ]


@pytest.fixture
def linear_connections() -> List[Connection]:
    """Forward links step-1 -> step-2 -> step-3."""
    return [
        Connection(id="conn-1", source="step-1", target="step-2"),
        Connection(id="conn-2", source="step-2", target="step-3"),
    ]


@pytest.fixture
def linear_graph(linear_steps, linear_connections) -> ProcessGraph:
    return ProcessGraph(steps=linear_steps, connections=linear_connections, name="Linear")


@pytest.fixture
def rework_graph() -> ProcessGraph:
    """Develop -> Test, with Test sending half its work back to Develop."""
    return ProcessGraph(
        steps=[
            Step(id="dev", name="Develop", process_time=10, lead_time=20),
            Step(
                id="test", name="Test", process_time=5, lead_time=10,
                percent_complete_accurate=50,
            ),
        ],
        connections=[
            Connection(id="fwd", source="dev", target="test"),
            Connection(
                id="back", source="test", target="dev",
                type="rework", rework_rate=50,
            ),
        ],
    )


@pytest.fixture
def endless_rework_graph() -> ProcessGraph:
    """A single step that always reworks into itself and never finishes."""
    return ProcessGraph(
        steps=[
            Step(id="loop", name="Loop", process_time=2, lead_time=2,
                 percent_complete_accurate=0),
        ],
        connections=[
            Connection(id="self", source="loop", target="loop", type="rework"),
        ],
    )


@pytest.fixture
def forward_cycle_graph() -> ProcessGraph:
    """A -> B -> A with forward links only: no terminal step."""
    return ProcessGraph(
        steps=[
            Step(id="a", name="A", process_time=3, lead_time=3),
            Step(id="b", name="B", process_time=3, lead_time=3),
        ],
        connections=[
            Connection(id="ab", source="a", target="b"),
            Connection(id="ba", source="b", target="a"),
        ],
    )


@pytest.fixture
def rng(default_seed) -> np.random.Generator:
    return np.random.default_rng(default_seed)

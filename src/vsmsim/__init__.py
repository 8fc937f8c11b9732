"""VSM Sim - value stream map simulation.

A tick-based discrete-event simulation of work items flowing through a
value stream, with a SimPy-scheduled runner and what-if comparison.
"""

__version__ = "0.1.0"

from vsmsim.core.graph import Step, Connection, ProcessGraph
from vsmsim.core.scenario import SimulationConfig
from vsmsim.model.engine import init_simulation, process_tick
from vsmsim.experiment.runner import SimulationRunner
from vsmsim.experiment.comparison import create_comparison_engine

__all__ = [
    "Step",
    "Connection",
    "ProcessGraph",
    "SimulationConfig",
    "init_simulation",
    "process_tick",
    "SimulationRunner",
    "create_comparison_engine",
    "__version__",
]

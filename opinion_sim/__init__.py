"""
OpinionSim

Bounded-confidence opinion dynamics on random social networks.
Agents hold a scalar opinion and pull connected neighbors closer
only when their opinions are already within a confidence threshold.
A run stops once opinions stay put for a number of consecutive steps
or the step budget runs out.
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .simulation.engine import run_simulation, SimulationConfig  # noqa: E402

__all__ = ["run_simulation", "SimulationConfig", "__version__"]

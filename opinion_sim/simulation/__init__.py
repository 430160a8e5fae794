"""Simulation module - Engine and opinion trajectories."""

from .engine import (
    SimulationEngine,
    SimulationConfig,
    SimulationState,
    SimulationPhase,
    run_simulation,
)
from .trajectory import Trajectory, OpinionSnapshot, StopReason

__all__ = [
    "SimulationEngine",
    "SimulationConfig",
    "SimulationState",
    "SimulationPhase",
    "run_simulation",
    "Trajectory",
    "OpinionSnapshot",
    "StopReason",
]

"""Visualization module - Trajectory plots and reports."""

from .plots import TrajectoryPlotter

__all__ = ["TrajectoryPlotter"]

"""Analysis module - Convergence detection and run metrics."""

from .convergence import ConvergenceDetector, ConvergenceAnalyzer, ConvergenceMetrics
from .metrics import MetricsCollector, SimulationMetrics

__all__ = [
    "ConvergenceDetector",
    "ConvergenceAnalyzer",
    "ConvergenceMetrics",
    "MetricsCollector",
    "SimulationMetrics",
]

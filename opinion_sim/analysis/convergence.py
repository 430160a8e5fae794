"""
Convergence detection and analysis.

ConvergenceDetector is the per-step test the engine uses to decide
whether a step moved anyone. ConvergenceAnalyzer summarizes a finished
trajectory: spread before and after, opinion clusters, consensus.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..simulation.trajectory import StopReason, Trajectory

if TYPE_CHECKING:
    from ..agents.agent import AgentPool

DEFAULT_EPSILON = 1e-8


class ConvergenceDetector:
    """
    Reports whether the last committed step changed any opinion.

    Compares each agent's previous opinion with its current one, so it
    measures the step's delta and not drift since the start of the run.
    """

    def __init__(self, epsilon: float = DEFAULT_EPSILON):
        self.epsilon = epsilon

    def changed(self, pool: "AgentPool") -> bool:
        """True iff some agent moved by more than epsilon this step."""
        return any(agent.step_delta > self.epsilon for agent in pool)

    def max_delta(self, pool: "AgentPool") -> float:
        """Largest absolute step delta over all agents."""
        return max((agent.step_delta for agent in pool), default=0.0)

    def __repr__(self) -> str:
        return f"ConvergenceDetector(epsilon={self.epsilon})"


@dataclass
class ConvergenceMetrics:
    """Summary of how opinions settled over one run."""
    steps: int
    stop_reason: Optional[StopReason]
    initial_variance: float
    final_variance: float
    initial_range: float
    final_range: float
    cluster_count: int
    cluster_sizes: List[int]
    cluster_centers: List[float]
    consensus_reached: bool

    @property
    def variance_reduction(self) -> float:
        """Fractional reduction in variance from first to last step."""
        if self.initial_variance == 0:
            return 0.0
        return (self.initial_variance - self.final_variance) / self.initial_variance

    @property
    def converged(self) -> bool:
        return self.stop_reason == StopReason.CONVERGED_STATIONARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": self.steps,
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
            "initial_variance": self.initial_variance,
            "final_variance": self.final_variance,
            "initial_range": self.initial_range,
            "final_range": self.final_range,
            "variance_reduction": self.variance_reduction,
            "cluster_count": self.cluster_count,
            "cluster_sizes": self.cluster_sizes,
            "cluster_centers": self.cluster_centers,
            "consensus_reached": self.consensus_reached,
        }


class ConvergenceAnalyzer:
    """
    Analyzes the end state of a trajectory.

    Detects:
    - Consensus (every agent in one opinion cluster)
    - Fragmentation into several clusters
    - How much the spread of opinions shrank
    """

    def __init__(self, cluster_threshold: float = 0.3):
        """
        Args:
            cluster_threshold: Opinion gap that separates two clusters.
                The confidence threshold of the run is the natural choice.
        """
        self.cluster_threshold = cluster_threshold

    def analyze(self, trajectory: Trajectory) -> ConvergenceMetrics:
        """Summarize a trajectory."""
        if not len(trajectory):
            return ConvergenceMetrics(
                steps=0,
                stop_reason=trajectory.stop_reason,
                initial_variance=0.0,
                final_variance=0.0,
                initial_range=0.0,
                final_range=0.0,
                cluster_count=0,
                cluster_sizes=[],
                cluster_centers=[],
                consensus_reached=False,
            )

        first = trajectory.first
        last = trajectory.last

        # Clusters come back ordered by opinion
        clusters = last.get_clusters(self.cluster_threshold)
        centers = [
            sum(last[agent_id] for agent_id in cluster) / len(cluster)
            for cluster in clusters
        ]

        return ConvergenceMetrics(
            steps=len(trajectory),
            stop_reason=trajectory.stop_reason,
            initial_variance=first.opinion_variance,
            final_variance=last.opinion_variance,
            initial_range=first.opinion_range,
            final_range=last.opinion_range,
            cluster_count=len(clusters),
            cluster_sizes=[len(cluster) for cluster in clusters],
            cluster_centers=centers,
            consensus_reached=len(clusters) == 1,
        )

    def __repr__(self) -> str:
        return f"ConvergenceAnalyzer(threshold={self.cluster_threshold})"

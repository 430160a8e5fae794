"""
Metrics collection for simulation runs.

Hooks into the engine's step and interaction callbacks and aggregates
activity figures for the run report.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from datetime import datetime
from collections import defaultdict
import json
import uuid

if TYPE_CHECKING:
    from ..network.dynamics import InteractionEvent
    from ..network.graph import SocialGraph
    from ..simulation.engine import SimulationState
    from ..simulation.trajectory import OpinionSnapshot


@dataclass
class SimulationMetrics:
    """Aggregated metrics for a simulation run."""
    # Basic stats
    simulation_id: str
    start_time: datetime
    end_time: Optional[datetime]
    total_steps: int
    stop_reason: Optional[str]
    seed: Optional[int]

    # Network stats
    agent_count: int
    edge_count: int
    graph_density: float
    average_degree: float
    isolated_count: int
    component_count: int

    # Activity stats
    total_interactions: int
    applied_interactions: int
    interactions_per_step: float
    changed_steps: int
    longest_stationary_run: int

    # Convergence stats
    cluster_count: int
    consensus_reached: bool
    variance_reduction: float

    @property
    def applied_fraction(self) -> float:
        """Share of attempted interactions that fell within the confidence bound."""
        if self.total_interactions == 0:
            return 0.0
        return self.applied_interactions / self.total_interactions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulation_id": self.simulation_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "total_steps": self.total_steps,
            "stop_reason": self.stop_reason,
            "seed": self.seed,
            "agent_count": self.agent_count,
            "edge_count": self.edge_count,
            "graph_density": self.graph_density,
            "average_degree": self.average_degree,
            "isolated_count": self.isolated_count,
            "component_count": self.component_count,
            "total_interactions": self.total_interactions,
            "applied_interactions": self.applied_interactions,
            "applied_fraction": self.applied_fraction,
            "interactions_per_step": self.interactions_per_step,
            "changed_steps": self.changed_steps,
            "longest_stationary_run": self.longest_stationary_run,
            "cluster_count": self.cluster_count,
            "consensus_reached": self.consensus_reached,
            "variance_reduction": self.variance_reduction,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class MetricsCollector:
    """
    Collects metrics during a simulation run.

    Register `record_step` with `SimulationEngine.on_step` and
    `record_interaction` with `SimulationEngine.on_interaction`.

    Tracks:
    - Per-step interactions, stationary counter and largest delta
    - Per-agent interaction counts
    """

    def __init__(self, simulation_id: Optional[str] = None):
        self.simulation_id = simulation_id or str(uuid.uuid4())[:8]
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None

        # Counters
        self._step_count = 0
        self._interaction_count = 0
        self._applied_count = 0
        self._changed_steps = 0
        self._longest_stationary = 0
        self._seed: Optional[int] = None

        # Per-step tracking
        self._step_interactions = 0
        self._interactions_per_step: List[int] = []

        # Per-agent tracking
        self._agent_interactions: Dict[int, int] = defaultdict(int)

        # Time series data
        self._timeline: List[Dict[str, Any]] = []

    def record_interaction(self, event: "InteractionEvent") -> None:
        """Record a single attempted interaction."""
        self._step_interactions += 1
        self._interaction_count += 1
        if event.applied:
            self._applied_count += 1
            self._agent_interactions[event.source_id] += 1
            self._agent_interactions[event.target_id] += 1

    def record_step(self, state: "SimulationState", snapshot: "OpinionSnapshot") -> None:
        """Record metrics for a completed step."""
        self._step_count = state.steps_completed
        self._seed = state.seed
        self._interactions_per_step.append(self._step_interactions)

        if snapshot.changed:
            self._changed_steps += 1
        self._longest_stationary = max(self._longest_stationary, snapshot.stationary_count)

        self._timeline.append({
            "step": snapshot.step,
            "interactions": self._step_interactions,
            "changed": snapshot.changed,
            "stationary": snapshot.stationary_count,
            "max_delta": state.max_delta,
            "variance": snapshot.opinion_variance,
        })
        self._step_interactions = 0

    def finalize(
        self,
        graph: "SocialGraph",
        stop_reason: Optional[str] = None,
        cluster_count: int = 0,
        consensus_reached: bool = False,
        variance_reduction: float = 0.0,
    ) -> SimulationMetrics:
        """Finalize metrics collection and return aggregated metrics."""
        self.end_time = datetime.now()

        return SimulationMetrics(
            simulation_id=self.simulation_id,
            start_time=self.start_time,
            end_time=self.end_time,
            total_steps=self._step_count,
            stop_reason=stop_reason,
            seed=self._seed,
            agent_count=graph.node_count,
            edge_count=graph.edge_count,
            graph_density=graph.density(),
            average_degree=graph.average_degree(),
            isolated_count=len(graph.isolated_nodes()),
            component_count=len(graph.connected_components()),
            total_interactions=self._interaction_count,
            applied_interactions=self._applied_count,
            interactions_per_step=self._avg(self._interactions_per_step),
            changed_steps=self._changed_steps,
            longest_stationary_run=self._longest_stationary,
            cluster_count=cluster_count,
            consensus_reached=consensus_reached,
            variance_reduction=variance_reduction,
        )

    def _avg(self, values: List[float]) -> float:
        """Calculate average of a list."""
        return sum(values) / len(values) if values else 0.0

    def get_agent_activity(self, agent_id: int) -> int:
        """Number of applied interactions an agent took part in."""
        return self._agent_interactions.get(agent_id, 0)

    def get_top_active_agents(self, n: int = 10) -> List[tuple]:
        """Get the agents involved in the most applied interactions."""
        sorted_agents = sorted(
            self._agent_interactions.items(),
            key=lambda x: (-x[1], x[0]),
        )
        return sorted_agents[:n]

    def get_timeline(self) -> List[Dict[str, Any]]:
        """Get the timeline of step metrics."""
        return self._timeline.copy()

    def __repr__(self) -> str:
        return (
            f"MetricsCollector(id={self.simulation_id}, steps={self._step_count}, "
            f"interactions={self._interaction_count})"
        )

"""
Opinion trajectories.

A trajectory is the ordered record of committed opinions, one
snapshot per simulation step, plus the reason the run stopped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set


class StopReason(Enum):
    """Why a simulation run ended."""
    STEP_BUDGET_EXHAUSTED = "step_budget_exhausted"
    CONVERGED_STATIONARY = "converged_stationary"


@dataclass
class OpinionSnapshot:
    """
    Committed opinions of every agent at the end of one step.

    Indexing a snapshot by agent id returns that agent's opinion.
    """
    step: int
    opinions: Dict[int, float]
    changed: bool = True
    stationary_count: int = 0

    def __getitem__(self, agent_id: int) -> float:
        return self.opinions[agent_id]

    def __len__(self) -> int:
        return len(self.opinions)

    def values(self) -> List[float]:
        """Opinions in agent id order."""
        return [self.opinions[i] for i in sorted(self.opinions)]

    @property
    def mean_opinion(self) -> float:
        """Average opinion, or 0.0 for an empty snapshot."""
        if not self.opinions:
            return 0.0
        return sum(self.opinions.values()) / len(self.opinions)

    @property
    def opinion_variance(self) -> float:
        """Population variance of opinions; 0.0 below two agents."""
        if len(self.opinions) < 2:
            return 0.0
        mean = self.mean_opinion
        return sum((x - mean) ** 2 for x in self.opinions.values()) / len(self.opinions)

    @property
    def opinion_range(self) -> float:
        if not self.opinions:
            return 0.0
        return max(self.opinions.values()) - min(self.opinions.values())

    def get_clusters(self, threshold: float) -> List[Set[int]]:
        """
        Group agents whose sorted opinions are chained by gaps below threshold.

        Agents are sorted by opinion and a new cluster starts wherever
        the gap to the previous opinion is at least `threshold`.
        """
        ordered = sorted(self.opinions.items(), key=lambda item: (item[1], item[0]))
        clusters: List[Set[int]] = []
        previous: Optional[float] = None

        for agent_id, opinion in ordered:
            if previous is None or opinion - previous >= threshold:
                clusters.append(set())
            clusters[-1].add(agent_id)
            previous = opinion

        return clusters


@dataclass
class Trajectory:
    """
    Per-step opinion snapshots of a single run, in step order.

    The first snapshot holds opinions after step 1 and the last holds
    opinions at the step where the run stopped.
    """
    snapshots: List[OpinionSnapshot] = field(default_factory=list)
    stop_reason: Optional[StopReason] = None
    seed: Optional[int] = None

    def append(self, snapshot: OpinionSnapshot) -> None:
        self.snapshots.append(snapshot)

    def __len__(self) -> int:
        return len(self.snapshots)

    def __iter__(self) -> Iterator[OpinionSnapshot]:
        return iter(self.snapshots)

    def __getitem__(self, index: int) -> OpinionSnapshot:
        return self.snapshots[index]

    @property
    def first(self) -> Optional[OpinionSnapshot]:
        return self.snapshots[0] if self.snapshots else None

    @property
    def last(self) -> Optional[OpinionSnapshot]:
        return self.snapshots[-1] if self.snapshots else None

    @property
    def converged(self) -> bool:
        return self.stop_reason == StopReason.CONVERGED_STATIONARY

    def to_matrix(self) -> List[List[float]]:
        """Opinions as rows of steps and columns of agent ids."""
        return [snapshot.values() for snapshot in self.snapshots]

    def agent_series(self, agent_id: int) -> List[float]:
        """One agent's opinion at every step."""
        return [snapshot[agent_id] for snapshot in self.snapshots]

    def __repr__(self) -> str:
        reason = self.stop_reason.value if self.stop_reason else None
        return f"Trajectory(steps={len(self.snapshots)}, stop_reason={reason})"

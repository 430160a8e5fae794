"""
Agents and the agent pool.

Each agent carries one scalar opinion in three slots: the value used
for this step's comparisons, the value at the start of the step, and
an accumulator for adjustments proposed during the step.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence
import logging
import random

import numpy as np

from ..exceptions import ConfigurationError
from ..network.graph import RandomGraphBuilder, SocialGraph

logger = logging.getLogger(__name__)


@dataclass
class Agent:
    """
    A single opinion holder.

    Opinions are seeded in [0, 1) but are never clamped afterwards.
    """
    id: int
    current_opinion: float
    previous_opinion: float
    proposed_opinion: float
    neighbors: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def with_opinion(cls, agent_id: int, opinion: float) -> "Agent":
        """Create an agent whose three opinion slots all hold `opinion`."""
        return cls(
            id=agent_id,
            current_opinion=opinion,
            previous_opinion=opinion,
            proposed_opinion=opinion,
        )

    @property
    def degree(self) -> int:
        return len(self.neighbors)

    @property
    def is_isolated(self) -> bool:
        """An isolated agent never changes opinion."""
        return not self.neighbors

    @property
    def step_delta(self) -> float:
        """Absolute change over the last committed step."""
        return abs(self.previous_opinion - self.current_opinion)

    def begin_step(self) -> None:
        self.proposed_opinion = self.current_opinion

    def commit(self) -> None:
        self.previous_opinion = self.current_opinion
        self.current_opinion = self.proposed_opinion


class AgentPool:
    """
    N agents indexed by id, plus the network they live on.

    Agent ids equal list positions, so iteration order is always
    0..N-1 and reproducible under a fixed seed.
    """

    def __init__(self, agents: List[Agent], graph: SocialGraph):
        if len(agents) != graph.node_count:
            raise ConfigurationError(
                f"{len(agents)} agents do not match a graph of {graph.node_count} nodes"
            )
        for index, agent in enumerate(agents):
            if agent.id != index:
                raise ConfigurationError(f"agent at position {index} has id {agent.id}")
            agent.neighbors = frozenset(graph.neighbor_set(index))

        self._agents = agents
        self._graph = graph

    @classmethod
    def initialize(
        cls,
        num_agents: int,
        edge_probability: float,
        rng: random.Random,
        edge_count_rng: Optional[np.random.Generator] = None,
    ) -> "AgentPool":
        """
        Seed opinions uniformly in [0, 1) and build the random network.

        Opinions are drawn in id order before any edge is sampled.
        """
        if num_agents < 1:
            raise ConfigurationError(f"number of agents must be at least 1, got {num_agents}")

        agents = [Agent.with_opinion(i, rng.random()) for i in range(num_agents)]
        graph = RandomGraphBuilder(rng, edge_count_rng).build(num_agents, edge_probability)

        logger.debug("Initialized %d agents", num_agents)
        return cls(agents, graph)

    @classmethod
    def from_opinions(
        cls,
        opinions: Sequence[float],
        graph: SocialGraph,
    ) -> "AgentPool":
        """Build a pool with explicit starting opinions on a given graph."""
        if not opinions:
            raise ConfigurationError("at least one opinion is required")
        agents = [Agent.with_opinion(i, float(x)) for i, x in enumerate(opinions)]
        return cls(agents, graph)

    @property
    def graph(self) -> SocialGraph:
        return self._graph

    @property
    def agents(self) -> List[Agent]:
        return list(self._agents)

    def opinions(self) -> Dict[int, float]:
        """Current opinion of every agent, keyed by id."""
        return {agent.id: agent.current_opinion for agent in self._agents}

    def begin_step(self) -> None:
        """Reset every proposed opinion to the current one."""
        for agent in self._agents:
            agent.begin_step()

    def commit(self) -> None:
        """Move proposed opinions into place for every agent."""
        for agent in self._agents:
            agent.commit()

    def __len__(self) -> int:
        return len(self._agents)

    def __getitem__(self, agent_id: int) -> Agent:
        return self._agents[agent_id]

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents)

    def __repr__(self) -> str:
        return f"AgentPool(agents={len(self._agents)}, edges={self._graph.edge_count})"

"""
Bounded-confidence interaction dynamics.

Each step a fixed number of distinct agents is picked. Every picked
agent talks to one random neighbor, and the pair move toward each
other only if their opinions are already closer than the confidence
threshold.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional
import logging
import random

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..agents.agent import Agent, AgentPool

logger = logging.getLogger(__name__)


@dataclass
class InteractionEvent:
    """
    One attempted pairwise interaction.

    `applied` is False when the pair were too far apart to influence
    each other.
    """
    step: int
    source_id: int
    target_id: int
    opinion_diff: float
    applied: bool


class OpinionUpdateRule:
    """
    Pairwise, threshold-gated opinion averaging.

    For a picked agent i and a neighbor j, with diff = x_i - x_j taken
    from current opinions: if |diff| < confidence, then
    proposed_j += alpha * diff and proposed_i -= alpha * diff.
    Adjustments from several interactions in one step add up.
    """

    def __init__(
        self,
        confidence: float,
        alpha: float,
        num_update_nodes: int = 1,
        rng: Optional[random.Random] = None,
    ):
        if not confidence >= 0:
            raise ConfigurationError(f"confidence threshold must be >= 0, got {confidence}")
        if not 0.0 < alpha <= 1.0:
            raise ConfigurationError(f"adaptation rate must be in (0, 1], got {alpha}")
        if num_update_nodes < 1:
            raise ConfigurationError(
                f"number of update nodes must be at least 1, got {num_update_nodes}"
            )

        self.confidence = confidence
        self.alpha = alpha
        self.num_update_nodes = num_update_nodes
        self._rng = rng or random.Random()

    def pick_agents(self, num_agents: int) -> List[int]:
        """Draw num_update_nodes distinct ids from 0..num_agents-1."""
        if self.num_update_nodes > num_agents:
            raise ConfigurationError(
                f"cannot pick {self.num_update_nodes} distinct agents out of {num_agents}"
            )
        return self._rng.sample(range(num_agents), self.num_update_nodes)

    def pick_neighbor(self, agent: "Agent") -> Optional[int]:
        """Pick one neighbor id uniformly, or None for an isolated agent."""
        if not agent.neighbors:
            return None
        return self._rng.choice(sorted(agent.neighbors))

    def interact(self, source: "Agent", target: "Agent", step: int = 0) -> InteractionEvent:
        """
        Apply one interaction between source and target.

        Reads current opinions and writes proposed opinions only.
        """
        diff = source.current_opinion - target.current_opinion
        applied = abs(diff) < self.confidence

        if applied:
            alpha_diff = self.alpha * diff
            target.proposed_opinion += alpha_diff
            source.proposed_opinion -= alpha_diff

        logger.debug(
            "Step %d: evaluating (%d, %d) with a diff of %e, applied=%s",
            step, source.id, target.id, diff, applied,
        )
        return InteractionEvent(
            step=step,
            source_id=source.id,
            target_id=target.id,
            opinion_diff=diff,
            applied=applied,
        )

    def step(self, pool: "AgentPool", step: int = 0) -> List[InteractionEvent]:
        """
        Run one step of picks and interactions against the pool.

        Isolated picks are skipped. Returns the attempted interactions
        in the order they happened.
        """
        picked = self.pick_agents(len(pool))
        logger.debug("Step %d: %d nodes to update", step, len(picked))

        events = []
        for agent_id in picked:
            source = pool[agent_id]
            neighbor_id = self.pick_neighbor(source)
            if neighbor_id is None:
                continue
            events.append(self.interact(source, pool[neighbor_id], step))

        return events

    def __repr__(self) -> str:
        return (
            f"OpinionUpdateRule(confidence={self.confidence}, alpha={self.alpha}, "
            f"num_update_nodes={self.num_update_nodes})"
        )

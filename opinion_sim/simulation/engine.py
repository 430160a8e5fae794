"""
Step loop for bounded-confidence opinion dynamics.

Builds the agent pool and network once, then repeats update, commit
and convergence check until opinions stay put for long enough or the
step budget runs out.
"""

from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional
from enum import Enum
import logging
import random

import numpy as np

from ..agents.agent import AgentPool
from ..analysis.convergence import ConvergenceDetector, DEFAULT_EPSILON
from ..exceptions import ConfigurationError, SimulationError
from ..network.dynamics import InteractionEvent, OpinionUpdateRule
from .trajectory import OpinionSnapshot, StopReason, Trajectory

logger = logging.getLogger(__name__)


class SimulationPhase(Enum):
    """Phases of a simulation run."""
    SETUP = "setup"
    RUNNING = "running"
    STOPPED = "stopped"


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass
class SimulationConfig:
    """Parameters for one simulation run."""
    # Network
    num_agents: int = 100
    edge_probability: float = 0.05

    # Update rule
    confidence_threshold: float = 0.3
    adaptation_rate: float = 0.1
    num_update_nodes: int = 1

    # Termination
    max_steps: int = 6000
    min_stationary: int = 100
    epsilon: float = DEFAULT_EPSILON

    # Random seed for reproducibility
    seed: Optional[int] = None

    def validate(self) -> None:
        """
        Reject invalid parameter combinations.

        Raises:
            ConfigurationError: On the first invalid parameter found.
        """
        for name in ("num_agents", "num_update_nodes", "max_steps", "min_stationary"):
            if not _is_int(getattr(self, name)):
                raise ConfigurationError(f"{name} must be an integer, got {getattr(self, name)!r}")
        if self.seed is not None and not _is_int(self.seed):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")

        if self.num_agents < 1:
            raise ConfigurationError(f"num_agents must be at least 1, got {self.num_agents}")
        if not 0.0 <= self.edge_probability <= 1.0:
            raise ConfigurationError(
                f"edge_probability must be in [0, 1], got {self.edge_probability}"
            )
        if not self.confidence_threshold >= 0:
            raise ConfigurationError(
                f"confidence_threshold must be >= 0, got {self.confidence_threshold}"
            )
        if not 0.0 < self.adaptation_rate <= 1.0:
            raise ConfigurationError(
                f"adaptation_rate must be in (0, 1], got {self.adaptation_rate}"
            )
        if not 1 <= self.num_update_nodes <= self.num_agents:
            raise ConfigurationError(
                f"num_update_nodes must be in [1, {self.num_agents}], got {self.num_update_nodes}"
            )
        if self.max_steps < 1:
            raise ConfigurationError(f"max_steps must be at least 1, got {self.max_steps}")
        if self.min_stationary < 1:
            raise ConfigurationError(
                f"min_stationary must be at least 1, got {self.min_stationary}"
            )
        if not self.epsilon >= 0:
            raise ConfigurationError(f"epsilon must be >= 0, got {self.epsilon}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationState:
    """Current state of a simulation."""
    phase: SimulationPhase = SimulationPhase.SETUP
    step: int = 1
    stationary: int = 0
    changed: bool = False
    max_delta: float = 0.0
    total_interactions: int = 0
    applied_interactions: int = 0
    stop_reason: Optional[StopReason] = None
    seed: Optional[int] = None

    @property
    def steps_completed(self) -> int:
        return self.step - 1


class SimulationEngine:
    """
    Runs one bounded-confidence simulation.

    Each step:
    1. Proposed opinions are reset to current opinions
    2. The update rule applies up to q pairwise interactions
    3. Proposed opinions are committed
    4. The convergence detector decides whether anything moved
    5. A snapshot of committed opinions joins the trajectory

    The run stops when the step counter passes max_steps or after
    min_stationary consecutive unchanged steps.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        pool: Optional[AgentPool] = None,
    ):
        self.config = config or SimulationConfig()
        self.config.validate()

        if pool is not None and len(pool) != self.config.num_agents:
            raise ConfigurationError(
                f"pool has {len(pool)} agents but num_agents is {self.config.num_agents}"
            )

        seed = self.config.seed
        if seed is None:
            seed = random.SystemRandom().getrandbits(63)
        seed = int(seed)
        self._rng = random.Random(seed)

        # Core components
        if pool is None:
            pool = AgentPool.initialize(
                self.config.num_agents,
                self.config.edge_probability,
                self._rng,
                np.random.default_rng(self._rng.getrandbits(64)),
            )
        self._pool = pool
        self._rule = OpinionUpdateRule(
            confidence=self.config.confidence_threshold,
            alpha=self.config.adaptation_rate,
            num_update_nodes=self.config.num_update_nodes,
            rng=self._rng,
        )
        self._detector = ConvergenceDetector(self.config.epsilon)

        # State tracking
        self._state = SimulationState(seed=seed)
        self._trajectory = Trajectory(seed=seed)

        # Event hooks
        self._on_interaction: List[Callable[[InteractionEvent], None]] = []
        self._on_step: List[Callable[[SimulationState, OpinionSnapshot], None]] = []

    @property
    def pool(self) -> AgentPool:
        return self._pool

    @property
    def rule(self) -> OpinionUpdateRule:
        return self._rule

    @property
    def detector(self) -> ConvergenceDetector:
        return self._detector

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def trajectory(self) -> Trajectory:
        return self._trajectory

    def on_interaction(self, callback: Callable[[InteractionEvent], None]) -> None:
        """Register a callback for every attempted interaction."""
        self._on_interaction.append(callback)

    def on_step(self, callback: Callable[[SimulationState, OpinionSnapshot], None]) -> None:
        """Register a callback for step completion."""
        self._on_step.append(callback)

    def run(self) -> Trajectory:
        """
        Run the simulation to completion.

        Returns the trajectory, which holds between 1 and max_steps
        snapshots.

        Raises:
            SimulationError: If the engine has already been run.
        """
        if self._state.phase != SimulationPhase.SETUP:
            raise SimulationError("a simulation engine can only be run once")

        self._state.phase = SimulationPhase.RUNNING
        logger.info(
            "Starting run: %d agents, %d edges, seed=%d",
            len(self._pool), self._pool.graph.edge_count, self._state.seed,
        )

        while self._should_continue():
            self._run_step()

        if self._state.stationary >= self.config.min_stationary:
            self._state.stop_reason = StopReason.CONVERGED_STATIONARY
        else:
            self._state.stop_reason = StopReason.STEP_BUDGET_EXHAUSTED

        self._state.phase = SimulationPhase.STOPPED
        self._trajectory.stop_reason = self._state.stop_reason

        logger.info(
            "Run stopped after %d steps: %s",
            self._state.steps_completed, self._state.stop_reason.value,
        )
        return self._trajectory

    def _should_continue(self) -> bool:
        return (
            self._state.step <= self.config.max_steps
            and self._state.stationary < self.config.min_stationary
        )

    def _run_step(self) -> None:
        """Execute a single simulation step."""
        step = self._state.step
        logger.debug("At step %d, stationary=%d", step, self._state.stationary)

        self._pool.begin_step()
        events = self._rule.step(self._pool, step)
        self._pool.commit()

        changed = self._detector.changed(self._pool)
        if changed:
            self._state.stationary = 0
        else:
            self._state.stationary += 1

        self._state.changed = changed
        self._state.max_delta = self._detector.max_delta(self._pool)
        self._state.total_interactions += len(events)
        self._state.applied_interactions += sum(1 for e in events if e.applied)

        snapshot = OpinionSnapshot(
            step=step,
            opinions=self._pool.opinions(),
            changed=changed,
            stationary_count=self._state.stationary,
        )
        self._trajectory.append(snapshot)
        self._state.step += 1

        for event in events:
            for callback in self._on_interaction:
                callback(event)

        for callback in self._on_step:
            callback(self._state, snapshot)

    def export_state(self) -> Dict[str, Any]:
        """Export current simulation state for reporting."""
        return {
            "phase": self._state.phase.value,
            "steps_completed": self._state.steps_completed,
            "stationary": self._state.stationary,
            "total_interactions": self._state.total_interactions,
            "applied_interactions": self._state.applied_interactions,
            "stop_reason": self._state.stop_reason.value if self._state.stop_reason else None,
            "seed": self._state.seed,
            "agent_count": len(self._pool),
            "edge_count": self._pool.graph.edge_count,
            "isolated_count": len(self._pool.graph.isolated_nodes()),
        }

    def __repr__(self) -> str:
        return f"SimulationEngine(agents={len(self._pool)}, phase={self._state.phase.value})"


def run_simulation(
    n: int,
    edge_probability: float,
    confidence_threshold: float,
    adaptation_rate: float,
    num_update_nodes: int,
    max_steps: int,
    min_stationary: int,
    seed: int,
    epsilon: float = DEFAULT_EPSILON,
) -> Trajectory:
    """
    Run one simulation and return its trajectory.

    Raises:
        ConfigurationError: If any parameter is out of range. No state is
            built in that case.
    """
    config = SimulationConfig(
        num_agents=n,
        edge_probability=edge_probability,
        confidence_threshold=confidence_threshold,
        adaptation_rate=adaptation_rate,
        num_update_nodes=num_update_nodes,
        max_steps=max_steps,
        min_stationary=min_stationary,
        epsilon=epsilon,
        seed=seed,
    )
    return SimulationEngine(config).run()

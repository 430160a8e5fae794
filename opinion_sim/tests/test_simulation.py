"""Tests for simulation engine and trajectory modules."""

import pytest

from opinion_sim import run_simulation
from opinion_sim.agents.agent import AgentPool
from opinion_sim.exceptions import ConfigurationError, SimulationError
from opinion_sim.network.graph import SocialGraph
from opinion_sim.simulation.engine import (
    SimulationEngine,
    SimulationConfig,
    SimulationPhase,
)
from opinion_sim.simulation.trajectory import OpinionSnapshot, StopReason, Trajectory


def pair_pool(opinions=(0.2, 0.8)):
    graph = SocialGraph(2)
    graph.add_edge(0, 1)
    return AgentPool.from_opinions(list(opinions), graph)


class TestSimulationConfig:
    """Tests for SimulationConfig validation."""

    def test_defaults_are_valid(self):
        config = SimulationConfig()
        config.validate()

        assert config.num_agents == 100
        assert config.edge_probability == 0.05
        assert config.confidence_threshold == 0.3
        assert config.adaptation_rate == 0.1
        assert config.num_update_nodes == 1
        assert config.max_steps == 6000
        assert config.min_stationary == 100
        assert config.epsilon == 1e-8

    @pytest.mark.parametrize("overrides", [
        {"num_agents": 0},
        {"num_agents": 5, "num_update_nodes": 6},
        {"num_update_nodes": 0},
        {"edge_probability": -0.01},
        {"edge_probability": 1.01},
        {"confidence_threshold": -0.5},
        {"adaptation_rate": 0.0},
        {"adaptation_rate": 1.2},
        {"max_steps": 0},
        {"min_stationary": 0},
        {"epsilon": -1e-9},
        {"epsilon": float("nan")},
        {"confidence_threshold": float("nan")},
        {"num_agents": 10.5},
        {"seed": "abc"},
    ])
    def test_invalid_configuration(self, overrides):
        config = SimulationConfig(**overrides)

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_engine_rejects_before_building(self):
        with pytest.raises(ConfigurationError):
            SimulationEngine(SimulationConfig(num_agents=3, num_update_nodes=4))

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SimulationConfig(max_steps=-1).validate()

    def test_to_dict(self):
        exported = SimulationConfig(seed=3).to_dict()

        assert exported["seed"] == 3
        assert exported["num_agents"] == 100


class TestSimulationEngine:
    """Tests for SimulationEngine class."""

    @pytest.fixture
    def config(self):
        return SimulationConfig(
            num_agents=30,
            edge_probability=0.2,
            confidence_threshold=0.5,
            adaptation_rate=0.3,
            num_update_nodes=5,
            max_steps=200,
            min_stationary=20,
            seed=42,
        )

    def test_run_returns_trajectory(self, config):
        engine = SimulationEngine(config)

        trajectory = engine.run()

        assert isinstance(trajectory, Trajectory)
        assert 1 <= len(trajectory) <= config.max_steps
        assert engine.state.phase == SimulationPhase.STOPPED
        assert trajectory.stop_reason == engine.state.stop_reason

    def test_snapshot_steps_are_sequential(self, config):
        trajectory = SimulationEngine(config).run()

        assert [s.step for s in trajectory] == list(range(1, len(trajectory) + 1))
        assert all(len(s) == config.num_agents for s in trajectory)

    def test_run_only_once(self, config):
        engine = SimulationEngine(config)
        engine.run()

        with pytest.raises(SimulationError):
            engine.run()

    def test_step_budget_exhausted(self):
        config = SimulationConfig(
            num_agents=50,
            edge_probability=0.3,
            confidence_threshold=1.0,
            adaptation_rate=0.1,
            num_update_nodes=10,
            max_steps=5,
            min_stationary=100,
            seed=1,
        )

        trajectory = SimulationEngine(config).run()

        assert len(trajectory) == 5
        assert trajectory.stop_reason == StopReason.STEP_BUDGET_EXHAUSTED
        assert not trajectory.converged

    @pytest.mark.parametrize("max_steps", [1, 7, 50])
    def test_trajectory_never_exceeds_budget(self, max_steps):
        config = SimulationConfig(
            num_agents=20,
            edge_probability=0.5,
            confidence_threshold=0.4,
            num_update_nodes=4,
            max_steps=max_steps,
            min_stationary=1000,
            seed=max_steps,
        )

        assert len(SimulationEngine(config).run()) == max_steps

    def test_convergence_wins_on_last_budgeted_step(self):
        config = SimulationConfig(
            num_agents=10,
            edge_probability=0.0,
            max_steps=3,
            min_stationary=3,
            seed=0,
        )

        trajectory = SimulationEngine(config).run()

        assert len(trajectory) == 3
        assert trajectory.stop_reason == StopReason.CONVERGED_STATIONARY

    def test_stationary_counter_resets_on_change(self):
        trajectory = SimulationEngine(
            SimulationConfig(num_agents=2, edge_probability=1.0, confidence_threshold=1.0,
                             adaptation_rate=0.5, max_steps=20, min_stationary=4, seed=5),
            pool=pair_pool(),
        ).run()

        assert trajectory[0].changed
        assert trajectory[0].stationary_count == 0
        assert [s.stationary_count for s in trajectory[1:]] == [1, 2, 3, 4]

    def test_isolated_agents_never_change(self):
        graph = SocialGraph(5)
        graph.add_edge(0, 1)
        graph.add_edge(1, 2)
        pool = AgentPool.from_opinions([0.1, 0.3, 0.5, 0.7, 0.9], graph)
        config = SimulationConfig(
            num_agents=5,
            confidence_threshold=1.0,
            adaptation_rate=0.2,
            num_update_nodes=5,
            max_steps=50,
            min_stationary=10,
            seed=3,
        )

        trajectory = SimulationEngine(config, pool=pool).run()

        assert trajectory.agent_series(3) == [0.7] * len(trajectory)
        assert trajectory.agent_series(4) == [0.9] * len(trajectory)

    def test_isolated_agents_in_random_network(self):
        config = SimulationConfig(
            num_agents=40,
            edge_probability=0.05,
            confidence_threshold=0.5,
            adaptation_rate=0.3,
            num_update_nodes=40,
            max_steps=100,
            min_stationary=10,
            seed=8,
        )
        engine = SimulationEngine(config)
        initial = engine.pool.opinions()
        isolated = engine.pool.graph.isolated_nodes()

        trajectory = engine.run()

        for snapshot in trajectory:
            for agent_id in isolated:
                assert snapshot[agent_id] == initial[agent_id]

    def test_same_seed_same_trajectory(self, config):
        a = SimulationEngine(config).run()
        b = SimulationEngine(config).run()

        assert a.to_matrix() == b.to_matrix()

    def test_different_seed_different_trajectory(self, config):
        a = SimulationEngine(config).run()
        config.seed = 43
        b = SimulationEngine(config).run()

        assert a.to_matrix() != b.to_matrix()

    def test_seed_drawn_when_missing(self):
        engine = SimulationEngine(SimulationConfig(num_agents=5, max_steps=3))

        assert isinstance(engine.state.seed, int)
        assert engine.run().seed == engine.state.seed

    def test_pool_size_must_match(self):
        with pytest.raises(ConfigurationError):
            SimulationEngine(SimulationConfig(num_agents=3), pool=pair_pool())

    def test_step_callbacks(self, config):
        engine = SimulationEngine(config)
        steps = []
        engine.on_step(lambda state, snapshot: steps.append((state.steps_completed, snapshot.step)))

        trajectory = engine.run()

        assert len(steps) == len(trajectory)
        assert all(done == step for done, step in steps)

    def test_interaction_callbacks(self, config):
        engine = SimulationEngine(config)
        events = []
        engine.on_interaction(events.append)

        engine.run()

        assert len(events) == engine.state.total_interactions
        assert sum(1 for e in events if e.applied) == engine.state.applied_interactions

    def test_export_state(self, config):
        engine = SimulationEngine(config)
        engine.run()

        exported = engine.export_state()

        assert exported["phase"] == "stopped"
        assert exported["agent_count"] == 30
        assert exported["seed"] == 42
        assert exported["steps_completed"] == len(engine.trajectory)


class TestScenarios:
    """End-to-end runs with known outcomes."""

    def test_two_agents_meet_in_the_middle(self):
        config = SimulationConfig(
            num_agents=2,
            edge_probability=1.0,
            confidence_threshold=1.0,
            adaptation_rate=0.5,
            num_update_nodes=1,
            max_steps=100,
            min_stationary=5,
            seed=11,
        )

        trajectory = SimulationEngine(config, pool=pair_pool()).run()

        first = trajectory.first
        assert first[0] == first[1] == 0.5
        assert trajectory.converged
        assert len(trajectory) == 1 + config.min_stationary

    def test_empty_network_stays_put(self):
        config = SimulationConfig(
            num_agents=50,
            edge_probability=0.0,
            confidence_threshold=0.3,
            adaptation_rate=0.1,
            num_update_nodes=10,
            max_steps=1000,
            min_stationary=25,
            seed=4,
        )
        engine = SimulationEngine(config)
        initial = engine.pool.opinions()

        trajectory = engine.run()

        assert engine.pool.graph.edge_count == 0
        assert len(trajectory) == config.min_stationary
        assert trajectory.converged
        assert all(snapshot.opinions == initial for snapshot in trajectory)

    def test_zero_confidence_never_interacts(self):
        config = SimulationConfig(
            num_agents=30,
            edge_probability=0.5,
            confidence_threshold=0.0,
            adaptation_rate=0.5,
            num_update_nodes=30,
            max_steps=500,
            min_stationary=15,
            seed=6,
        )
        engine = SimulationEngine(config)
        initial = engine.pool.opinions()

        trajectory = engine.run()

        assert engine.state.applied_interactions == 0
        assert len(trajectory) == config.min_stationary
        assert all(snapshot.opinions == initial for snapshot in trajectory)

    def test_run_simulation_entry_point(self):
        trajectory = run_simulation(
            n=25,
            edge_probability=0.3,
            confidence_threshold=0.4,
            adaptation_rate=0.2,
            num_update_nodes=3,
            max_steps=300,
            min_stationary=30,
            seed=2024,
        )

        assert 1 <= len(trajectory) <= 300
        assert trajectory.stop_reason is not None
        assert trajectory.seed == 2024

    def test_run_simulation_rejects_bad_configuration(self):
        with pytest.raises(ConfigurationError):
            run_simulation(
                n=5,
                edge_probability=0.3,
                confidence_threshold=0.4,
                adaptation_rate=0.2,
                num_update_nodes=6,
                max_steps=10,
                min_stationary=3,
                seed=1,
            )


class TestTrajectory:
    """Tests for Trajectory and OpinionSnapshot."""

    @pytest.fixture
    def trajectory(self):
        trajectory = Trajectory(stop_reason=StopReason.CONVERGED_STATIONARY)
        trajectory.append(OpinionSnapshot(step=1, opinions={0: 0.1, 1: 0.9, 2: 0.5}))
        trajectory.append(OpinionSnapshot(step=2, opinions={0: 0.2, 1: 0.8, 2: 0.5},
                                          changed=False, stationary_count=1))
        return trajectory

    def test_first_and_last(self, trajectory):
        assert trajectory.first.step == 1
        assert trajectory.last.step == 2
        assert trajectory.converged

    def test_to_matrix(self, trajectory):
        assert trajectory.to_matrix() == [[0.1, 0.9, 0.5], [0.2, 0.8, 0.5]]

    def test_agent_series(self, trajectory):
        assert trajectory.agent_series(0) == [0.1, 0.2]

    def test_empty_trajectory(self):
        trajectory = Trajectory()

        assert trajectory.first is None
        assert trajectory.last is None
        assert len(trajectory) == 0

    def test_snapshot_statistics(self):
        snapshot = OpinionSnapshot(step=1, opinions={0: 0.0, 1: 1.0})

        assert snapshot.mean_opinion == 0.5
        assert snapshot.opinion_variance == 0.25
        assert snapshot.opinion_range == 1.0

    def test_snapshot_clusters(self):
        snapshot = OpinionSnapshot(step=1, opinions={0: 0.1, 1: 0.15, 2: 0.7, 3: 0.72, 4: 0.2})

        clusters = snapshot.get_clusters(threshold=0.3)

        assert clusters == [{0, 1, 4}, {2, 3}]

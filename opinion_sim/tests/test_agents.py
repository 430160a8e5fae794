"""Tests for agent and agent pool modules."""

import random

import pytest

from opinion_sim.agents.agent import Agent, AgentPool
from opinion_sim.exceptions import ConfigurationError
from opinion_sim.network.graph import SocialGraph


class TestAgent:
    """Tests for Agent dataclass."""

    def test_with_opinion_sets_all_slots(self):
        agent = Agent.with_opinion(3, 0.42)

        assert agent.id == 3
        assert agent.current_opinion == 0.42
        assert agent.previous_opinion == 0.42
        assert agent.proposed_opinion == 0.42
        assert agent.is_isolated

    def test_commit_moves_proposed_into_place(self):
        agent = Agent.with_opinion(0, 0.5)
        agent.begin_step()
        agent.proposed_opinion = 0.7

        agent.commit()

        assert agent.previous_opinion == 0.5
        assert agent.current_opinion == 0.7
        assert agent.step_delta == pytest.approx(0.2)

    def test_begin_step_resets_proposed(self):
        agent = Agent.with_opinion(0, 0.5)
        agent.proposed_opinion = 0.9

        agent.begin_step()

        assert agent.proposed_opinion == 0.5

    def test_opinions_not_clamped(self):
        agent = Agent.with_opinion(0, 0.9)
        agent.proposed_opinion = 1.4
        agent.commit()

        assert agent.current_opinion == 1.4


class TestAgentPool:
    """Tests for AgentPool."""

    def test_initialize_opinions_in_unit_interval(self):
        pool = AgentPool.initialize(200, 0.05, random.Random(42))

        assert len(pool) == 200
        for agent in pool:
            assert 0.0 <= agent.current_opinion < 1.0
            assert agent.current_opinion == agent.previous_opinion == agent.proposed_opinion

    def test_initialize_ids_match_positions(self):
        pool = AgentPool.initialize(10, 0.5, random.Random(1))

        assert [agent.id for agent in pool] == list(range(10))
        assert pool[4].id == 4

    def test_neighbors_follow_graph(self):
        pool = AgentPool.initialize(20, 0.4, random.Random(5))

        for agent in pool:
            assert agent.neighbors == set(pool.graph.neighbors(agent.id))
            for neighbor_id in agent.neighbors:
                assert agent.id in pool[neighbor_id].neighbors

    def test_initialize_reproducible(self):
        a = AgentPool.initialize(30, 0.2, random.Random(9))
        b = AgentPool.initialize(30, 0.2, random.Random(9))

        assert a.opinions() == b.opinions()
        assert a.graph.edges == b.graph.edges

    def test_initialize_rejects_empty(self):
        with pytest.raises(ConfigurationError):
            AgentPool.initialize(0, 0.5, random.Random(0))

    def test_from_opinions(self):
        graph = SocialGraph(3)
        graph.add_edge(0, 2)

        pool = AgentPool.from_opinions([0.1, 0.5, 0.9], graph)

        assert pool.opinions() == {0: 0.1, 1: 0.5, 2: 0.9}
        assert pool[0].neighbors == {2}
        assert pool[1].is_isolated

    def test_neighbors_are_detached_from_graph(self):
        graph = SocialGraph(3)
        graph.add_edge(0, 1)
        pool = AgentPool.from_opinions([0.1, 0.5, 0.9], graph)

        assert isinstance(pool[0].neighbors, frozenset)
        with pytest.raises(AttributeError):
            pool[0].neighbors.add(2)

        graph.add_edge(0, 2)
        assert pool[0].neighbors == {1}
        assert graph.edge_count == 2

    def test_from_opinions_size_mismatch(self):
        with pytest.raises(ConfigurationError):
            AgentPool.from_opinions([0.1, 0.2], SocialGraph(3))

    def test_begin_step_and_commit(self):
        pool = AgentPool.from_opinions([0.1, 0.2], SocialGraph(2))
        pool.begin_step()
        pool[0].proposed_opinion = 0.15

        pool.commit()

        assert pool.opinions() == {0: 0.15, 1: 0.2}
        assert pool[0].previous_opinion == 0.1
        assert pool[1].step_delta == 0.0

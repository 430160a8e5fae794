"""Agents module - Opinion holders and the agent pool."""

from .agent import Agent, AgentPool

__all__ = [
    "Agent",
    "AgentPool",
]

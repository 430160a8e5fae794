"""Network module - Social graph and interaction dynamics."""

from .graph import SocialGraph, RandomGraphBuilder
from .dynamics import OpinionUpdateRule, InteractionEvent

__all__ = [
    "SocialGraph",
    "RandomGraphBuilder",
    "OpinionUpdateRule",
    "InteractionEvent",
]

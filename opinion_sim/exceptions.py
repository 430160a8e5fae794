"""Exception types raised by opinion_sim."""


class OpinionSimError(Exception):
    """Base class for all opinion_sim errors."""


class ConfigurationError(OpinionSimError, ValueError):
    """Raised when simulation parameters are invalid.

    Always raised before any agent or network state is built, so a
    rejected configuration never produces a partial run.
    """


class GraphError(OpinionSimError):
    """Raised when the network builder breaks one of its own invariants."""


class SimulationError(OpinionSimError):
    """Raised when the simulation engine is used incorrectly."""

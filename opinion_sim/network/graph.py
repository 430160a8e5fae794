"""
Social graph for opinion dynamics.

An undirected, simple graph over agent ids 0..N-1 plus the random
builder that wires it up. The topology is fixed once built.
"""

from typing import List, Optional, Set, Tuple
import logging
import random

import numpy as np

from ..exceptions import ConfigurationError, GraphError

logger = logging.getLogger(__name__)


class SocialGraph:
    """
    An undirected graph of who can influence whom.

    Nodes are the integers 0..N-1. Neighbor sets are kept in a list
    indexed by node id, so lookups never depend on dict ordering.
    Edges are symmetric and self loops are rejected.
    """

    def __init__(self, node_count: int):
        if node_count < 0:
            raise GraphError(f"node count must be non-negative, got {node_count}")
        self._adjacency: List[Set[int]] = [set() for _ in range(node_count)]
        self._edge_count = 0

    def _check_node(self, node_id: int) -> None:
        if not 0 <= node_id < len(self._adjacency):
            raise GraphError(f"unknown node {node_id}")

    def add_edge(self, id1: int, id2: int) -> bool:
        """
        Connect two nodes in both directions.

        Returns False if the edge already existed.
        """
        self._check_node(id1)
        self._check_node(id2)
        if id1 == id2:
            raise GraphError(f"self loop on node {id1}")

        if id2 in self._adjacency[id1]:
            return False

        self._adjacency[id1].add(id2)
        self._adjacency[id2].add(id1)
        self._edge_count += 1
        return True

    def has_edge(self, id1: int, id2: int) -> bool:
        """Whether id1 and id2 are connected."""
        self._check_node(id1)
        self._check_node(id2)
        return id2 in self._adjacency[id1]

    def neighbor_set(self, node_id: int) -> Set[int]:
        """The live neighbor set of a node (not a copy)."""
        self._check_node(node_id)
        return self._adjacency[node_id]

    def neighbors(self, node_id: int) -> List[int]:
        """Neighbors of a node in ascending id order."""
        return sorted(self.neighbor_set(node_id))

    def degree(self, node_id: int) -> int:
        """Number of neighbors of a node."""
        return len(self.neighbor_set(node_id))

    @property
    def nodes(self) -> List[int]:
        """All node ids."""
        return list(range(len(self._adjacency)))

    @property
    def edges(self) -> List[Tuple[int, int]]:
        """All edges as (low, high) id pairs, sorted."""
        return [
            (i, j)
            for i, neighbors in enumerate(self._adjacency)
            for j in sorted(neighbors)
            if i < j
        ]

    @property
    def node_count(self) -> int:
        return len(self._adjacency)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    @property
    def max_edges(self) -> int:
        """Edge count of the complete graph on these nodes."""
        n = self.node_count
        return n * (n - 1) // 2

    def density(self) -> float:
        """
        Fraction of possible undirected edges present.

        Density = edges / (n * (n - 1) / 2)
        """
        if self.max_edges == 0:
            return 0.0
        return self._edge_count / self.max_edges

    def average_degree(self) -> float:
        if self.node_count == 0:
            return 0.0
        return 2.0 * self._edge_count / self.node_count

    def isolated_nodes(self) -> List[int]:
        """Nodes with no neighbors. They never change opinion."""
        return [i for i, neighbors in enumerate(self._adjacency) if not neighbors]

    def connected_components(self) -> List[Set[int]]:
        """
        Connected components, found by BFS from the lowest unvisited id.

        Isolated nodes come back as singleton components.
        """
        visited: Set[int] = set()
        components: List[Set[int]] = []

        for start in range(self.node_count):
            if start in visited:
                continue

            component = {start}
            visited.add(start)
            queue = [start]

            while queue:
                current = queue.pop(0)
                for neighbor in self._adjacency[current]:
                    if neighbor not in visited:
                        visited.add(neighbor)
                        component.add(neighbor)
                        queue.append(neighbor)

            components.append(component)

        return components

    @classmethod
    def create_random(
        cls,
        node_count: int,
        edge_probability: float,
        seed: Optional[int] = None,
    ) -> "SocialGraph":
        """
        Create a random graph with a binomially drawn edge count.

        Convenience wrapper around RandomGraphBuilder seeded from one
        integer.
        """
        rng = random.Random(seed)
        return RandomGraphBuilder(rng).build(node_count, edge_probability)

    def __repr__(self) -> str:
        return f"SocialGraph(nodes={self.node_count}, edges={self.edge_count})"


class RandomGraphBuilder:
    """
    Builds edge-independent random graphs.

    The number of edges is drawn once from Binomial(n(n-1)/2, p) on a
    separate numpy stream, then that many distinct unordered pairs are
    sampled by rejection: draw two ids, drop self pairs and pairs that
    are already connected, repeat.
    """

    def __init__(
        self,
        rng: random.Random,
        edge_count_rng: Optional[np.random.Generator] = None,
    ):
        self._rng = rng
        if edge_count_rng is None:
            edge_count_rng = np.random.default_rng(rng.getrandbits(64))
        self._edge_count_rng = edge_count_rng

    def draw_edge_count(self, max_edges: int, edge_probability: float) -> int:
        """Draw the target edge count from Binomial(max_edges, p)."""
        if max_edges == 0:
            return 0
        return int(self._edge_count_rng.binomial(max_edges, edge_probability))

    def build(self, node_count: int, edge_probability: float) -> SocialGraph:
        """
        Build a graph on node_count nodes.

        Args:
            node_count: Number of nodes, at least 1.
            edge_probability: Density parameter in [0, 1].

        Raises:
            ConfigurationError: If the arguments are out of range.
            GraphError: If the drawn edge count exceeds the maximum.
        """
        if node_count < 1:
            raise ConfigurationError(f"node count must be at least 1, got {node_count}")
        if not 0.0 <= edge_probability <= 1.0:
            raise ConfigurationError(
                f"edge probability must be in [0, 1], got {edge_probability}"
            )

        graph = SocialGraph(node_count)
        num_edges = self.draw_edge_count(graph.max_edges, edge_probability)

        if num_edges > graph.max_edges:
            raise GraphError(
                f"drew {num_edges} edges but only {graph.max_edges} are possible"
            )

        while graph.edge_count < num_edges:
            id1 = self._rng.randrange(node_count)
            id2 = self._rng.randrange(node_count)
            if id1 == id2:
                continue
            if graph.add_edge(id1, id2):
                logger.debug("Added link between %d and %d", id1, id2)

        logger.info(
            "Built random network: %d nodes, %d edges (target density %.4f, actual %.4f)",
            node_count,
            graph.edge_count,
            edge_probability,
            graph.density(),
        )
        return graph

"""
Community detection over the similarity graph.

Uses Louvain modularity optimisation from networkx: nodes are greedily
moved into the neighbouring community with the best modularity gain, the
graph is coarsened, and the passes repeat until no gain remains.
``resolution`` scales the null-model term; values above 1 favour smaller
communities, values below 1 larger ones.

The graph must be simple and undirected, which the graph builder
guarantees.
"""

import networkx as nx

from soundmates.core.logging import get_logger

logger = get_logger(__name__)


def detect_communities(
    graph: nx.Graph,
    resolution: float = 1.0,
    seed: int | None = None,
) -> dict[str, int]:
    """
    Assign every node a community id.

    Returns an empty mapping for a graph without edges, or whose edges all
    weigh 0 (possible with a threshold of 0): there is nothing to cluster.

    Ids are opaque and only meaningful within one run. Communities are
    numbered by size (largest first), ties broken by their smallest
    member, so the same partition always gets the same ids.
    """
    if graph.number_of_edges() == 0:
        logger.info("Graph has no edges, skipping community detection")
        return {}
    if graph.size(weight="weight") == 0:
        # Modularity is undefined without edge weight
        logger.info("Graph has only zero-weight edges, skipping community detection")
        return {}

    communities = nx.community.louvain_communities(
        graph,
        weight="weight",
        resolution=resolution,
        seed=seed,
    )
    ordered = sorted(communities, key=lambda members: (-len(members), min(members)))

    assignments = {}
    for community_id, members in enumerate(ordered):
        for user_id in members:
            assignments[user_id] = community_id

    logger.info(
        f"Detected {len(ordered)} communities across {graph.number_of_nodes()} users",
        extra={"extra_fields": {"resolution": resolution, "seed": seed}},
    )
    return assignments

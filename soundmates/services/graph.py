"""Similarity graph construction."""

from collections.abc import Iterable

import networkx as nx

from soundmates.services.similarity import SimilarityRecord


def build_similarity_graph(
    user_ids: Iterable[str],
    records: Iterable[SimilarityRecord],
    threshold: float,
) -> nx.Graph:
    """
    Build an undirected weighted graph of users.

    Every user becomes a node, including users with no qualifying edges.
    A pair becomes an edge when its combined similarity is at least
    ``threshold``; the edge weight is the combined similarity.
    """
    graph = nx.Graph()
    graph.add_nodes_from(user_ids)

    for record in records:
        if record.combined_similarity >= threshold:
            graph.add_edge(
                record.user_a_id,
                record.user_b_id,
                weight=record.combined_similarity,
            )

    return graph


def connected_users(graph: nx.Graph) -> set[str]:
    """Users with at least one edge."""
    return {node for node, degree in graph.degree() if degree > 0}

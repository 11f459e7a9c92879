# pageflow/services/highlight_resolver.py
from collections.abc import Sequence
from pageflow.models.graph import Graph, HighlightOverlay, HighlightSet, edge_id

def resolve_highlight(graph: Graph, path: Sequence[str]) -> HighlightSet:
    """
    Returns the nodes and edges a traversal touches.

    Ids missing from the graph are ignored, and a consecutive pair only
    contributes an edge when that edge really exists, so the result is always
    a subset of the graph. An empty path yields two empty sets.
    """
    if not path:
        return HighlightSet()

    node_ids = graph.node_ids
    real_pairs = graph.edge_pairs
    return HighlightSet(
        node_ids=frozenset(node_id for node_id in path if node_id in node_ids),
        edge_ids=frozenset(
            edge_id(source, target) for source, target in zip(path, path[1:]) if (source, target) in real_pairs
        ),
    )

def build_overlay(graph: Graph, highlight: HighlightSet | None) -> HighlightOverlay:
    """Maps every node and edge to its visual state; nothing is dimmed unless something is highlighted."""
    active = highlight is not None and not highlight.is_empty
    nodes = {}
    for node in graph.nodes:
        if active and node.id in highlight.node_ids:
            nodes[node.id] = "highlighted"
        elif node.is_start:
            nodes[node.id] = "start"
        else:
            nodes[node.id] = "dimmed" if active else "default"

    edges = {}
    for edge in graph.edges:
        if active:
            edges[edge.id] = "highlighted" if edge.id in highlight.edge_ids else "dimmed"
        else:
            edges[edge.id] = "default"
    return HighlightOverlay(nodes=nodes, edges=edges)

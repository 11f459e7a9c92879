# pageflow/services/layout_engine.py
"""
Layered (Sugiyama-style) layout for page-flow graphs.

Phases:
  1. Cycle breaking: depth-first search, back-edges reversed for ranking only.
  2. Ranking: longest path from the source nodes.
  3. Normalization: edges spanning several ranks get one virtual node per
     intermediate rank, so every segment joins adjacent ranks.
  4. Ordering: alternating barycenter sweeps, best ordering kept.
  5. Coordinates: rank on the x axis (left to right), order on the y axis.

The layout depends only on node ids, edge endpoints and their order, never on
labels or attributes.
"""
import logging
from collections.abc import Hashable
import networkx as nx
from pydantic import BaseModel, ConfigDict, Field
from pageflow.core.config import settings
from pageflow.core.exceptions import LayoutInvariantError
from pageflow.models.graph import Edge, EdgeRoute, Graph, Layout, Position

logger = logging.getLogger(__name__)

_ACTIVE = 1
_DONE = 2


class LayoutOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_width: float = Field(default=180, gt=0)
    node_height: float = Field(default=48, gt=0)
    node_sep: float = Field(default=32, ge=0)
    rank_sep: float = Field(default=48, ge=0)
    ordering_passes: int = Field(default=8, ge=0)
    strict: bool = False

    @classmethod
    def from_settings(cls) -> "LayoutOptions":
        return cls(
            node_width=settings.NODE_WIDTH,
            node_height=settings.NODE_HEIGHT,
            node_sep=settings.NODE_SEP,
            rank_sep=settings.RANK_SEP,
            ordering_passes=settings.ORDERING_PASSES,
            strict=settings.STRICT_LAYOUT,
        )


class _VirtualNode(tuple):
    """Placeholder occupying one intermediate rank of a long edge: (source, target, step)."""
    __slots__ = ()


def layout_graph(graph: Graph, options: LayoutOptions | None = None) -> Layout:
    options = options or LayoutOptions.from_settings()
    node_ids, edges = _checked_structure(graph, options.strict)
    if not node_ids:
        return Layout(node_width=options.node_width, node_height=options.node_height)

    start = graph.start_node
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
    for edge in edges:
        adjacency[edge.source].append(edge.target)

    back_edges = find_back_edges(node_ids, adjacency, _dfs_roots(node_ids, edges, start.id if start else None))

    dag = nx.DiGraph()
    dag.add_nodes_from(node_ids)
    for edge in edges:
        if (edge.source, edge.target) in back_edges:
            dag.add_edge(edge.target, edge.source)
        else:
            dag.add_edge(edge.source, edge.target)

    ranks = assign_ranks(dag)
    layers, chains = _normalize(node_ids, edges, back_edges, ranks)
    layers = order_ranks(layers, chains, options.ordering_passes)
    centers, width, height = assign_coordinates(layers, options)

    positions = {
        node_id: Position(x=centers[node_id][0] - options.node_width / 2, y=centers[node_id][1] - options.node_height / 2)
        for node_id in node_ids
    }
    orders = {node: index for layer in layers for index, node in enumerate(layer) if not isinstance(node, _VirtualNode)}

    routes = []
    for edge in edges:
        chain = chains[(edge.source, edge.target)]
        points = [Position(x=centers[node][0], y=centers[node][1]) for node in chain]
        is_reversed = (edge.source, edge.target) in back_edges
        if is_reversed:
            points.reverse()
        routes.append(EdgeRoute(id=edge.id, source=edge.source, target=edge.target, points=points, reversed=is_reversed))

    logger.debug(
        "Laid out %d nodes over %d ranks (%d back-edges)", len(node_ids), len(layers), len(back_edges)
    )
    return Layout(
        positions=positions,
        ranks={node_id: ranks[node_id] for node_id in node_ids},
        orders=orders,
        routes=routes,
        node_width=options.node_width,
        node_height=options.node_height,
        width=width,
        height=height,
    )


def _checked_structure(graph: Graph, strict: bool) -> tuple[list[str], list[Edge]]:
    """Returns unique node ids and the edges that reference them, reporting any breach of the builder's guarantees."""
    node_ids: list[str] = []
    seen: set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            _invariant_breach(f"Duplicate node id {node.id!r}", strict)
            continue
        seen.add(node.id)
        node_ids.append(node.id)

    edges: list[Edge] = []
    seen_pairs: set[tuple[str, str]] = set()
    for edge in graph.edges:
        if edge.source not in seen or edge.target not in seen:
            _invariant_breach(f"Edge {edge.id!r} references a missing node", strict)
        elif edge.source == edge.target:
            _invariant_breach(f"Edge {edge.id!r} is a self-loop", strict)
        elif (edge.source, edge.target) in seen_pairs:
            _invariant_breach(f"Edge {edge.id!r} is duplicated", strict)
        else:
            seen_pairs.add((edge.source, edge.target))
            edges.append(edge)
    return node_ids, edges

def _invariant_breach(message: str, strict: bool) -> None:
    if strict:
        raise LayoutInvariantError(message)
    logger.warning("%s, skipping it", message)


def _dfs_roots(node_ids: list[str], edges: list[Edge], start_id: str | None) -> list[str]:
    """Start node first, then source nodes, then everything else, each group in insertion order."""
    targets = {edge.target for edge in edges}
    roots = [start_id] if start_id is not None else []
    roots.extend(node_id for node_id in node_ids if node_id not in targets and node_id != start_id)
    roots.extend(node_id for node_id in node_ids if node_id in targets and node_id != start_id)
    return roots

def find_back_edges(
    node_ids: list[str], adjacency: dict[str, list[str]], roots: list[str] | None = None
) -> set[tuple[str, str]]:
    """
    Finds the edges that close a cycle during an iterative depth-first search.

    Reversing exactly these edges leaves an acyclic graph.
    """
    state: dict[str, int] = {}
    back_edges: set[tuple[str, str]] = set()
    for root in roots if roots is not None else node_ids:
        if root in state:
            continue
        state[root] = _ACTIVE
        stack = [(root, iter(adjacency.get(root, ())))]
        while stack:
            node, successors = stack[-1]
            for successor in successors:
                successor_state = state.get(successor)
                if successor_state is None:
                    state[successor] = _ACTIVE
                    stack.append((successor, iter(adjacency.get(successor, ()))))
                    break
                if successor_state == _ACTIVE:
                    back_edges.add((node, successor))
            else:
                state[node] = _DONE
                stack.pop()
    return back_edges

def assign_ranks(dag: nx.DiGraph) -> dict[str, int]:
    """Longest-path ranking: sources sit on rank 0 and every edge points to a higher rank."""
    ranks = {node: 0 for node in dag.nodes}
    for node in nx.topological_sort(dag):
        for successor in dag.successors(node):
            if ranks[successor] < ranks[node] + 1:
                ranks[successor] = ranks[node] + 1
    return ranks


def _normalize(
    node_ids: list[str], edges: list[Edge], back_edges: set[tuple[str, str]], ranks: dict[str, int]
) -> tuple[list[list[Hashable]], dict[tuple[str, str], list[Hashable]]]:
    """Groups nodes by rank and splits long edges into chains of adjacent-rank segments."""
    layer_count = max(ranks.values()) + 1
    layers: list[list[Hashable]] = [[] for _ in range(layer_count)]
    for node_id in node_ids:
        layers[ranks[node_id]].append(node_id)

    chains: dict[tuple[str, str], list[Hashable]] = {}
    for edge in edges:
        upper, lower = edge.source, edge.target
        if (edge.source, edge.target) in back_edges:
            upper, lower = lower, upper
        chain: list[Hashable] = [upper]
        for step, rank in enumerate(range(ranks[upper] + 1, ranks[lower])):
            virtual = _VirtualNode((edge.source, edge.target, step))
            layers[rank].append(virtual)
            chain.append(virtual)
        chain.append(lower)
        chains[(edge.source, edge.target)] = chain
    return layers, chains


def _segments(chains: dict[tuple[str, str], list[Hashable]]) -> tuple[dict[Hashable, list[Hashable]], dict[Hashable, list[Hashable]]]:
    successors: dict[Hashable, list[Hashable]] = {}
    predecessors: dict[Hashable, list[Hashable]] = {}
    for chain in chains.values():
        for upper, lower in zip(chain, chain[1:]):
            successors.setdefault(upper, []).append(lower)
            predecessors.setdefault(lower, []).append(upper)
    return successors, predecessors

def order_ranks(
    layers: list[list[Hashable]], chains: dict[tuple[str, str], list[Hashable]], passes: int = 8
) -> list[list[Hashable]]:
    """
    Reduces crossings with alternating barycenter sweeps.

    Each pass sweeps left to right using predecessor positions, then right to
    left using successor positions. The best ordering seen is returned; the
    loop stops early once a pass no longer improves on it. Nodes without
    neighbours in the reference rank keep their current slot, and ties fall
    back to the current slot, so the result is deterministic.
    """
    successors, predecessors = _segments(chains)
    ordering = [list(layer) for layer in layers]
    best = [list(layer) for layer in ordering]
    best_crossings = count_crossings(ordering, successors)

    for _ in range(passes):
        if best_crossings == 0:
            break
        for index in range(1, len(ordering)):
            _sort_by_barycenter(ordering[index], ordering[index - 1], predecessors)
        for index in range(len(ordering) - 2, -1, -1):
            _sort_by_barycenter(ordering[index], ordering[index + 1], successors)

        crossings = count_crossings(ordering, successors)
        if crossings >= best_crossings:
            break
        best = [list(layer) for layer in ordering]
        best_crossings = crossings

    return best

def _sort_by_barycenter(layer: list[Hashable], reference: list[Hashable], neighbours: dict[Hashable, list[Hashable]]) -> None:
    reference_slot = {node: slot for slot, node in enumerate(reference)}
    current_slot = {node: slot for slot, node in enumerate(layer)}

    def key(node: Hashable) -> tuple[float, int]:
        slots = [reference_slot[other] for other in neighbours.get(node, ()) if other in reference_slot]
        barycenter = sum(slots) / len(slots) if slots else float(current_slot[node])
        return barycenter, current_slot[node]

    layer.sort(key=key)

def count_crossings(ordering: list[list[Hashable]], successors: dict[Hashable, list[Hashable]]) -> int:
    """Counts pairwise segment crossings between each pair of adjacent ranks."""
    total = 0
    for index in range(len(ordering) - 1):
        lower_slot = {node: slot for slot, node in enumerate(ordering[index + 1])}
        segments = [
            (upper_slot, lower_slot[other])
            for upper_slot, node in enumerate(ordering[index])
            for other in successors.get(node, ())
            if other in lower_slot
        ]
        for i, (a_upper, a_lower) in enumerate(segments):
            for b_upper, b_lower in segments[i + 1:]:
                if (a_upper - b_upper) * (a_lower - b_lower) < 0:
                    total += 1
    return total


def assign_coordinates(
    layers: list[list[Hashable]], options: LayoutOptions
) -> tuple[dict[Hashable, tuple[float, float]], float, float]:
    """
    Returns the centre of every slot plus the canvas extent.

    Ranks advance along x by node_width + rank_sep. Inside a rank, real nodes
    take node_height and virtual nodes take no height; consecutive slots are
    separated by node_sep and each rank is centred on the tallest one.
    """
    def extent(node: Hashable) -> float:
        return 0 if isinstance(node, _VirtualNode) else options.node_height

    spans = [
        sum(extent(node) for node in layer) + options.node_sep * max(len(layer) - 1, 0)
        for layer in layers
    ]
    height = max(spans, default=0)

    centers: dict[Hashable, tuple[float, float]] = {}
    for rank, layer in enumerate(layers):
        x = rank * (options.node_width + options.rank_sep) + options.node_width / 2
        y = (height - spans[rank]) / 2
        for node in layer:
            centers[node] = (x, y + extent(node) / 2)
            y += extent(node) + options.node_sep

    width = len(layers) * options.node_width + max(len(layers) - 1, 0) * options.rank_sep if layers else 0
    return centers, width, height

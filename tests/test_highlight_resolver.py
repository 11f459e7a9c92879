from itertools import product

from pageflow.models.graph import HighlightSet
from pageflow.services.graph_builder import build_graph
from pageflow.services.highlight_resolver import build_overlay, resolve_highlight


def diamond():
    return build_graph([
        {"id": "T1", "steps": [{"page": "A"}, {"page": "B"}, {"page": "C"}]},
        {"id": "T2", "steps": [{"page": "A"}, {"page": "D"}, {"page": "C"}]},
    ])


def test_path_highlights_its_nodes_and_edges():
    highlight = resolve_highlight(diamond(), ["A", "B", "C"])

    assert highlight.node_ids == {"A", "B", "C"}
    assert highlight.edge_ids == {"A->B", "B->C"}


def test_empty_path_highlights_nothing():
    highlight = resolve_highlight(diamond(), [])

    assert highlight.node_ids == set()
    assert highlight.edge_ids == set()
    assert highlight.is_empty


def test_unknown_ids_and_missing_edges_are_ignored():
    highlight = resolve_highlight(diamond(), ["A", "GHOST", "C", "B"])

    assert highlight.node_ids == {"A", "B", "C"}
    # A->GHOST, GHOST->C and C->B are not edges of the graph
    assert highlight.edge_ids == set()


def test_highlight_is_always_a_subset_of_the_graph():
    graph = diamond()
    candidates = ["A", "B", "C", "D", "X"]

    for path in product(candidates, repeat=3):
        highlight = resolve_highlight(graph, list(path))
        assert highlight.node_ids <= graph.node_ids
        assert highlight.edge_ids <= graph.edge_ids


def test_edge_is_matched_by_its_endpoints_not_its_id():
    graph = build_graph({
        "nodes": [{"id": "a->b"}, {"id": "c"}, {"id": "a"}, {"id": "b->c"}],
        "edges": [{"source": "a", "target": "b->c"}],
    })

    assert resolve_highlight(graph, ["a->b", "c"]).edge_ids == set()
    assert resolve_highlight(graph, ["a", "b->c"]).edge_ids == {"a->b->c"}


def test_resolving_does_not_touch_the_graph():
    graph = diamond()
    before = graph.model_dump()

    resolve_highlight(graph, ["A", "D", "C"])
    build_overlay(graph, resolve_highlight(graph, ["A", "D", "C"]))

    assert graph.model_dump() == before


def test_highlight_serializes_sorted_ids():
    highlight = resolve_highlight(diamond(), ["A", "D", "C"])

    assert highlight.model_dump(by_alias=True) == {"nodeIds": ["A", "C", "D"], "edgeIds": ["A->D", "D->C"]}


def test_overlay_without_selection_is_neutral():
    graph = diamond()

    for highlight in (None, HighlightSet()):
        overlay = build_overlay(graph, highlight)
        assert overlay.nodes == {"A": "start", "B": "default", "C": "default", "D": "default"}
        assert set(overlay.edges.values()) == {"default"}


def test_overlay_dims_everything_off_the_path():
    graph = diamond()
    overlay = build_overlay(graph, resolve_highlight(graph, ["B", "C"]))

    assert overlay.nodes == {"A": "start", "B": "highlighted", "C": "highlighted", "D": "dimmed"}
    assert overlay.edges == {"A->B": "dimmed", "B->C": "highlighted", "A->D": "dimmed", "D->C": "dimmed"}


def test_start_node_on_the_path_reads_as_highlighted():
    graph = diamond()
    overlay = build_overlay(graph, resolve_highlight(graph, ["A", "B"]))

    assert overlay.nodes["A"] == "highlighted"

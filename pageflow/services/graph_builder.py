# pageflow/services/graph_builder.py
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any
from pydantic import ValidationError
from pageflow.models.graph import (
    Edge,
    EdgeRecord,
    Graph,
    GraphRecord,
    Node,
    NodeRecord,
    Step,
    TestCase,
    edge_id,
)

logger = logging.getLogger(__name__)

_ENTRY_TYPES = {"entry", "entry_point", "start"}
_ENTRY_FLAGS = ("entryPoint", "entry_point", "isEntryPoint", "isStart", "is_start")
_GRAPH_METADATA_KEYS = ("environment", "persona", "version")


def build_graph(source: Any) -> Graph:
    """
    Folds a graph source into a canonical Graph.

    A mapping with a "nodes" key (or a GraphRecord) is read as an explicit
    node/edge record; any other sequence is read as a list of test cases.
    Never raises: unusable entries are dropped and an unusable source yields
    an empty graph.
    """
    if isinstance(source, GraphRecord) or (isinstance(source, Mapping) and "nodes" in source):
        return build_from_record(source)
    if isinstance(source, Sequence) and not isinstance(source, (str, bytes)):
        return build_from_test_cases(source)
    logger.warning("Unsupported graph source of type %s, returning an empty graph", type(source).__name__)
    return Graph()


# --- Variant A: test case traces ---

def coerce_test_case(raw: Any) -> TestCase | None:
    """Validates one test case, dropping steps that cannot be read. Returns None if the case itself is unusable."""
    if isinstance(raw, TestCase):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug("Dropping test case that is not a mapping: %r", raw)
        return None

    steps = []
    raw_steps = raw.get("steps")
    for raw_step in raw_steps if isinstance(raw_steps, list) else []:
        try:
            steps.append(Step.model_validate(raw_step))
        except ValidationError as exc:
            logger.debug("Dropping step %r in test case %r: %s", raw_step, raw.get("id"), exc.error_count())

    try:
        return TestCase.model_validate({**raw, "steps": steps})
    except ValidationError as exc:
        logger.debug("Dropping test case %r: %s", raw.get("id"), exc.error_count())
        return None

def _page_changes(case: TestCase) -> Iterator[Step]:
    """Yields the steps where the page differs from the previous step."""
    previous_page = None
    for step in case.steps:
        if step.page != previous_page:
            yield step
        previous_page = step.page

def trace_path(case: TestCase | Mapping[str, Any]) -> list[str]:
    """Returns the pages a test case visits, with consecutive repeats coalesced."""
    test_case = coerce_test_case(case)
    if test_case is None:
        return []
    return [step.page for step in _page_changes(test_case)]

def case_key(case: TestCase, position: int) -> str:
    """The id a test case is known by: its own id, or "#<position>" in the input list when it has none."""
    return case.id or f"#{position}"

def build_from_test_cases(cases: Iterable[Any]) -> Graph:
    pages: dict[str, list[str]] = {}
    transitions: dict[tuple[str, str], dict[str, Any]] = {}
    start_page = None

    for position, case in enumerate(map(coerce_test_case, cases)):
        if case is None:
            continue
        key = case_key(case, position)
        previous = None
        for step in _page_changes(case):
            if start_page is None:
                start_page = step.page
            _append_unique(pages.setdefault(step.page, []), key)

            if previous is not None:
                transition = transitions.setdefault((previous.page, step.page), {
                    "label": step.action or None,
                    "actions": [],
                    "testCaseIds": [],
                })
                if step.action:
                    _append_unique(transition["actions"], step.action)
                _append_unique(transition["testCaseIds"], key)
            previous = step

    nodes = [
        Node(id=page, label=page, attributes={"testCaseIds": case_ids}, is_start=page == start_page)
        for page, case_ids in pages.items()
    ]
    edges = [
        Edge(
            id=edge_id(source, target),
            source=source,
            target=target,
            label=transition["label"],
            attributes={"actions": transition["actions"], "testCaseIds": transition["testCaseIds"]},
        )
        for (source, target), transition in transitions.items()
    ]
    logger.debug("Built graph from test cases: %d nodes, %d edges", len(nodes), len(edges))
    return Graph(nodes=nodes, edges=edges)


# --- Variant B: explicit node/edge record ---

def build_from_record(record: GraphRecord | Mapping[str, Any]) -> Graph:
    try:
        graph_record = record if isinstance(record, GraphRecord) else GraphRecord.model_validate(record)
    except ValidationError as exc:
        logger.warning("Graph record is unusable (%d validation errors), returning an empty graph", exc.error_count())
        return Graph()

    nodes: dict[str, dict[str, Any]] = {}
    for raw_node in graph_record.nodes:
        node = _validate(NodeRecord, raw_node)
        if node is None or not node.id:
            continue
        attributes = _record_attributes(node, "type")
        if node.id in nodes:
            _merge_first_write_wins(nodes[node.id]["attributes"], attributes)
            continue
        nodes[node.id] = {"label": node.label or node.id, "attributes": attributes}

    edges: dict[tuple[str, str], dict[str, Any]] = {}
    for raw_edge in graph_record.edges:
        edge = _validate(EdgeRecord, raw_edge)
        if edge is None:
            continue
        if edge.source not in nodes or edge.target not in nodes:
            logger.debug("Dropping edge %s with a dangling endpoint", edge_id(edge.source, edge.target))
            continue
        if edge.source == edge.target:
            continue
        pair = (edge.source, edge.target)
        attributes = _record_attributes(edge, "conditions")
        if pair in edges:
            existing = edges[pair]
            existing["label"] = existing["label"] or edge.label
            _merge_first_write_wins(existing["attributes"], attributes)
            continue
        edges[pair] = {"label": edge.label, "attributes": attributes}

    start_id = next((node_id for node_id, data in nodes.items() if _is_entry_point(data["attributes"])), None)
    if start_id is None:
        start_id = next(iter(nodes), None)

    metadata = {key: getattr(graph_record, key) for key in _GRAPH_METADATA_KEYS if getattr(graph_record, key) is not None}
    metadata.update(graph_record.model_extra or {})

    return Graph(
        nodes=[
            Node(id=node_id, label=data["label"], attributes=data["attributes"], is_start=node_id == start_id)
            for node_id, data in nodes.items()
        ],
        edges=[
            Edge(id=edge_id(source, target), source=source, target=target, **data)
            for (source, target), data in edges.items()
        ],
        metadata=metadata,
    )

def _validate(model, raw: Any):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Dropping %s entry %r: %d validation errors", model.__name__, raw, exc.error_count())
        return None

def _record_attributes(record: NodeRecord | EdgeRecord, field_name: str) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    value = getattr(record, field_name)
    if value is not None:
        attributes[field_name] = value
    attributes.update(record.model_extra or {})
    return attributes

def _merge_first_write_wins(target: dict[str, Any], incoming: dict[str, Any]) -> None:
    for key, value in incoming.items():
        target.setdefault(key, value)

def _is_entry_point(attributes: Mapping[str, Any]) -> bool:
    node_type = attributes.get("type")
    if isinstance(node_type, str) and node_type.lower() in _ENTRY_TYPES:
        return True
    return any(attributes.get(flag) is True for flag in _ENTRY_FLAGS)

def _append_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)

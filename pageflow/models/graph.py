# pageflow/models/graph.py
from functools import cached_property
from typing import Annotated, Any, Literal
from pydantic import BaseModel, ConfigDict, Field, ValidationError, WrapValidator, field_serializer
from pydantic.alias_generators import to_camel

EDGE_ID_SEPARATOR = "->"

def edge_id(source: str, target: str) -> str:
    """
    Canonical edge identity shared by the builder, the layout engine and the highlight resolver.

    Node ids containing the separator can collide: ("a->b", "c") and
    ("a", "b->c") both map to "a->b->c". Structural checks therefore compare
    (source, target) pairs, and the id is only used for display and lookup.
    """
    return f"{source}{EDGE_ID_SEPARATOR}{target}"


class _ViewModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Node(_ViewModel):
    id: str
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    is_start: bool = False

class Edge(_ViewModel):
    id: str
    source: str
    target: str
    label: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)

class Graph(_ViewModel):
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def start_node(self) -> Node | None:
        return next((node for node in self.nodes if node.is_start), None)

    @cached_property
    def node_ids(self) -> frozenset[str]:
        return frozenset(node.id for node in self.nodes)

    @cached_property
    def edge_ids(self) -> frozenset[str]:
        return frozenset(edge.id for edge in self.edges)

    @cached_property
    def edge_pairs(self) -> frozenset[tuple[str, str]]:
        return frozenset((edge.source, edge.target) for edge in self.edges)

    def get_node(self, node_id: str) -> Node | None:
        return next((node for node in self.nodes if node.id == node_id), None)


class Position(_ViewModel):
    x: float
    y: float

class EdgeRoute(_ViewModel):
    """Polyline for one edge: source centre, bend points, target centre."""
    id: str
    source: str
    target: str
    points: list[Position] = Field(default_factory=list)
    reversed: bool = False

class Layout(_ViewModel):
    """Geometry computed for a graph. Positions are top-left anchors of node_width x node_height boxes."""
    positions: dict[str, Position] = Field(default_factory=dict)
    ranks: dict[str, int] = Field(default_factory=dict)
    orders: dict[str, int] = Field(default_factory=dict)
    routes: list[EdgeRoute] = Field(default_factory=list)
    node_width: float
    node_height: float
    width: float = 0
    height: float = 0

class LaidOutGraph(_ViewModel):
    graph: Graph
    layout: Layout


class HighlightSet(_ViewModel):
    node_ids: frozenset[str] = Field(default_factory=frozenset)
    edge_ids: frozenset[str] = Field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.node_ids and not self.edge_ids

    @field_serializer("node_ids", "edge_ids")
    def _serialize_ids(self, ids: frozenset[str]) -> list[str]:
        return sorted(ids)

NodeState = Literal["start", "highlighted", "dimmed", "default"]
EdgeState = Literal["highlighted", "dimmed", "default"]

class HighlightOverlay(_ViewModel):
    nodes: dict[str, NodeState] = Field(default_factory=dict)
    edges: dict[str, EdgeState] = Field(default_factory=dict)


# --- Builder input schemas ---

def _none_if_invalid(value: Any, handler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None

# Display-only fields: an unreadable value is discarded, never the whole entry.
OptionalStr = Annotated[str | None, WrapValidator(_none_if_invalid)]
OptionalInt = Annotated[int | None, WrapValidator(_none_if_invalid)]

class Step(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    index: OptionalInt = None
    page: str = Field(min_length=1)
    action: OptionalStr = None

class TestCase(BaseModel):
    """One recorded test run: an ordered list of steps across pages."""
    __test__ = False
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: OptionalStr = None
    name: OptionalStr = None
    steps: list[Step] = Field(default_factory=list)

class NodeRecord(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    label: OptionalStr = None
    type: Any = None

class EdgeRecord(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    source: str
    target: str
    label: OptionalStr = None
    conditions: Any = None

class GraphRecord(BaseModel):
    """Explicit node/edge export, e.g. the output of a UI state-machine discovery run."""
    model_config = ConfigDict(extra="allow")

    nodes: list[Any] = Field(default_factory=list)
    edges: list[Any] = Field(default_factory=list)
    environment: Any = None
    persona: Any = None
    version: Any = None

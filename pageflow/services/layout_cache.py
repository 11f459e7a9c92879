# pageflow/services/layout_cache.py
import hashlib
import json
import logging
from collections import OrderedDict
from pageflow.models.graph import Graph, Layout
from pageflow.services.layout_engine import LayoutOptions, layout_graph

logger = logging.getLogger(__name__)

def graph_fingerprint(graph: Graph, options: LayoutOptions) -> str:
    """Hashes everything the layout depends on: node ids, start node, edge endpoints (in order) and options."""
    start = graph.start_node
    payload = {
        "nodes": [node.id for node in graph.nodes],
        "start": start.id if start else None,
        "edges": [[edge.source, edge.target] for edge in graph.edges],
        "options": options.model_dump(),
    }
    return hashlib.sha256(json.dumps(payload, separators=(",", ":")).encode("utf-8")).hexdigest()

class LayoutCache:
    """
    Bounded LRU memo of layouts keyed by graph structure.

    Layout is a pure function of structure, so a hit is safe to reuse. Every
    call hands back a deep copy; callers never share the cached instance.
    """
    def __init__(self, max_size: int = 64):
        self.max_size = max_size
        self._entries: OrderedDict[str, Layout] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, graph: Graph, options: LayoutOptions | None = None) -> Layout:
        options = options or LayoutOptions.from_settings()
        key = graph_fingerprint(graph, options)

        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            self._entries.move_to_end(key)
            logger.debug("Layout cache hit for %s", key[:12])
            return cached.model_copy(deep=True)

        self.misses += 1
        layout = layout_graph(graph, options)
        if self.max_size > 0:
            self._entries[key] = layout
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return layout.model_copy(deep=True)

    def clear(self) -> None:
        self._entries.clear()

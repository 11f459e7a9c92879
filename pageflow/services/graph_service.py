# pageflow/services/graph_service.py
import copy
import logging
from collections.abc import Sequence
from typing import Any
from pageflow.core.config import settings
from pageflow.core.exceptions import TestCaseNotFoundException
from pageflow.core.samples import SAMPLE_TEST_CASES
from pageflow.models.graph import Graph, HighlightOverlay, HighlightSet, LaidOutGraph
from pageflow.services.graph_builder import build_graph, case_key, coerce_test_case, trace_path
from pageflow.services.highlight_resolver import build_overlay, resolve_highlight
from pageflow.services.layout_cache import LayoutCache
from pageflow.services.layout_engine import LayoutOptions

logger = logging.getLogger(__name__)

class GraphService:
    def __init__(self, layout_cache: LayoutCache | None = None, options: LayoutOptions | None = None):
        self.layout_cache = layout_cache or LayoutCache(max_size=settings.LAYOUT_CACHE_SIZE)
        self.options = options or LayoutOptions.from_settings()

    def load(self, source: Any) -> LaidOutGraph:
        """Builds the canonical graph for a source and lays it out."""
        graph = build_graph(source)
        return LaidOutGraph(graph=graph, layout=self.layout_cache.get_or_compute(graph, self.options))

    def highlight(self, source: Any, path: Sequence[str]) -> tuple[HighlightSet, HighlightOverlay]:
        graph = build_graph(source)
        return self._highlight_graph(graph, path)

    def highlight_test_case(
        self, cases: Sequence[Any], test_case_id: str
    ) -> tuple[list[str], HighlightSet, HighlightOverlay]:
        """Highlights the route one test case took through the graph built from all cases."""
        selected = next(
            (
                case
                for position, case in enumerate(map(coerce_test_case, cases))
                if case is not None and case_key(case, position) == test_case_id
            ),
            None,
        )
        if selected is None:
            raise TestCaseNotFoundException(f"Test case '{test_case_id}' not found.")

        path = trace_path(selected)
        highlight, overlay = self._highlight_graph(build_graph(cases), path)
        return path, highlight, overlay

    def sample(self) -> LaidOutGraph:
        return self.load(sample_test_cases())

    def _highlight_graph(self, graph: Graph, path: Sequence[str]) -> tuple[HighlightSet, HighlightOverlay]:
        highlight = resolve_highlight(graph, path)
        logger.debug("Highlighted %d nodes and %d edges", len(highlight.node_ids), len(highlight.edge_ids))
        return highlight, build_overlay(graph, highlight)

def sample_test_cases() -> list[dict[str, Any]]:
    return copy.deepcopy(SAMPLE_TEST_CASES)

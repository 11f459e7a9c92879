# pageflow/api/router.py
from typing import Any
from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel
from pageflow.core.limiter import HIGHLIGHT_LIMIT, LAYOUT_LIMIT, limiter
from pageflow.models.graph import HighlightOverlay, HighlightSet, LaidOutGraph
from pageflow.services.graph_service import GraphService

router = APIRouter()

graph_service = GraphService()

# --- Request / Response Models ---
class HighlightRequest(BaseModel):
    source: Any
    path: list[str] = []

class TestCaseHighlightRequest(BaseModel):
    __test__ = False

    cases: list[Any]
    test_case_id: str

class HighlightResponse(BaseModel):
    highlight: HighlightSet
    overlay: HighlightOverlay

class TestCaseHighlightResponse(HighlightResponse):
    __test__ = False

    path: list[str]

def get_service() -> GraphService:
    return graph_service

@router.post("/graph/layout", response_model=LaidOutGraph, tags=["Graph"])
@limiter.limit(LAYOUT_LIMIT)
def layout_graph(
    request: Request,
    source: Any = Body(..., description="A list of test cases or a {nodes, edges} graph record."),
    service: GraphService = Depends(get_service)
):
    """Builds the canonical graph for the source and returns it with its layout."""
    return service.load(source)

@router.get("/graph/sample", response_model=LaidOutGraph, tags=["Graph"])
def sample_graph(service: GraphService = Depends(get_service)):
    return service.sample()

@router.post("/graph/highlight", response_model=HighlightResponse, tags=["Highlight"])
@limiter.limit(HIGHLIGHT_LIMIT)
def highlight_path(
    request: Request,
    highlight_request: HighlightRequest,
    service: GraphService = Depends(get_service)
):
    highlight, overlay = service.highlight(highlight_request.source, highlight_request.path)
    return HighlightResponse(highlight=highlight, overlay=overlay)

@router.post("/graph/highlight/test-case", response_model=TestCaseHighlightResponse, tags=["Highlight"])
@limiter.limit(HIGHLIGHT_LIMIT)
def highlight_test_case(
    request: Request,
    highlight_request: TestCaseHighlightRequest,
    service: GraphService = Depends(get_service)
):
    """Highlights the route a single test case exercised. Unknown test case ids yield a 404."""
    path, highlight, overlay = service.highlight_test_case(highlight_request.cases, highlight_request.test_case_id)
    return TestCaseHighlightResponse(path=path, highlight=highlight, overlay=overlay)

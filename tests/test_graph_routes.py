import inspect

from fastapi.testclient import TestClient

from pageflow.main import app

client = TestClient(app)

HEADERS = {"X-User-ID": "user-1"}

TRACES = [
    {"id": "T1", "name": "via B", "steps": [{"index": 1, "page": "A"}, {"index": 2, "page": "B"}, {"index": 3, "page": "C"}]},
    {"id": "T2", "name": "via D", "steps": [{"index": 1, "page": "A"}, {"index": 2, "page": "D"}, {"index": 3, "page": "C"}]},
]


def test_layout_endpoint_returns_graph_and_geometry():
    response = client.post("/graph/layout", json=TRACES, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert [node["id"] for node in body["graph"]["nodes"]] == ["A", "B", "C", "D"]
    assert body["graph"]["nodes"][0]["isStart"] is True
    assert [edge["id"] for edge in body["graph"]["edges"]] == ["A->B", "B->C", "A->D", "D->C"]
    assert set(body["layout"]["positions"]) == {"A", "B", "C", "D"}
    assert body["layout"]["nodeWidth"] == 180
    assert body["layout"]["ranks"]["C"] == 2


def test_layout_endpoint_accepts_graph_record():
    record = {
        "environment": "staging",
        "nodes": [{"id": "Y"}, {"id": "X", "type": "entry"}],
        "edges": [{"source": "X", "target": "Y"}, {"source": "X", "target": "MISSING"}],
    }
    response = client.post("/graph/layout", json=record, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert [node["id"] for node in body["graph"]["nodes"] if node["isStart"]] == ["X"]
    assert [edge["id"] for edge in body["graph"]["edges"]] == ["X->Y"]
    assert body["graph"]["metadata"] == {"environment": "staging"}


def test_layout_endpoint_tolerates_garbage():
    response = client.post("/graph/layout", json="not a graph", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["graph"]["nodes"] == []
    assert response.json()["layout"]["positions"] == {}


def test_highlight_endpoint():
    response = client.post("/graph/highlight", json={"source": TRACES, "path": ["A", "B", "C"]}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["highlight"] == {"nodeIds": ["A", "B", "C"], "edgeIds": ["A->B", "B->C"]}
    assert body["overlay"]["nodes"]["D"] == "dimmed"
    assert body["overlay"]["edges"]["B->C"] == "highlighted"


def test_highlight_test_case_endpoint():
    response = client.post(
        "/graph/highlight/test-case", json={"cases": TRACES, "test_case_id": "T2"}, headers=HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["path"] == ["A", "D", "C"]
    assert body["highlight"]["edgeIds"] == ["A->D", "D->C"]


def test_highlight_unknown_test_case_is_404():
    response = client.post(
        "/graph/highlight/test-case", json={"cases": TRACES, "test_case_id": "T9"}, headers=HEADERS
    )

    assert response.status_code == 404
    assert response.json() == {"message": "Test case 'T9' not found."}


def test_sample_endpoint():
    response = client.get("/graph/sample")

    assert response.status_code == 200
    assert response.json()["graph"]["nodes"][0]["id"] == "/login"


def test_graph_routes_run_in_the_threadpool():
    graph_routes = [route for route in app.routes if getattr(route, "path", "").startswith("/graph")]

    assert len(graph_routes) == 4
    for route in graph_routes:
        assert not inspect.iscoroutinefunction(route.endpoint)

from fastapi.testclient import TestClient

from callorder.main import app


client = TestClient(app)


def test_openapi_contains_expected_paths():
    response = client.get("/openapi.json")
    assert response.status_code == 200
    schema = response.json()
    paths = schema.get("paths", {})

    expected = [
        "/turn",
        "/chat",
        "/sessions",
        "/sessions/{call_id}",
        "/orders/{call_id}",
        "/menu",
        "/metrics",
        "/health",
        "/ready",
    ]

    for path in expected:
        assert path in paths, f"Missing {path} from OpenAPI paths"

    assert "post" in paths["/turn"]
    assert "get" in paths["/orders/{call_id}"]

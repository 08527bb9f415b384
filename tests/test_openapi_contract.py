import json
from pathlib import Path

from fishtrade.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_mutating_routes_document_the_actor_header():
    schema = app.openapi()
    for path, operations in schema["paths"].items():
        for method, operation in operations.items():
            if method not in {"post", "put", "patch", "delete"}:
                continue
            headers = {param["name"] for param in operation.get("parameters", []) if param["in"] == "header"}
            assert "X-Actor-Id" in headers, f"{method.upper()} {path}"

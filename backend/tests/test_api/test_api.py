"""Tests for API endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from mapsight import __version__
from mapsight.main import app
from tests.conftest import EMPTY_SVG, MALFORMED_SVG, ORPHAN_MAP_SVG, SIMPLE_MAP_SVG


client = TestClient(app)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__
    assert data["stages_registered"] == 8


def test_detect_simple_map():
    response = client.post("/api/detect", json={"document": SIMPLE_MAP_SVG})
    assert response.status_code == 200
    data = response.json()
    assert data["meta"] == {"node_count": 3, "root_count": 1}
    assert data["tree"][0]["title"] == "Central Topic"
    assert [c["title"] for c in data["tree"][0]["children"]] == ["Alpha", "Beta"]
    assert data["session_id"]
    assert data["processing_time_ms"] >= 0


def test_detect_empty_scene():
    response = client.post("/api/detect", json={"document": EMPTY_SVG})
    assert response.status_code == 422
    assert response.json()["error"] == "NoScreenContent"


def test_detect_malformed_document():
    response = client.post("/api/detect", json={"document": MALFORMED_SVG})
    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "SceneParseError"
    assert "not well-formed" in data["detail"]


def test_detect_requires_document():
    response = client.post("/api/detect", json={})
    assert response.status_code == 422


def test_debug_snapshot():
    response = client.post("/api/debug", json={"document": ORPHAN_MAP_SVG})
    assert response.status_code == 200
    data = response.json()
    snapshot = data["snapshot"]
    assert data["session_id"]
    assert snapshot["detected_root"] == "node_0"
    assert snapshot["counts"]["nodes"] == 4
    assert snapshot["counts"]["connections"] == 2


def test_extract_with_root_flow():
    session_id = client.post("/api/debug", json={"document": SIMPLE_MAP_SVG}).json()["session_id"]
    response = client.post("/api/extract-with-root", json={"session_id": session_id, "root_id": "node_1"})
    assert response.status_code == 200
    data = response.json()
    assert data["session_id"] == session_id
    assert data["tree"][0]["title"] == "Alpha"
    assert data["meta"]["node_count"] == 3


def test_extract_with_unknown_root():
    session_id = client.post("/api/debug", json={"document": SIMPLE_MAP_SVG}).json()["session_id"]
    response = client.post("/api/extract-with-root", json={"session_id": session_id, "root_id": "node_99"})
    assert response.status_code == 404
    assert response.json() == {"detail": "Selected root node not found: node_99", "error": "RootNotFound"}


def test_extract_with_unknown_session():
    response = client.post("/api/extract-with-root", json={"session_id": "missing", "root_id": "node_0"})
    assert response.status_code == 409
    assert response.json()["error"] == "NoDebugData"

"""
Tests for the Generator API routes.
"""

import json
import pytest
import sys
import os
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

sys.path.insert(
    0, os.path.join(os.path.dirname(__file__), "..", "layers", "generator")
)

from main import app


@pytest.fixture
def client():
    return TestClient(app)


def sse_events(text):
    return [
        json.loads(line[len("data: "):])
        for line in text.splitlines()
        if line.startswith("data: ")
    ]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "generator"}


class TestParseEndpoint:
    def test_parse_success_camel_case(self, client):
        text = json.dumps(
            {
                "message": "ok",
                "files": {"package.json": '{"name":"x","displayName":"X"}', "a.ts": "1"},
                "activationEvents": ["*"],
            }
        )
        response = client.post("/api/generate/parse", json={"text": text})
        assert response.status_code == 200
        body = response.json()
        assert body["files"] == {"package.json": '{"name":"x","displayName":"X"}', "a.ts": "1"}
        assert body["activationEvents"] == ["*"]
        assert body["extractedConfig"]["displayName"] == "X"
        assert body["extractedConfig"]["category"] == "Other"

    def test_parse_failure_422(self, client):
        response = client.post("/api/generate/parse", json={"text": "no payload here"})
        assert response.status_code == 422
        assert "retry" in response.json()["detail"]

    def test_parse_requires_text(self, client):
        response = client.post("/api/generate/parse", json={})
        assert response.status_code == 422


class TestExtractEndpoint:
    def test_extract_partial(self, client):
        text = '{"files": {"a.ts": "done", "src/extension.ts": "import * as vsc'
        response = client.post("/api/generate/extract", json={"text": text})
        assert response.status_code == 200
        assert response.json() == {
            "files": ["a.ts", "src/extension.ts"],
            "currentFile": "src/extension.ts",
            "currentContent": "import * as vsc",
            "completedFiles": {"a.ts": "done"},
        }


class TestStreamEndpoint:
    def test_stream_forwards_engine_events(self, client):
        events = [
            {"event_type": "status", "status": "Starting generation...", "progress": 5, "done": False},
            {"event_type": "complete", "status": "Complete!", "progress": 100, "done": True},
        ]
        captured = {}

        async def fake_generate(request):
            captured["request"] = request
            for event in events:
                yield event

        engine = MagicMock()
        engine.generate = fake_generate

        with patch("api.generator._get_generation_engine", return_value=engine):
            response = client.post(
                "/api/generate/stream",
                json={
                    "prompt": "make a theme",
                    "mode": "add-feature",
                    "config": {"name": "my-theme", "displayName": "My Theme"},
                    "existingFiles": {"a.ts": "x"},
                },
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert sse_events(response.text) == events
        request = captured["request"]
        assert request.mode == "add-feature"
        assert request.config.display_name == "My Theme"
        assert request.existing_files == {"a.ts": "x"}

    def test_stream_rejects_empty_prompt(self, client):
        response = client.post("/api/generate/stream", json={"prompt": ""})
        assert response.status_code == 422

    def test_stream_rejects_unknown_mode(self, client):
        response = client.post("/api/generate/stream", json={"prompt": "x", "mode": "publish"})
        assert response.status_code == 422


class TestValidateEndpoint:
    def test_reports_issues(self, client):
        response = client.post(
            "/api/generate/validate",
            json={"files": {"src/a.ts": "f(", "package.json": "{}", "README.md": "("}},
        )
        assert response.status_code == 200
        assert response.json() == {
            "valid": False,
            "errors": [
                {
                    "file": "src/a.ts",
                    "line": 1,
                    "column": 1,
                    "message": "Unbalanced parentheses: missing 1 closing paren(s)",
                    "severity": "error",
                }
            ],
        }

    def test_valid_files(self, client):
        response = client.post("/api/generate/validate", json={"files": {"a.ts": "f();"}})
        assert response.json() == {"valid": True, "errors": []}

    def test_requires_files(self, client):
        assert client.post("/api/generate/validate", json={}).status_code == 422


class TestPackageEndpoint:
    def test_package_with_default_manifest(self, client):
        response = client.post(
            "/api/generate/package",
            json={
                "config": {"name": "demo", "displayName": "Demo", "publisher": "me"},
                "files": {"src/extension.ts": "export function activate() {}"},
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["packageName"] == "me.demo-0.0.1.vsix"
        assert json.loads(body["files"]["package.json"])["displayName"] == "Demo"

    def test_requires_config(self, client):
        response = client.post("/api/generate/package", json={"files": {}})
        assert response.status_code == 422

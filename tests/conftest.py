"""Shared pytest configuration and fixtures."""

import json
import os
import socket
import sys

import pytest

sys.path.insert(
    0, os.path.join(os.path.dirname(__file__), "..", "layers", "generator")
)

from schemas.models import ExtensionConfig

# Generator URL — override with GENERATOR_URL env var for WSL, remote, etc.
GENERATOR_HOST = os.environ.get("GENERATOR_HOST", "localhost")
GENERATOR_PORT = int(os.environ.get("GENERATOR_PORT", "8005"))
GENERATOR_URL = os.environ.get(
    "GENERATOR_URL", f"http://{GENERATOR_HOST}:{GENERATOR_PORT}"
)


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: live generation against a running generator and its LLM",
    )


def pytest_collection_modifyitems(config, items):
    integration = [item for item in items if "integration" in item.keywords]
    if not integration:
        return
    try:
        with socket.create_connection((GENERATOR_HOST, GENERATOR_PORT), timeout=1.0):
            return
    except OSError:
        pass

    skip = pytest.mark.skip(
        reason=f"Generator not reachable at {GENERATOR_HOST}:{GENERATOR_PORT}"
    )
    for item in integration:
        item.add_marker(skip)


@pytest.fixture
def extension_config():
    """Settings of a typical command extension."""
    return ExtensionConfig(
        name="word-counter",
        display_name="Word Counter",
        description="Counts words in the active editor",
        publisher="acme",
        version="0.1.0",
    )


@pytest.fixture
def model_response():
    """Build the JSON envelope the model is instructed to answer with."""

    def build(files, message="Generated", commands=None, activation_events=None):
        payload = {"message": message, "files": files}
        if commands is not None:
            payload["commands"] = commands
        if activation_events is not None:
            payload["activationEvents"] = activation_events
        return json.dumps(payload)

    return build

"""
Top-level pytest configuration.

Puts the ops/ directory on sys.path so the gateway CLI can be imported
directly by tests that exercise it with fake sessions.
"""

import json
import os
import sys

_HERE = os.path.dirname(__file__)
_OPS_DIR = os.path.abspath(os.path.join(_HERE, os.pardir, 'ops'))
if _OPS_DIR not in sys.path:
    sys.path.insert(0, _OPS_DIR)

import pytest


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        if text is None:
            text = json.dumps(body) if body is not None else ''
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Replays a scripted list of responses (or exceptions) for GET calls."""

    def __init__(self, script):
        self.script = list(script)
        self.urls = []

    def get(self, url, headers=None, params=None):
        self.urls.append(url)
        step = self.script.pop(0) if self.script else FakeResponse(200, {})
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse

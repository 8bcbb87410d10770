"""
Pytest configuration for backend-services tests.

Ensures the backend-services directory is on sys.path so imports like
`from utils...` resolve correctly when tests run from the repo root in CI,
and provides an in-process upstream (httpx.MockTransport) plus an ASGI
client for the gateway app.
"""

# External imports
import json
import os
import sys

# TEST-ONLY configuration - points every upstream at unroutable test hosts
os.environ.setdefault('SCALEUP_API_BASE_URL', 'http://upstream.test/')
os.environ.setdefault('ANALYTICS_BASE_URL', 'http://analytics.test')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('LOG_FORMAT', 'plain')

_HERE = os.path.dirname(__file__)
_PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, os.pardir))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import httpx
import pytest
import pytest_asyncio

from utils.config_util import GatewaySettings

UPSTREAM_BASE = 'http://upstream.test'
ANALYTICS_BASE = 'http://analytics.test'
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


class UpstreamStub:
    """Records every outbound request and answers from a (method, path) table.

    Unregistered routes answer 404 with a JSON body.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict = {}

    def add(self, method: str, path: str, response):
        """``response`` is an httpx.Response or a (sync or async) callable taking the request."""
        self.routes[(method.upper(), path)] = response

    def json(self, method: str, path: str, body, status_code: int = 200):
        self.add(method, path, httpx.Response(status_code, json=body))

    def raw(self, method: str, path: str, content: bytes, status_code: int = 200, content_type: str | None = None):
        headers = {'content-type': content_type} if content_type else {}
        self.add(method, path, httpx.Response(status_code, content=content, headers=headers))

    def handler(self, request: httpx.Request):
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={'detail': 'Not Found'})
        if callable(route):
            return route(request)
        return route

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.calls]

    def json_body(self, index: int = -1):
        return json.loads(self.calls[index].content)


@pytest.fixture
def upstream():
    return UpstreamStub()


@pytest.fixture
def settings():
    return GatewaySettings(
        scaleup_api_base_url=UPSTREAM_BASE + '/',
        analytics_base_url=ANALYTICS_BASE,
        scaleup_upstream_prefix='scaleup2026',
        generate_timeout_seconds=2.0,
        upstream_timeout_seconds=2.0,
        async_generation_remap=True,
        image_proxy_allowed_hosts='images.test,.cdn.test',
    )


@pytest_asyncio.fixture
async def http_client(upstream):
    client = httpx.AsyncClient(transport=upstream.transport())
    yield client
    await client.aclose()


@pytest.fixture
def gateway_app(settings, http_client):
    from scaleup import create_app
    return create_app(settings, http_client=http_client)


@pytest_asyncio.fixture
async def client(gateway_app):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=gateway_app),
        base_url='http://testserver',
    ) as c:
        yield c


@pytest.fixture
def generate_form():
    return {
        'name': 'Asha Menon',
        'email': 'asha@example.com',
        'phone_no': '+919048170077',
        'district': 'Ernakulam',
        'category': 'Student',
        'organization': 'Scaleup',
        'prompt_type': 'professional',
    }


@pytest.fixture
def png_photo():
    return {'photo': ('me.png', PNG_BYTES, 'image/png')}

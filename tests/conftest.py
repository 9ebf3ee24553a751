from pathlib import Path
import json
import sys

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.platform import PlatformClient

PLATFORM_URL = "https://abcd.supabase.co"


class Recorder:
    """MockTransport handler that records requests and answers from a route table.

    Routes map ``(method, path)`` to a response: a status/JSON tuple, a plain
    JSON payload, or a callable taking the request.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route for {request.url.path}"})
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, tuple):
            status, payload = route
            return httpx.Response(status, json=payload)
        return httpx.Response(200, json=route)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request):
        return json.loads(request.content) if request.content else None


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def platform(recorder):
    http = httpx.Client(base_url=PLATFORM_URL, transport=httpx.MockTransport(recorder))
    client = PlatformClient(PLATFORM_URL, "anon-key", http=http)
    yield client
    client.close()

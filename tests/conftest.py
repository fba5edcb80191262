import json
import httpx
import pytest
from tradedesk.core.session import AuthSession, static_token_provider
from tradedesk.main import app
from tradedesk.services.api import BackendClient

BASE_URL = "http://backend.test/api/v1"


def ok(data=None, status=200):
    return status, {"success": True, "data": data}


def fail(error, status=400, **extra):
    return status, {"success": False, "error": error, **extra}


class FakeBackend:
    """Canned responses per (method, path); records every request it sees."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/api/v1", 1)[-1]
        self.requests.append(request)
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"success": False, "error": "Not found"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        status, body = response
        return httpx.Response(status, json=body)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path)]

    def body(self, method, path, index=-1):
        return json.loads(self.calls(method, path)[index].content)


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_client(backend):
    # MockTransport holds no connections, so clients need no closing
    def make(session=None):
        return BackendClient(
            session or AuthSession(static_token_provider("test-token")),
            base_url=BASE_URL,
            transport=httpx.MockTransport(backend),
        )
    return make


@pytest.fixture
def client(make_client):
    return make_client()

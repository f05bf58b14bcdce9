"""Shared fixtures: a fake storefront backend served through httpx.MockTransport."""
import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from backend_client import BackendClient, get_client
from main import app


class FakeBackend:
    """Answers backend calls from a (method, path) -> (status, body) table."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def reply(self, method: str, path: str, data: Any = None, status: int = 200, success: bool = True, message: str = "ok"):
        self.routes[(method, path)] = (status, {"success": success, "message": message, "data": data})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"success": False, "message": f"no route {key}"})
        status, body = self.routes[key]
        return httpx.Response(status, json=body)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def item_doc(**overrides) -> dict:
    doc = {
        "id": "it1",
        "title": "Engraved Photo Frame",
        "price": 1000,
        "category": "Anniversary",
        "description": "Hand-engraved walnut frame",
        "stock": 10,
        "image": "data:image/png;base64,AAAA",
        "imageType": "image/png",
        "discount": 0,
        "isActive": True,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(fake_backend) -> BackendClient:
    return BackendClient("http://backend.test", transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def api(backend):
    app.dependency_overrides[get_client] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_item():
    return item_doc

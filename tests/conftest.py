"""Shared test fixtures for storefront tests."""

import json

import httpx
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from storefront.config import Settings, Source


class UpstreamRecorder:
    """Fake upstream for httpx.MockTransport: records requests, answers from a route table.

    Routes map (method, path) to either a (status, json_body) tuple, a list of
    such tuples consumed in order, or a callable taking the request.
    Unrouted requests answer 200 with an empty object.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(200, json={})
        if callable(route):
            return route(request)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        status, body = route
        return httpx.Response(status, json=body)

    def calls(self):
        return [(request.method, request.url.path) for request in self.requests]

    def json_bodies(self, method=None):
        return [
            json.loads(request.content)
            for request in self.requests
            if request.content and (method is None or request.method == method)
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def config():
    """Settings isolated from the environment."""
    return Settings(
        API_URL="http://gateway.test/api",
        RAILWAY_BASE_URL="http://railway.test",
        ECOM_BASE_URL="http://ecom.test",
        PHONESTORE_BASE_URL="http://phones.test",
        RAILWAY_AUTH_TOKEN=None,
        ECOM_AUTH_TOKEN=None,
        RAILWAY_USER_ID="2",
        RAILWAY_CART_ID="1",
        PHONESTORE_USERNAME="dinh2707",
        RAILWAY_DATABASE_URL=None,
        MICROSERVICE_DATABASE_URL=None,
        PHONESTORE_DATABASE_URL=None,
        CATALOG_SOURCES=[Source.RAILWAY, Source.MICROSERVICE, Source.PHONEWEBSITE],
        CATALOG_ROW_LIMIT=1000,
        ORDER_POLL_INTERVAL_SECONDS=2.0,
        ORDER_POLL_TIMEOUT_SECONDS=120.0,
    )


@pytest.fixture
def upstream():
    return UpstreamRecorder()


@pytest.fixture
def catalog_engine():
    """In-memory SQLite catalog with a products table and an unrelated users table."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT)"))
        connection.execute(text(
            "CREATE TABLE products (id INTEGER PRIMARY KEY, name TEXT NOT NULL, price REAL, image_url TEXT)"
        ))
        connection.execute(text(
            "INSERT INTO products (id, name, price, image_url) VALUES "
            "(1, 'Laptop', 15000000, 'http://img.test/laptop.png'), "
            "(2, 'Mouse', NULL, NULL)"
        ))
    yield engine
    engine.dispose()

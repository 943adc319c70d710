"""
Tests for the gateway HTTP surface.

Proxy routes run against an httpx.MockTransport upstream; catalog routes
read an in-memory SQLite catalog.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.config import get_settings
from storefront.db.engines import DatabaseRegistry, get_database_registry
from storefront.main import app
from storefront.utils.http import get_http_client


@pytest.fixture
def gateway(config, upstream, catalog_engine):
    """TestClient wired to the fake upstream and the SQLite catalog."""
    registry = DatabaseRegistry({"microservice": catalog_engine})

    async def http_client():
        async with upstream.client() as client:
            yield client

    app.dependency_overrides[get_http_client] = http_client
    app.dependency_overrides[get_settings] = lambda: config
    app.dependency_overrides[get_database_registry] = lambda: registry
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


class TestRailwayProxy:
    def test_add_product_forwards_query(self, gateway, upstream):
        upstream.routes[("POST", "/ecom/cart/add-product")] = (200, {"ok": True})

        response = gateway.post("/api/proxy/railway/add-product", params={"userId": "2", "productId": "5", "cartId": "1"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        request = upstream.requests[0]
        assert request.url.host == "railway.test"
        assert dict(request.url.params) == {"userId": "2", "productId": "5"}

    def test_already_in_cart_falls_back_to_increase(self, gateway, upstream):
        upstream.routes[("POST", "/ecom/cart/add-product")] = (502, {"message": "Product already in the cart"})
        upstream.routes[("PUT", "/ecom/cart/increase-productQty/1/5")] = (200, {"quantity": 2})

        response = gateway.post("/api/proxy/railway/add-product", params={"userId": "2", "productId": "5", "cartId": "1"})

        assert response.status_code == 200
        assert response.json() == {"quantity": 2}
        assert upstream.calls()[-1] == ("PUT", "/ecom/cart/increase-productQty/1/5")

    def test_add_product_requires_ids(self, gateway, upstream):
        response = gateway.post("/api/proxy/railway/add-product", params={"userId": "2"})

        assert response.status_code == 400
        assert "error" in response.json()
        assert upstream.requests == []

    def test_configured_token_is_the_fallback(self, gateway, upstream, config):
        config.RAILWAY_AUTH_TOKEN = "railway-token"

        gateway.put("/api/proxy/railway/increase-productQty/1/5")
        gateway.put("/api/proxy/railway/decrease-productQty/1/5", headers={"Authorization": "Bearer mine"})

        assert upstream.requests[0].headers["Authorization"] == "Bearer railway-token"
        assert upstream.requests[1].headers["Authorization"] == "Bearer mine"

    def test_cart_and_orders_paths(self, gateway, upstream):
        gateway.get("/api/proxy/railway/cart", params={"cartId": "1", "userId": "2"})
        gateway.get("/api/proxy/railway/orders", params={"userId": "2"})
        gateway.delete("/api/proxy/railway/remove-product/1/5")

        assert upstream.calls() == [
            ("GET", "/ecom/cart/products/1"),
            ("GET", "/ecom/orders/orders/2"),
            ("DELETE", "/ecom/cart/remove-product/1/5"),
        ]

    def test_orders_require_user(self, gateway):
        assert gateway.get("/api/proxy/railway/orders").status_code == 400
        assert gateway.get("/api/proxy/railway/cart").status_code == 400


class TestEcomProxy:
    def test_cart_routes(self, gateway, upstream):
        gateway.get("/api/proxy/ecom/cart")
        gateway.post("/api/proxy/ecom/cart/add", json={"productId": 7})
        gateway.put("/api/proxy/ecom/cart/e1", json={"quantity": 2})
        gateway.delete("/api/proxy/ecom/cart/e1")

        assert upstream.calls() == [
            ("GET", "/api/cart"),
            ("POST", "/api/cart/add"),
            ("PUT", "/api/cart/e1"),
            ("DELETE", "/api/cart/e1"),
        ]
        assert upstream.json_bodies() == [{"productId": 7}, {"quantity": 2}]

    def test_orders_send_raw_token_headers(self, gateway, upstream):
        gateway.get("/api/proxy/ecom/orders", headers={"Authorization": "Bearer abc"})

        request = upstream.requests[0]
        assert request.url.path == "/api/orders/my-orders"
        assert request.headers["x-access-token"] == "abc"
        assert request.headers["token"] == "abc"

    def test_upstream_status_is_mirrored(self, gateway, upstream):
        upstream.routes[("GET", "/api/cart")] = (401, {"message": "Unauthorized"})

        response = gateway.get("/api/proxy/ecom/cart")

        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    def test_no_content_reply_stays_empty(self, gateway, upstream):
        upstream.routes[("DELETE", "/api/cart/e1")] = lambda request: httpx.Response(204)

        response = gateway.delete("/api/proxy/ecom/cart/e1")

        assert response.status_code == 204
        assert response.content == b""

    def test_empty_body_is_not_rendered_as_null(self, gateway, upstream):
        upstream.routes[("PUT", "/api/cart/e1")] = lambda request: httpx.Response(200)

        response = gateway.put("/api/proxy/ecom/cart/e1", json={"quantity": 2})

        assert response.status_code == 200
        assert response.content == b""


class TestPhoneStoreProxy:
    def test_username_becomes_cookie(self, gateway, upstream):
        gateway.get("/api/proxy/phonestore/cart", params={"username": "dinh 2707"})

        request = upstream.requests[0]
        assert request.url.host == "phones.test"
        assert request.headers["Cookie"] == "user=dinh%202707"

    def test_add_uses_body_username(self, gateway, upstream):
        gateway.post("/api/proxy/phonestore/cart", json={"username": "dinh2707", "product": {"id": 3}})

        request = upstream.requests[0]
        assert request.headers["Cookie"] == "user=dinh2707"
        assert upstream.json_bodies() == [{"username": "dinh2707", "product": {"id": 3}}]

    def test_delete_forwards_id(self, gateway, upstream):
        gateway.delete("/api/proxy/phonestore/cart", params={"id": "c1", "username": "dinh2707"})

        request = upstream.requests[0]
        assert request.method == "DELETE"
        assert dict(request.url.params) == {"id": "c1"}

    def test_missing_parameters(self, gateway):
        assert gateway.delete("/api/proxy/phonestore/cart").status_code == 400
        assert gateway.get("/api/proxy/phonestore/cart").status_code == 400
        assert gateway.get("/api/proxy/phonestore/orders").status_code == 400

    def test_transport_failure_answers_502(self, gateway, upstream):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        upstream.routes[("GET", "/api/orders")] = refuse

        response = gateway.get("/api/proxy/phonestore/orders", params={"username": "dinh2707"})

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "PhoneStore orders proxy failed"
        assert "connection refused" in body["detail"]


class TestDatabaseRoutes:
    def test_databases_and_tables(self, gateway):
        assert gateway.get("/api/databases").json() == {"databases": ["microservice"]}

        tables = gateway.get("/api/microservice/tables").json()
        assert tables["database"] == "microservice"
        assert set(tables["tables"]) == {"users", "products"}

    def test_table_rows_and_columns(self, gateway):
        body = gateway.get("/api/microservice/products").json()

        assert body["rowCount"] == 2
        assert body["data"][0]["name"] == "Laptop"
        columns = {column["name"]: column for column in body["columns"]}
        assert columns["id"]["isPrimaryKey"] is True
        assert columns["name"]["nullable"] is False

    def test_row_limit(self, gateway, config):
        config.CATALOG_ROW_LIMIT = 1
        assert gateway.get("/api/microservice/products").json()["rowCount"] == 1

    def test_unknown_database(self, gateway):
        response = gateway.get("/api/nope/tables")
        assert response.status_code == 400
        assert response.json() == {"error": "Database not found"}
        assert gateway.get("/api/nope/products").status_code == 400

    def test_unknown_or_unsafe_table(self, gateway):
        assert gateway.get("/api/microservice/missing").status_code == 404
        assert gateway.get("/api/microservice/bad-name").status_code == 404

    def test_all_data(self, gateway):
        body = gateway.get("/api/all-data").json()
        assert body["microservice"]["data"]["products"]["rowCount"] == 2

    def test_health(self, gateway):
        body = gateway.get("/api/health").json()
        assert body["status"] == "OK"
        assert "timestamp" in body


class TestCatalogRoutes:
    def test_products_from_configured_sources(self, gateway):
        body = gateway.get("/api/catalog/products").json()

        assert body["count"] == 2
        first = body["products"][0]
        assert (first["source_id"], first["source_table"], first["id"], first["price"]) == (
            "microservice", "products", 1, 15000000.0,
        )
        assert body["products"][1]["price"] is None
        assert body["notices"] == []

    def test_single_source(self, gateway):
        body = gateway.get("/api/catalog/products/microservice").json()
        assert body["source"] == "microservice"
        assert body["count"] == 2

    def test_unknown_source(self, gateway):
        assert gateway.get("/api/catalog/products/nope").status_code == 400


class TestAppRoutes:
    def test_root_and_config(self, gateway):
        assert gateway.get("/").json()["status"] == "ready"
        assert "remote_services" in gateway.get("/config").json()

    def test_health(self, gateway):
        assert gateway.get("/health").json()["status"] == "healthy"

"""Unit tests — HTTP routes and error mapping via TestClient."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dbbridge.api.middleware import AccessLogMiddleware, RequestIDMiddleware, build_error_handler
from dbbridge.api.server import create_app
from dbbridge.config import Settings
from dbbridge.exceptions import (
    AmbiguousShapeError,
    BackendError,
    ConnectionExistsError,
    DbBridgeError,
    QueryExecutionError,
    StoreOperationError,
)
from dbbridge.gateway import DatabaseGateway


@pytest.fixture
def client(test_settings: Settings, gateway: DatabaseGateway) -> TestClient:
    app = create_app(settings=test_settings, gateway=gateway)
    with TestClient(app) as c:
        yield c


def _connect(client: TestClient, path: Path, connection_id: str = "main"):
    return client.post(
        "/tools/connect-database",
        json={
            "connectionId": connection_id,
            "type": "sqlite",
            "config": {"filename": str(path), "createIfNotExists": True},
        },
    )


@pytest.mark.unit
class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["connections"] == 0
        assert "mongodb" in body["backends"]

    def test_request_id_header(self, client: TestClient) -> None:
        resp = client.get("/health", headers={"X-Request-ID": "rid-1"})
        assert resp.headers["X-Request-ID"] == "rid-1"


@pytest.mark.unit
class TestToolRoutes:
    def test_list_tools(self, client: TestClient) -> None:
        assert client.get("/tools").json() == [
            "connect-database",
            "disconnect-database",
            "execute-query",
            "execute-update",
        ]

    def test_connect_query_disconnect(self, client: TestClient, sqlite_file: Path) -> None:
        resp = _connect(client, sqlite_file)
        assert resp.status_code == 200
        assert resp.json()["isError"] is False

        resp = client.post(
            "/tools/execute-query",
            json={"connectionId": "main", "query": "SELECT ? AS v", "params": [7]},
        )
        assert resp.json()["content"][0]["text"].replace(" ", "").replace("\n", "") == '[{"v":7}]'

        resp = client.post("/tools/disconnect-database", json={"connectionId": "main"})
        assert resp.json()["isError"] is False

    def test_tool_failure_is_200_with_is_error(self, client: TestClient) -> None:
        resp = client.post(
            "/tools/execute-query", json={"connectionId": "ghost", "query": "SELECT 1"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["isError"] is True
        assert 'Database connection with ID "ghost" not found' in body["content"][0]["text"]

    def test_unknown_tool(self, client: TestClient) -> None:
        resp = client.post("/tools/drop-all", json={"connectionId": "main"})
        assert resp.status_code == 404

    def test_missing_connection_id(self, client: TestClient) -> None:
        resp = client.post("/tools/execute-query", json={"query": "SELECT 1"})
        assert resp.status_code == 422


@pytest.mark.unit
class TestResourceRoutes:
    def test_tables_and_schema(self, client: TestClient, sqlite_file: Path) -> None:
        _connect(client, sqlite_file)
        client.post(
            "/tools/execute-update",
            json={"connectionId": "main", "query": "CREATE TABLE items (id INTEGER PRIMARY KEY)"},
        )

        assert client.get("/resources/databases/main/tables").json() == {"tables": ["items"]}

        table = client.get("/resources/databases/main/tables/items").json()
        assert table["tableName"] == "items"

        schema = client.get("/resources/databases/main/schema").json()
        assert schema["tables"][0]["columns"][0]["name"] == "id"

    def test_unknown_connection_is_404(self, client: TestClient) -> None:
        resp = client.get("/resources/databases/ghost/schema")
        assert resp.status_code == 404
        assert resp.json()["code"] == "connection_not_found"

    def test_missing_table_is_502(self, client: TestClient, sqlite_file: Path) -> None:
        _connect(client, sqlite_file)
        resp = client.get("/resources/databases/main/tables/nope")
        assert resp.status_code == 502


def _error_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_exception_handler(DbBridgeError, build_error_handler())

    errors = {
        "shape": AmbiguousShapeError("{}", "empty object"),
        "store": StoreOperationError("boom", "find"),
        "sql": QueryExecutionError("bad sql"),
        "exists": ConnectionExistsError("main"),
        "backend": BackendError("Invalid sqlite configuration"),
        "plain": DbBridgeError("unexpected"),
    }

    @app.get("/error/{name}")
    async def raise_error(name: str):
        raise errors[name]

    return app


@pytest.mark.unit
class TestErrorHandler:
    @pytest.mark.parametrize(
        "name, status, code",
        [
            ("shape", 400, "AmbiguousOrUnsupportedShape"),
            ("store", 502, "backend_failure"),
            ("sql", 502, "backend_failure"),
            ("exists", 409, "connection_exists"),
            ("backend", 422, "backend_error"),
            ("plain", 500, "internal_error"),
        ],
    )
    def test_status_mapping(self, name: str, status: int, code: str) -> None:
        client = TestClient(_error_app(), raise_server_exceptions=False)
        resp = client.get(f"/error/{name}", headers={"X-Request-ID": "req-9"})
        assert resp.status_code == status
        body = resp.json()
        assert body["code"] == code
        assert body["request_id"] == "req-9"

"""Unit tests for the health route."""

from fastapi.testclient import TestClient

from textswap import __version__


class TestHealth:
    """GET /health."""

    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "message": "API server is running",
            "service": "textswap-service",
            "version": __version__,
        }

    def test_health_never_calls_upstream(self, client: TestClient, stub_transport) -> None:  # type: ignore[no-untyped-def]
        client.get("/health")

        assert stub_transport.calls == []
        assert stub_transport.list_calls == 0

    def test_request_id_echoed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_generated(self, client: TestClient) -> None:
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 32

"""
Test the assembled FastAPI application
"""
import pytest
from fastapi.testclient import TestClient

from fastapi_core import session_registry


@pytest.fixture
def client():
    from fastapi_server import app
    with TestClient(app) as test_client:
        yield test_client
    session_registry.cleanup_all_sessions()


class TestServer:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    def test_http_errors_use_consistent_format(self, client):
        response = client.get("/api/blang/sessions/424242")

        assert response.status_code == 404
        assert response.json()["error"] == "http_error"

    def test_validation_error(self, client):
        response = client.post("/api/blang/sessions/open", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_edit_with_lone_surrogate_is_rejected(self, client):
        session_id = client.post("/api/blang/sessions/new").json()["session_id"]
        response = client.patch(f"/api/blang/sessions/{session_id}/strings/0",
                                content=r'{"text": "bad \ud800"}',
                                headers={"Content-Type": "application/json"})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert "input" not in response.json()["errors"][0]
        assert client.get(f"/api/blang/sessions/{session_id}").json()["any_modified"] is False

    def test_new_session_round_trip(self, client):
        session_id = client.post("/api/blang/sessions/new").json()["session_id"]
        client.post(f"/api/blang/sessions/{session_id}/patch",
                    content='{"strings": [{"name": "#str_hello", "text": "Hello"}]}')

        strings = client.get(f"/api/blang/sessions/{session_id}/strings").json()["strings"]
        assert [s["identifier"] for s in strings] == ["#str_hello"]

    def test_create_app_registers_decryptor(self):
        from fastapi_server import create_app
        from fastapi_core.shared_services import clear_shared_services, get_shared_decryptor

        def decrypt(data, key):
            return data

        try:
            create_app(decryptor=decrypt)
            assert get_shared_decryptor() is decrypt
        finally:
            clear_shared_services()

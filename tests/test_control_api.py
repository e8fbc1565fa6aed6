"""Testes dos endpoints HTTP de controle."""

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from app.dependency_injection.application_container import Application
from main import create_app
from tests.fakes.fake_protocol import FakeProtocolClient, RecordingNotifier


@pytest.fixture
def protocol_client() -> FakeProtocolClient:
    return FakeProtocolClient()


@pytest.fixture
def container(settings, protocol_client) -> Application:
    container = Application()
    container.settings.override(providers.Object(settings))
    container.gateways.protocol_client.override(providers.Object(protocol_client))
    container.services.webhook_notifier.override(providers.Object(RecordingNotifier()))
    return container


@pytest.fixture
def client(container):
    app = create_app(container)
    with TestClient(app) as test_client:
        yield test_client
    container.unwire()


class TestServerStatus:
    def test_reports_running_and_zero_connections(self, client):
        response = client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "running"
        assert body["connections"] == 0


class TestConnect:
    def test_missing_account_id_returns_400(self, client, container, protocol_client):
        response = client.post("/connect", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "account_id requerido"}
        assert container.services.session_registry().size() == 0
        assert protocol_client.sessions == []

    def test_empty_account_id_returns_400(self, client, protocol_client):
        response = client.post("/connect", json={"account_id": ""})

        assert response.status_code == 400
        assert protocol_client.sessions == []

    def test_no_body_returns_400(self, client, protocol_client):
        response = client.post("/connect")

        assert response.status_code == 400
        assert "error" in response.json()
        assert protocol_client.sessions == []

    def test_malformed_json_returns_400(self, client, protocol_client):
        response = client.post(
            "/connect",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert set(response.json()) == {"error"}
        assert protocol_client.sessions == []

    def test_non_string_account_id_returns_400(self, client, protocol_client):
        response = client.post("/connect", json={"account_id": 123})

        assert response.status_code == 400
        assert "account_id" in response.json()["error"]
        assert protocol_client.sessions == []

    def test_connect_registers_account(self, client):
        response = client.post("/connect", json={"account_id": "acc1"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/").json()["connections"] == 1
        assert client.get("/status/acc1").json() == {"connected": True}

    def test_protocol_failure_returns_500(self, client, protocol_client):
        protocol_client.open_error = RuntimeError("gateway fora do ar")

        response = client.post("/connect", json={"account_id": "acc1"})

        assert response.status_code == 500
        assert response.json() == {"error": "gateway fora do ar"}
        assert client.get("/status/acc1").json() == {"connected": False}


class TestStatus:
    def test_never_connected_account(self, client):
        response = client.get("/status/acc2")

        assert response.status_code == 200
        assert response.json() == {"connected": False}


class TestSendMessage:
    def test_unregistered_account_returns_404(self, client, protocol_client):
        response = client.post(
            "/send-message",
            json={"account_id": "acc1", "to": "5551234567", "message": "hi"},
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Conta não conectada"}

    def test_no_body_returns_404(self, client, protocol_client):
        response = client.post("/send-message")

        assert response.status_code == 404
        assert response.json() == {"error": "Conta não conectada"}
        assert protocol_client.all_sent() == []
        assert protocol_client.all_sent() == []

    def test_sends_to_normalized_recipient(self, client, protocol_client):
        client.post("/connect", json={"account_id": "acc1"})

        response = client.post(
            "/send-message",
            json={"account_id": "acc1", "to": "5551234567", "message": "hi"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert protocol_client.all_sent() == [("5551234567@s.whatsapp.net", "hi")]

    def test_missing_recipient_returns_400(self, client, protocol_client):
        client.post("/connect", json={"account_id": "acc1"})

        response = client.post("/send-message", json={"account_id": "acc1", "message": "hi"})

        assert response.status_code == 400
        assert protocol_client.all_sent() == []

    def test_send_failure_returns_500_with_message(self, client, protocol_client):
        client.post("/connect", json={"account_id": "acc1"})
        protocol_client.sessions[0].send_error = RuntimeError("Connection Closed")

        response = client.post(
            "/send-message",
            json={"account_id": "acc1", "to": "5551234567", "message": "hi"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Connection Closed"}


def test_shutdown_drains_registry(container, protocol_client):
    app = create_app(container)
    with TestClient(app) as test_client:
        test_client.post("/connect", json={"account_id": "acc1"})
        test_client.post("/connect", json={"account_id": "acc2"})
        assert test_client.get("/").json()["connections"] == 2

    container.unwire()
    assert container.services.session_registry().size() == 0
    assert all(s.closed for s in protocol_client.sessions)

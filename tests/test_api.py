"""End-to-end tests for the relay HTTP endpoints."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from webhook_relay.api.utils import client_address
from webhook_relay.app import create_app

from .conftest import GAUGE_URL, NODE, SEND_URL, START_URL, VM_ID

VALID_BODY = {"cluster": "dc1", "node": NODE, "vm_id": VM_ID}


class TestPing:

    def test_ping(self, client):
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.text == "pong\n"

    def test_post_ping_not_allowed(self, client):
        response = client.post("/ping")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"
        assert response.text == "method POST is not allowed\n"


class TestMethodGate:

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    def test_start_vm_only_accepts_post(self, client, upstream, method):
        response = client.request(method, "/start-vm", json=VALID_BODY)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        assert response.text == f"method {method} is not allowed\n"
        assert upstream.calls == []

    def test_unknown_path_is_404(self, client):
        assert client.get("/status").status_code == 404


class TestStartVM:

    def test_success(self, client, upstream):
        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert [(c.method, c.url) for c in upstream.calls] == [
            ("POST", START_URL),
            ("POST", SEND_URL),
            ("DELETE", GAUGE_URL),
        ]

    def test_content_type_is_not_required(self, client, upstream):
        response = client.post(
            "/start-vm",
            content=json.dumps(VALID_BODY),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 200

    def test_extra_fields_are_ignored(self, client):
        response = client.post("/start-vm", json={**VALID_BODY, "alertname": "OOMKill"})

        assert response.status_code == 200

    @pytest.mark.parametrize("body", [
        b"{not json",
        b"",
        b"[]",
        b'{"cluster": "dc1", "node": "pve-node-03"}',
        b'{"cluster": "dc1", "node": "pve-node-03", "vm_id": "214"}',
        b'{"cluster": "dc1", "node": "pve-node-03", "vm_id": 214.5}',
        b'{"cluster": 1, "node": "pve-node-03", "vm_id": 214}',
    ])
    def test_invalid_payload(self, client, upstream, body):
        response = client.post("/start-vm", content=body)

        assert response.status_code == 400
        assert response.text == "invalid payload\n"
        assert upstream.calls == []

    def test_unknown_cluster(self, client, upstream):
        response = client.post("/start-vm", json={**VALID_BODY, "cluster": "dc9"})

        assert response.status_code == 400
        assert response.text == "unknown cluster\n"
        assert upstream.calls == []

    def test_start_failure_returns_502_and_notifies(self, client, upstream):
        upstream.respond("POST", START_URL, 500)

        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert "500" in body["error"]

        [message] = upstream.calls_to(SEND_URL)
        text = message.json()["text"]
        assert NODE in text
        assert str(VM_ID) in text
        assert body["error"] in text
        assert upstream.calls_to(GAUGE_URL) == []

    def test_start_transport_error(self, client, upstream):
        upstream.respond("POST", START_URL, httpx.ConnectError("connection refused"))

        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "do request: connection refused"}

    def test_failure_notification_errors_do_not_change_response(self, client, upstream):
        upstream.respond("POST", START_URL, 500)
        upstream.respond("POST", SEND_URL, httpx.ConnectError("telegram down"))

        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 502
        assert response.json()["error"] == "bad status: 500 Internal Server Error"

    def test_resolved_notification_errors_do_not_change_response(self, client, upstream):
        upstream.respond("POST", SEND_URL, 500)

        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_metric_delete_failure_after_start(self, client, upstream):
        upstream.respond("DELETE", GAUGE_URL, 404)

        response = client.post("/start-vm", json=VALID_BODY)

        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "bad status: 404 Not Found"}
        # the VM did start, so the resolved message stands and nothing else is sent
        [message] = upstream.calls_to(SEND_URL)
        assert message.json()["text"].startswith("✅ OOM resolved")

    def test_repeated_requests_are_not_deduplicated(self, client, upstream):
        first = client.post("/start-vm", json=VALID_BODY)
        second = client.post("/start-vm", json=VALID_BODY)

        assert first.status_code == second.status_code == 200
        assert len(upstream.calls_to(START_URL)) == 2
        assert len(upstream.calls_to(GAUGE_URL)) == 2


def test_settings_loaded_at_startup(monkeypatch, transport, upstream, tmp_path):
    monkeypatch.setenv("WEBHOOK_RELAY_ENV_FILE", str(tmp_path / "absent.env"))
    monkeypatch.setenv("PROXMOX_LIST", "dc1")
    monkeypatch.setenv("PROXMOX_DC1_URL", "https://pve-dc1.test:8006/api2/json")
    monkeypatch.setenv("PUSHGATEWAY_DC1_URL", "http://pushgateway-dc1.test:9091")
    monkeypatch.setenv("TELEGRAM_API_URL", "https://telegram.test")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:SECRET")

    with TestClient(create_app(transport=transport)) as client:
        response = client.post("/start-vm", json=VALID_BODY)

    assert response.status_code == 200
    assert client.app.state.settings.get_cluster("dc1").api_base_url.endswith("/api2/json")


def test_start_vm_checks_for_disconnect(client, monkeypatch):
    remediation = client.app.state.remediation
    start_vm = remediation.start_vm
    seen = []

    async def recording_start_vm(payload, cancelled=None, **kwargs):
        seen.append(await cancelled())
        return await start_vm(payload, cancelled=cancelled, **kwargs)

    monkeypatch.setattr(remediation, "start_vm", recording_start_vm)

    response = client.post("/start-vm", json=VALID_BODY)

    assert response.status_code == 200
    assert seen == [False]


def test_upstream_clients_closed_on_shutdown(settings, transport):
    app = create_app(settings, transport=transport)
    with TestClient(app):
        remediation = app.state.remediation
        assert remediation.notifier.client.is_closed is False

    assert remediation.notifier.client.is_closed is True
    assert remediation.proxmox["dc1"].client.is_closed is True
    assert remediation.pushgateways["dc1"].client.is_closed is True


@pytest.mark.parametrize("client_info, expected", [
    (("10.0.0.7", 51234), "10.0.0.7:51234"),
    (None, "unknown"),
])
def test_client_address(client_info, expected):
    request = Request({"type": "http", "method": "POST", "path": "/start-vm",
                       "headers": [], "client": client_info})

    assert client_address(request) == expected

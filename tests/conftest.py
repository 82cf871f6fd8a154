"""Shared fixtures: a scripted fake for every upstream the relay calls."""

import json
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from webhook_relay.app import create_app
from webhook_relay.config import ClusterTarget, NotificationTarget, Settings

PVE_URL = "https://pve-dc1.test:8006/api2/json"
PUSH_URL = "http://pushgateway-dc1.test:9091"
TG_URL = "https://telegram.test"
BOT_TOKEN = "123456:SECRET"

NODE = "pve-node-03"
VM_ID = 214

START_URL = f"{PVE_URL}/nodes/{NODE}/qemu/{VM_ID}/status/start"
GAUGE_URL = f"{PUSH_URL}/metrics/job/oom_killer/cluster/dc1/node/{NODE}/vm_id/{VM_ID}"
SEND_URL = f"{TG_URL}/bot{BOT_TOKEN}/sendMessage"

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: Dict[str, str]
    body: bytes
    timeout: Optional[float]

    def json(self):
        return json.loads(self.body)


class FakeUpstream:
    """httpx mock transport answering from a (method, url) -> outcome table."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Union[int, Exception, Handler]] = {}
        self.calls: List[RecordedCall] = []
        self.transport = httpx.MockTransport(self.handle)

    def respond(self, method: str, url: str, outcome: Union[int, Exception, Handler]):
        self.routes[(method, url)] = outcome

    def calls_to(self, url: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.url == url]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(RecordedCall(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers),
            body=request.content,
            timeout=request.extensions.get("timeout", {}).get("read"),
        ))

        outcome = self.routes.get((request.method, str(request.url)), 404)
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return await outcome(request)
        return httpx.Response(outcome, json={})


@pytest.fixture
def upstream() -> FakeUpstream:
    """Fake upstream where every call succeeds unless a test says otherwise."""
    fake = FakeUpstream()
    fake.respond("POST", START_URL, 200)
    fake.respond("DELETE", GAUGE_URL, 202)
    fake.respond("POST", SEND_URL, 200)
    return fake


@pytest.fixture
def transport(upstream) -> httpx.MockTransport:
    return upstream.transport


@pytest.fixture
def cluster() -> ClusterTarget:
    return ClusterTarget(
        name="dc1",
        api_base_url=PVE_URL,
        api_token_id="root@pam!relay",
        api_token_secret="s3cret",
        metrics_push_url=PUSH_URL,
    )


@pytest.fixture
def notification() -> NotificationTarget:
    return NotificationTarget(api_base_url=TG_URL, bot_token=BOT_TOKEN, chat_id="-1001")


@pytest.fixture
def settings(cluster, notification) -> Settings:
    return Settings(clusters={"dc1": cluster}, notification=notification)


@pytest.fixture
def client(settings, transport):
    from fastapi.testclient import TestClient

    with TestClient(create_app(settings, transport=transport)) as test_client:
        yield test_client

"""Pytest configuration and fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import ClientSession, web

from integration_service.domain.webhooks import Webhook


class FakeResponse:
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self._body = body

    async def text(self, errors: str = "strict") -> str:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class FakeSession:
    """Stands in for aiohttp.ClientSession; replays scripted outcomes.

    Each outcome is either a status code or an exception instance to raise.
    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes: int | BaseException):
        self.outcomes = list(outcomes) or [200]
        self.calls: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResponse(outcome, body=f"status {outcome}")


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class RecordedRequest:
    path: str
    headers: dict[str, str]
    body: bytes


@dataclass
class FakeWebhookEndpoint:
    """Scriptable HTTP endpoint; ``statuses[path]`` lists replies in order."""

    server: Any = None
    requests: list[RecordedRequest] = field(default_factory=list)
    statuses: dict[str, list[int]] = field(default_factory=dict)

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))

    def received(self, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.path == path]


def make_webhook(
    url: str,
    *,
    on: tuple[str, ...] | list[str] = ("Any",),
    max_attempts: int = 1,
    max_delay_millis: int = 30000,
    timeout_millis: int = 5000,
    headers: list[dict[str, str]] | None = None,
    ignore_certificate_errors: bool = False,
) -> Webhook:
    return Webhook.model_validate(
        {
            "on": list(on),
            "call": {
                "url": url,
                "headers": headers or [],
                "timeoutMillis": timeout_millis,
                "ignoreCertificateErrors": ignore_certificate_errors,
            },
            "retry": {"maxAttempts": max_attempts, "maxDelayMillis": max_delay_millis},
        }
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
async def webhook_endpoint(aiohttp_server) -> FakeWebhookEndpoint:
    endpoint = FakeWebhookEndpoint()

    async def receive(request: web.Request) -> web.Response:
        endpoint.requests.append(
            RecordedRequest(
                path=request.path,
                headers=dict(request.headers),
                body=await request.read(),
            )
        )
        script = endpoint.statuses.get(request.path)
        status = script.pop(0) if script and len(script) > 1 else (script[0] if script else 200)
        return web.Response(status=status, text="ok" if status < 300 else "nope")

    app = web.Application()
    app.router.add_post("/{name}", receive)
    endpoint.server = await aiohttp_server(app)
    return endpoint


@pytest.fixture
async def http_session():
    async with ClientSession() as session:
        yield session

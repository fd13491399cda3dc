"""Test doubles shared by unit, integration and feature tests."""

from dataclasses import dataclass, field

import httpx

TEST_TOKEN = "00000000-0000-0000-0000-000000000000"
TEST_HOST = "hec.example.com"
DEFAULT_HOST = "test-host"


@dataclass
class RecordingEndpoint:
    """Fake collector endpoint served through httpx.MockTransport.

    Replies with ``statuses`` in order (repeating the last one) and keeps
    every request it received. Set ``error`` to raise it instead of replying.
    """

    statuses: list[int] = field(default_factory=lambda: [200])
    body: str = '{"text":"Success","code":0}'
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status = self.statuses[min(len(self.requests), len(self.statuses)) - 1]
        return httpx.Response(status, text=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import httpx
import pytest
from starlette.requests import Request


def build_request(
    *,
    body: bytes = b"",
    query_string: str = "",
    headers: Optional[Dict[str, str]] = None,
    method: str = "POST",
    path: str = "/inbound/test",
) -> Request:
    raw_headers = [(k.lower().encode("utf-8"), v.encode("utf-8")) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
    }
    sent = False

    async def _receive() -> dict:
        nonlocal sent
        if sent:
            return {"type": "http.request", "body": b"", "more_body": False}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, _receive)


class RecordingDownstream:
    """Stands in for the delivery API; records every request it receives."""

    def __init__(self, status_code: int = 200, text: str = "queued"):
        self.status_code = status_code
        self.text = text
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.text)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


@pytest.fixture
def downstream() -> RecordingDownstream:
    return RecordingDownstream()

import pytest
from fastapi.testclient import TestClient

from app.api_service import app
from app.routers.inbound import get_forwarder, get_provider_security
from config.settings import ProviderSecurity, ProviderSecurityConfig
from forwarding.teltel import TelTelForwarder
from providers.registry import PROVIDERS

from conftest import RecordingDownstream

FORM = {"content-type": "application/x-www-form-urlencoded"}
FORM_BODY = "src=%2B15551234567&dst=%2B15557654321&message=Hello&received_at=2024-01-01T00%3A00%3A00Z"


@pytest.fixture
def wire():
    """Route the app at a recording downstream and a given gate config."""

    def _wire(downstream, security=None, api_key="key-1"):
        app.dependency_overrides[get_forwarder] = lambda: TelTelForwarder(
            api_key=api_key, api_url="https://teltel.test/send", transport=downstream.transport()
        )
        app.dependency_overrides[get_provider_security] = lambda: security or ProviderSecurityConfig()
        return TestClient(app)

    yield _wire
    app.dependency_overrides.clear()


@pytest.fixture
def parser_calls(monkeypatch):
    calls = []
    real = PROVIDERS["didlogic"]

    async def spy(request):
        calls.append(request)
        return await real(request)

    monkeypatch.setitem(PROVIDERS, "didlogic", spy)
    return calls


def test_form_webhook_is_forwarded(wire, downstream):
    client = wire(downstream)
    resp = client.post("/inbound/didlogic", content=FORM_BODY, headers=FORM)

    assert resp.status_code == 200
    assert resp.text == "OK"
    assert resp.headers["X-Request-Id"]
    [req] = downstream.requests
    assert req.url.params["from"] == "+15551234567"
    assert req.url.params["message"] == "Hello"


def test_json_webhook_with_mixed_case_provider(wire, downstream):
    client = wire(downstream)
    resp = client.post("/inbound/JSON", json={"source": "A", "destination": "B", "text": "hi"})
    assert resp.status_code == 200
    assert downstream.requests[0].url.params["to"] == "B"


def test_request_id_is_echoed(wire, downstream):
    client = wire(downstream)
    resp = client.post("/inbound/json", json={"from": "A", "to": "B", "message": "hi"}, headers={"x-request-id": "rid-1"})
    assert resp.headers["X-Request-Id"] == "rid-1"


def test_unknown_provider(wire, downstream, parser_calls):
    client = wire(downstream)
    resp = client.post("/inbound/nope", content=FORM_BODY, headers=FORM)

    assert resp.status_code == 400
    assert resp.text == "Unknown provider: nope"
    assert parser_calls == []
    assert downstream.requests == []


@pytest.mark.parametrize("query", ["", "?token=wrong"])
def test_bad_token_never_parses(wire, downstream, parser_calls, query):
    security = ProviderSecurityConfig({"didlogic": ProviderSecurity(token="s3cret")})
    client = wire(downstream, security)
    resp = client.post(f"/inbound/didlogic{query}", content=FORM_BODY, headers=FORM)

    assert resp.status_code == 401
    assert resp.text == "Bad token"
    assert parser_calls == []
    assert downstream.requests == []


def test_good_token_passes(wire, downstream):
    security = ProviderSecurityConfig({"didlogic": ProviderSecurity(token="s3cret")})
    client = wire(downstream, security)
    resp = client.post("/inbound/didlogic?token=s3cret", content=FORM_BODY, headers=FORM)
    assert resp.status_code == 200
    # The gate token is ours, not the delivery API's.
    assert "token" not in downstream.requests[0].url.params


@pytest.mark.parametrize(
    "headers, body",
    [
        ({}, "Missing client IP"),
        ({"CF-Connecting-IP": "9.9.9.9"}, "IP not allowed"),
    ],
)
def test_ip_allow_list_rejects(wire, downstream, parser_calls, headers, body):
    security = ProviderSecurityConfig({"didlogic": ProviderSecurity(allowed_ips=frozenset({"1.2.3.4"}))})
    client = wire(downstream, security)
    resp = client.post("/inbound/didlogic", content=FORM_BODY, headers={**FORM, **headers})

    assert resp.status_code == 401
    assert resp.text == body
    assert parser_calls == []


def test_ip_allow_list_accepts(wire, downstream):
    security = ProviderSecurityConfig({"didlogic": ProviderSecurity(allowed_ips=frozenset({"1.2.3.4"}))})
    client = wire(downstream, security)
    resp = client.post("/inbound/didlogic", content=FORM_BODY, headers={**FORM, "CF-Connecting-IP": "1.2.3.4"})
    assert resp.status_code == 200


def test_parse_error(wire, downstream):
    client = wire(downstream)
    resp = client.post("/inbound/didlogic", content="src=1&dst=2", headers=FORM)

    assert resp.status_code == 400
    assert resp.text == "Parse error: Missing message"
    assert downstream.requests == []


def test_missing_credential_is_500_without_outbound_call(wire, downstream):
    client = wire(downstream, api_key="")
    resp = client.post("/inbound/didlogic", content=FORM_BODY, headers=FORM)

    assert resp.status_code == 500
    assert resp.text == "Server not configured: TELTEL_API_KEY missing"
    assert downstream.requests == []


def test_downstream_failure_is_502():
    downstream = RecordingDownstream(503, "overloaded")
    app.dependency_overrides[get_forwarder] = lambda: TelTelForwarder(
        api_key="k", api_url="https://teltel.test/send", transport=downstream.transport()
    )
    app.dependency_overrides[get_provider_security] = lambda: ProviderSecurityConfig()
    try:
        resp = TestClient(app).post("/inbound/json", json={"from": "A", "to": "B", "message": "hi"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 502
    assert "503" in resp.text
    assert "overloaded" in resp.text


def test_downstream_success_body_is_ignored(wire):
    downstream = RecordingDownstream(200, "anything at all")
    client = wire(downstream)
    resp = client.post("/inbound/json", json={"from": "A", "to": "B", "message": "hi"})
    assert resp.status_code == 200
    assert resp.text == "OK"


def test_retried_webhook_is_forwarded_again(wire, downstream):
    # Known gap: provider retries are not deduplicated.
    client = wire(downstream)
    for _ in range(2):
        assert client.post("/inbound/didlogic", content=FORM_BODY, headers=FORM).status_code == 200
    assert len(downstream.requests) == 2


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
def test_non_post_is_405(wire, downstream, method):
    client = wire(downstream)
    resp = client.request(method, "/inbound/didlogic")

    assert resp.status_code == 405
    assert resp.text == "Use POST"
    assert resp.headers["Allow"] == "POST"
    assert downstream.requests == []

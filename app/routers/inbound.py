from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from config.settings import ProviderSecurityConfig, provider_security
from forwarding.teltel import TelTelForwarder
from providers.registry import get_parser
from security.provider_gate import enforce_provider_security
from utils.redact import dest_hint, message_fingerprint
from utils.request_context import set_provider

log = logging.getLogger("relay.router.inbound")
router = APIRouter()


def get_provider_security() -> ProviderSecurityConfig:
    return provider_security


def get_forwarder() -> TelTelForwarder:
    return TelTelForwarder()


@router.post("/inbound/{provider}")
async def inbound_sms(
    provider: str,
    request: Request,
    security: ProviderSecurityConfig = Depends(get_provider_security),
    forwarder: TelTelForwarder = Depends(get_forwarder),
) -> Response:
    """
    Provider webhook: resolve parser, gate, parse, forward.

    Every failure is raised as a RelayError and rendered by the handler in
    app.api_service. Nothing is deduplicated: a provider retry forwards again.
    """
    provider = (provider or "").lower()
    set_provider(provider)
    log.info("inbound_received", extra={"extra": {"event": "inbound_received", "provider": provider}})

    parser = get_parser(provider)
    enforce_provider_security(request, provider, security)

    sms = await parser(request)
    log.info(
        "inbound_parsed",
        extra={
            "extra": {
                "event": "inbound_parsed",
                "provider": provider,
                "src": dest_hint(sms.from_),
                "dest": dest_hint(sms.to),
                "message_len": len(sms.message),
                "received_at": sms.received_at or "",
                "fingerprint": message_fingerprint(sms),
            }
        },
    )

    return await forwarder.forward(sms)


async def inbound_use_post(provider: str) -> Response:
    # Providers that default to GET webhooks must be reconfigured to POST.
    return PlainTextResponse("Use POST", status_code=405, headers={"Allow": "POST"})


router.add_api_route(
    "/inbound/{provider}",
    inbound_use_post,
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)

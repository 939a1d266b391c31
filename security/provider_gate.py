from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Request

from config.settings import ProviderSecurity, ProviderSecurityConfig, settings
from models.errors import AuthorizationError

log = logging.getLogger("relay.provider_gate")


def client_ip(request: Request, header: Optional[str] = None) -> str:
    # Trusted verbatim: the hosting edge must overwrite this header on every request.
    return request.headers.get(header or settings.CLIENT_IP_HEADER) or ""


def require_token_if_configured(request: Request, provider: str, security: ProviderSecurity) -> None:
    # Query-string token, so it works for providers that cannot set custom headers.
    expected = security.token
    if not expected:
        return

    got = request.query_params.get("token") or ""
    if not secrets.compare_digest(got.encode("utf-8"), expected.encode("utf-8")):
        log.warning("provider_gate_denied", extra={"extra": {"event": "provider_gate_denied", "provider": provider, "reason": "bad_token"}})
        raise AuthorizationError("Bad token")


def allowlist_ip_if_configured(
    request: Request, provider: str, security: ProviderSecurity, header: Optional[str] = None
) -> None:
    if not security.allowed_ips:
        return

    ip = client_ip(request, header)
    if not ip:
        log.warning("provider_gate_denied", extra={"extra": {"event": "provider_gate_denied", "provider": provider, "reason": "missing_ip"}})
        raise AuthorizationError("Missing client IP")

    if ip not in security.allowed_ips:
        log.warning(
            "provider_gate_denied",
            extra={"extra": {"event": "provider_gate_denied", "provider": provider, "reason": "ip_not_allowed", "ip": ip}},
        )
        raise AuthorizationError("IP not allowed")


def enforce_provider_security(
    request: Request, provider: str, config: ProviderSecurityConfig, header: Optional[str] = None
) -> None:
    """
    Run the optional per-provider checks: token first, then IP allow-list.

    Either check is skipped when the provider has nothing configured for it.
    Raises AuthorizationError on the first failure.
    """
    security = config.for_provider(provider)
    require_token_if_configured(request, provider, security)
    allowlist_ip_if_configured(request, provider, security, header)

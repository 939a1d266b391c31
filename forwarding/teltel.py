from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx
from fastapi.responses import PlainTextResponse, Response

from config.settings import DEFAULT_TELTEL_API_URL, settings
from models.errors import ConfigurationError, DownstreamError
from models.inbound_sms import NormalizedInboundSms
from ops.metrics import Timer
from utils.redact import dest_hint, message_fingerprint

log = logging.getLogger("relay.teltel")


class TelTelForwarder:
    """
    Forwards a normalized inbound SMS to TelTel's "send to inbox" API.

    One GET per call, bounded by a hard timeout and never retried here. The
    downstream endpoint takes from/to/message in the query string, so outbound
    URLs must stay out of logs (see ops.structured_logger).

    Non-2xx answers surface as DownstreamError (502). Webhook senders commonly
    retry on non-200, and without a dedupe store a retry forwards again.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.TELTEL_API_KEY if api_key is None else api_key
        self.api_url = api_url or settings.TELTEL_API_URL or DEFAULT_TELTEL_API_URL
        self.timeout_s = settings.TELTEL_TIMEOUT_S if timeout_s is None else timeout_s
        self._transport = transport

    async def forward(self, sms: NormalizedInboundSms) -> Response:
        if not self.api_key:
            log.error("teltel_not_configured", extra={"extra": {"event": "teltel_not_configured"}})
            raise ConfigurationError("Server not configured: TELTEL_API_KEY missing")

        params = {"from": sms.from_, "to": sms.to, "message": sms.message}
        headers = {"X-API-KEY": self.api_key}
        fields = {
            "src": dest_hint(sms.from_),
            "dest": dest_hint(sms.to),
            "fingerprint": message_fingerprint(sms),
        }

        t = Timer()
        log.info("teltel_forward_attempt", extra={"extra": {"event": "teltel_forward_attempt", **fields}})

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_s, follow_redirects=True) as client:
                # wait_for cancels the pending request once the overall budget is spent.
                r = await asyncio.wait_for(
                    client.get(self.api_url, params=params, headers=headers),
                    timeout=self.timeout_s,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            log.error(
                "teltel_forward_exception",
                extra={"extra": {"event": "teltel_forward_exception", "error_type": "timeout", "latency_ms": t.ms(), **fields}},
            )
            raise DownstreamError(f"TelTel API timeout after {self.timeout_s:g}s") from e
        except httpx.HTTPError as e:
            log.error(
                "teltel_forward_exception",
                extra={
                    "extra": {
                        "event": "teltel_forward_exception",
                        "error_type": type(e).__name__,
                        "latency_ms": t.ms(),
                        **fields,
                    }
                },
                exc_info=True,
            )
            raise DownstreamError(f"TelTel API unreachable: {type(e).__name__}") from e

        text = r.text or ""
        log.info(
            "teltel_forward_result",
            extra={
                "extra": {
                    "event": "teltel_forward_result",
                    "ok": r.is_success,
                    "status_code": r.status_code,
                    "latency_ms": t.ms(),
                    **fields,
                }
            },
        )

        if not r.is_success:
            raise DownstreamError(f"TelTel API error: {r.status_code} {text}", status=r.status_code, body=text)

        return PlainTextResponse("OK", status_code=200)

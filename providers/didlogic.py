from __future__ import annotations

from urllib.parse import parse_qsl

from fastapi import Request

from models.inbound_sms import NormalizedInboundSms
from providers.base import build_sms

WIRE_NAMES = {"from": "src", "to": "dst", "message": "message"}


async def parse_didlogic(request: Request) -> NormalizedInboundSms:
    # DID Logic inbound: POST fields src, dst, message, received_at.
    # Parsed from the raw body; the declared content type is not reliable.
    body = (await request.body()).decode("utf-8", errors="replace")
    form = {}
    for key, value in parse_qsl(body, keep_blank_values=True):
        form.setdefault(key, value)

    return build_sms(
        from_=form.get("src", ""),
        to=form.get("dst", ""),
        message=form.get("message", ""),
        received_at=form.get("received_at") or None,
        wire_names=WIRE_NAMES,
    )

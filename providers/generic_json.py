from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from models.errors import ParseError
from models.inbound_sms import NormalizedInboundSms
from providers.base import build_sms, scalar_str

WIRE_NAMES = {"from": "from", "to": "to", "message": "message"}


def _first(data: Dict[str, Any], field: str, fallback: str) -> str:
    # Fallback applies when the primary key is missing or empty.
    return scalar_str(data.get(field), field) or scalar_str(data.get(fallback), fallback)


def _optional_str(value: Any) -> Optional[str]:
    # Optional field: passed through when scalar, dropped otherwise, never a parse failure.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return str(value) or None
    return None


async def parse_generic_json(request: Request) -> NormalizedInboundSms:
    """
    Generic option for providers that can post JSON:

        {"from": "...", "to": "...", "message": "...", "received_at": "..."}

    `source`, `destination` and `text` are accepted in place of
    `from`, `to` and `message`.
    """
    try:
        data = await request.json()
    except ValueError as e:
        raise ParseError("Invalid JSON body") from e
    if not isinstance(data, dict):
        raise ParseError("JSON body must be an object")

    received_at = _optional_str(data.get("received_at"))

    return build_sms(
        from_=_first(data, "from", "source"),
        to=_first(data, "to", "destination"),
        message=_first(data, "message", "text"),
        received_at=received_at,
        wire_names=WIRE_NAMES,
    )

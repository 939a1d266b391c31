from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Request
from pydantic import ValidationError

from models.errors import ParseError
from models.inbound_sms import NormalizedInboundSms

ProviderParser = Callable[[Request], Awaitable[NormalizedInboundSms]]


def build_sms(
    from_: str,
    to: str,
    message: str,
    received_at: Optional[str],
    wire_names: Dict[str, str],
) -> NormalizedInboundSms:
    """
    Construct the normalized record, reporting failures by provider field name.

    `wire_names` maps normalized field names ("from", "to", "message") to the
    provider's own names so the 400 body points at the payload field.
    """
    try:
        return NormalizedInboundSms.model_validate(
            {"from": from_, "to": to, "message": message, "received_at": received_at}
        )
    except ValidationError as e:
        fields = []
        for err in e.errors():
            loc = str(err["loc"][0]) if err.get("loc") else ""
            name = wire_names.get(loc, loc)
            if name not in fields:
                fields.append(name)
        raise ParseError(f"Missing {'/'.join(fields)}") from e


def scalar_str(value: Any, field: str) -> str:
    # Some providers send numbers as JSON numbers; anything structured is rejected.
    if value is None:
        return ""
    if isinstance(value, bool):
        raise ParseError(f"Invalid value for {field}")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise ParseError(f"Invalid value for {field}")

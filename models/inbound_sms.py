from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NormalizedInboundSms(BaseModel):
    """
    Provider-independent inbound SMS.

    Built by a provider parser and consumed by the forwarder within the same
    request. Construction is the only validation point: the three required
    fields must be non-empty, and instances are frozen afterwards.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from", min_length=1)  # sender msisdn or sender id
    to: str = Field(min_length=1)  # receiving DID
    message: str = Field(min_length=1)
    received_at: Optional[str] = None  # provider timestamp, verbatim

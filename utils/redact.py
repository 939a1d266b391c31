from __future__ import annotations

import hashlib

from models.inbound_sms import NormalizedInboundSms


def dest_hint(v: str, keep: int = 4) -> str:
    # Log-safe tail of a phone number or sender id.
    v = (v or "").strip()
    if not v:
        return ""
    if len(v) <= keep:
        return v
    return f"...{v[-keep:]}"


def message_fingerprint(sms: NormalizedInboundSms) -> str:
    """
    Stable sha256 over the normalized fields.

    Logged instead of the body so duplicate forwards from webhook retries can
    be spotted in logs. Nothing here suppresses them.
    """
    raw = "\x1f".join([sms.from_, sms.to, sms.message, sms.received_at or ""])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()

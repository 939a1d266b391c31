from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter

from config.settings import settings
from providers.registry import provider_names

router = APIRouter()


@router.get("/health")
def health():
    rev = os.getenv("K_REVISION") or ""
    svc = os.getenv("K_SERVICE") or "sms-relay"

    payload: Dict[str, Any] = {
        "ok": True,
        "service": "sms-relay",
        "cloudrun_service": svc,
        "revision": rev,
        "environment": settings.ENVIRONMENT,
        "providers": provider_names(),
        # Presence only; the key itself never leaves the process.
        "downstream_configured": bool(settings.TELTEL_API_KEY),
        "time_unix": time.time(),
    }
    return payload

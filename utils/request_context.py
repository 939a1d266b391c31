from __future__ import annotations

from contextvars import ContextVar
from typing import Dict

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_provider_var: ContextVar[str] = ContextVar("provider", default="")


def set_request_id(rid: str) -> None:
    _request_id_var.set(rid or "")


def set_provider(provider: str) -> None:
    _provider_var.set(provider or "")


def get_log_context() -> Dict[str, str]:
    ctx = {}
    rid = _request_id_var.get()
    if rid:
        ctx["request_id"] = rid
    provider = _provider_var.get()
    if provider:
        ctx["provider"] = provider
    return ctx


def clear_request_context() -> None:
    _request_id_var.set("")
    _provider_var.set("")

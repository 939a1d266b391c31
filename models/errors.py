from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RelayError):
    # Operator error (e.g. missing downstream credential), never retried.
    status_code = 500


class AuthorizationError(RelayError):
    status_code = 401


class UnknownProviderError(RelayError):
    status_code = 400

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class ParseError(RelayError):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(f"Parse error: {detail}")
        self.detail = detail


class DownstreamError(RelayError):
    """
    The delivery API rejected the forward, timed out, or was unreachable.

    Surfaced as 502. Webhook senders usually retry on non-200, and since no
    dedupe store exists, a retry can produce a duplicate downstream send.
    """

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional

from dotenv import dotenv_values
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

DEFAULT_TELTEL_API_URL = "https://api.teltel.io/v2/sms/action/send/inbox/text"

PROVIDER_ENV_PREFIX = "PROVIDER_"
TOKEN_SUFFIX = "_TOKEN"
IPS_SUFFIX = "_IPS"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")

    # Downstream delivery API (TelTel)
    TELTEL_API_KEY: str = Field(default="")
    TELTEL_API_URL: str = Field(default=DEFAULT_TELTEL_API_URL)
    TELTEL_TIMEOUT_S: float = Field(default=10.0)

    # Set by the hosting edge (Cloudflare) and trusted verbatim.
    # The edge must always overwrite it; nothing here can detect spoofing.
    CLIENT_IP_HEADER: str = Field(default="CF-Connecting-IP")

    # Server bind for the run entry point; Cloud Run injects PORT.
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)

    @field_validator("TELTEL_API_URL", mode="before")
    @classmethod
    def _blank_url_is_default(cls, v):
        # TELTEL_API_URL= in the environment means "not set".
        if v is None or not str(v).strip():
            return DEFAULT_TELTEL_API_URL
        return v


@dataclass(frozen=True)
class ProviderSecurity:
    token: Optional[str] = None
    allowed_ips: FrozenSet[str] = field(default_factory=frozenset)


def _split_csv(v: str) -> FrozenSet[str]:
    return frozenset(x.strip() for x in (v or "").split(",") if x.strip())


class ProviderSecurityConfig:
    """
    Per-provider gate settings, keyed by lowercase provider id.

    Loaded once from PROVIDER_<ID>_TOKEN / PROVIDER_<ID>_IPS and read-only
    afterwards. A provider with no entry has both checks open.
    """

    def __init__(self, providers: Optional[Mapping[str, ProviderSecurity]] = None):
        self._providers: Dict[str, ProviderSecurity] = {k.lower(): v for k, v in (providers or {}).items()}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderSecurityConfig":
        if environ is None:
            # Same sources as Settings: .env first, real environment wins.
            env = {k: v for k, v in dotenv_values(".env").items() if v is not None}
            env.update(os.environ)
        else:
            env = dict(environ)
        tokens: Dict[str, str] = {}
        ips: Dict[str, FrozenSet[str]] = {}
        for key, value in env.items():
            upper = key.upper()
            if not upper.startswith(PROVIDER_ENV_PREFIX):
                continue
            name = upper[len(PROVIDER_ENV_PREFIX):]
            if name.endswith(TOKEN_SUFFIX) and value:
                tokens[name[: -len(TOKEN_SUFFIX)].lower()] = value
            elif name.endswith(IPS_SUFFIX):
                allowed = _split_csv(value)
                if allowed:
                    ips[name[: -len(IPS_SUFFIX)].lower()] = allowed

        providers = {
            p: ProviderSecurity(token=tokens.get(p), allowed_ips=ips.get(p, frozenset()))
            for p in set(tokens) | set(ips)
            if p
        }
        return cls(providers)

    def for_provider(self, provider: str) -> ProviderSecurity:
        return self._providers.get(provider.lower(), ProviderSecurity())

    def configured_providers(self) -> FrozenSet[str]:
        return frozenset(self._providers)


settings = Settings()
provider_security = ProviderSecurityConfig.from_env()

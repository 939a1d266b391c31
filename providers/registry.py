from __future__ import annotations

from typing import Dict, List

from models.errors import UnknownProviderError
from providers.base import ProviderParser
from providers.didlogic import parse_didlogic
from providers.generic_json import parse_generic_json

PROVIDERS: Dict[str, ProviderParser] = {
    "didlogic": parse_didlogic,
    "json": parse_generic_json,
}


def register_provider(name: str, parser: ProviderParser) -> None:
    PROVIDERS[name.lower()] = parser


def get_parser(provider: str) -> ProviderParser:
    # Callers lowercase the id; providers are not secrets, so echoing it back is fine.
    parser = PROVIDERS.get(provider)
    if parser is None:
        raise UnknownProviderError(provider)
    return parser


def provider_names() -> List[str]:
    return sorted(PROVIDERS)

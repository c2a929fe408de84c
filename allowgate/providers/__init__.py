"""
Provider clients: one per external reputation / social source.

Each returns ProviderResponse(value, error) and never raises past its boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from allowgate.config import Settings
from allowgate.providers.base import ProviderClient, ProviderResponse
from allowgate.providers.capabilities import CredibilityClient, QualityClient, SocialGraphClient
from allowgate.providers.ethos import EthosClient
from allowgate.providers.neynar import NeynarClient, PlatformUser, ShareReceipt
from allowgate.providers.quotient import Mutual, QuotientClient


@dataclass
class Providers:
    """The fixed provider set, wired once per process."""

    credibility: CredibilityClient
    social_graph: SocialGraphClient
    quality: QualityClient


def build_providers(settings: Settings, http: httpx.AsyncClient) -> Providers:
    return Providers(
        credibility=EthosClient(http, settings.ethos_api_base, settings.ethos_client_id),
        social_graph=NeynarClient(
            http,
            settings.neynar_api_base,
            settings.neynar_api_key,
            hub_api_base=settings.neynar_hub_api_base,
        ),
        quality=QuotientClient(http, settings.quotient_api_base, settings.quotient_api_key),
    )


__all__ = [
    "CredibilityClient",
    "EthosClient",
    "Mutual",
    "NeynarClient",
    "PlatformUser",
    "QualityClient",
    "ProviderClient",
    "ProviderResponse",
    "Providers",
    "QuotientClient",
    "ShareReceipt",
    "SocialGraphClient",
    "build_providers",
]

"""
Capability interfaces the eligibility and notification layers depend on.

Concrete clients (EthosClient, NeynarClient, QuotientClient) satisfy these
structurally; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from allowgate.providers.base import ProviderClient, ProviderResponse
from allowgate.providers.neynar import PlatformUser, ShareReceipt
from allowgate.providers.quotient import Mutual


@runtime_checkable
class CredibilityClient(ProviderClient[float], Protocol):
    """Wallet credibility score keyed by address."""


@runtime_checkable
class QualityClient(ProviderClient[float], Protocol):
    """Account quality score keyed by platform id, plus ranked mutuals."""

    async def mutuals(self, fid: int) -> ProviderResponse[list[Mutual]]:
        ...


@runtime_checkable
class SocialGraphClient(ProviderClient[PlatformUser], Protocol):
    """Identity lookup (address or platform id) plus follow, cast, and app-key queries."""

    async def is_following(self, viewer_fid: int, target_fid: int) -> ProviderResponse[bool]:
        ...

    async def fetch_cast(self, cast_hash: str) -> ProviderResponse[ShareReceipt]:
        ...

    async def usernames(self, fids: list[int]) -> ProviderResponse[dict[int, str]]:
        ...

    async def is_active_app_key(self, fid: int, app_key: str) -> ProviderResponse[bool]:
        ...

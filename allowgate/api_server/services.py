"""
Process-wide service wiring: one store, one provider set, one dispatcher.

Built once in the app lifespan and read by routes through get_services().
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from allowgate.allowlist import MerkleAllowlistStore
from allowgate.config import Settings
from allowgate.eligibility import EligibilityAggregator
from allowgate.notifications import (
    EventIngestor,
    NotificationDispatcher,
    SendLedger,
    TokenStore,
    neynar_app_key_check,
)
from allowgate.providers import Providers, build_providers


@dataclass
class Services:
    settings: Settings
    store: MerkleAllowlistStore
    providers: Providers
    aggregator: EligibilityAggregator
    dispatcher: NotificationDispatcher
    ingestor: EventIngestor


def build_services(settings: Settings, http: httpx.AsyncClient, providers: Providers | None = None) -> Services:
    providers = providers or build_providers(settings, http)
    store = MerkleAllowlistStore()
    tokens = TokenStore()
    dispatcher = NotificationDispatcher(
        http,
        tokens=tokens,
        ledger=SendLedger(),
        dedup_window_sec=settings.notification_dedup_window_sec,
        target_url=settings.app_home_url,
    )
    aggregator = EligibilityAggregator(
        store,
        providers,
        settings,
        on_allowlisted=dispatcher.send_allowlist_notification,
    )
    ingestor = EventIngestor(tokens, neynar_app_key_check(providers.social_graph))
    return Services(
        settings=settings,
        store=store,
        providers=providers,
        aggregator=aggregator,
        dispatcher=dispatcher,
        ingestor=ingestor,
    )


def get_services(request: Request) -> Services:
    """Dependency: services attached to the running app."""
    return request.app.state.services

"""
Mini-app webhook: JFS signature verification, event parsing, and token ingestion.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from nacl.signing import SigningKey

from allowgate.core.exceptions import InvalidAppKey, InvalidEventData, VerifyAppKeyError
from allowgate.notifications import (
    EventIngestor,
    MiniAppAdded,
    NotificationDetails,
    NotificationsEnabled,
    TokenStore,
    neynar_app_key_check,
    parse_event,
    verify_envelope,
)
from allowgate.notifications.signature import b64url_encode
from allowgate.providers import ProviderResponse

from conftest import APP_KEY, USER_FID, FakeSocialGraph, sign

ENABLED = {"event": "notifications_enabled", "notificationDetails": {"url": "https://notify.test", "token": "tok"}}


async def _active(fid: int, app_key: str) -> bool:
    return True


async def _inactive(fid: int, app_key: str) -> bool:
    return False


# -----------------------------------------------------------------------------
# Envelope
# -----------------------------------------------------------------------------

def test_valid_envelope_decodes():
    signed = verify_envelope(sign(ENABLED))
    assert signed.fid == USER_FID
    assert signed.app_key == APP_KEY
    assert signed.payload == ENABLED


def test_signature_by_another_key_is_authenticity_error():
    envelope = sign(ENABLED)
    forged = sign(ENABLED, key=SigningKey(b"\x02" * 32), app_key=APP_KEY)
    envelope["signature"] = forged["signature"]
    with pytest.raises(InvalidAppKey) as excinfo:
        verify_envelope(envelope)
    assert excinfo.value.status_code == 401


def test_tampered_payload_fails_signature():
    envelope = sign(ENABLED)
    envelope["payload"] = b64url_encode(json.dumps({"event": "miniapp_removed"}).encode())
    with pytest.raises(InvalidAppKey):
        verify_envelope(envelope)


@pytest.mark.parametrize(
    "envelope",
    [
        None,
        {},
        {"header": "x", "payload": "y"},
        {"header": "!!!", "payload": "e30", "signature": "AA"},
        {"header": b64url_encode(b'{"fid": 1, "type": "custody", "key": "0x00"}'), "payload": "e30", "signature": "AA"},
    ],
)
def test_malformed_envelope_is_event_data_error(envelope):
    with pytest.raises(InvalidEventData) as excinfo:
        verify_envelope(envelope)
    assert excinfo.value.status_code == 400


def test_verified_envelope_with_bad_payload_is_event_data_error(allowgate_db):
    with pytest.raises(InvalidEventData):
        verify_envelope(sign(b"not json"))
    ingestor = EventIngestor(TokenStore(), _active)
    with pytest.raises(InvalidEventData):
        asyncio.run(ingestor.ingest(sign({"event": "notifications_enabled"})))


def test_undecodable_payload_after_valid_signature():
    with pytest.raises(InvalidEventData):
        verify_envelope(sign(b"\xff\xfe"))


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------

def test_parse_event_variants():
    enabled = parse_event(ENABLED)
    assert isinstance(enabled, NotificationsEnabled)
    assert enabled.notification_details.to_details() == NotificationDetails(token="tok", url="https://notify.test/")

    added = parse_event({"event": "miniapp_added"})
    assert isinstance(added, MiniAppAdded)
    assert added.notification_details is None

    assert parse_event({"event": "miniapp_removed"}).event == "miniapp_removed"
    assert parse_event({"event": "notifications_disabled"}).event == "notifications_disabled"


@pytest.mark.parametrize(
    "payload",
    [
        {"event": "notifications_enabled"},
        {"event": "frame_exploded"},
        {"notificationDetails": {"url": "u", "token": "t"}},
        ["miniapp_added"],
        {"event": "notifications_enabled", "notificationDetails": {"url": "not a url", "token": "t"}},
        {"event": "notifications_enabled", "notificationDetails": {"url": "http://[::1", "token": "t"}},
    ],
)
def test_parse_event_rejects_invalid(payload):
    with pytest.raises(InvalidEventData):
        parse_event(payload)


# -----------------------------------------------------------------------------
# Ingestion
# -----------------------------------------------------------------------------

def test_enable_then_disable_updates_token_store(allowgate_db):
    tokens = TokenStore()
    ingestor = EventIngestor(tokens, _active)

    fid, event = asyncio.run(ingestor.ingest(sign(ENABLED)))
    assert fid == USER_FID
    assert event.event == "notifications_enabled"
    assert tokens.get(USER_FID) == NotificationDetails(token="tok", url="https://notify.test/")

    asyncio.run(ingestor.ingest(sign({"event": "notifications_disabled"})))
    assert tokens.get(USER_FID) is None


def test_added_with_details_saves_and_removed_deletes(allowgate_db):
    tokens = TokenStore()
    ingestor = EventIngestor(tokens, _active)
    added = {"event": "miniapp_added", "notificationDetails": {"url": "https://n.test", "token": "t2"}}

    asyncio.run(ingestor.ingest(sign(added)))
    assert tokens.exists(USER_FID)
    asyncio.run(ingestor.ingest(sign({"event": "miniapp_removed"})))
    assert not tokens.exists(USER_FID)


def test_inactive_app_key_is_rejected_without_side_effects(allowgate_db):
    tokens = TokenStore()
    ingestor = EventIngestor(tokens, _inactive)
    with pytest.raises(InvalidAppKey):
        asyncio.run(ingestor.ingest(sign(ENABLED)))
    assert tokens.get(USER_FID) is None


def test_app_key_check_through_social_graph():
    graph = FakeSocialGraph(app_key_active=ProviderResponse.ok(True))
    assert asyncio.run(neynar_app_key_check(graph)(USER_FID, APP_KEY)) is True
    assert graph.calls == [("is_active_app_key", USER_FID, APP_KEY)]


def test_app_key_lookup_failure_is_retryable_error():
    graph = FakeSocialGraph(app_key_active=ProviderResponse.failed("neynar: HTTP 503"))
    with pytest.raises(VerifyAppKeyError) as excinfo:
        asyncio.run(neynar_app_key_check(graph)(USER_FID, APP_KEY))
    assert excinfo.value.status_code == 503

"""
Share text: top mutuals by combined score, usernames re-validated by the social graph.
"""

from __future__ import annotations

import asyncio

from allowgate.eligibility import build_share_text
from allowgate.providers import Mutual, ProviderResponse

from conftest import USER_FID, FakeQuality, FakeSocialGraph


def _mutuals(n: int) -> list[Mutual]:
    return [Mutual(fid=i, username=f"stale{i}", combined_score=i / 10) for i in range(1, n + 1)]


def test_mentions_top_five_by_score_with_authoritative_usernames():
    quality = FakeQuality(mutuals=ProviderResponse.ok(_mutuals(7)))
    graph = FakeSocialGraph(usernames=ProviderResponse.ok({7: "seven", 6: "six", 5: "five", 4: "four"}))

    result = asyncio.run(build_share_text(USER_FID, quality, graph, app_url="https://app.test"))

    assert graph.calls == [("usernames", (7, 6, 5, 4, 3))]
    # fid 3 did not resolve, so it is not mentioned
    assert result.mentions == ["seven", "six", "five", "four"]
    assert "@seven @six @five @four" in result.text
    assert "stale" not in result.text
    assert result.text.endswith("https://app.test")


def test_no_mutuals_yields_base_text():
    result = asyncio.run(build_share_text(USER_FID, FakeQuality(), FakeSocialGraph(), app_url="https://app.test"))
    assert result.mentions == []
    assert "@" not in result.text


def test_provider_failures_fall_back_to_base_text():
    failing_quality = FakeQuality(mutuals=ProviderResponse.failed("quotient: HTTP 500"))
    result = asyncio.run(build_share_text(USER_FID, failing_quality, FakeSocialGraph()))
    assert result.mentions == []

    quality = FakeQuality(mutuals=ProviderResponse.ok(_mutuals(2)))
    failing_graph = FakeSocialGraph(usernames=ProviderResponse.failed("neynar: HTTP 500"))
    result = asyncio.run(build_share_text(USER_FID, quality, failing_graph))
    assert result.mentions == []

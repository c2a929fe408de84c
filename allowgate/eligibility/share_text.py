"""
Share text with mutual-connection mentions.

Mutuals come from the quality provider; the social graph is authoritative
for usernames, so only mutuals it can resolve are mentioned.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from allowgate.allowgate_logging import get_logger
from allowgate.providers import QualityClient, SocialGraphClient

logger = get_logger(__name__)

MAX_MENTIONS = 5
BASE_SHARE_TEXT = "I just checked my eligibility for the Invisible Law allowlist."


@dataclass(frozen=True)
class ShareText:
    text: str
    mentions: list[str] = field(default_factory=list)


def compose_share_text(base_text: str, app_url: str, mentions: list[str]) -> str:
    parts = [base_text]
    if mentions:
        parts.append(" ".join(f"@{m}" for m in mentions))
    if app_url:
        parts.append(app_url)
    return "\n\n".join(parts)


async def build_share_text(
    fid: int,
    quality: QualityClient,
    social_graph: SocialGraphClient,
    app_url: str = "",
    base_text: str = BASE_SHARE_TEXT,
    limit: int = MAX_MENTIONS,
) -> ShareText:
    """Top `limit` mutuals by combined score, re-validated by the social graph."""
    mutuals = await quality.mutuals(fid)
    if mutuals.error or not mutuals.value:
        if mutuals.error:
            logger.warning("share_text_mutuals_unavailable", fid=fid, error=mutuals.error)
        return ShareText(text=compose_share_text(base_text, app_url, []))

    top = sorted(mutuals.value, key=lambda m: m.combined_score, reverse=True)[:limit]
    names = await social_graph.usernames([m.fid for m in top])
    if names.error or names.value is None:
        logger.warning("share_text_usernames_unavailable", fid=fid, error=names.error)
        return ShareText(text=compose_share_text(base_text, app_url, []))

    mentions = [names.value[m.fid] for m in top if names.value.get(m.fid)]
    return ShareText(text=compose_share_text(base_text, app_url, mentions), mentions=mentions)

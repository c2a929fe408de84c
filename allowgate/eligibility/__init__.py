"""Eligibility: result models, fixed business rules, aggregator and join action."""

from allowgate.eligibility.aggregator import NOT_ELIGIBLE, EligibilityAggregator
from allowgate.eligibility.models import (
    EligibilityRequest,
    EligibilityVerdict,
    JoinResult,
    PlatformUserInfo,
    ScoreResult,
    ShareResult,
    SocialResult,
)
from allowgate.eligibility.share_text import ShareText, build_share_text

__all__ = [
    "NOT_ELIGIBLE",
    "EligibilityAggregator",
    "EligibilityRequest",
    "EligibilityVerdict",
    "JoinResult",
    "PlatformUserInfo",
    "ScoreResult",
    "ShareResult",
    "ShareText",
    "SocialResult",
    "build_share_text",
]

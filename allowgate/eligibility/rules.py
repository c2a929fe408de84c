"""
Fixed eligibility business rules.

1. Score requirement: OR across score providers; a provider passes when it
   returned a score at or above its own threshold. Error or absence never passes.
2. Social requirement: AND across configured platforms; each must show
   is_following, and only self-declarable platforms may pass unverified.
3. Share requirement: has_shared AND verified, unless the caller explicitly
   marked the share requirement inapplicable.
4. Eligible = score AND social AND share.
"""

from __future__ import annotations

from typing import Iterable, Optional

from allowgate.eligibility.models import ScoreResult, ShareResult, SocialResult


def evaluate_score(
    provider: str,
    score: Optional[float],
    threshold: float,
    error: Optional[str] = None,
) -> ScoreResult:
    passes = error is None and score is not None and score >= threshold
    return ScoreResult(provider=provider, score=score, threshold=threshold, passes=passes, error=error)


def passes_score_requirement(scores: Iterable[ScoreResult]) -> bool:
    return any(s.passes for s in scores)


def social_check_passes(check: SocialResult, self_declarable: Iterable[str]) -> bool:
    if check.error is not None or not check.is_following:
        return False
    return check.verified or check.platform in set(self_declarable)


def passes_social_requirement(social: Iterable[SocialResult], self_declarable: Iterable[str]) -> bool:
    checks = list(social)
    allowed = tuple(self_declarable)
    return bool(checks) and all(social_check_passes(c, allowed) for c in checks)


def passes_share_requirement(share: ShareResult, share_required: bool) -> bool:
    if not share_required:
        return True
    return share.has_shared and share.verified


def is_eligible(score_ok: bool, social_ok: bool, share_ok: bool) -> bool:
    return score_ok and social_ok and share_ok

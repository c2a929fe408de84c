"""
Eligibility result models.

Every check keeps its own breakdown (provider, threshold, observed value,
verification status, error) so a verdict always explains why a requirement
failed. Absence (score None, error None) and failure (error set) stay distinct.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class EligibilityRequest:
    """Caller-supplied, self-declared inputs. Nothing here is trusted as a verdict."""

    x_follow_confirmed: bool = False
    fid: Optional[int] = None
    cast_hash: Optional[str] = None
    share_not_required: bool = False
    """Explicit bypass of the share requirement (e.g. non-miniapp context); never inferred."""


@dataclass(frozen=True)
class ScoreResult:
    provider: str
    score: Optional[float]
    threshold: float
    passes: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SocialResult:
    platform: str
    username: str
    profile_url: str
    is_following: bool
    verified: bool
    """True only when the relationship was confirmed by the provider API."""
    error: Optional[str] = None


@dataclass(frozen=True)
class ShareResult:
    has_shared: bool
    cast_hash: Optional[str]
    verified: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PlatformUserInfo:
    fid: int
    username: str
    display_name: str = ""
    pfp_url: str = ""


@dataclass(frozen=True)
class EligibilityVerdict:
    address: str
    is_already_allowlisted: bool
    platform_user: Optional[PlatformUserInfo]
    scores: list[ScoreResult]
    passes_score_requirement: bool
    social: list[SocialResult]
    passes_social_requirement: bool
    share: ShareResult
    share_required: bool
    passes_share_requirement: bool
    is_eligible: bool

    def to_dict(self) -> dict[str, Any]:
        return _camelize(asdict(self))


@dataclass(frozen=True)
class JoinResult:
    success: bool
    error: Optional[str] = None
    already_allowlisted: bool = False
    verdict: Optional[EligibilityVerdict] = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "alreadyAllowlisted": self.already_allowlisted,
        }


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value

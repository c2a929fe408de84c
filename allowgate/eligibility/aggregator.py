"""
Eligibility Aggregator: concurrent fan-out to providers plus the join action.

Task graph per check():
    membership ─┐
    credibility ┼─> verdict
    identity ───┼─> quality
                ├─> platform_follow
                └─> share (only when a share receipt was supplied)

Independent tasks start together; dependent tasks wait on identity only.
The whole graph is bounded by one request-scope deadline; anything still
running at the deadline is cancelled and recorded as "timed out".
Membership is a storage read: its failures propagate as StorageUnavailable
instead of being folded into the verdict.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from allowgate.allowgate_logging import get_logger, short_address
from allowgate.allowlist import AddOutcome, MerkleAllowlistStore
from allowgate.config import Settings
from allowgate.core.exceptions import EligibilityUnavailable, StorageUnavailable
from allowgate.eligibility import rules
from allowgate.eligibility.models import (
    EligibilityRequest,
    EligibilityVerdict,
    JoinResult,
    PlatformUserInfo,
    ScoreResult,
    ShareResult,
    SocialResult,
)
from allowgate.providers import PlatformUser, Providers
from allowgate.utils.address_utils import normalize_address

logger = get_logger(__name__)

TIMED_OUT = "timed out"
NO_LINKED_ACCOUNT = "No Farcaster account linked to this wallet"
NOT_ELIGIBLE = "Address does not meet eligibility requirements"
CHECK_TIMED_OUT = "Eligibility check timed out, please retry"

FARCASTER = "farcaster"
X = "x"


@dataclass(frozen=True)
class _Identity:
    """Outcome of platform identity resolution."""

    user: Optional[PlatformUser]
    error: Optional[str] = None

    @property
    def unresolved_reason(self) -> str:
        if self.error:
            return f"Could not resolve Farcaster account ({self.error})"
        return NO_LINKED_ACCOUNT


AllowlistNotifier = Callable[[int], Awaitable[Any]]


def _has_timeouts(verdict: EligibilityVerdict) -> bool:
    errors = [r.error for r in (*verdict.scores, *verdict.social, verdict.share)]
    return TIMED_OUT in errors


class EligibilityAggregator:
    def __init__(
        self,
        store: MerkleAllowlistStore,
        providers: Providers,
        settings: Settings,
        on_allowlisted: AllowlistNotifier | None = None,
    ) -> None:
        self._store = store
        self._providers = providers
        self._settings = settings
        self._on_allowlisted = on_allowlisted

    # -------------------------------------------------------------------------
    # Eligibility check
    # -------------------------------------------------------------------------

    async def check(self, address: str, request: EligibilityRequest | None = None) -> EligibilityVerdict:
        request = request or EligibilityRequest()
        normalized = normalize_address(address)

        identity = asyncio.create_task(self._resolve_identity(normalized, request.fid))
        tasks: dict[str, asyncio.Task] = {
            "membership": asyncio.create_task(asyncio.to_thread(self._store.is_member, normalized)),
            "credibility": asyncio.create_task(self._credibility_score(normalized)),
            "identity": identity,
            "quality": asyncio.create_task(self._quality_score(identity)),
            "platform_follow": asyncio.create_task(self._platform_follow(identity)),
            "share": asyncio.create_task(self._share_check(identity, request.cast_hash)),
        }

        done, pending = await asyncio.wait(tasks.values(), timeout=self._settings.aggregation_timeout_sec)
        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "eligibility_timed_out",
                address=short_address(normalized),
                pending=sorted(name for name, task in tasks.items() if task in pending),
            )

        def finished(name: str) -> bool:
            return tasks[name] in done

        if not finished("membership"):
            raise StorageUnavailable("Allowlist membership check timed out")
        is_member: bool = tasks["membership"].result()

        resolved: _Identity | None = identity.result() if finished("identity") else None

        scores = [
            tasks["credibility"].result()
            if finished("credibility")
            else rules.evaluate_score("ethos", None, self._settings.ethos_threshold, TIMED_OUT),
            self._social_graph_score(resolved),
            tasks["quality"].result()
            if finished("quality")
            else rules.evaluate_score("quotient", None, self._settings.quotient_threshold, TIMED_OUT),
        ]
        social = [
            tasks["platform_follow"].result()
            if finished("platform_follow")
            else self._farcaster_social(False, False, TIMED_OUT),
            self._x_social(request.x_follow_confirmed),
        ]
        share = (
            tasks["share"].result()
            if finished("share")
            else ShareResult(has_shared=False, cast_hash=request.cast_hash, verified=False, error=TIMED_OUT)
        )

        share_required = not request.share_not_required
        score_ok = rules.passes_score_requirement(scores)
        social_ok = rules.passes_social_requirement(social, self._settings.self_declarable_platforms)
        share_ok = rules.passes_share_requirement(share, share_required)
        user = resolved.user if resolved else None

        verdict = EligibilityVerdict(
            address=normalized,
            is_already_allowlisted=is_member,
            platform_user=(
                PlatformUserInfo(
                    fid=user.fid,
                    username=user.username,
                    display_name=user.display_name,
                    pfp_url=user.pfp_url,
                )
                if user
                else None
            ),
            scores=scores,
            passes_score_requirement=score_ok,
            social=social,
            passes_social_requirement=social_ok,
            share=share,
            share_required=share_required,
            passes_share_requirement=share_ok,
            is_eligible=rules.is_eligible(score_ok, social_ok, share_ok),
        )
        logger.info(
            "eligibility_checked",
            address=short_address(normalized),
            fid=user.fid if user else None,
            is_member=is_member,
            passes_score=score_ok,
            passes_social=social_ok,
            passes_share=share_ok,
            is_eligible=verdict.is_eligible,
        )
        return verdict

    # -------------------------------------------------------------------------
    # Join
    # -------------------------------------------------------------------------

    async def join(self, address: str, request: EligibilityRequest | None = None) -> JoinResult:
        """
        Re-validate on the server and add on success.

        The caller's prior verdict is never trusted. Already-member is an
        idempotent success and skips the providers entirely.
        """
        request = request or EligibilityRequest()
        normalized = normalize_address(address)

        if await asyncio.to_thread(self._store.is_member, normalized):
            return JoinResult(success=True, already_allowlisted=True)

        verdict = await self.check(normalized, request)
        if not verdict.is_eligible:
            if _has_timeouts(verdict):
                logger.warning("allowlist_join_timed_out", address=short_address(normalized))
                raise EligibilityUnavailable(CHECK_TIMED_OUT)
            logger.info("allowlist_join_rejected", address=short_address(normalized))
            return JoinResult(success=False, error=NOT_ELIGIBLE, verdict=verdict)

        outcome = await asyncio.to_thread(self._store.add, normalized)
        already = outcome is AddOutcome.ALREADY_MEMBER
        logger.info("allowlist_join_accepted", address=short_address(normalized), already_member=already)

        fid = verdict.platform_user.fid if verdict.platform_user else request.fid
        if not already and fid is not None and self._on_allowlisted is not None:
            await self._notify_allowlisted(fid)
        return JoinResult(success=True, already_allowlisted=already, verdict=verdict)

    async def _notify_allowlisted(self, fid: int) -> None:
        try:
            await self._on_allowlisted(fid)
        except Exception as e:
            logger.warning("allowlist_notification_failed", fid=fid, error=str(e), error_type=type(e).__name__)

    # -------------------------------------------------------------------------
    # Task graph nodes (provider steps never raise)
    # -------------------------------------------------------------------------

    async def _resolve_identity(self, address: str, fid: int | None) -> _Identity:
        subject: str | int = fid if fid is not None else address
        resp = await self._providers.social_graph.query(subject)
        return _Identity(user=resp.value, error=resp.error)

    async def _credibility_score(self, address: str) -> ScoreResult:
        resp = await self._providers.credibility.query(address)
        return rules.evaluate_score("ethos", resp.value, self._settings.ethos_threshold, resp.error)

    def _social_graph_score(self, identity: _Identity | None) -> ScoreResult:
        threshold = self._settings.neynar_threshold
        if identity is None:
            return rules.evaluate_score("neynar", None, threshold, TIMED_OUT)
        if identity.user is None:
            return rules.evaluate_score("neynar", None, threshold, identity.unresolved_reason)
        return rules.evaluate_score("neynar", identity.user.score, threshold)

    async def _quality_score(self, identity_task: asyncio.Task) -> ScoreResult:
        threshold = self._settings.quotient_threshold
        identity: _Identity = await identity_task
        if identity.user is None:
            return rules.evaluate_score("quotient", None, threshold, identity.unresolved_reason)
        resp = await self._providers.quality.query(identity.user.fid)
        return rules.evaluate_score("quotient", resp.value, threshold, resp.error)

    async def _platform_follow(self, identity_task: asyncio.Task) -> SocialResult:
        target_fid = self._settings.farcaster_target_fid
        if target_fid <= 0:
            return self._farcaster_social(False, False, "Farcaster target account not configured")
        identity: _Identity = await identity_task
        if identity.user is None:
            return self._farcaster_social(False, False, identity.unresolved_reason)
        resp = await self._providers.social_graph.is_following(identity.user.fid, target_fid)
        if resp.error:
            return self._farcaster_social(False, False, resp.error)
        return self._farcaster_social(bool(resp.value), True)

    async def _share_check(self, identity_task: asyncio.Task, cast_hash: str | None) -> ShareResult:
        if not cast_hash:
            return ShareResult(has_shared=False, cast_hash=None, verified=False)
        identity: _Identity = await identity_task
        if identity.user is None:
            return ShareResult(
                has_shared=False,
                cast_hash=cast_hash,
                verified=False,
                error=identity.unresolved_reason,
            )
        resp = await self._providers.social_graph.fetch_cast(cast_hash)
        if resp.error:
            return ShareResult(has_shared=False, cast_hash=cast_hash, verified=False, error=resp.error)
        receipt = resp.value
        if receipt is None:
            return ShareResult(has_shared=False, cast_hash=cast_hash, verified=False)
        if receipt.author_fid != identity.user.fid:
            logger.info(
                "share_author_mismatch",
                cast_hash=cast_hash,
                author_fid=receipt.author_fid,
                fid=identity.user.fid,
            )
            return ShareResult(
                has_shared=True,
                cast_hash=receipt.hash,
                verified=False,
                error="Cast was not authored by this account",
            )
        return ShareResult(has_shared=True, cast_hash=receipt.hash, verified=True)

    # -------------------------------------------------------------------------
    # Social results
    # -------------------------------------------------------------------------

    def _farcaster_social(self, is_following: bool, verified: bool, error: str | None = None) -> SocialResult:
        username = self._settings.farcaster_target_username
        return SocialResult(
            platform=FARCASTER,
            username=username,
            profile_url=f"https://farcaster.xyz/{username}",
            is_following=is_following,
            verified=verified,
            error=error,
        )

    def _x_social(self, confirmed: bool) -> SocialResult:
        """X has no verification API here: a follow is self-declared, never verified."""
        return SocialResult(
            platform=X,
            username=self._settings.x_target_username,
            profile_url=self._settings.x_target_profile_url,
            is_following=bool(confirmed),
            verified=False,
        )

"""
HTTP routes: allowlist status/proof/root, eligibility check and join,
share text, and the mini-app webhook.

Every eligibility decision is recomputed here; client-side verdicts are
never trusted.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from allowgate.allowgate_logging import bind_request_context, get_logger, short_address
from allowgate.allowlist import MembershipProof, verify_address
from allowgate.api_server.services import Services, get_services
from allowgate.core.exceptions import InvalidEventData
from allowgate.eligibility import EligibilityRequest, build_share_text
from allowgate.utils.address_utils import normalize_address

logger = get_logger(__name__)

router = APIRouter(prefix="/api")


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusResponse(_CamelModel):
    """GET /api/allowlist/status response."""

    address: str
    is_allowlisted: bool


class ProofResponse(_CamelModel):
    """GET /api/allowlist/proof response. Non-members get proof=[] with isValid=false."""

    address: str
    is_allowlisted: bool
    proof: list[str] = Field(default_factory=list)
    root: Optional[str] = None
    is_valid: bool = False


class RootResponse(_CamelModel):
    root: str
    size: int


class JoinRequest(_CamelModel):
    """POST /api/eligibility/add body."""

    address: str = Field("", max_length=64)
    x_follow_confirmed: bool = False
    fid: Optional[int] = Field(None, gt=0)
    cast_hash: Optional[str] = Field(None, max_length=128)
    share_not_required: bool = False


class JoinResponse(_CamelModel):
    success: bool
    error: Optional[str] = None
    already_allowlisted: bool = False


class ShareTextResponse(_CamelModel):
    text: str
    mentions: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Allowlist
# -----------------------------------------------------------------------------

@router.get("/allowlist/status", response_model=StatusResponse, tags=["Allowlist"])
def allowlist_status(address: str = Query(""), services: Services = Depends(get_services)) -> StatusResponse:
    bind_request_context(address=address)
    normalized = normalize_address(address)
    return StatusResponse(address=normalized, is_allowlisted=services.store.is_member(normalized))


@router.get("/allowlist/proof", response_model=ProofResponse, tags=["Allowlist"])
def allowlist_proof(address: str = Query(""), services: Services = Depends(get_services)) -> ProofResponse:
    bind_request_context(address=address)
    result = services.store.get_proof(address)
    if not isinstance(result, MembershipProof):
        return ProofResponse(address=result.address, is_allowlisted=False)
    is_valid = verify_address(result.proof, result.address, result.root)
    if not is_valid:
        logger.error("allowlist_proof_invalid", address=short_address(result.address), root=result.root)
    return ProofResponse(
        address=result.address,
        is_allowlisted=True,
        proof=result.proof,
        root=result.root,
        is_valid=is_valid,
    )


@router.get("/allowlist/root", response_model=RootResponse, tags=["Allowlist"])
def allowlist_root(services: Services = Depends(get_services)) -> RootResponse:
    return RootResponse(root=services.store.get_root(), size=services.store.size())


# -----------------------------------------------------------------------------
# Eligibility
# -----------------------------------------------------------------------------

@router.get("/eligibility/check", tags=["Eligibility"])
async def eligibility_check(
    address: str = Query(""),
    x_follow_confirmed: bool = Query(False, alias="xFollowConfirmed"),
    fid: Optional[int] = Query(None, gt=0),
    cast_hash: Optional[str] = Query(None, alias="castHash", max_length=128),
    share_not_required: bool = Query(False, alias="shareNotRequired"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    bind_request_context(address=address, fid=fid)
    verdict = await services.aggregator.check(
        address,
        EligibilityRequest(
            x_follow_confirmed=x_follow_confirmed,
            fid=fid,
            cast_hash=cast_hash,
            share_not_required=share_not_required,
        ),
    )
    return verdict.to_dict()


@router.post("/eligibility/add", response_model=JoinResponse, tags=["Eligibility"])
async def eligibility_add(body: JoinRequest, services: Services = Depends(get_services)):
    bind_request_context(address=body.address, fid=body.fid)
    result = await services.aggregator.join(
        body.address,
        EligibilityRequest(
            x_follow_confirmed=body.x_follow_confirmed,
            fid=body.fid,
            cast_hash=body.cast_hash,
            share_not_required=body.share_not_required,
        ),
    )
    if not result.success:
        return JSONResponse(status_code=400, content=result.to_dict())
    return JoinResponse(success=True, already_allowlisted=result.already_allowlisted)


@router.get("/share/text", response_model=ShareTextResponse, tags=["Eligibility"])
async def share_text(fid: int = Query(..., gt=0), services: Services = Depends(get_services)) -> ShareTextResponse:
    bind_request_context(fid=fid)
    result = await build_share_text(
        fid,
        services.providers.quality,
        services.providers.social_graph,
        app_url=services.settings.app_url,
    )
    return ShareTextResponse(text=result.text, mentions=result.mentions)


# -----------------------------------------------------------------------------
# Mini-app webhook
# -----------------------------------------------------------------------------

@router.post("/miniapp/webhook", tags=["Notifications"])
async def miniapp_webhook(request: Request, services: Services = Depends(get_services)) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidEventData("Body is not JSON") from e
    fid, event = await services.ingestor.ingest(body)
    return {"success": True, "fid": fid, "event": event.event}

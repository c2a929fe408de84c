"""
Social-Graph Client (Neynar / Farcaster).

Resolves platform identities (address -> user, fid -> user), checks follow
relationships, looks up share receipts (casts), bulk-resolves usernames, and
confirms app keys for inbound event authenticity. Data fetching only; no
eligibility rules here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from allowgate.providers.base import ProviderResponse, as_float, fetch_json, malformed

PROVIDER_ID = "neynar"


@dataclass(frozen=True)
class PlatformUser:
    fid: int
    username: str
    display_name: str = ""
    pfp_url: str = ""
    score: float | None = None
    verified_addresses: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ShareReceipt:
    """A cast as returned by the social graph."""

    hash: str
    author_fid: int
    text: str = ""


def _parse_user(raw: dict[str, Any]) -> PlatformUser:
    if not isinstance(raw, dict):
        raise TypeError(f"user entry is {type(raw).__name__}, not an object")
    score = raw.get("score")
    if score is None:
        score = (raw.get("experimental") or {}).get("neynar_user_score")
    verified = (raw.get("verified_addresses") or {}).get("eth_addresses") or []
    return PlatformUser(
        fid=int(raw["fid"]),
        username=str(raw.get("username") or ""),
        display_name=str(raw.get("display_name") or ""),
        pfp_url=str(raw.get("pfp_url") or ""),
        score=as_float(score),
        verified_addresses=[str(a).lower() for a in verified],
    )


class NeynarClient:
    provider_id = PROVIDER_ID

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_base: str,
        api_key: str,
        hub_api_base: str = "https://hub-api.neynar.com/v1",
    ) -> None:
        self._http = http
        self._base = api_base.rstrip("/")
        self._hub_base = hub_api_base.rstrip("/")
        self._api_key = api_key

    @property
    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json", "api_key": self._api_key}

    async def query(self, subject: str | int) -> ProviderResponse[PlatformUser]:
        """Resolve a platform identity from an fid (int) or a canonical address (str)."""
        if isinstance(subject, int):
            return await self.user_by_fid(subject)
        return await self.user_by_address(subject)

    async def user_by_address(self, address: str) -> ProviderResponse[PlatformUser]:
        address = address.lower()
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "GET",
            f"{self._base}/user/bulk-by-address",
            params={"addresses": address},
            headers=self._headers,
        )
        if resp.value is None:
            return resp
        try:
            users = resp.value.get(address) or []
            if not users:
                return ProviderResponse.absent()
            # First account is the primary one for this address
            return ProviderResponse.ok(_parse_user(users[0]))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def user_by_fid(self, fid: int) -> ProviderResponse[PlatformUser]:
        resp = await self._bulk_users([fid])
        if resp.value is None:
            return resp
        try:
            if not resp.value:
                return ProviderResponse.absent()
            return ProviderResponse.ok(_parse_user(resp.value[0]))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def is_following(self, viewer_fid: int, target_fid: int) -> ProviderResponse[bool]:
        """Does viewer_fid follow target_fid? Read from the target's viewer_context."""
        resp = await self._bulk_users([target_fid], viewer_fid=viewer_fid)
        if resp.value is None:
            return resp
        try:
            if not resp.value:
                return ProviderResponse.absent()
            context = resp.value[0].get("viewer_context") or {}
            return ProviderResponse.ok(bool(context.get("following", False)))
        except (AttributeError, TypeError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def fetch_cast(self, cast_hash: str) -> ProviderResponse[ShareReceipt]:
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "GET",
            f"{self._base}/cast",
            params={"identifier": cast_hash, "type": "hash"},
            headers=self._headers,
        )
        if resp.value is None:
            return resp
        try:
            cast = resp.value.get("cast")
            if not cast:
                return ProviderResponse.absent()
            author = cast.get("author") or {}
            return ProviderResponse.ok(
                ShareReceipt(
                    hash=str(cast["hash"]),
                    author_fid=int(author.get("fid") or 0),
                    text=str(cast.get("text") or ""),
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def usernames(self, fids: list[int]) -> ProviderResponse[dict[int, str]]:
        """Authoritative fid -> username map for many fids."""
        if not fids:
            return ProviderResponse.ok({})
        resp = await self._bulk_users(fids)
        if resp.value is None:
            return resp
        try:
            return ProviderResponse.ok({int(u["fid"]): str(u["username"]) for u in resp.value})
        except (KeyError, TypeError, ValueError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def is_active_app_key(self, fid: int, app_key: str) -> ProviderResponse[bool]:
        """Is app_key (0x-hex ed25519 public key) an on-chain signer for fid?"""
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "GET",
            f"{self._hub_base}/onChainSignersByFid",
            params={"fid": fid},
            headers={"api_key": self._api_key},
        )
        if resp.value is None:
            return resp
        try:
            wanted = app_key.lower()
            for event in resp.value.get("events") or []:
                key = str(event["signerEventBody"]["key"]).lower()
                if key == wanted:
                    return ProviderResponse.ok(True)
            return ProviderResponse.ok(False)
        except (AttributeError, KeyError, TypeError) as e:
            return malformed(PROVIDER_ID, str(e))

    async def _bulk_users(self, fids: list[int], viewer_fid: int | None = None) -> ProviderResponse[list[dict[str, Any]]]:
        params: dict[str, Any] = {"fids": ",".join(str(f) for f in fids)}
        if viewer_fid is not None:
            params["viewer_fid"] = viewer_fid
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "GET",
            f"{self._base}/user/bulk",
            params=params,
            headers=self._headers,
        )
        if resp.value is None:
            return resp
        users = resp.value.get("users") if isinstance(resp.value, dict) else None
        if users is None:
            return malformed(PROVIDER_ID, "missing users")
        if not isinstance(users, list):
            return malformed(PROVIDER_ID, "users is not a list")
        return ProviderResponse.ok(users)

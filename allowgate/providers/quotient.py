"""
Quality-Score Client (Quotient).

POST {base}/v1/user-reputation       {"fids": [fid], "api_key": ...} -> quotientScore
POST {base}/v1/farcaster-connections {"fid": fid, "categories": "mutuals", ...} -> mutuals
Both are keyed by platform identity (fid), so they depend on identity resolution.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from allowgate.providers.base import ProviderResponse, as_float, fetch_json, malformed

PROVIDER_ID = "quotient"


@dataclass(frozen=True)
class Mutual:
    fid: int
    username: str
    combined_score: float
    rank: int | None = None


class QuotientClient:
    provider_id = PROVIDER_ID

    def __init__(self, http: httpx.AsyncClient, api_base: str, api_key: str) -> None:
        self._http = http
        self._base = api_base.rstrip("/")
        self._api_key = api_key

    async def query(self, fid: int) -> ProviderResponse[float]:
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "POST",
            f"{self._base}/v1/user-reputation",
            json={"fids": [fid], "api_key": self._api_key},
        )
        if resp.value is None:
            return resp
        try:
            rows = resp.value.get("data") or []
            if not rows:
                return ProviderResponse.absent()
            score = as_float(rows[0].get("quotientScore"))
        except (AttributeError, KeyError, TypeError) as e:
            return malformed(PROVIDER_ID, str(e))
        if score is None:
            return ProviderResponse.absent()
        return ProviderResponse.ok(score)

    async def mutuals(self, fid: int) -> ProviderResponse[list[Mutual]]:
        """Mutual connections, unsorted (ordering is the caller's business rule)."""
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "POST",
            f"{self._base}/v1/farcaster-connections",
            json={"fid": fid, "api_key": self._api_key, "categories": "mutuals"},
        )
        if resp.value is None:
            return resp
        try:
            return ProviderResponse.ok(
                [
                    Mutual(
                        fid=int(item["fid"]),
                        username=str(item.get("username") or ""),
                        combined_score=float(item.get("combinedScore") or 0.0),
                        rank=item.get("rank"),
                    )
                    for item in (resp.value.get("data") or [])
                ]
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return malformed(PROVIDER_ID, str(e))

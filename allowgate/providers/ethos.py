"""
Credibility-Score Client (Ethos).

GET {base}/score/address:{address} -> {"data": {"score": <number>}}
Queried by address; independent of any platform identity.
"""

from __future__ import annotations

import httpx

from allowgate.providers.base import ProviderResponse, as_float, fetch_json, malformed

PROVIDER_ID = "ethos"


class EthosClient:
    provider_id = PROVIDER_ID

    def __init__(self, http: httpx.AsyncClient, api_base: str, client_id: str = "allowgate") -> None:
        self._http = http
        self._base = api_base.rstrip("/")
        self._client_id = client_id

    async def query(self, address: str) -> ProviderResponse[float]:
        resp = await fetch_json(
            self._http,
            PROVIDER_ID,
            "GET",
            f"{self._base}/score/address:{address}",
            headers={"X-Ethos-Client": self._client_id, "Content-Type": "application/json"},
        )
        if resp.value is None:
            return resp
        try:
            score = as_float(resp.value["data"]["score"])
        except (KeyError, TypeError) as e:
            return malformed(PROVIDER_ID, str(e))
        if score is None:
            return ProviderResponse.absent()
        return ProviderResponse.ok(score)

"""
Provider capability interface and shared HTTP handling.

Every provider call returns ProviderResponse(value, error):
- value set, error None        -> the provider has an opinion
- value None, error None       -> reachable, but no data for this subject (absence)
- value None, error "<reason>" -> transport failure, non-2xx, or malformed response

Nothing raises past a client boundary and nothing retries here; the
aggregator owns timeouts and any retry policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, Protocol, TypeVar, runtime_checkable

import httpx

from allowgate.allowgate_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@dataclass(frozen=True)
class ProviderResponse(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "ProviderResponse[T]":
        return cls(value=value, error=None)

    @classmethod
    def absent(cls) -> "ProviderResponse[T]":
        return cls(value=None, error=None)

    @classmethod
    def failed(cls, error: str) -> "ProviderResponse[T]":
        return cls(value=None, error=error)

    @property
    def is_absent(self) -> bool:
        return self.value is None and self.error is None


@runtime_checkable
class ProviderClient(Protocol[T_co]):
    """One external reputation / social source: query(subject) -> (value, error)."""

    provider_id: str

    async def query(self, subject: Any) -> ProviderResponse[T_co]:
        ...


async def fetch_json(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> ProviderResponse[Any]:
    """
    Perform one HTTP call and decode JSON.

    404 is absence; any other non-2xx, a transport error, or undecodable JSON
    is a failure with a descriptive error string.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.warning("provider_timeout", provider=provider, error=str(e))
        return ProviderResponse.failed(f"{provider}: request timed out")
    except httpx.HTTPError as e:
        logger.warning("provider_transport_error", provider=provider, error=str(e))
        return ProviderResponse.failed(f"{provider}: transport error ({type(e).__name__})")

    if response.status_code == 404:
        return ProviderResponse.absent()
    if not response.is_success:
        logger.warning(
            "provider_http_error",
            provider=provider,
            status_code=response.status_code,
        )
        return ProviderResponse.failed(f"{provider}: HTTP {response.status_code}")

    try:
        return ProviderResponse.ok(response.json())
    except ValueError as e:
        logger.warning("provider_malformed_json", provider=provider, error=str(e))
        return ProviderResponse.failed(f"{provider}: malformed response")


def malformed(provider: str, detail: str) -> ProviderResponse[Any]:
    logger.warning("provider_unexpected_shape", provider=provider, detail=detail)
    return ProviderResponse.failed(f"{provider}: unexpected response shape")


def as_float(value: Any) -> float | None:
    """Numeric field or None; bools and non-numbers are not scores."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    raise TypeError(f"expected number, got {type(value).__name__}")

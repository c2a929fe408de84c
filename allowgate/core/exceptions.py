"""
Application-level exceptions.

Taxonomy:
- InvalidAddressError: malformed input, rejected before any I/O.
- StorageUnavailable: durable store unreachable; aborts membership/proof/add.
- EligibilityUnavailable: join re-validation hit the deadline; retryable, not a rejection.
- WebhookError and subclasses: authenticity (bad app key / signature) versus
  malformed payload, each with its own HTTP status.

Provider absence and provider failure are not exceptions; they travel as
values on ProviderResponse and the per-check result models.
"""

from __future__ import annotations


class AllowgateError(Exception):
    """Base for all Allowgate domain errors."""


class InvalidAddressError(AllowgateError, ValueError):
    """Address is missing or not a valid 20-byte hex account identifier."""


class StorageUnavailable(AllowgateError):
    """The durable allowlist / token store could not be reached."""


class WebhookError(AllowgateError):
    """Base for inbound event ingestion failures."""

    status_code = 500
    public_message = "Webhook processing failed"


class InvalidEventData(WebhookError):
    """Envelope or payload is malformed (valid or unchecked signature, bad data)."""

    status_code = 400
    public_message = "Invalid webhook data"


class InvalidAppKey(WebhookError):
    """Signature does not verify, or the signing key is not an active app key for the fid."""

    status_code = 401
    public_message = "Invalid app key"


class VerifyAppKeyError(WebhookError):
    """App key could not be checked (provider unreachable); caller may retry."""

    status_code = 503
    public_message = "Verification error, please retry"


class EligibilityUnavailable(AllowgateError):
    """Re-validation could not finish (a provider timed out); transient, the caller may retry."""

"""Member Address validation utilities."""

from __future__ import annotations

from web3 import Web3

from allowgate.core.exceptions import InvalidAddressError


def is_valid_address(address: str) -> bool:
    """Return True if address is a valid 20-byte hex account address (checksum enforced when mixed-case)."""
    if not isinstance(address, str):
        return False
    address = address.strip()
    return address.startswith("0x") and bool(Web3.is_address(address))


def normalize_address(address: str) -> str:
    """
    Validate and canonicalize an address to lower-hex.

    Raises InvalidAddressError if missing or malformed. Every storage, hashing
    and comparison path goes through this first.
    """
    if not address or not isinstance(address, str):
        raise InvalidAddressError("Address is required")
    address = address.strip()
    if not address.startswith("0x") or not Web3.is_address(address):
        raise InvalidAddressError("Invalid Ethereum address format")
    return address.lower()

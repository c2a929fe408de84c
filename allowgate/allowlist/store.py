"""
Merkle Allowlist Store: authoritative membership plus proof issuance.

The durable MemberSet is the source of truth. The Merkle tree is a derived
cache held as a (tree, version) pair, where version is the set-version counter
the tree was built from. Reads compare the cached version with the current
one and rebuild when stale, so a proof is never served from a tree that does
not match the latest committed set. add() also drops the cache eagerly.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

from allowgate.allowgate_logging import get_logger, short_address
from allowgate.allowlist.member_set import MemberSet
from allowgate.allowlist.merkle import MerkleTree, build_tree
from allowgate.core.exceptions import StorageUnavailable
from allowgate.utils.address_utils import normalize_address

logger = get_logger(__name__)


class AddOutcome(str, Enum):
    ADDED = "added"
    ALREADY_MEMBER = "already_member"


@dataclass(frozen=True)
class MembershipProof:
    """Inclusion proof for a member, valid against root."""

    address: str
    proof: list[str]
    root: str


@dataclass(frozen=True)
class NotAMember:
    """Explicit non-membership signal; never an empty proof."""

    address: str


@dataclass(frozen=True)
class _CachedTree:
    tree: MerkleTree
    version: int


class MerkleAllowlistStore:
    """
    Single logical writer, many concurrent readers.

    Methods are blocking (database I/O); async callers run them in a worker
    thread. Storage failures raise StorageUnavailable and are never read as
    "not a member".
    """

    def __init__(self, member_set: MemberSet | None = None) -> None:
        self._members = member_set or MemberSet()
        self._cache: _CachedTree | None = None
        self._rebuild_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def is_member(self, address: str) -> bool:
        return self._members.contains(normalize_address(address))

    def get_proof(self, address: str) -> MembershipProof | NotAMember:
        normalized = normalize_address(address)
        if not self._members.contains(normalized):
            return NotAMember(address=normalized)

        tree = self._current_tree()
        proof = tree.hex_proof(normalized)
        if proof is None:
            # Member committed after the snapshot the tree was built from.
            tree = self._current_tree(force=True)
            proof = tree.hex_proof(normalized)
        if proof is None:
            logger.error("allowlist_proof_missing_leaf", address=short_address(normalized))
            raise StorageUnavailable("Allowlist snapshot does not contain a committed member")
        return MembershipProof(address=normalized, proof=proof, root=tree.hex_root)

    def add(self, address: str) -> AddOutcome:
        normalized = normalize_address(address)
        if not self._members.add_if_absent(normalized):
            logger.info("allowlist_add_already_member", address=short_address(normalized))
            return AddOutcome.ALREADY_MEMBER
        self.invalidate()
        logger.info("allowlist_member_added", address=short_address(normalized))
        return AddOutcome.ADDED

    # -------------------------------------------------------------------------
    # Root and tree cache
    # -------------------------------------------------------------------------

    def get_root(self) -> str:
        """32-byte root (0x-hex) of the tree over the current set."""
        return self._current_tree().hex_root

    def size(self) -> int:
        return self._current_tree().size

    def invalidate(self) -> None:
        self._cache = None

    def _current_tree(self, force: bool = False) -> MerkleTree:
        current_version = self._members.version()
        cached = self._cache
        if not force and cached is not None and cached.version == current_version:
            return cached.tree

        with self._rebuild_lock:
            cached = self._cache
            if not force and cached is not None and cached.version == current_version:
                return cached.tree
            addresses = self._members.members()
            tree = build_tree(addresses)
            # Version of the snapshot itself; it may be newer than current_version.
            self._cache = _CachedTree(tree=tree, version=len(addresses))
            logger.info("allowlist_tree_rebuilt", size=tree.size, version=len(addresses), root=tree.hex_root)
            return tree

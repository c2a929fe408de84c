"""
Merkle allowlist: durable member set, sorted-pair keccak tree, proof issuance.
"""

from allowgate.allowlist.member_set import MemberSet
from allowgate.allowlist.merkle import EMPTY_TREE_ROOT, build_tree, hash_leaf, verify_address, verify_proof
from allowgate.allowlist.store import AddOutcome, MembershipProof, MerkleAllowlistStore, NotAMember

__all__ = [
    "EMPTY_TREE_ROOT",
    "AddOutcome",
    "MemberSet",
    "MembershipProof",
    "MerkleAllowlistStore",
    "NotAMember",
    "build_tree",
    "hash_leaf",
    "verify_address",
    "verify_proof",
]

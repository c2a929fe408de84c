"""
Merkle tree: canonical root, proof generation, and external verification.
"""

from __future__ import annotations

import pytest
from web3 import Web3

from allowgate.allowlist.merkle import (
    EMPTY_TREE_ROOT,
    build_tree,
    from_hex,
    hash_leaf,
    hash_pair,
    keccak256,
    to_hex,
    verify_address,
    verify_proof,
)

ADDRESSES = [f"0x{str(i) * 40}" for i in range(1, 8)]


def test_empty_tree_root_is_zero_and_has_no_proofs():
    tree = build_tree([])
    assert tree.root == EMPTY_TREE_ROOT
    assert tree.size == 0
    assert tree.proof(ADDRESSES[0]) is None


def test_single_leaf_root_is_leaf_with_empty_proof():
    tree = build_tree([ADDRESSES[0]])
    assert tree.root == hash_leaf(ADDRESSES[0])
    assert tree.proof(ADDRESSES[0]) == []
    assert verify_proof([], hash_leaf(ADDRESSES[0]), tree.root)


def test_leaf_is_keccak_of_raw_address_bytes():
    mixed = "0xAbCdEf0000000000000000000000000000000000"
    assert hash_leaf(mixed) == keccak256(bytes.fromhex(mixed[2:]))
    assert hash_leaf(mixed) == hash_leaf(mixed.lower())
    # Not the hash of the 42-character text
    assert hash_leaf(mixed) != keccak256(mixed.lower().encode("utf-8"))


def test_proof_folds_from_solidity_style_leaf():
    """keccak256(abi.encodePacked(addr)) plus the proof must reach the root."""
    tree = build_tree(ADDRESSES[:3])
    for address in ADDRESSES[:3]:
        leaf = bytes(Web3.keccak(hexstr=address))
        assert verify_proof(tree.proof(address), leaf, tree.root)


def test_pair_hash_is_order_independent():
    a, b = hash_leaf(ADDRESSES[0]), hash_leaf(ADDRESSES[1])
    assert hash_pair(a, b) == hash_pair(b, a)
    assert hash_pair(a, b) == keccak256(min(a, b) + max(a, b))


def test_odd_node_is_promoted_unchanged():
    leaves = sorted(hash_leaf(a) for a in ADDRESSES[:3])
    tree = build_tree(ADDRESSES[:3])
    assert tree.root == hash_pair(hash_pair(leaves[0], leaves[1]), leaves[2])


@pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 7])
def test_every_member_proof_verifies(count):
    members = ADDRESSES[:count]
    tree = build_tree(members)
    for address in members:
        assert verify_address(tree.hex_proof(address), address, tree.hex_root)


def test_root_depends_only_on_the_set():
    forward = build_tree(ADDRESSES)
    backward = build_tree(list(reversed(ADDRESSES)))
    with_duplicates = build_tree(ADDRESSES + ADDRESSES[:2])
    assert forward.root == backward.root == with_duplicates.root
    assert build_tree([a.upper().replace("0X", "0x") for a in ADDRESSES]).root == forward.root


def test_non_member_has_no_proof():
    tree = build_tree(ADDRESSES[:4])
    assert tree.hex_proof(ADDRESSES[5]) is None
    assert not tree.contains(ADDRESSES[5])


def test_proof_does_not_verify_for_another_address_or_root():
    tree = build_tree(ADDRESSES[:4])
    proof = tree.hex_proof(ADDRESSES[0])
    assert not verify_address(proof, ADDRESSES[5], tree.hex_root)
    other_root = build_tree(ADDRESSES[:5]).hex_root
    assert not verify_address(proof, ADDRESSES[0], other_root)


def test_tampered_proof_fails():
    tree = build_tree(ADDRESSES)
    proof = tree.proof(ADDRESSES[2])
    tampered = [keccak256(b"x")] + proof[1:]
    assert not verify_proof(tampered, hash_leaf(ADDRESSES[2]), tree.root)


def test_hex_helpers():
    value = hash_leaf(ADDRESSES[0])
    assert from_hex(to_hex(value)) == value
    with pytest.raises(ValueError):
        from_hex("0x1234")

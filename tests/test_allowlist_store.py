"""
Merkle Allowlist Store over a temporary SQLite DB.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError
from web3 import Web3

from allowgate.allowlist import (
    EMPTY_TREE_ROOT,
    AddOutcome,
    MembershipProof,
    MemberSet,
    MerkleAllowlistStore,
    NotAMember,
    verify_address,
)
from allowgate.core.exceptions import InvalidAddressError, StorageUnavailable

from conftest import CANDIDATE, MEMBER, OTHER

MIXED = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"


def test_empty_store(store):
    assert store.get_root() == "0x" + EMPTY_TREE_ROOT.hex()
    assert store.size() == 0
    assert store.is_member(MEMBER) is False
    assert store.get_proof(MEMBER) == NotAMember(address=MEMBER)


def test_add_then_proof_verifies_against_current_root(store):
    assert store.add(MEMBER) is AddOutcome.ADDED
    assert store.add(CANDIDATE) is AddOutcome.ADDED
    assert store.is_member(MEMBER)

    proof = store.get_proof(MEMBER)
    assert isinstance(proof, MembershipProof)
    assert proof.root == store.get_root()
    assert verify_address(proof.proof, MEMBER, store.get_root())


def test_add_is_idempotent(store):
    assert store.add(MEMBER) is AddOutcome.ADDED
    root = store.get_root()
    assert store.add(MEMBER) is AddOutcome.ALREADY_MEMBER
    assert store.size() == 1
    assert store.get_root() == root


def test_addresses_are_case_insensitive(store):
    checksummed = Web3.to_checksum_address(MIXED)
    assert checksummed != MIXED
    store.add(checksummed)
    assert store.is_member(MIXED)
    assert store.add(MIXED) is AddOutcome.ALREADY_MEMBER
    proof = store.get_proof(checksummed)
    assert proof.address == MIXED
    assert verify_address(proof.proof, MIXED, proof.root)


@pytest.mark.parametrize("bad", ["", "0x123", "1111111111111111111111111111111111111111", "0xzz11111111111111111111111111111111111111"])
def test_invalid_address_rejected_before_storage(bad):
    members = Mock(spec=MemberSet)
    store = MerkleAllowlistStore(member_set=members)
    with pytest.raises(InvalidAddressError):
        store.is_member(bad)
    with pytest.raises(InvalidAddressError):
        store.add(bad)
    with pytest.raises(InvalidAddressError):
        store.get_proof(bad)
    members.contains.assert_not_called()
    members.add_if_absent.assert_not_called()


def test_add_invalidates_cached_root(store):
    store.add(MEMBER)
    before = store.get_root()
    store.add(CANDIDATE)
    after = store.get_root()
    assert before != after
    assert verify_address(store.get_proof(CANDIDATE).proof, CANDIDATE, after)


def test_stale_cache_in_another_instance_is_rebuilt(store):
    """A second store (another process) must not serve proofs from its old tree."""
    other = MerkleAllowlistStore()
    store.add(MEMBER)
    stale_root = other.get_root()

    store.add(CANDIDATE)
    proof = other.get_proof(CANDIDATE)
    assert isinstance(proof, MembershipProof)
    assert proof.root != stale_root
    assert proof.root == store.get_root()
    assert verify_address(proof.proof, CANDIDATE, proof.root)


def test_non_member_is_explicit_not_empty_proof(store):
    store.add(MEMBER)
    result = store.get_proof(OTHER)
    assert isinstance(result, NotAMember)
    assert result.address == OTHER


def test_concurrent_adds_of_same_address_add_once(store):
    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(store.add, [MEMBER] * 4))
    assert outcomes.count(AddOutcome.ADDED) == 1
    assert outcomes.count(AddOutcome.ALREADY_MEMBER) == 3
    assert store.size() == 1


def test_concurrent_adds_of_distinct_addresses_all_land(store):
    addresses = [f"0x{str(i) * 40}" for i in range(1, 7)]
    with ThreadPoolExecutor(max_workers=3) as pool:
        outcomes = list(pool.map(store.add, addresses))
    assert all(o is AddOutcome.ADDED for o in outcomes)
    root = store.get_root()
    for address in addresses:
        assert verify_address(store.get_proof(address).proof, address, root)


def test_storage_failure_propagates(allowgate_db, monkeypatch):
    import allowgate.allowlist.member_set as member_set_module

    def broken(url=None):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    monkeypatch.setattr(member_set_module, "session_scope", broken)
    store = MerkleAllowlistStore()
    with pytest.raises(StorageUnavailable):
        store.is_member(MEMBER)
    with pytest.raises(StorageUnavailable):
        store.add(MEMBER)
    with pytest.raises(StorageUnavailable):
        store.get_root()


def test_root_is_stable_without_adds(store):
    store.add(MEMBER)
    assert store.get_root() == store.get_root()
    assert store.get_proof(MEMBER) == store.get_proof(MEMBER)


def test_store_proof_verifies_from_raw_address_leaf(store):
    from allowgate.allowlist.merkle import from_hex, verify_proof

    for address in (MEMBER, CANDIDATE, OTHER):
        store.add(address)
    proof = store.get_proof(CANDIDATE)
    leaf = bytes(Web3.keccak(hexstr=CANDIDATE))
    assert verify_proof([from_hex(p) for p in proof.proof], leaf, from_hex(store.get_root()))

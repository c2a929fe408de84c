"""
Merkle tree over allowlisted addresses (keccak256, sorted pairs).

Canonical commitment rules, matching a standard on-chain verifier
(e.g. OpenZeppelin MerkleProof.verify):
1. Leaf hashing: keccak256(20 raw address bytes), i.e. keccak256(abi.encodePacked(addr))
2. Leaves are deduplicated and sorted by hash, so the root depends only on the set
3. Parent hashing: keccak256(min(a, b) || max(a, b))
4. Odd node at any level is promoted unchanged
5. Single leaf: root = leaf, proof = []
6. Empty tree: root = 32 zero bytes, no proofs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from web3 import Web3

EMPTY_TREE_ROOT = b"\x00" * 32
HASH_LEN = 32


def keccak256(data: bytes) -> bytes:
    return bytes(Web3.keccak(primitive=data))


def hash_leaf(address: str) -> bytes:
    """Leaf hash for an address: keccak256 over its 20 decoded bytes, as a Solidity verifier computes it."""
    return bytes(Web3.keccak(hexstr=address.lower()))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Sorted-pair parent hash: order of the two children does not matter."""
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    out = bytes.fromhex(raw)
    if len(out) != HASH_LEN:
        raise ValueError(f"expected {HASH_LEN}-byte hash, got {len(out)}")
    return out


@dataclass(frozen=True)
class MerkleTree:
    """Immutable tree; layers[0] are the sorted leaves, layers[-1] holds the root."""

    layers: tuple[tuple[bytes, ...], ...]
    _index: dict[bytes, int] = field(default_factory=dict, compare=False, repr=False)

    @property
    def root(self) -> bytes:
        top = self.layers[-1]
        return top[0] if top else EMPTY_TREE_ROOT

    @property
    def hex_root(self) -> str:
        return to_hex(self.root)

    @property
    def size(self) -> int:
        return len(self.layers[0])

    def contains(self, address: str) -> bool:
        return hash_leaf(address) in self._index

    def proof(self, address: str) -> list[bytes] | None:
        """Sibling path from the address's leaf to the root, or None if the address is not a leaf."""
        index = self._index.get(hash_leaf(address))
        if index is None:
            return None
        path: list[bytes] = []
        for layer in self.layers[:-1]:
            sibling = index ^ 1
            if sibling < len(layer):
                path.append(layer[sibling])
            index //= 2
        return path

    def hex_proof(self, address: str) -> list[str] | None:
        path = self.proof(address)
        if path is None:
            return None
        return [to_hex(p) for p in path]


def build_tree(addresses: Iterable[str]) -> MerkleTree:
    """Build a tree from addresses. Pure and idempotent; an empty input yields the empty-root tree."""
    leaves = tuple(sorted({hash_leaf(a) for a in addresses}))
    layers: list[tuple[bytes, ...]] = [leaves]
    current = leaves
    while len(current) > 1:
        nxt = []
        for i in range(0, len(current), 2):
            if i + 1 < len(current):
                nxt.append(hash_pair(current[i], current[i + 1]))
            else:
                nxt.append(current[i])
        current = tuple(nxt)
        layers.append(current)
    index = {leaf: i for i, leaf in enumerate(leaves)}
    return MerkleTree(layers=tuple(layers), _index=index)


def verify_proof(proof: Sequence[bytes], leaf: bytes, root: bytes) -> bool:
    """Fold the proof with sorted-pair hashing and compare against root."""
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed == root


def verify_address(proof: Sequence[str], address: str, hex_root: str) -> bool:
    """Hex-string convenience wrapper around verify_proof, as an external verifier would call it."""
    return verify_proof(
        [from_hex(p) for p in proof],
        hash_leaf(address),
        from_hex(hex_root),
    )

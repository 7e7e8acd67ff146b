"""Merkle tree over reward leaves with orientation-free hashing.

Uses SHA-256. Construction is deterministic and independent of input
order:

1. Sort the current level ascending by node hash (byte-wise).
2. Pair nodes front to back; each parent hashes
   ``SHA256(front.hash || second.hash)``, front being the smaller.
3. An unpaired last node is promoted unchanged to the next level.
4. Repeat until a single node remains: the root.

Because the smaller hash always goes first, any parent hash equals
``SHA256(min(h1, h2) || max(h1, h2))`` and proofs need no left/right
markers. A proof is ``[leaf, sibling_1, ..., sibling_n, root]``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from zapdist.errors import EmptyDistributionError


HASH_LENGTH = 32


@dataclass(eq=False)
class MerkleNode:
    """A tree node. Leaves carry a payload; internal nodes only a hash."""
    hash: bytes
    payload: Any = None
    children: Tuple[MerkleNode, ...] = ()
    parent: Optional[MerkleNode] = field(default=None, repr=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def sibling(self) -> Optional[MerkleNode]:
        if self.parent is None:
            return None
        front, back = self.parent.children
        return back if front is self else front


@dataclass(frozen=True)
class MerkleProof:
    """An inclusion proof for a single leaf."""
    leaf_hash: bytes
    path: List[bytes]  # sibling hashes, bottom-up
    root: bytes

    def hashes(self) -> List[bytes]:
        return [self.leaf_hash, *self.path, self.root]

    def to_text(self) -> str:
        """Space-separated lowercase hex, leaf first and root last."""
        return " ".join(h.hex() for h in self.hashes())

    @staticmethod
    def from_text(text: str) -> MerkleProof:
        parts = [bytes.fromhex(p) for p in text.split()]
        if len(parts) < 2:
            raise ValueError("A proof needs at least a leaf hash and a root hash")
        return MerkleProof(leaf_hash=parts[0], path=parts[1:-1], root=parts[-1])


class MerkleTree:
    """A deterministic Merkle tree using SHA-256.

    Usage:
        tree = MerkleTree()
        tree.add_leaf(leaf_hash_a, payload=leaf_a)
        tree.add_leaf(leaf_hash_b, payload=leaf_b)
        root = tree.compute_root()
        proof = tree.inclusion_proof(leaf_hash_a)
    """

    def __init__(self) -> None:
        self._leaves: List[MerkleNode] = []
        self._root: Optional[MerkleNode] = None
        self._internal_levels = 0

    def add_leaf(self, leaf_hash: bytes, payload: Any = None) -> None:
        """Add a leaf hash. Must be called before compute_root."""
        if self._root is not None:
            raise RuntimeError("Tree already computed. Create a new tree.")
        if len(leaf_hash) != HASH_LENGTH:
            raise ValueError(f"Leaf hash must be {HASH_LENGTH} bytes, got {len(leaf_hash)}")
        self._leaves.append(MerkleNode(hash=bytes(leaf_hash), payload=payload))

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    @property
    def internal_levels(self) -> int:
        """Number of levels built above the leaves."""
        return self._internal_levels

    @property
    def root(self) -> bytes:
        if self._root is None:
            raise RuntimeError("Must call compute_root first")
        return self._root.hash

    def compute_root(self) -> bytes:
        """Build the tree and return the root hash.

        Raises:
            EmptyDistributionError: no leaves were added.
        """
        if self._root is not None:
            return self._root.hash
        if not self._leaves:
            raise EmptyDistributionError("Cannot build a Merkle tree without leaves")

        level: List[MerkleNode] = list(self._leaves)
        levels = 0
        while len(level) > 1:
            level = _build_parents(level)
            levels += 1

        self._root = level[0]
        self._internal_levels = levels
        return self._root.hash

    def inclusion_proof(self, leaf_hash: bytes) -> Optional[MerkleProof]:
        """Generate an inclusion proof for a leaf.

        Returns None if the leaf is not in the tree.
        Must call compute_root first.
        """
        if self._root is None:
            raise RuntimeError("Must call compute_root before generating proofs")
        for leaf in self._leaves:
            if leaf.hash == leaf_hash:
                return _proof_for(leaf)
        return None

    def proofs(self) -> List[Tuple[Any, MerkleProof]]:
        """(payload, proof) for every leaf, in ascending leaf-hash order."""
        if self._root is None:
            raise RuntimeError("Must call compute_root before generating proofs")
        ordered = sorted(self._leaves, key=lambda n: n.hash)
        return [(leaf.payload, _proof_for(leaf)) for leaf in ordered]


def _build_parents(nodes: Sequence[MerkleNode]) -> List[MerkleNode]:
    """Resort one level by hash and pair it front to back."""
    ordered = sorted(nodes, key=lambda n: n.hash)
    parents: List[MerkleNode] = []
    for i in range(0, len(ordered) - 1, 2):
        front, second = ordered[i], ordered[i + 1]
        parent = MerkleNode(
            hash=_sha256(front.hash + second.hash),
            children=(front, second),
        )
        front.parent = parent
        second.parent = parent
        parents.append(parent)
    if len(ordered) % 2 == 1:
        parents.append(ordered[-1])  # orphan promotion
    return parents


def _proof_for(leaf: MerkleNode) -> MerkleProof:
    path: List[bytes] = []
    needle = leaf
    while needle.parent is not None:
        path.append(needle.sibling().hash)
        needle = needle.parent
    return MerkleProof(leaf_hash=leaf.hash, path=path, root=needle.hash)


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Parent hash of two children, independent of their order."""
    return _sha256(min(a, b) + max(a, b))


def verify_proof(proof: MerkleProof | str) -> bool:
    """Check a proof against its own root.

    Folds every element except the last into the leaf hash using
    ``hash_pair`` and compares the result with the final (root) element.
    """
    if isinstance(proof, str):
        proof = MerkleProof.from_text(proof)
    running = proof.leaf_hash
    for sibling in proof.path:
        running = hash_pair(running, sibling)
    return running == proof.root

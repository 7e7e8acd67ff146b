"""Tests for the Merkle tree — determinism, proofs and verification."""

import hashlib
import pytest

from zapdist.crypto.merkle import MerkleProof, MerkleTree, hash_pair, verify_proof
from zapdist.errors import EmptyDistributionError


def _h(n: int) -> bytes:
    """Deterministic 32-byte test hash."""
    return hashlib.sha256(n.to_bytes(4, "big")).digest()


def _sha(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


class TestMerkleTree:
    def test_empty_tree_rejected(self) -> None:
        tree = MerkleTree()
        with pytest.raises(EmptyDistributionError):
            tree.compute_root()

    def test_single_leaf_root_is_leaf(self) -> None:
        tree = MerkleTree()
        tree.add_leaf(_h(1))
        assert tree.compute_root() == _h(1)
        assert tree.internal_levels == 0

        proof = tree.inclusion_proof(_h(1))
        assert proof.hashes() == [_h(1), _h(1)]
        assert verify_proof(proof)

    def test_two_leaves(self) -> None:
        a, b = sorted([_h(1), _h(2)])
        tree = MerkleTree()
        tree.add_leaf(b)
        tree.add_leaf(a)
        root = tree.compute_root()

        assert root == _sha(a + b)
        assert tree.inclusion_proof(a).hashes() == [a, b, root]
        assert tree.inclusion_proof(b).hashes() == [b, a, root]
        assert verify_proof(tree.inclusion_proof(a))
        assert verify_proof(tree.inclusion_proof(b))

    def test_three_leaves_promote_orphan(self) -> None:
        a, b, c = sorted([_h(1), _h(2), _h(3)])
        tree = MerkleTree()
        for leaf in (c, a, b):
            tree.add_leaf(leaf)
        root = tree.compute_root()

        ab = _sha(a + b)
        assert root == hash_pair(ab, c)
        assert tree.internal_levels == 2
        assert tree.inclusion_proof(c).hashes() == [c, ab, root]

    def test_deterministic(self) -> None:
        """Same leaves produce same root regardless of insertion order."""
        leaves = [_h(n) for n in range(11)]
        tree1 = MerkleTree()
        for leaf in leaves:
            tree1.add_leaf(leaf)
        tree2 = MerkleTree()
        for leaf in reversed(leaves):
            tree2.add_leaf(leaf)
        assert tree1.compute_root() == tree2.compute_root()

    def test_different_leaves_different_roots(self) -> None:
        tree1 = MerkleTree()
        tree1.add_leaf(_h(1))
        tree2 = MerkleTree()
        tree2.add_leaf(_h(2))
        assert tree1.compute_root() != tree2.compute_root()

    def test_every_proof_verifies(self) -> None:
        tree = MerkleTree()
        for n in range(23):
            tree.add_leaf(_h(n), payload=n)
        root = tree.compute_root()

        proofs = tree.proofs()
        assert sorted(payload for payload, _ in proofs) == list(range(23))
        for _, proof in proofs:
            assert proof.root == root
            assert verify_proof(proof)

    def test_missing_leaf_no_proof(self) -> None:
        tree = MerkleTree()
        tree.add_leaf(_h(1))
        tree.compute_root()
        assert tree.inclusion_proof(_h(99)) is None

    def test_cannot_add_after_compute(self) -> None:
        tree = MerkleTree()
        tree.add_leaf(_h(1))
        tree.compute_root()
        with pytest.raises(RuntimeError):
            tree.add_leaf(_h(2))

    def test_proof_before_compute_rejected(self) -> None:
        tree = MerkleTree()
        tree.add_leaf(_h(1))
        with pytest.raises(RuntimeError):
            tree.inclusion_proof(_h(1))

    def test_leaf_length_checked(self) -> None:
        with pytest.raises(ValueError):
            MerkleTree().add_leaf(b"\x00" * 31)


class TestProofText:
    def test_text_format(self) -> None:
        tree = MerkleTree()
        tree.add_leaf(_h(1))
        tree.add_leaf(_h(2))
        tree.compute_root()
        text = tree.inclusion_proof(_h(1)).to_text()

        parts = text.split(" ")
        assert len(parts) == 3
        assert all(len(p) == 64 and p == p.lower() for p in parts)
        assert parts[0] == _h(1).hex()

    def test_verify_from_text(self) -> None:
        tree = MerkleTree()
        for n in range(5):
            tree.add_leaf(_h(n))
        tree.compute_root()
        assert verify_proof(tree.inclusion_proof(_h(3)).to_text())

    def test_tampered_proof_fails(self) -> None:
        tree = MerkleTree()
        for n in range(5):
            tree.add_leaf(_h(n))
        tree.compute_root()
        proof = tree.inclusion_proof(_h(3))
        forged = MerkleProof(leaf_hash=_h(42), path=proof.path, root=proof.root)
        assert not verify_proof(forged)

    def test_short_text_rejected(self) -> None:
        with pytest.raises(ValueError):
            MerkleProof.from_text(_h(1).hex())

"""Addresses, Merkle trees and epoch commitments."""

from zapdist.crypto.commitment_builder import CommitmentBuilder, leaf_hash
from zapdist.crypto.merkle import MerkleProof, MerkleTree, verify_proof

__all__ = [
    "CommitmentBuilder",
    "MerkleProof",
    "MerkleTree",
    "leaf_hash",
    "verify_proof",
]

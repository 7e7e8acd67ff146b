"""Commitment builder — turns an allocation into leaves, a root and proofs.

Leaf hash for a 20-byte address and an integer amount:

    amount_bytes = amount as 16-byte big-endian, zero-padded on the left
    leaf_hash    = SHA256(address_bytes || SHA256(amount_bytes))

The amount must carry a decimal scale of exactly 0. Anything else, or an
amount that does not fit 16 bytes, aborts the whole commitment.
"""

from __future__ import annotations

import hashlib
from decimal import Decimal
from typing import List, Mapping

from zapdist.crypto.address import (
    ADDRESS_LENGTH,
    DEFAULT_HRP,
    decode_text_address,
    encode_bech32,
    encode_hex,
)
from zapdist.crypto.merkle import MerkleTree
from zapdist.errors import AmountOverflowError, NonIntegerAmountError
from zapdist.models.commitment import EpochCommitment
from zapdist.models.distribution import DistributionRecord, RewardLeaf


AMOUNT_BYTES = 16


def encode_amount(amount: Decimal) -> bytes:
    """Encode an integer amount as 16 big-endian bytes."""
    if not amount.is_finite() or amount.as_tuple().exponent != 0:
        raise NonIntegerAmountError(f"Non-integer distribution amount received: {amount}")
    value = int(amount)
    if value < 0:
        raise AmountOverflowError(f"Negative distribution amount received: {amount}")
    try:
        return value.to_bytes(AMOUNT_BYTES, "big")
    except OverflowError as exc:
        raise AmountOverflowError(
            f"Distribution amount {amount} does not fit {AMOUNT_BYTES} bytes"
        ) from exc


def leaf_hash(address_bytes: bytes, amount: Decimal) -> bytes:
    """Compute the 32-byte commitment hash of one (address, amount) pair."""
    if len(address_bytes) != ADDRESS_LENGTH:
        raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(address_bytes)}")
    amount_digest = hashlib.sha256(encode_amount(amount)).digest()
    return hashlib.sha256(address_bytes + amount_digest).digest()


def build_leaf(address: str, amount: Decimal, hrp: str = DEFAULT_HRP) -> RewardLeaf:
    """Decode an address and hash it with its amount."""
    raw = decode_text_address(address, hrp)
    return RewardLeaf(
        address_bytes=raw,
        address_bech32=encode_bech32(raw, hrp),
        address_hex=encode_hex(raw),
        amount=amount,
        leaf_hash=leaf_hash(raw, amount),
    )


class CommitmentBuilder:
    """Builds the epoch commitment from an address -> amount mapping.

    Usage:
        builder = CommitmentBuilder(distributor_address="0x...", epoch_number=3)
        builder.add_allocations({"zil1...": Decimal("680"), ...})
        commitment = builder.build()
        commitment.root      # 64-char hex
        commitment.records   # one DistributionRecord per address, with proof
    """

    def __init__(
        self,
        distributor_address: str,
        epoch_number: int,
        hrp: str = DEFAULT_HRP,
    ) -> None:
        self._distributor_address = distributor_address
        self._epoch_number = epoch_number
        self._hrp = hrp
        self._leaves: List[RewardLeaf] = []

    def add_allocation(self, address: str, amount: Decimal) -> RewardLeaf:
        """Add one leaf. Fails fast on a malformed address or amount."""
        leaf = build_leaf(address, amount, self._hrp)
        self._leaves.append(leaf)
        return leaf

    def add_allocations(self, amounts: Mapping[str, Decimal]) -> None:
        for address, amount in amounts.items():
            self.add_allocation(address, amount)

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    def build(self) -> EpochCommitment:
        """Construct the tree and attach a proof to every leaf.

        Raises:
            EmptyDistributionError: no allocations were added.
        """
        tree = MerkleTree()
        for leaf in self._leaves:
            tree.add_leaf(leaf.leaf_hash, payload=leaf)
        root = tree.compute_root()

        records = [
            DistributionRecord(
                distributor_address=self._distributor_address,
                epoch_number=self._epoch_number,
                address_bech32=leaf.address_bech32,
                address_hex=leaf.address_hex,
                amount=leaf.amount,
                proof=proof.to_text(),
            )
            for leaf, proof in tree.proofs()
        ]

        return EpochCommitment(
            distributor_address=self._distributor_address,
            epoch_number=self._epoch_number,
            root=root.hex(),
            records=records,
            internal_levels=tree.internal_levels,
        )

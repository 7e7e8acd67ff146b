"""Epoch commitment model.

Every generated epoch produces one commitment: a Merkle root over all
(address, amount) leaves plus the per-address records carrying their
inclusion proofs. The root is the artifact published for on-chain claims.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal, localcontext
from typing import List

from zapdist.models.distribution import DistributionRecord


@dataclass(frozen=True)
class EpochCommitment:
    """The commitment for one (distributor, epoch).

    The record is immutable once constructed.
    """
    distributor_address: str
    epoch_number: int
    root: str  # 64-char lowercase hex
    records: List[DistributionRecord]
    internal_levels: int

    @property
    def leaf_count(self) -> int:
        return len(self.records)

    @property
    def total_amount(self) -> Decimal:
        with localcontext(Context(prec=100)):
            return sum((r.amount for r in self.records), Decimal("0"))

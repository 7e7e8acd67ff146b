"""Distribution models — contribution aggregates in, reward records out.

Aggregates are owned by the ingestion side and arrive as plain tuples.
RewardLeaf and DistributionRecord are produced by the engine; records
are immutable once persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Context, Decimal, localcontext
from typing import Any, Dict, List, NamedTuple


class AddressLiquidity(NamedTuple):
    """Time-weighted liquidity of one address in one pool."""
    pool: str
    address: str
    amount: Decimal


class PoolVolume(NamedTuple):
    """Trading volume of one pool, split by direction."""
    in_amount: Decimal
    out_amount: Decimal

    @property
    def total(self) -> Decimal:
        with localcontext(Context(prec=100)):
            return self.in_amount + self.out_amount


class AddressVolume(NamedTuple):
    """Trading volume of one address across all pools."""
    address: str
    amount: Decimal


@dataclass(frozen=True)
class RewardLeaf:
    """One (address, amount) pair committed to by the Merkle tree."""
    address_bytes: bytes
    address_bech32: str
    address_hex: str
    amount: Decimal
    leaf_hash: bytes


@dataclass(frozen=True)
class DistributionRecord:
    """A persisted per-address reward for one epoch of one distributor.

    Unique per (distributor_address, epoch_number, address_hex).
    The proof is space-separated lowercase hex, leaf hash first and
    root hash last.
    """
    distributor_address: str
    epoch_number: int
    address_bech32: str
    address_hex: str
    amount: Decimal
    proof: str

    @property
    def proof_hashes(self) -> List[str]:
        return self.proof.split(" ")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distributor_address": self.distributor_address,
            "epoch_number": self.epoch_number,
            "address_bech32": self.address_bech32,
            "address_hex": self.address_hex,
            "amount": str(self.amount),
            "proof": self.proof,
        }


@dataclass(frozen=True)
class Claim:
    """An on-chain claim of one epoch's reward by one address."""
    transaction_hash: str
    event_sequence: int
    block_height: int
    block_timestamp: datetime
    distributor_address: str
    epoch_number: int
    initiator_address: str
    amount: Decimal

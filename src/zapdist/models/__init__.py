"""Core data models for zapdist."""

from zapdist.models.emission import (
    DistributionConfig,
    EmissionConfig,
    EpochInfo,
    EpochWindow,
)
from zapdist.models.distribution import (
    AddressLiquidity,
    AddressVolume,
    Claim,
    DistributionRecord,
    PoolVolume,
    RewardLeaf,
)
from zapdist.models.commitment import EpochCommitment

__all__ = [
    "DistributionConfig",
    "EmissionConfig",
    "EpochInfo",
    "EpochWindow",
    "AddressLiquidity",
    "AddressVolume",
    "Claim",
    "DistributionRecord",
    "PoolVolume",
    "RewardLeaf",
    "EpochCommitment",
]

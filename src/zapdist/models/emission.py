"""Emission models — how many tokens each epoch releases and to whom.

All token quantities use Decimal for exact arithmetic. No floats in finance.

Invariants enforced by these models:
- Basis-point shares lie in [0, 10000].
- A retroactive epoch, when configured, precedes every regular epoch
  and has a positive budget of its own.
- EpochInfo is derived on every call and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Context, Decimal, localcontext
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional


BPS_DENOMINATOR = 10_000


class EpochWindow(NamedTuple):
    """Half-open time window [start, end) in unix seconds."""
    start: int
    end: int


@dataclass(frozen=True)
class EmissionConfig:
    """Emission schedule parameters for one distributor."""
    epoch_period: int
    tokens_per_epoch: Decimal
    tokens_for_retroactive_distribution: Decimal
    retroactive_distribution_cutoff_time: Optional[int]
    distribution_start_time: int
    total_number_of_epochs: int
    initial_epoch_number: int
    developer_token_ratio_bps: int
    trader_token_ratio_bps: int

    @property
    def has_retroactive_epoch(self) -> bool:
        return self.retroactive_distribution_cutoff_time is not None

    @property
    def last_epoch_number(self) -> int:
        return self.total_number_of_epochs + self.initial_epoch_number - 1

    def validate(self) -> List[str]:
        """Return a list of human-readable problems (empty when valid)."""
        errors: List[str] = []
        if self.epoch_period <= 0:
            errors.append("epoch_period must be > 0")
        if self.total_number_of_epochs <= 0:
            errors.append("total_number_of_epochs must be > 0")
        if self.initial_epoch_number < 0:
            errors.append("initial_epoch_number must be >= 0")
        if self.distribution_start_time < 0:
            errors.append("distribution_start_time must be >= 0")
        if self.tokens_per_epoch <= 0:
            errors.append("tokens_per_epoch must be > 0")
        if self.tokens_for_retroactive_distribution < 0:
            errors.append("tokens_for_retroactive_distribution must be >= 0")
        for label, bps in (
            ("developer_token_ratio_bps", self.developer_token_ratio_bps),
            ("trader_token_ratio_bps", self.trader_token_ratio_bps),
        ):
            if not 0 <= bps <= BPS_DENOMINATOR:
                errors.append(f"{label} must be within 0..{BPS_DENOMINATOR}, got {bps}")

        if self.has_retroactive_epoch:
            if self.retroactive_distribution_cutoff_time < 0:
                errors.append("retroactive_distribution_cutoff_time must be >= 0")
            if self.initial_epoch_number < 1:
                errors.append(
                    "initial_epoch_number must be >= 1 when a retroactive "
                    "distribution is configured"
                )
            if self.tokens_for_retroactive_distribution <= 0:
                errors.append(
                    "tokens_for_retroactive_distribution must be > 0 when a "
                    "retroactive distribution is configured"
                )
        elif self.initial_epoch_number >= 1:
            errors.append(
                "retroactive_distribution_cutoff_time is required when "
                "initial_epoch_number >= 1"
            )

        # The developer share is committed as-is, so it must be whole.
        budgets = [("tokens_per_epoch", self.tokens_per_epoch)]
        if self.has_retroactive_epoch:
            budgets.append(
                ("tokens_for_retroactive_distribution", self.tokens_for_retroactive_distribution)
            )
        for label, tokens in budgets:
            with localcontext(Context(prec=100)):
                share = tokens * self.developer_token_ratio_bps / BPS_DENOMINATOR
            if share != share.to_integral_value():
                errors.append(
                    f"developer share of {label} is not a whole number: {share}"
                )
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch_period": self.epoch_period,
            "tokens_per_epoch": str(self.tokens_per_epoch),
            "tokens_for_retroactive_distribution": str(self.tokens_for_retroactive_distribution),
            "retroactive_distribution_cutoff_time": self.retroactive_distribution_cutoff_time,
            "distribution_start_time": self.distribution_start_time,
            "total_number_of_epochs": self.total_number_of_epochs,
            "initial_epoch_number": self.initial_epoch_number,
            "developer_token_ratio_bps": self.developer_token_ratio_bps,
            "trader_token_ratio_bps": self.trader_token_ratio_bps,
        }


@dataclass(frozen=True)
class DistributionConfig:
    """One reward-paying distributor and its emission policy.

    Pool weights apply to regular epochs only; the initial epoch
    rewards every known pool as one combined pool.
    """
    name: str
    reward_token_address_hex: str
    distributor_address_hex: str
    developer_address: str
    emission: EmissionConfig
    incentivized_pools: Dict[str, int] = field(default_factory=dict)
    redirect_to_developer: FrozenSet[str] = frozenset()

    @property
    def total_pool_weight(self) -> int:
        return sum(self.incentivized_pools.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "reward_token_address_hex": self.reward_token_address_hex,
            "distributor_address_hex": self.distributor_address_hex,
            "developer_address": self.developer_address,
            "emission_info": self.emission.to_dict(),
            "incentivized_pools": dict(self.incentivized_pools),
            "redirect_to_developer": sorted(self.redirect_to_developer),
        }


@dataclass(frozen=True)
class EpochInfo:
    """Derived view of one epoch: boundaries and token sub-budgets.

    Invariants:
        tokens_for_developers + tokens_for_users == tokens_for_epoch
        tokens_for_traders + tokens_for_liquidity_providers == tokens_for_users
    """
    epoch_number: int
    is_initial: bool
    distribution_ended: bool
    start: Optional[int]
    end: Optional[int]
    tokens_for_epoch: Decimal
    tokens_for_developers: Decimal
    tokens_for_users: Decimal
    tokens_for_traders: Decimal
    tokens_for_liquidity_providers: Decimal

    @property
    def window(self) -> Optional[EpochWindow]:
        """The epoch's time window, or None once distribution has ended."""
        if self.start is None or self.end is None:
            return None
        return EpochWindow(self.start, self.end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch_number": self.epoch_number,
            "is_initial": self.is_initial,
            "distribution_ended": self.distribution_ended,
            "current_epoch_start": self.start,
            "current_epoch_end": self.end,
            "tokens_for_epoch": str(self.tokens_for_epoch),
            "tokens_for_developers": str(self.tokens_for_developers),
            "tokens_for_users": str(self.tokens_for_users),
            "tokens_for_traders": str(self.tokens_for_traders),
            "tokens_for_liquidity_providers": str(self.tokens_for_liquidity_providers),
        }

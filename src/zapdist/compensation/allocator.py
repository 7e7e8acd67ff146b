"""Reward allocator — splits one epoch's tokens across addresses.

Pool-level sub-budgets come first:

    initial epoch:  every known pool gets the whole provider budget and
                    the combined liquidity of all pools as denominator
                    (all pools act as one pool)
    regular epoch:  pool_tokens = providers * weight / total_weight,
                    denominator = that pool's own liquidity; only pools
                    with both a weight and observed liquidity count

Each pool sub-budget is truncated to an integer before it is split.
Then, per address:

    liquidity share = round_down(address_liquidity * pool_tokens / pool_liquidity)
    trader share    = round_down(traders * address_volume / total_volume)
    developer share = tokens_for_developers (developer address only)

Balances of redirect-to-developer addresses are folded into the
developer's balance last.

Invariant: sum(amounts) <= tokens_for_epoch. A violation raises
BudgetExceededError and is never clamped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Set

from zapdist.compensation.rounding import (
    add_exact,
    proportional_share,
    round_down,
    sum_exact,
)
from zapdist.crypto.address import DEFAULT_HRP, normalize_address
from zapdist.errors import BudgetExceededError
from zapdist.models.distribution import AddressLiquidity, AddressVolume, PoolVolume
from zapdist.models.emission import DistributionConfig, EpochInfo
from zapdist.persistence.contributions import ContributionSource

logger = logging.getLogger(__name__)

DEVELOPER_ENTRY = "developer"


@dataclass(frozen=True)
class PoolAllocation:
    """Integer token sub-budget of one pool and the liquidity it is split over."""
    tokens: Decimal
    weighted_liquidity: Decimal


@dataclass(frozen=True)
class AllocationResult:
    """Outcome of one allocation run."""
    epoch_number: int
    tokens_for_epoch: Decimal
    amounts: Dict[str, Decimal]
    pool_allocations: Dict[str, PoolAllocation] = field(default_factory=dict)
    redirected: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def total_distributed(self) -> Decimal:
        return sum_exact(self.amounts.values())


class RewardAllocator:
    """Computes the address -> amount mapping for one distributor.

    Usage:
        allocator = RewardAllocator(distribution_config)
        result = allocator.allocate_from_source(epoch_info, contributions)
        result.amounts  # {"zil1...": Decimal("680"), ...}
    """

    def __init__(self, config: DistributionConfig, hrp: str = DEFAULT_HRP) -> None:
        self._config = config
        self._hrp = hrp
        self._developer = normalize_address(config.developer_address, hrp)
        self._redirect = sorted(
            {normalize_address(a, hrp) for a in config.redirect_to_developer}
        )

    @property
    def developer_address(self) -> str:
        return self._developer

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate_from_source(
        self,
        epoch: EpochInfo,
        source: ContributionSource,
    ) -> AllocationResult:
        """Query the contribution source for the epoch window and allocate."""
        window = epoch.window
        if window is None:
            raise ValueError(f"Epoch {epoch.epoch_number} has no time window")

        pool_volume: Mapping[str, PoolVolume] = {}
        address_volume: Iterable[AddressVolume] = ()
        if epoch.tokens_for_traders > 0:
            pool_volume = source.pool_volume_totals(window)
            address_volume = source.address_volume_totals(window)

        return self.allocate(
            epoch,
            known_pools=source.list_known_pools(),
            pool_liquidity=source.pool_liquidity_totals(window),
            address_liquidity=source.address_liquidity_totals(window),
            pool_volume=pool_volume,
            address_volume=address_volume,
        )

    def allocate(
        self,
        epoch: EpochInfo,
        known_pools: Set[str],
        pool_liquidity: Mapping[str, Decimal],
        address_liquidity: Iterable[AddressLiquidity],
        pool_volume: Mapping[str, PoolVolume],
        address_volume: Iterable[AddressVolume],
    ) -> AllocationResult:
        """Allocate the epoch's tokens from pre-fetched aggregates.

        Raises:
            BudgetExceededError: the allocated total exceeds tokens_for_epoch.
            AddressDecodeError: an aggregate carries a malformed address.
        """
        pools = self.pool_allocations(epoch, known_pools, pool_liquidity)
        accumulator: Dict[str, Decimal] = {}

        # Liquidity providers
        for entry in address_liquidity:
            pool = pools.get(entry.pool)
            if pool is None:
                continue  # pool not incentivized this epoch
            if pool.weighted_liquidity <= 0:
                continue
            share = proportional_share(entry.amount, pool.tokens, pool.weighted_liquidity)
            self._add(accumulator, entry.address, share)

        # Traders (initial epoch only)
        traders = epoch.tokens_for_traders
        if traders > 0:
            total_volume = sum_exact(v.total for v in pool_volume.values())
            if total_volume > 0:
                for entry in address_volume:
                    share = proportional_share(traders, entry.amount, total_volume)
                    self._add(accumulator, entry.address, share)
            else:
                logger.warning(
                    "Epoch %s has a trader budget of %s but no observed volume",
                    epoch.epoch_number, traders,
                )

        # Developer
        developers = epoch.tokens_for_developers
        if developers > 0:
            accumulator[self._developer] = add_exact(
                accumulator.get(self._developer, Decimal("0")), developers
            )

        redirected = self._redirect_to_developer(accumulator)

        result = AllocationResult(
            epoch_number=epoch.epoch_number,
            tokens_for_epoch=epoch.tokens_for_epoch,
            amounts=accumulator,
            pool_allocations=pools,
            redirected=redirected,
        )
        self.check_budget(result)
        return result

    def pool_allocations(
        self,
        epoch: EpochInfo,
        known_pools: Set[str],
        pool_liquidity: Mapping[str, Decimal],
    ) -> Dict[str, PoolAllocation]:
        """Compute the integer sub-budget and denominator for each pool."""
        providers = epoch.tokens_for_liquidity_providers

        if epoch.is_initial:
            total_liquidity = sum_exact(pool_liquidity.values())
            tokens = round_down(providers, 0)
            return {
                pool: PoolAllocation(tokens=tokens, weighted_liquidity=total_liquidity)
                for pool in sorted(known_pools)
            }

        weights = self._config.incentivized_pools
        total_weight = Decimal(self._config.total_pool_weight)
        if total_weight <= 0:
            return {}
        allocations: Dict[str, PoolAllocation] = {}
        for pool, liquidity in pool_liquidity.items():
            weight = weights.get(pool)
            if weight is None:
                continue
            allocations[pool] = PoolAllocation(
                tokens=proportional_share(providers, Decimal(weight), total_weight),
                weighted_liquidity=liquidity,
            )
        return allocations

    @staticmethod
    def check_budget(result: AllocationResult) -> None:
        """Fail loudly if the allocation exceeds the epoch budget."""
        total = result.total_distributed
        if total > result.tokens_for_epoch:
            logger.critical(
                "Budget invariant violated for epoch %s: %s > %s",
                result.epoch_number, total, result.tokens_for_epoch,
            )
            raise BudgetExceededError(total, result.tokens_for_epoch)
        logger.info(
            "Total distributed tokens: %s out of max of %s",
            total, result.tokens_for_epoch,
        )

    # ------------------------------------------------------------------
    # Estimates
    # ------------------------------------------------------------------

    def estimate_for_address(
        self,
        epoch: EpochInfo,
        address: str,
        known_pools: Set[str],
        pool_liquidity: Mapping[str, Decimal],
        address_liquidity: Iterable[AddressLiquidity],
    ) -> Dict[str, Decimal]:
        """Provisional per-pool rewards of one address for a running epoch.

        Keys are pool identifiers, plus ``"developer"`` when the address
        is this distributor's developer. Trader rewards are not estimated.
        """
        target = normalize_address(address, self._hrp)
        pools = self.pool_allocations(epoch, known_pools, pool_liquidity)
        estimate: Dict[str, Decimal] = {}
        for entry in address_liquidity:
            if normalize_address(entry.address, self._hrp) != target:
                continue
            pool = pools.get(entry.pool)
            if pool is None or pool.weighted_liquidity <= 0:
                continue
            share = proportional_share(entry.amount, pool.tokens, pool.weighted_liquidity)
            estimate[entry.pool] = add_exact(estimate.get(entry.pool, Decimal("0")), share)

        if target == self._developer:
            estimate[DEVELOPER_ENTRY] = add_exact(
                estimate.get(DEVELOPER_ENTRY, Decimal("0")), epoch.tokens_for_developers
            )
        return estimate

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _add(self, accumulator: Dict[str, Decimal], address: str, amount: Decimal) -> None:
        key = normalize_address(address, self._hrp)
        accumulator[key] = add_exact(accumulator.get(key, Decimal("0")), amount)

    def _redirect_to_developer(self, accumulator: Dict[str, Decimal]) -> Dict[str, Decimal]:
        """Move every non-zero redirect-set balance onto the developer."""
        redirected: Dict[str, Decimal] = {}
        for address in self._redirect:
            if address == self._developer:
                continue
            amount = accumulator.get(address, Decimal("0"))
            if amount <= 0:
                continue
            del accumulator[address]
            accumulator[self._developer] = add_exact(
                accumulator.get(self._developer, Decimal("0")), amount
            )
            redirected[address] = amount
            logger.info("Redirected %s tokens from %s to developer", amount, address)
        return redirected

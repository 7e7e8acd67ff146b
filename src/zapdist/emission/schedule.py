"""Emission schedule — a pure function of wall-clock time and configuration.

Epoch numbering:

    epoch_number(now) = max(0, ceil((now - start) / period) + initial - 1)

Epochs numbered below ``initial_epoch_number`` form the single
retroactive epoch, spanning [0, retroactive_cutoff). Regular epoch n
spans [start_n, start_n + period) where

    start_n = (n - initial) * period + distribution_start

Budget split (exact decimal arithmetic, no floats):

    developers = tokens_for_epoch * developer_bps / 10000
    users      = tokens_for_epoch - developers
    traders    = users * trader_bps / 10000   (retroactive epoch only)
    providers  = users - traders

Once the epoch number passes the last regular epoch the distribution
has ended: boundaries are undefined and the budget is zero.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, localcontext
from typing import Optional, Tuple

from zapdist.compensation.rounding import ALLOCATION_CONTEXT
from zapdist.models.emission import BPS_DENOMINATOR, EmissionConfig, EpochInfo


def unix_now() -> int:
    """Current UTC time in whole seconds."""
    return int(datetime.now(timezone.utc).timestamp())


class EmissionSchedule:
    """Computes epoch numbers, boundaries and token budgets.

    Usage:
        schedule = EmissionSchedule(config.emission)
        current = schedule.epoch_info()              # epoch containing now
        previous = schedule.epoch_info(current.epoch_number - 1)
    """

    def __init__(self, config: EmissionConfig) -> None:
        self._config = config

    @property
    def config(self) -> EmissionConfig:
        return self._config

    @property
    def last_epoch_number(self) -> int:
        return self._config.last_epoch_number

    def epoch_number(self, now: Optional[int] = None) -> int:
        """Return the number of the epoch containing ``now``."""
        if now is None:
            now = unix_now()
        cfg = self._config
        elapsed = now - cfg.distribution_start_time
        # Integer ceiling division keeps this exact for any timestamp.
        periods = -(-elapsed // cfg.epoch_period)
        return max(0, periods + cfg.initial_epoch_number - 1)

    def is_initial(self, epoch_number: int) -> bool:
        return (
            self._config.has_retroactive_epoch
            and epoch_number < self._config.initial_epoch_number
        )

    def distribution_ended(self, epoch_number: int) -> bool:
        return epoch_number > self.last_epoch_number

    def boundaries(self, epoch_number: int) -> Tuple[Optional[int], Optional[int]]:
        """Return (start, end) for an epoch, or (None, None) once ended."""
        cfg = self._config
        if self.distribution_ended(epoch_number):
            return None, None
        if self.is_initial(epoch_number):
            return 0, cfg.retroactive_distribution_cutoff_time
        start = (
            (epoch_number - cfg.initial_epoch_number) * cfg.epoch_period
            + cfg.distribution_start_time
        )
        return start, start + cfg.epoch_period

    def tokens_for_epoch(self, epoch_number: int) -> Decimal:
        if self.is_initial(epoch_number):
            return self._config.tokens_for_retroactive_distribution
        if self.distribution_ended(epoch_number):
            return Decimal("0")
        return self._config.tokens_per_epoch

    def epoch_info(
        self,
        epoch_number: Optional[int] = None,
        now: Optional[int] = None,
    ) -> EpochInfo:
        """Derive the full EpochInfo for an explicit epoch or for ``now``."""
        if epoch_number is None:
            epoch_number = self.epoch_number(now)
        if epoch_number < 0:
            raise ValueError(f"epoch_number must be >= 0, got {epoch_number}")

        cfg = self._config
        is_initial = self.is_initial(epoch_number)
        start, end = self.boundaries(epoch_number)
        bps = Decimal(BPS_DENOMINATOR)

        with localcontext(ALLOCATION_CONTEXT):
            tokens = self.tokens_for_epoch(epoch_number)
            developers = tokens * Decimal(cfg.developer_token_ratio_bps) / bps
            users = tokens - developers
            if is_initial:
                traders = users * Decimal(cfg.trader_token_ratio_bps) / bps
            else:
                traders = Decimal("0")
            providers = users - traders

        return EpochInfo(
            epoch_number=epoch_number,
            is_initial=is_initial,
            distribution_ended=self.distribution_ended(epoch_number),
            start=start,
            end=end,
            tokens_for_epoch=tokens,
            tokens_for_developers=developers,
            tokens_for_users=users,
            tokens_for_traders=traders,
            tokens_for_liquidity_providers=providers,
        )

    def previous_completed_epoch(self, now: Optional[int] = None) -> EpochInfo:
        """EpochInfo for the most recently completed epoch.

        The epoch may still be running if ``now`` sits inside the
        retroactive window; callers check ``end`` against ``now``.
        """
        current = self.epoch_number(now)
        return self.epoch_info(max(0, current - 1))

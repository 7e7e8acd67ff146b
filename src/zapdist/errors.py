"""Error kinds raised by the distribution engine.

Each failure mode that aborts an epoch generation has its own type so
callers can decide whether "fatal" means abort the batch or abort the
process. Detection happens in the module that owns the rule; nothing
here is caught and retried internally.
"""

from __future__ import annotations


class DistributionError(Exception):
    """Base class for all zapdist failures."""


class ConfigError(DistributionError, ValueError):
    """Emission or distribution configuration is invalid."""


class AddressDecodeError(DistributionError, ValueError):
    """An address string could not be decoded to 20 raw bytes."""


class NonIntegerAmountError(DistributionError, ValueError):
    """A reward amount with a non-zero decimal scale reached the hasher."""


class AmountOverflowError(DistributionError, ValueError):
    """A reward amount does not fit the 16-byte leaf encoding."""


class EmptyDistributionError(DistributionError, ValueError):
    """A commitment tree was requested over zero recipients."""


class BudgetExceededError(DistributionError, RuntimeError):
    """Allocated total exceeds the epoch budget.

    This is an internal-consistency defect, never a user error.
    """

    def __init__(self, total_distributed, tokens_for_epoch) -> None:
        self.total_distributed = total_distributed
        self.tokens_for_epoch = tokens_for_epoch
        super().__init__(
            f"Total distributed tokens > target tokens for epoch: "
            f"{total_distributed} > {tokens_for_epoch}"
        )


class DistributionExistsError(DistributionError, RuntimeError):
    """Records for (distributor, epoch) already exist in storage."""

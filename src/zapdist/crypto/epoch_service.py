"""Epoch service — generates the commitment for the last completed epoch.

One generation run for one distributor:

1. Target the most recently completed epoch: max(0, current - 1).
2. No-op if the distribution has ended or the target is still running.
3. No-op if records already exist for (distributor, epoch).
4. Allocate the epoch budget and check it is not exceeded.
5. Build leaves, root and per-leaf proofs.
6. Re-check existence right before writing.
7. Persist every record in one transaction and return the hex root.

There is no lock across steps 3-7. A concurrent run for the same epoch
loses at the storage uniqueness constraint and persists nothing, so a
failed run can always be retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Sequence

from zapdist.compensation.allocator import RewardAllocator
from zapdist.crypto.address import DEFAULT_HRP
from zapdist.crypto.commitment_builder import CommitmentBuilder
from zapdist.emission.schedule import EmissionSchedule, unix_now
from zapdist.log import log_event
from zapdist.models.commitment import EpochCommitment
from zapdist.models.distribution import DistributionRecord
from zapdist.models.emission import DistributionConfig
from zapdist.persistence.contributions import ContributionSource

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """Outcome of one generation attempt."""
    GENERATED = "generated"
    ALREADY_GENERATED = "already_generated"
    EPOCH_NOT_OVER = "epoch_not_over"
    DISTRIBUTION_ENDED = "distribution_ended"


class RecordSink(Protocol):
    """Write side of distribution storage used during generation."""

    def distribution_exists(self, distributor_address: str, epoch_number: int) -> bool:
        ...

    def insert_distribution_records(self, records: Sequence[DistributionRecord]) -> int:
        ...


@dataclass(frozen=True)
class GenerationResult:
    """What a generation attempt did. ``root`` is set only when generated."""
    status: GenerationStatus
    distributor_address: str
    epoch_number: int
    root: Optional[str] = None
    records_written: int = 0
    commitment: Optional[EpochCommitment] = field(default=None, repr=False)

    @property
    def generated(self) -> bool:
        return self.status == GenerationStatus.GENERATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "distributor_address": self.distributor_address,
            "epoch_number": self.epoch_number,
            "root": self.root,
            "records_written": self.records_written,
        }


class EpochOrchestrator:
    """Runs epoch generation for a single distributor.

    Usage:
        orchestrator = EpochOrchestrator(config, contributions, store)
        result = orchestrator.generate()
        if result.generated:
            publish(result.root)
    """

    def __init__(
        self,
        config: DistributionConfig,
        source: ContributionSource,
        store: RecordSink,
        hrp: str = DEFAULT_HRP,
    ) -> None:
        self._config = config
        self._source = source
        self._store = store
        self._hrp = hrp
        self._schedule = EmissionSchedule(config.emission)
        self._allocator = RewardAllocator(config, hrp)

    @property
    def schedule(self) -> EmissionSchedule:
        return self._schedule

    @property
    def allocator(self) -> RewardAllocator:
        return self._allocator

    def generate(self, now: Optional[int] = None) -> GenerationResult:
        """Generate and persist the last completed epoch, if due.

        Raises:
            AddressDecodeError, NonIntegerAmountError, AmountOverflowError,
            EmptyDistributionError, BudgetExceededError: generation aborted,
                nothing persisted.
            DistributionExistsError: lost a concurrent race at the storage
                layer, nothing persisted.
        """
        if now is None:
            now = unix_now()
        distributor = self._config.distributor_address_hex
        epoch = self._schedule.previous_completed_epoch(now)
        target = epoch.epoch_number

        if epoch.distribution_ended:
            return self._skip(GenerationStatus.DISTRIBUTION_ENDED, target)

        if epoch.end is None or now < epoch.end:
            return self._skip(GenerationStatus.EPOCH_NOT_OVER, target)

        if self._store.distribution_exists(distributor, target):
            return self._skip(GenerationStatus.ALREADY_GENERATED, target)

        allocation = self._allocator.allocate_from_source(epoch, self._source)

        builder = CommitmentBuilder(distributor, target, self._hrp)
        builder.add_allocations(allocation.amounts)
        commitment = builder.build()

        # Narrow the window against a concurrent run before writing.
        if self._store.distribution_exists(distributor, target):
            return self._skip(GenerationStatus.ALREADY_GENERATED, target)

        written = self._store.insert_distribution_records(commitment.records)

        log_event(
            logger, "epoch_generated",
            distributor=distributor,
            epoch_number=target,
            root=commitment.root,
            records=written,
            total_distributed=allocation.total_distributed,
            tokens_for_epoch=epoch.tokens_for_epoch,
        )
        return GenerationResult(
            status=GenerationStatus.GENERATED,
            distributor_address=distributor,
            epoch_number=target,
            root=commitment.root,
            records_written=written,
            commitment=commitment,
        )

    def _skip(self, status: GenerationStatus, epoch_number: int) -> GenerationResult:
        log_event(
            logger, "epoch_skipped",
            distributor=self._config.distributor_address_hex,
            epoch_number=epoch_number,
            reason=status.value,
        )
        return GenerationResult(
            status=status,
            distributor_address=self._config.distributor_address_hex,
            epoch_number=epoch_number,
        )

"""Distribution service — facade over schedule, allocator, builder and store.

Usage:
    configs = load_distribution_configs(settings.config_file, settings.network)
    service = DistributionService(configs, contributions, store,
                                  run_generate=settings.run_generate)
    result = service.generate_epochs()
    result = service.estimate_amounts("zil1...")
    result = service.claimable_data("zil1...")

Every operation returns a ServiceResult. Engine errors become a failed
result with the error message; a budget violation is a defect and is
re-raised instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from zapdist.config import configs_by_distributor
from zapdist.crypto.address import DEFAULT_HRP, normalize_address
from zapdist.crypto.anchor import SEPOLIA_CHAIN_ID, anchor_to_chain
from zapdist.crypto.epoch_service import EpochOrchestrator
from zapdist.emission.schedule import EmissionSchedule, unix_now
from zapdist.errors import BudgetExceededError, DistributionError
from zapdist.log import log_event
from zapdist.models.emission import DistributionConfig
from zapdist.persistence.contributions import ContributionSource
from zapdist.persistence.distribution_store import DistributionStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class DistributionService:
    """One entry point for every distribution operation."""

    def __init__(
        self,
        configs: Iterable[DistributionConfig],
        source: ContributionSource,
        store: DistributionStore,
        hrp: str = DEFAULT_HRP,
        run_generate: bool = False,
    ) -> None:
        self._configs = configs_by_distributor(configs)
        self._source = source
        self._store = store
        self._hrp = hrp
        self._run_generate = run_generate
        self._orchestrators = {
            distributor: EpochOrchestrator(config, source, store, hrp)
            for distributor, config in self._configs.items()
        }

    @property
    def distributors(self) -> List[str]:
        return list(self._configs)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_epochs(
        self,
        distributor_address: Optional[str] = None,
        now: Optional[int] = None,
    ) -> ServiceResult:
        """Generate the last completed epoch for each (or one) distributor.

        Distributors are independent: one failing does not stop the rest.
        """
        if not self._run_generate:
            log_event(logger, "generation_disabled")
            return ServiceResult(
                success=True,
                data={"status": "disabled", "results": []},
            )

        targets = self._select(distributor_address)
        if targets is None:
            return ServiceResult(
                success=False,
                errors=[f"Unknown distributor: {distributor_address}"],
            )

        if now is None:
            now = unix_now()
        results: List[Dict[str, Any]] = []
        errors: List[str] = []
        for distributor in targets:
            try:
                result = self._orchestrators[distributor].generate(now)
            except BudgetExceededError:
                raise
            except DistributionError as exc:
                logger.error("Epoch generation failed for %s: %s", distributor, exc)
                errors.append(f"{distributor}: {exc}")
                continue
            results.append(result.to_dict())

        return ServiceResult(
            success=not errors,
            errors=errors,
            data={"status": "ran", "results": results},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def distribution_info(self, now: Optional[int] = None) -> ServiceResult:
        """Every configured distribution with its current epoch."""
        info = []
        for config in self._configs.values():
            schedule = EmissionSchedule(config.emission)
            entry = config.to_dict()
            entry["epoch"] = schedule.epoch_info(now=now).to_dict()
            info.append(entry)
        return ServiceResult(success=True, data={"distributions": info})

    def estimate_amounts(self, address: str, now: Optional[int] = None) -> ServiceResult:
        """Provisional current-epoch rewards of ``address``, per distributor and pool."""
        try:
            normalize_address(address, self._hrp)
        except DistributionError as exc:
            return ServiceResult(success=False, errors=[str(exc)])

        estimates: Dict[str, Dict[str, str]] = {}
        try:
            for distributor, orchestrator in self._orchestrators.items():
                epoch = orchestrator.schedule.epoch_info(now=now)
                window = epoch.window
                if window is None:
                    estimates[distributor] = {}
                    continue
                amounts = orchestrator.allocator.estimate_for_address(
                    epoch,
                    address,
                    known_pools=self._source.list_known_pools(),
                    pool_liquidity=self._source.pool_liquidity_totals(window),
                    address_liquidity=self._source.address_liquidity_totals(window),
                )
                estimates[distributor] = {k: str(v) for k, v in sorted(amounts.items())}
        except DistributionError as exc:
            logger.error("Estimate for %s failed: %s", address, exc)
            return ServiceResult(success=False, errors=[str(exc)])
        return ServiceResult(success=True, data={"estimates": estimates})

    def distribution_data(
        self,
        distributor_address: str,
        epoch_number: int,
    ) -> ServiceResult:
        """All records of one generated epoch."""
        records = self._store.get_distributions(
            distributor_address=distributor_address,
            epoch_number=epoch_number,
        )
        return ServiceResult(
            success=True,
            data={"records": [r.to_dict() for r in records]},
        )

    def claimable_data(self, address: str) -> ServiceResult:
        """Generated rewards of ``address`` that have not been claimed."""
        try:
            canonical = normalize_address(address, self._hrp)
        except DistributionError as exc:
            return ServiceResult(success=False, errors=[str(exc)])
        records = self._store.unclaimed_distributions(canonical)
        return ServiceResult(
            success=True,
            data={"records": [r.to_dict() for r in records]},
        )

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    def anchor_root(
        self,
        distributor_address: str,
        epoch_number: int,
        rpc_url: Optional[str],
        private_key: Optional[str],
        chain_id: int = SEPOLIA_CHAIN_ID,
    ) -> ServiceResult:
        """Anchor the stored root of a generated epoch on chain."""
        if not rpc_url or not private_key:
            return ServiceResult(
                success=False,
                errors=["Missing SEPOLIA_RPC_URL and/or PRIVATE_KEY"],
            )
        records = self._store.get_distributions(
            distributor_address=distributor_address,
            epoch_number=epoch_number,
        )
        if not records:
            return ServiceResult(
                success=False,
                errors=[f"No distribution for {distributor_address} epoch {epoch_number}"],
            )
        root = records[0].proof_hashes[-1]
        record = anchor_to_chain(
            root=root,
            distributor_address=distributor_address,
            epoch_number=epoch_number,
            rpc_url=rpc_url,
            private_key=private_key,
            chain_id=chain_id,
        )
        return ServiceResult(success=True, data=record.to_dict())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _select(self, distributor_address: Optional[str]) -> Optional[List[str]]:
        if distributor_address is None:
            return list(self._configs)
        if distributor_address not in self._configs:
            return None
        return [distributor_address]

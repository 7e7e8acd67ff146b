"""Contribution source — the contract the ingestion side fulfils.

The engine never reads chain data itself. Whatever populates liquidity
and volume aggregates implements ContributionSource; the engine only
queries it for a window.

InMemoryContributions satisfies the Protocol over a static snapshot.
It backs the test suite and the CLI, which loads snapshots exported by
the ingestion pipeline as JSON:

    {
      "pools": ["zil1...", ...],
      "windows": [
        {
          "start": 1612339200, "end": 1612944000,
          "pool_liquidity": {"zil1pool...": "1000.5"},
          "address_liquidity": [["zil1pool...", "zil1user...", "10.25"]],
          "pool_volume": {"zil1pool...": ["100", "90"]},
          "address_volume": [["zil1user...", "190"]]
        }
      ]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Set, runtime_checkable

from zapdist.models.distribution import AddressLiquidity, AddressVolume, PoolVolume
from zapdist.models.emission import EpochWindow


@runtime_checkable
class ContributionSource(Protocol):
    """Aggregated per-pool and per-address activity for epoch windows."""

    def list_known_pools(self) -> Set[str]:
        """All pools ever observed."""
        ...

    def pool_liquidity_totals(
        self,
        window: EpochWindow,
        pool_filter: Optional[str] = None,
    ) -> Mapping[str, Decimal]:
        """Time-weighted liquidity per pool."""
        ...

    def address_liquidity_totals(
        self,
        window: EpochWindow,
        address_filter: Optional[str] = None,
    ) -> Sequence[AddressLiquidity]:
        """Time-weighted liquidity per (pool, address)."""
        ...

    def pool_volume_totals(self, window: EpochWindow) -> Mapping[str, PoolVolume]:
        """Trading volume per pool, split in/out."""
        ...

    def address_volume_totals(self, window: EpochWindow) -> Sequence[AddressVolume]:
        """Trading volume per address across all pools."""
        ...


@dataclass
class WindowSnapshot:
    """Aggregates observed for one window."""
    pool_liquidity: Dict[str, Decimal] = field(default_factory=dict)
    address_liquidity: List[AddressLiquidity] = field(default_factory=list)
    pool_volume: Dict[str, PoolVolume] = field(default_factory=dict)
    address_volume: List[AddressVolume] = field(default_factory=list)


class InMemoryContributions:
    """Static ContributionSource keyed by exact window.

    Usage:
        source = InMemoryContributions(pools={"zil1pool..."})
        source.set_window(EpochWindow(0, 100), WindowSnapshot(...))
    """

    def __init__(self, pools: Optional[Set[str]] = None) -> None:
        self._pools: Set[str] = set(pools or ())
        self._windows: Dict[EpochWindow, WindowSnapshot] = {}

    def set_window(self, window: EpochWindow, snapshot: WindowSnapshot) -> None:
        self._windows[EpochWindow(*window)] = snapshot
        self._pools.update(snapshot.pool_liquidity)

    def _snapshot(self, window: EpochWindow) -> WindowSnapshot:
        return self._windows.get(EpochWindow(*window), WindowSnapshot())

    def list_known_pools(self) -> Set[str]:
        return set(self._pools)

    def pool_liquidity_totals(
        self,
        window: EpochWindow,
        pool_filter: Optional[str] = None,
    ) -> Dict[str, Decimal]:
        totals = self._snapshot(window).pool_liquidity
        if pool_filter is not None:
            return {k: v for k, v in totals.items() if k == pool_filter}
        return dict(totals)

    def address_liquidity_totals(
        self,
        window: EpochWindow,
        address_filter: Optional[str] = None,
    ) -> List[AddressLiquidity]:
        entries = self._snapshot(window).address_liquidity
        if address_filter is not None:
            return [e for e in entries if e.address == address_filter]
        return list(entries)

    def pool_volume_totals(self, window: EpochWindow) -> Dict[str, PoolVolume]:
        return dict(self._snapshot(window).pool_volume)

    def address_volume_totals(self, window: EpochWindow) -> List[AddressVolume]:
        return list(self._snapshot(window).address_volume)

    @classmethod
    def from_json_file(cls, path: Path) -> InMemoryContributions:
        """Load a snapshot export. Amounts must be decimal strings or ints."""
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        source = cls(pools=set(data.get("pools", [])))
        for raw in data.get("windows", []):
            window = EpochWindow(int(raw["start"]), int(raw["end"]))
            snapshot = WindowSnapshot(
                pool_liquidity={
                    pool: _decimal(amount)
                    for pool, amount in raw.get("pool_liquidity", {}).items()
                },
                address_liquidity=[
                    AddressLiquidity(pool, address, _decimal(amount))
                    for pool, address, amount in raw.get("address_liquidity", [])
                ],
                pool_volume={
                    pool: PoolVolume(_decimal(in_amount), _decimal(out_amount))
                    for pool, (in_amount, out_amount) in raw.get("pool_volume", {}).items()
                },
                address_volume=[
                    AddressVolume(address, _decimal(amount))
                    for address, amount in raw.get("address_volume", [])
                ],
            )
            source.set_window(window, snapshot)
        return source


def _decimal(value: object) -> Decimal:
    if isinstance(value, float):
        raise ValueError(f"Float amounts are not accepted: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal amount: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Amount must be a non-negative finite decimal: {value!r}")
    return amount

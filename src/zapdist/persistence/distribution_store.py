"""Distribution store — durable, append-only record of generated epochs.

Rows are created once per (distributor, epoch) and never updated or
deleted. Storage enforces uniqueness on (distributor, epoch, address)
and every epoch is written in a single all-or-nothing transaction, so a
losing concurrent generation attempt persists nothing.

SQLite allows only one writer at a time; BEGIN IMMEDIATE takes the
write lock up front so the existence check and the inserts cannot be
interleaved with another writer on the same file.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from zapdist.errors import DistributionExistsError
from zapdist.models.distribution import Claim, DistributionRecord

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS distributions (
      id TEXT PRIMARY KEY,
      distributor_address TEXT NOT NULL,
      epoch_number INTEGER NOT NULL,
      address_bech32 TEXT NOT NULL,
      address_hex TEXT NOT NULL,
      amount TEXT NOT NULL,
      proof TEXT NOT NULL
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS index_unique_on_distr
      ON distributions (distributor_address, epoch_number, address_hex);
    """,
    """
    CREATE INDEX IF NOT EXISTS index_address_bech32_on_distr
      ON distributions (address_bech32);
    """,
    """
    CREATE TABLE IF NOT EXISTS claims (
      id TEXT PRIMARY KEY,
      transaction_hash TEXT NOT NULL,
      event_sequence INTEGER NOT NULL,
      block_height INTEGER NOT NULL,
      block_timestamp TEXT NOT NULL,
      distributor_address TEXT NOT NULL,
      epoch_number INTEGER NOT NULL,
      initiator_address TEXT NOT NULL,
      amount TEXT NOT NULL
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS index_unique_claim
      ON claims (initiator_address, distributor_address, epoch_number);
    """,
)


def _check_epoch_number(epoch_number: int) -> None:
    if not INT32_MIN <= epoch_number <= INT32_MAX:
        raise ValueError(f"epoch_number {epoch_number} does not fit a signed 32-bit integer")


class DistributionStore:
    """SQLite-backed storage for distribution records and claims.

    Usage:
        store = DistributionStore(Path("data/distributions.sqlite3"))
        if not store.distribution_exists(distributor, epoch):
            store.insert_distribution_records(records)
    """

    def __init__(self, path: Path, timeout_s: float = 30.0) -> None:
        self._path = Path(path)
        self._timeout_s = timeout_s
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._write_tx() as con:
            for statement in _SCHEMA:
                con.execute(statement)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(
            str(self._path),
            timeout=self._timeout_s,
            isolation_level=None,  # BEGIN/COMMIT managed explicitly
        )
        con.row_factory = sqlite3.Row
        return con

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @contextmanager
    def _write_tx(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            con.execute("BEGIN IMMEDIATE;")
            try:
                yield con
                con.execute("COMMIT;")
            except BaseException:
                con.execute("ROLLBACK;")
                raise
        finally:
            con.close()

    # ------------------------------------------------------------------
    # Distributions
    # ------------------------------------------------------------------

    def distribution_exists(self, distributor_address: str, epoch_number: int) -> bool:
        with self._read() as con:
            row = con.execute(
                "SELECT 1 FROM distributions WHERE distributor_address = ? AND epoch_number = ? LIMIT 1;",
                (distributor_address, epoch_number),
            ).fetchone()
        return row is not None

    def insert_distribution_records(
        self,
        records: Sequence[DistributionRecord],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> int:
        """Insert all records atomically, in batches of ``batch_size``.

        Returns the number of rows written.

        Raises:
            DistributionExistsError: any (distributor, epoch, address) row
                already exists; nothing from this call is persisted.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        for record in records:
            _check_epoch_number(record.epoch_number)

        rows = [
            (
                str(uuid.uuid4()),
                r.distributor_address,
                r.epoch_number,
                r.address_bech32,
                r.address_hex,
                str(r.amount),
                r.proof,
            )
            for r in records
        ]
        try:
            with self._write_tx() as con:
                for i in range(0, len(rows), batch_size):
                    con.executemany(
                        """
                        INSERT INTO distributions
                          (id, distributor_address, epoch_number, address_bech32,
                           address_hex, amount, proof)
                        VALUES (?, ?, ?, ?, ?, ?, ?);
                        """,
                        rows[i:i + batch_size],
                    )
        except sqlite3.IntegrityError as exc:
            raise DistributionExistsError(
                f"Distribution rows already exist: {exc}"
            ) from exc

        logger.info("Persisted %d distribution records", len(rows))
        return len(rows)

    def get_distributions(
        self,
        distributor_address: Optional[str] = None,
        epoch_number: Optional[int] = None,
        address: Optional[str] = None,
    ) -> List[DistributionRecord]:
        """Query records; ``address`` matches either text form."""
        clauses: List[str] = []
        params: List[object] = []
        if distributor_address is not None:
            clauses.append("distributor_address = ?")
            params.append(distributor_address)
        if epoch_number is not None:
            clauses.append("epoch_number = ?")
            params.append(epoch_number)
        if address is not None:
            clauses.append("(address_bech32 = ? OR address_hex = ?)")
            params.extend([address, address.lower().removeprefix("0x")])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._read() as con:
            rows = con.execute(
                f"SELECT * FROM distributions {where} "
                "ORDER BY distributor_address, epoch_number, address_hex;",
                params,
            ).fetchall()
        return [_record_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def record_claim(self, claim: Claim) -> None:
        """Record an on-chain claim. Duplicate claims are rejected."""
        _check_epoch_number(claim.epoch_number)
        with self._write_tx() as con:
            con.execute(
                """
                INSERT INTO claims
                  (id, transaction_hash, event_sequence, block_height, block_timestamp,
                   distributor_address, epoch_number, initiator_address, amount)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    str(uuid.uuid4()),
                    claim.transaction_hash,
                    claim.event_sequence,
                    claim.block_height,
                    claim.block_timestamp.isoformat(),
                    claim.distributor_address,
                    claim.epoch_number,
                    claim.initiator_address,
                    str(claim.amount),
                ),
            )

    def get_claims(
        self,
        address: Optional[str] = None,
        distributor_address: Optional[str] = None,
        epoch_number: Optional[int] = None,
    ) -> List[Claim]:
        clauses: List[str] = []
        params: List[object] = []
        if address is not None:
            clauses.append("initiator_address = ?")
            params.append(address)
        if distributor_address is not None:
            clauses.append("distributor_address = ?")
            params.append(distributor_address)
        if epoch_number is not None:
            clauses.append("epoch_number = ?")
            params.append(epoch_number)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._read() as con:
            rows = con.execute(
                f"SELECT * FROM claims {where} ORDER BY block_height DESC, event_sequence;",
                params,
            ).fetchall()
        return [
            Claim(
                transaction_hash=row["transaction_hash"],
                event_sequence=row["event_sequence"],
                block_height=row["block_height"],
                block_timestamp=datetime.fromisoformat(row["block_timestamp"]),
                distributor_address=row["distributor_address"],
                epoch_number=row["epoch_number"],
                initiator_address=row["initiator_address"],
                amount=Decimal(row["amount"]),
            )
            for row in rows
        ]

    def unclaimed_distributions(self, address: str) -> List[DistributionRecord]:
        """Records for ``address`` (bech32 form) with no matching claim."""
        with self._read() as con:
            rows = con.execute(
                """
                SELECT d.* FROM distributions d
                WHERE d.address_bech32 = ?
                  AND NOT EXISTS (
                    SELECT 1 FROM claims c
                    WHERE c.initiator_address = d.address_bech32
                      AND c.distributor_address = d.distributor_address
                      AND c.epoch_number = d.epoch_number
                  )
                ORDER BY d.distributor_address, d.epoch_number;
                """,
                (address,),
            ).fetchall()
        return [_record_from_row(row) for row in rows]


def _record_from_row(row: sqlite3.Row) -> DistributionRecord:
    return DistributionRecord(
        distributor_address=row["distributor_address"],
        epoch_number=row["epoch_number"],
        address_bech32=row["address_bech32"],
        address_hex=row["address_hex"],
        amount=Decimal(row["amount"]),
        proof=row["proof"],
    )

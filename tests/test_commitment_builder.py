"""Tests for leaf hashing and the commitment builder."""

import hashlib
import pytest
from decimal import Decimal

from zapdist.crypto.address import decode_text_address, normalize_address
from zapdist.crypto.commitment_builder import (
    CommitmentBuilder,
    encode_amount,
    leaf_hash,
)
from zapdist.crypto.merkle import verify_proof
from zapdist.errors import (
    AddressDecodeError,
    AmountOverflowError,
    EmptyDistributionError,
    NonIntegerAmountError,
)


DISTRIBUTOR = "0x" + "ee" * 20
ALICE = "0x" + "01" * 20
BOB = "0x" + "02" * 20
CAROL = "0x" + "03" * 20


class TestLeafHash:
    def test_amount_is_16_bytes_big_endian(self) -> None:
        assert encode_amount(Decimal("258")) == b"\x00" * 14 + b"\x01\x02"

    def test_leaf_hash_layout(self) -> None:
        raw = b"\x01" * 20
        amount_digest = hashlib.sha256(b"\x00" * 15 + b"\x07").digest()
        expected = hashlib.sha256(raw + amount_digest).digest()
        assert leaf_hash(raw, Decimal("7")) == expected

    def test_non_integer_amount_rejected(self) -> None:
        with pytest.raises(NonIntegerAmountError):
            encode_amount(Decimal("1.5"))

    def test_trailing_zero_scale_rejected(self) -> None:
        with pytest.raises(NonIntegerAmountError):
            encode_amount(Decimal("100.00"))

    def test_largest_amount_fits(self) -> None:
        assert encode_amount(Decimal(2 ** 128 - 1)) == b"\xff" * 16

    def test_overflow_rejected(self) -> None:
        with pytest.raises(AmountOverflowError):
            encode_amount(Decimal(2 ** 128))

    def test_negative_rejected(self) -> None:
        with pytest.raises(AmountOverflowError):
            encode_amount(Decimal("-1"))

    def test_address_length_checked(self) -> None:
        with pytest.raises(ValueError):
            leaf_hash(b"\x01" * 19, Decimal("1"))


class TestCommitmentBuilder:
    def test_builds_records_with_proofs(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=3)
        builder.add_allocations({
            normalize_address(ALICE): Decimal("680"),
            normalize_address(BOB): Decimal("170"),
            normalize_address(CAROL): Decimal("150"),
        })
        commitment = builder.build()

        assert commitment.leaf_count == 3
        assert commitment.internal_levels == 2
        assert commitment.total_amount == Decimal("1000")
        assert len(commitment.root) == 64
        for record in commitment.records:
            assert record.distributor_address == DISTRIBUTOR
            assert record.epoch_number == 3
            assert record.proof_hashes[-1] == commitment.root
            assert verify_proof(record.proof)

    def test_record_address_forms(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=0)
        builder.add_allocation(ALICE, Decimal("5"))
        record = builder.build().records[0]
        assert record.address_hex == "01" * 20
        assert record.address_bech32 == normalize_address(ALICE)

    def test_first_proof_element_is_leaf_hash(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=0)
        builder.add_allocation(ALICE, Decimal("5"))
        builder.add_allocation(BOB, Decimal("6"))
        commitment = builder.build()
        for record in commitment.records:
            raw = decode_text_address(record.address_hex)
            assert record.proof_hashes[0] == leaf_hash(raw, record.amount).hex()

    def test_single_recipient(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=0)
        builder.add_allocation(ALICE, Decimal("5"))
        commitment = builder.build()
        leaf = commitment.records[0].proof_hashes[0]
        assert commitment.root == leaf
        assert commitment.records[0].proof == f"{leaf} {leaf}"

    def test_order_independent_root(self) -> None:
        first = CommitmentBuilder(DISTRIBUTOR, epoch_number=1)
        first.add_allocation(ALICE, Decimal("1"))
        first.add_allocation(BOB, Decimal("2"))
        second = CommitmentBuilder(DISTRIBUTOR, epoch_number=1)
        second.add_allocation(BOB, Decimal("2"))
        second.add_allocation(ALICE, Decimal("1"))
        assert first.build().root == second.build().root

    def test_zero_amount_is_committed(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=1)
        builder.add_allocation(ALICE, Decimal("0"))
        assert builder.build().records[0].amount == Decimal("0")

    def test_empty_rejected(self) -> None:
        with pytest.raises(EmptyDistributionError):
            CommitmentBuilder(DISTRIBUTOR, epoch_number=1).build()

    def test_malformed_address_fails_fast(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=1)
        with pytest.raises(AddressDecodeError):
            builder.add_allocation("zil1broken", Decimal("1"))

    def test_non_integer_amount_fails_fast(self) -> None:
        builder = CommitmentBuilder(DISTRIBUTOR, epoch_number=1)
        with pytest.raises(NonIntegerAmountError):
            builder.add_allocation(ALICE, Decimal("0.5"))
